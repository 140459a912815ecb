"""Tests for environment-driven settings."""

import pytest

from payout_engine.config import PostingTiming, Settings


class TestSettingsFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "POSTING_TIMING",
            "SYMMETRIC_REVERT",
            "DEFAULT_CYCLE_DAYS",
            "TRANSACTION_TIMEOUT_SECONDS",
            "PAYROLL_REFERENCE_PREFIX",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.posting_timing is PostingTiming.CREATION
        assert settings.symmetric_revert is True
        assert settings.default_cycle_days == 14
        assert settings.transaction_timeout_seconds == 30.0
        assert settings.payroll_reference_prefix == "PAY"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("POSTING_TIMING", "Settlement")
        monkeypatch.setenv("SYMMETRIC_REVERT", "false")
        monkeypatch.setenv("DEFAULT_CYCLE_DAYS", "7")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.posting_timing is PostingTiming.SETTLEMENT
        assert settings.symmetric_revert is False
        assert settings.default_cycle_days == 7
        assert settings.log_level == "DEBUG"

    def test_unknown_posting_timing(self, monkeypatch):
        monkeypatch.setenv("POSTING_TIMING", "whenever")
        with pytest.raises(ValueError):
            Settings.from_env()
