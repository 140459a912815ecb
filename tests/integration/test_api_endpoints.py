"""API endpoint integration tests."""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

ACTOR = {"X-Actor-ID": "ops@example.com"}


async def _create_run(client: AsyncClient, worker_id, **item) -> dict:
    response = await client.post(
        "/api/v1/payroll-runs",
        headers=ACTOR,
        json={"run_date": "2024-01-14", "items": [{"worker_id": str(worker_id), **item}]},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["posting_timing"] == "creation"
        assert data["version"]

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPayrollRunEndpoints:
    """Payroll run endpoints."""

    async def test_create_payroll_run(self, client: AsyncClient, worker):
        """POST /api/v1/payroll-runs creates a PENDING run."""
        data = await _create_run(client, worker.worker_id, leave_days="2")

        assert data["status"] == "PENDING"
        assert data["worker_count"] == 1
        payment = data["payments"][0]
        assert Decimal(payment["tds"]) == Decimal("4286")
        assert Decimal(payment["net"]) == Decimal("33571.14")
        assert payment["bank_snapshot"]["ifsc_code"] == "UTIB0000123"

    async def test_get_and_list(self, client: AsyncClient, worker):
        created = await _create_run(client, worker.worker_id)

        response = await client.get(f"/api/v1/payroll-runs/{created['payroll_run_id']}")
        assert response.status_code == 200
        assert response.json()["payroll_run_id"] == created["payroll_run_id"]

        response = await client.get("/api/v1/payroll-runs", params={"status": "pending"})
        assert response.status_code == 200
        listing = response.json()
        assert listing["total"] == 1
        assert listing["page"] == 1

    async def test_unknown_run_is_404(self, client: AsyncClient):
        response = await client.get(f"/api/v1/payroll-runs/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_validation_error_is_400(self, client: AsyncClient, worker):
        response = await client.post(
            "/api/v1/payroll-runs",
            json={
                "run_date": "2024-01-14",
                "items": [{"worker_id": str(worker.worker_id), "leave_days": "50"}],
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_status_flow(self, client: AsyncClient, worker):
        """PENDING -> PROCESSED -> PAID, then the month shows the withholding."""
        run = await _create_run(client, worker.worker_id)
        url = f"/api/v1/payroll-runs/{run['payroll_run_id']}"

        response = await client.patch(url, headers=ACTOR, json={"status": "PROCESSED"})
        assert response.status_code == 200
        assert response.json()["processed_by"] == "ops@example.com"

        response = await client.patch(url, json={"status": "PAID"})
        assert response.status_code == 200
        paid = response.json()
        assert paid["status"] == "PAID"

        period = await client.get(
            f"/api/v1/tax-periods/{paid['tax_period_year']}/{paid['tax_period_month']}"
        )
        assert period.status_code == 200
        assert Decimal(period.json()["total_tds"]) == Decimal("3750")

    async def test_invalid_transition_is_400(self, client: AsyncClient, worker):
        run = await _create_run(client, worker.worker_id)
        response = await client.patch(
            f"/api/v1/payroll-runs/{run['payroll_run_id']}", json={"status": "PAID"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TRANSITION"

    async def test_edit_payments(self, client: AsyncClient, worker):
        run = await _create_run(client, worker.worker_id)
        payment_id = run["payments"][0]["payment_id"]

        response = await client.patch(
            f"/api/v1/payroll-runs/{run['payroll_run_id']}/payments",
            json={"updates": [{"payment_id": payment_id, "leave_days": "2"}]},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["total_leave_cashout"]) == Decimal("5357.14")

    async def test_rerun(self, client: AsyncClient, worker):
        run = await _create_run(client, worker.worker_id)

        response = await client.post(f"/api/v1/payroll-runs/{run['payroll_run_id']}/rerun")
        assert response.status_code == 201
        assert response.json()["rerun_of_id"] == run["payroll_run_id"]

    async def test_generate(self, client: AsyncClient, schedule, worker):
        response = await client.post(
            "/api/v1/payroll-runs/generate",
            json={"schedule_id": str(schedule.pay_schedule_id), "today": "2024-01-28"},
        )
        assert response.status_code == 201
        assert [r["run_date"] for r in response.json()] == ["2024-01-14", "2024-01-28"]


class TestDebtRunEndpoints:
    async def test_debt_run_flow(self, client: AsyncClient, make_worker):
        worker = await make_worker(debt_balance=Decimal("50000"))

        response = await client.post(
            "/api/v1/debt-runs",
            json={
                "run_date": "2024-03-01",
                "items": [{"worker_id": str(worker.worker_id), "amount": "50000"}],
            },
        )
        assert response.status_code == 201
        run = response.json()
        assert Decimal(run["total_tds"]) == Decimal("5000")
        assert Decimal(run["payments"][0]["net"]) == Decimal("45000")

        url = f"/api/v1/debt-runs/{run['debt_run_id']}"
        assert (await client.patch(url, json={"status": "PROCESSED"})).status_code == 200
        response = await client.patch(url, json={"status": "PAID"})
        assert response.json()["status"] == "PAID"

        response = await client.get(url)
        assert response.status_code == 200


class TestManualPaymentEndpoints:
    async def test_record_and_list(self, client: AsyncClient, make_worker):
        worker = await make_worker()

        response = await client.post(
            "/api/v1/manual-payments",
            headers=ACTOR,
            json={
                "worker_id": str(worker.worker_id),
                "category": "ADVANCE_SALARY",
                "gross_amount": "5000",
                "is_taxable": False,
                "payment_date": "2024-01-05",
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["transaction"]["type"] == "DEBIT"
        assert Decimal(body["transaction"]["balance_after"]) == Decimal("-5000")

        response = await client.get(
            "/api/v1/manual-payments", params={"worker_id": str(worker.worker_id)}
        )
        assert response.status_code == 200
        assert len(response.json()) == 1

    async def test_unknown_category_is_422(self, client: AsyncClient, make_worker):
        worker = await make_worker()
        response = await client.post(
            "/api/v1/manual-payments",
            json={"worker_id": str(worker.worker_id), "category": "GIFT", "gross_amount": "1"},
        )
        assert response.status_code == 422


class TestWorkerEndpoints:
    async def test_account_statement(self, client: AsyncClient, worker):
        await _create_run(client, worker.worker_id)

        response = await client.get(f"/api/v1/workers/{worker.worker_id}/account-statement")
        assert response.status_code == 200
        statement = response.json()
        assert Decimal(statement["account_balance"]) == Decimal("0")
        assert len(statement["transactions"]) == 1
        assert statement["transactions"][0]["label"] == "Salary"

    async def test_leave_adjustment(self, client: AsyncClient, worker):
        response = await client.post(
            f"/api/v1/workers/{worker.worker_id}/leave-adjustments",
            headers=ACTOR,
            json={"days": "2.5", "notes": "comp off"},
        )
        assert response.status_code == 201
        assert Decimal(response.json()["balance_after"]) == Decimal("12.5")

    async def test_statement_for_unknown_worker(self, client: AsyncClient):
        response = await client.get(f"/api/v1/workers/{uuid4()}/account-statement")
        assert response.status_code == 404


class TestTaxPeriodEndpoints:
    async def test_filing_unknown_month_is_404(self, client: AsyncClient):
        response = await client.patch("/api/v1/tax-periods/2024/5", json={"status": "FILED"})
        assert response.status_code == 404

    async def test_invalid_month_is_422(self, client: AsyncClient):
        response = await client.get("/api/v1/tax-periods/2024/13")
        assert response.status_code == 422

    async def test_mark_filed(self, client: AsyncClient, worker):
        run = await _create_run(client, worker.worker_id)
        url = f"/api/v1/payroll-runs/{run['payroll_run_id']}"
        await client.patch(url, json={"status": "PROCESSED"})
        paid = (await client.patch(url, json={"status": "PAID"})).json()
        period_url = f"/api/v1/tax-periods/{paid['tax_period_year']}/{paid['tax_period_month']}"

        response = await client.patch(
            period_url, json={"status": "FILED", "challan_number": "CH-42"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["filing_status"] == "FILED"
        assert body["records"][0]["challan_number"] == "CH-42"
        assert body["records"][0]["filed_date"] is not None
