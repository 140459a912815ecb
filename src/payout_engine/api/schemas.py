"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payout_engine.models import FilingStatus, ManualPaymentCategory


class ErrorResponse(BaseModel):
    """Error body returned by the exception handlers."""

    detail: str
    code: str


# ============================================================================
# Shared
# ============================================================================


class BankSnapshotResponse(BaseModel):
    """Bank details frozen on a payment."""

    model_config = ConfigDict(from_attributes=True)

    pan: str
    aadhaar: str | None = None
    bank_account: str
    ifsc_code: str
    bank_name: str
    is_axis_bank: bool


# ============================================================================
# Payroll run schemas
# ============================================================================


class PaymentItemRequest(BaseModel):
    """Per-worker input for a new payroll run."""

    worker_id: UUID
    leave_days: Decimal = Decimal("0")
    debt_amount: Decimal = Decimal("0")


class PayrollRunCreate(BaseModel):
    """Schema for creating a payroll run."""

    run_date: date
    items: list[PaymentItemRequest]
    schedule_id: UUID | None = None
    notes: str | None = None


class GenerateRunsRequest(BaseModel):
    """Create runs for every overdue date of a schedule."""

    schedule_id: UUID
    today: date | None = None


class StatusUpdate(BaseModel):
    """Requested status change for a run."""

    status: str
    notes: str | None = None


class PaymentUpdateRequest(BaseModel):
    """New leave and debt inputs for one payment."""

    payment_id: UUID
    leave_days: Decimal = Decimal("0")
    debt_amount: Decimal = Decimal("0")


class PaymentsUpdateRequest(BaseModel):
    """Batch of payment edits."""

    updates: list[PaymentUpdateRequest]


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    payment_id: UUID
    payroll_run_id: UUID
    worker_id: UUID
    sequence: int
    customer_reference: str
    gross_salary: Decimal
    tds_rate: Decimal
    leave_days: Decimal
    leave_cashout: Decimal
    debt_payout: Decimal
    taxable_amount: Decimal
    tds: Decimal
    net_before_recovery: Decimal
    recovery: Decimal
    net: Decimal
    status: str
    paid_at: datetime | None = None
    bank_snapshot: BankSnapshotResponse


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    pay_schedule_id: UUID | None = None
    run_date: date
    period_start: date
    period_end: date
    cycle_days: int
    status: str
    origin: str
    posting_timing: str
    total_gross: Decimal
    total_tds: Decimal
    total_net: Decimal
    total_leave_cashout: Decimal
    total_debt_payout: Decimal
    total_recovery: Decimal
    worker_count: int
    processed_at: datetime | None = None
    processed_by: str | None = None
    paid_at: datetime | None = None
    paid_by: str | None = None
    notes: str | None = None
    tax_period_year: int | None = None
    tax_period_month: int | None = None
    rerun_of_id: UUID | None = None
    created_at: datetime
    payments: list[PaymentResponse] = Field(default_factory=list)


class PayrollRunListResponse(BaseModel):
    """Schema for listing payroll runs."""

    items: list[PayrollRunResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# Debt run schemas
# ============================================================================


class DebtItemRequest(BaseModel):
    """Per-worker input for a debt run."""

    worker_id: UUID
    amount: Decimal
    notes: str | None = None


class DebtRunCreate(BaseModel):
    """Schema for creating a debt run."""

    run_date: date
    items: list[DebtItemRequest]
    notes: str | None = None


class DebtPaymentResponse(BaseModel):
    """Schema for debt payment response."""

    model_config = ConfigDict(from_attributes=True)

    debt_payment_id: UUID
    worker_id: UUID
    sequence: int
    customer_reference: str
    amount: Decimal
    tds_rate: Decimal
    tds: Decimal
    net: Decimal
    balance_after: Decimal
    status: str
    notes: str | None = None
    bank_snapshot: BankSnapshotResponse


class DebtRunResponse(BaseModel):
    """Schema for debt run response."""

    model_config = ConfigDict(from_attributes=True)

    debt_run_id: UUID
    run_date: date
    status: str
    total_amount: Decimal
    total_tds: Decimal
    total_net: Decimal
    worker_count: int
    processed_at: datetime | None = None
    paid_at: datetime | None = None
    notes: str | None = None
    tax_period_year: int | None = None
    tax_period_month: int | None = None
    created_at: datetime
    payments: list[DebtPaymentResponse] = Field(default_factory=list)


# ============================================================================
# Ledger schemas
# ============================================================================


class AccountTransactionResponse(BaseModel):
    """Schema for an account ledger row."""

    model_config = ConfigDict(from_attributes=True)

    account_transaction_id: UUID
    worker_id: UUID
    type: str
    category: str
    amount: Decimal
    balance_after: Decimal
    description: str
    payment_id: UUID | None = None
    debt_payment_id: UUID | None = None
    manual_payment_id: UUID | None = None
    reversal_of_id: UUID | None = None
    created_at: datetime


class StatementLineResponse(AccountTransactionResponse):
    """Ledger row with its display label."""

    label: str


class AccountStatementResponse(BaseModel):
    """Account statement for one worker."""

    worker_id: UUID
    name: str
    employee_code: str
    account_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    is_consistent: bool
    transactions: list[StatementLineResponse]


class LeaveAdjustmentRequest(BaseModel):
    """Manual leave correction (signed days)."""

    days: Decimal
    notes: str


class LeaveTransactionResponse(BaseModel):
    """Schema for a leave ledger row."""

    model_config = ConfigDict(from_attributes=True)

    leave_transaction_id: UUID
    worker_id: UUID
    kind: str
    days: Decimal
    balance_after: Decimal
    notes: str | None = None
    created_at: datetime


# ============================================================================
# Manual payment schemas
# ============================================================================


class ManualPaymentCreate(BaseModel):
    """Schema for recording a manual payment."""

    worker_id: UUID
    category: ManualPaymentCategory
    gross_amount: Decimal
    is_taxable: bool = True
    payment_date: date | None = None
    notes: str | None = None


class ManualPaymentResponse(BaseModel):
    """Schema for manual payment response."""

    model_config = ConfigDict(from_attributes=True)

    manual_payment_id: UUID
    worker_id: UUID
    category: str
    gross_amount: Decimal
    is_taxable: bool
    tds_rate: Decimal
    tds: Decimal
    net: Decimal
    payment_date: date
    customer_reference: str
    notes: str | None = None
    bank_snapshot: BankSnapshotResponse


class ManualPaymentCreated(BaseModel):
    """A manual payment with the ledger row it produced."""

    payment: ManualPaymentResponse
    transaction: AccountTransactionResponse


# ============================================================================
# Tax period schemas
# ============================================================================


class TaxRecordResponse(BaseModel):
    """Schema for one worker's monthly TDS record."""

    model_config = ConfigDict(from_attributes=True)

    tax_period_record_id: UUID
    worker_id: UUID
    year: int
    month: int
    total_gross: Decimal
    total_tds: Decimal
    total_net: Decimal
    total_tds_payable: Decimal
    interest_amount: Decimal
    payment_count: int
    filing_status: str
    challan_number: str | None = None
    filed_date: date | None = None
    paid_date: date | None = None


class TaxPeriodResponse(BaseModel):
    """All TDS records of a month with totals."""

    year: int
    month: int
    filing_status: str | None = None
    total_gross: Decimal
    total_tds: Decimal
    total_net: Decimal
    payment_count: int
    records: list[TaxRecordResponse]


class FilingStatusUpdate(BaseModel):
    """Filing details for a month."""

    status: FilingStatus
    challan_number: str | None = None
    filed_date: date | None = None
    paid_date: date | None = None
    interest_amount: Decimal | None = None
