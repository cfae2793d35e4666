"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, UUID4, field_validator
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from billpay_engine.config import settings
from billpay_engine.domain.models import AccountKind, EntryKind, Period, Schedule, ScheduleSummary


def _check_period(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        Period.parse(value)
    except ValueError as e:
        raise ValueError(f"period must be 'YYYY-MM', got {value!r}") from e
    return value


class AccountCreateRequest(BaseModel):
    """Request body for POST /v1/accounts"""

    name: str = Field(..., min_length=1, description="Display name")
    kind: AccountKind = Field(AccountKind.DEBIT, description="debit or revolving")
    opening_balance: Decimal = Field(Decimal("0"), description="Balance before the first entry")
    billing_anchor_day: Optional[int] = Field(None, ge=1, le=31, description="Statement anchor day")
    credit_limit: Optional[Decimal] = Field(None, ge=0)


class AccountResponse(BaseModel):
    account_id: str
    name: str
    kind: AccountKind
    opening_balance: Decimal
    billing_anchor_day: Optional[int] = None
    credit_limit: Optional[Decimal] = None


class BalanceResponse(BaseModel):
    """Response for GET /v1/accounts/{account_id}/balance"""

    account_id: str
    balance: Decimal
    available_balance: Decimal


class ObligationCreateRequest(BaseModel):
    """Request body for POST /v1/obligations"""

    kind: Literal["biller", "installment"]
    name: str = Field(..., min_length=1)
    nominal_amount: Decimal = Field(..., ge=0, description="Amount owed each period")
    due_day: int = Field(settings.default_due_day, ge=1, le=31)
    activation_period: str = Field(..., description="First covered period, YYYY-MM")
    deactivation_period: Optional[str] = Field(None, description="Last covered period for billers")
    term_months: Optional[int] = Field(None, gt=0, description="Installment term")
    linked_account_id: Optional[UUID4] = None
    strategy: Literal["eager", "lazy"] = "eager"
    months: Optional[int] = Field(None, gt=0, description="Eager horizon override")
    legacy_schedules: Optional[List[Dict[str, Any]]] = None

    @field_validator("activation_period", "deactivation_period")
    @classmethod
    def check_periods(cls, value):
        return _check_period(value)


class ScheduleSchema(BaseModel):
    """Single period of an obligation"""

    schedule_id: Optional[str] = None
    period: str
    expected_amount: Decimal
    expected_source: str
    due_date: date

    @classmethod
    def from_domain(cls, schedule: Schedule) -> "ScheduleSchema":
        return cls(
            schedule_id=str(schedule.id) if schedule.id else None,
            period=schedule.period.key,
            expected_amount=schedule.expected_amount,
            expected_source=schedule.expected_source.value,
            due_date=schedule.due_date,
        )


class ObligationResponse(BaseModel):
    obligation_id: str
    kind: str
    name: str
    schedules: List[ScheduleSchema]


class ExtendSchedulesRequest(BaseModel):
    months: int = Field(..., gt=0)


class ObligationPaymentRequest(BaseModel):
    """Request body for POST /v1/obligations/{obligation_id}/payments"""

    period: str = Field(..., description="Period being paid, YYYY-MM")
    account_id: UUID4
    amount: Decimal = Field(..., gt=0, description="Positive magnitude")
    entry_date: date
    description: str = ""

    @field_validator("period")
    @classmethod
    def check_period(cls, value):
        return _check_period(value)


class BillingSyncResponse(BaseModel):
    obligation_id: str
    totals: Dict[str, Decimal]


class MigrationResponse(BaseModel):
    inserted: Dict[str, int]


class LedgerEntryCreateRequest(BaseModel):
    """Request body for POST /v1/entries; amount already carries its sign"""

    account_id: UUID4
    amount: Decimal
    entry_date: date
    kind: Optional[EntryKind] = None
    schedule_id: Optional[UUID4] = None
    counter_account_id: Optional[UUID4] = None
    related_entry_id: Optional[UUID4] = None
    installment_linked: bool = False
    description: str = ""


class TypedEntryRequest(BaseModel):
    """Request body for POST /v1/entries/typed; sign is derived from kind"""

    account_id: UUID4
    kind: EntryKind
    amount: Decimal = Field(..., gt=0)
    entry_date: date
    schedule_id: Optional[UUID4] = None
    counter_account_id: Optional[UUID4] = None
    description: str = ""


class TransferRequest(BaseModel):
    source_account_id: UUID4
    destination_account_id: UUID4
    amount: Decimal = Field(..., gt=0)
    entry_date: date
    description: str = ""


class LoanRequest(BaseModel):
    account_id: UUID4
    amount: Decimal = Field(..., gt=0)
    entry_date: date
    counter_account_id: Optional[UUID4] = None
    description: str = ""


class LoanRepaymentRequest(BaseModel):
    account_id: UUID4
    amount: Decimal = Field(..., gt=0)
    entry_date: date
    description: str = ""


class EntriesResponse(BaseModel):
    """Ids of entries written or deleted"""

    entry_ids: List[str]


class LoanProgressResponse(BaseModel):
    loan_entry_id: str
    loan_amount: Decimal
    repaid_amount: Decimal
    remaining_amount: Decimal


class ScheduleSummaryResponse(BaseModel):
    """Response for GET /v1/schedules/{schedule_id}"""

    schedule_id: str
    obligation_id: str
    period: str
    status: str
    expected_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    due_date: date
    entry_ids: List[str]

    @classmethod
    def from_domain(cls, summary: ScheduleSummary) -> "ScheduleSummaryResponse":
        schedule = summary.schedule
        return cls(
            schedule_id=str(schedule.id),
            obligation_id=str(schedule.obligation_id),
            period=schedule.period.key,
            status=summary.status.value,
            expected_amount=schedule.expected_amount,
            paid_amount=summary.paid_amount,
            remaining_amount=summary.remaining_amount,
            due_date=schedule.due_date,
            entry_ids=[str(i) for i in summary.entry_ids],
        )
