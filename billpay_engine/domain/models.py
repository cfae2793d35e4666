"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar, List, Optional

from billpay_engine.utils.date_utils import add_months, clamp_day, month_index


class AccountKind(str, Enum):
    DEBIT = "debit"
    REVOLVING = "revolving"


class EntryKind(str, Enum):
    """What a ledger entry represents; decides its sign once, at creation"""

    PAYMENT = "payment"
    WITHDRAW = "withdraw"
    TRANSFER_OUT = "transfer_out"
    LOAN = "loan"
    CASH_IN = "cash_in"
    TRANSFER_IN = "transfer_in"
    LOAN_PAYMENT = "loan_payment"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class ExpectedSource(str, Enum):
    """Where a schedule's expected amount came from"""

    NOMINAL = "nominal"
    BILLING_CYCLE = "billing_cycle"


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month; the key schedules are stored under"""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1-12, got {self.month}")

    @classmethod
    def from_date(cls, d: date) -> "Period":
        return cls(d.year, d.month)

    @classmethod
    def parse(cls, key: str) -> "Period":
        """Parse a 'YYYY-MM' key"""
        year, month = key.split("-")
        return cls(int(year), int(month))

    @classmethod
    def from_legacy(cls, month_name: str, year) -> "Period":
        """Build from the ('January', '2026') pair used by embedded schedule rows"""
        return cls(int(year), month_index(month_name))

    def shift(self, months: int) -> "Period":
        return Period(*add_months(self.year, self.month, months))

    def next(self) -> "Period":
        return self.shift(1)

    def day(self, day: int) -> date:
        """Date of `day` within this month, clamped to the month's length"""
        return clamp_day(self.year, self.month, day)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.key


@dataclass
class Account:
    """Ordinary debit account or revolving-credit line"""

    id: uuid.UUID
    name: str
    kind: AccountKind
    opening_balance: Decimal
    billing_anchor_day: Optional[int] = None
    credit_limit: Optional[Decimal] = None

    @property
    def is_revolving(self) -> bool:
        return self.kind == AccountKind.REVOLVING


@dataclass
class LedgerEntry:
    """Signed monetary movement; positive removes value, negative adds value"""

    id: uuid.UUID
    account_id: uuid.UUID
    amount: Decimal
    entry_date: date
    kind: EntryKind = EntryKind.PAYMENT
    counter_account_id: Optional[uuid.UUID] = None
    schedule_id: Optional[uuid.UUID] = None
    obligation_id: Optional[uuid.UUID] = None
    related_entry_id: Optional[uuid.UUID] = None
    installment_linked: bool = False
    description: str = ""


@dataclass
class Obligation:
    """
    Recurring or term-bound commitment.

    Subclasses decide which periods they cover; schedule materialization
    only ever asks `covers()` and `default_horizon()`.
    """

    id: uuid.UUID
    name: str
    nominal_amount: Decimal
    due_day: int
    activation: Period

    kind: ClassVar[str] = ""

    def covers(self, period: Period) -> bool:
        raise NotImplementedError

    def default_horizon(self, months: int) -> int:
        return months

    def periods(self, count: int) -> List[Period]:
        """Covered periods from activation forward, at most `count` of them"""
        result = []
        for i in range(count):
            period = self.activation.shift(i)
            if not self.covers(period):
                break
            result.append(period)
        return result


@dataclass
class FixedBiller(Obligation):
    """Bill with a fixed monthly amount, active from activation until deactivation"""

    deactivation: Optional[Period] = None
    linked_account_id: Optional[uuid.UUID] = None

    kind: ClassVar[str] = "biller"

    def covers(self, period: Period) -> bool:
        if period < self.activation:
            return False
        return self.deactivation is None or period <= self.deactivation


@dataclass
class Installment(Obligation):
    """Fixed-term plan paying `nominal_amount` each month for `term_months` months"""

    term_months: int = 0
    linked_account_id: Optional[uuid.UUID] = None

    kind: ClassVar[str] = "installment"

    @property
    def last_period(self) -> Period:
        return self.activation.shift(self.term_months - 1)

    def covers(self, period: Period) -> bool:
        return self.term_months > 0 and self.activation <= period <= self.last_period

    def default_horizon(self, months: int) -> int:
        # Installments materialize their whole term
        return self.term_months


@dataclass
class Schedule:
    """Expected amount for one obligation in one period; status is never stored here"""

    obligation_id: uuid.UUID
    obligation_kind: str
    period: Period
    expected_amount: Decimal
    due_day: int = 15
    expected_source: ExpectedSource = ExpectedSource.NOMINAL
    id: Optional[uuid.UUID] = None

    @property
    def due_date(self) -> date:
        return self.period.day(self.due_day)


@dataclass
class ScheduleSummary:
    """Derived view of a schedule for read paths"""

    schedule: Schedule
    status: PaymentStatus
    paid_amount: Decimal
    remaining_amount: Decimal
    entry_ids: List[uuid.UUID] = field(default_factory=list)


@dataclass
class LoanProgress:
    loan_amount: Decimal
    repaid_amount: Decimal
    remaining_amount: Decimal
