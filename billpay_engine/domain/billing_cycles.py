"""Billing cycle windows and spend aggregation for revolving-credit accounts"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List

from billpay_engine.domain.exceptions import PreconditionError
from billpay_engine.domain.models import Account, LedgerEntry, Period


@dataclass(frozen=True)
class BillingCycle:
    """
    One statement window: [start, end] inclusive.

    The cycle opening on the anchor day of `start_period` closes on the day
    before the next anchor date, and its statement is due in `due_period`
    (the month it closes in).
    """

    start_period: Period
    start: date
    end: date

    @property
    def due_period(self) -> Period:
        return self.start_period.next()

    @property
    def label(self) -> str:
        return f"{self.start:%b} {self.start.day} - {self.end:%b} {self.end.day}, {self.end.year}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def cycle_starting(anchor_day: int, period: Period) -> BillingCycle:
    """Cycle that opens on the anchor day of `period`"""
    start = period.day(anchor_day)
    end = period.next().day(anchor_day) - timedelta(days=1)
    return BillingCycle(start_period=period, start=start, end=end)


def cycle_for(anchor_day: int, day: date) -> BillingCycle:
    """Cycle containing `day`"""
    period = Period.from_date(day)
    if day < period.day(anchor_day):
        period = period.shift(-1)
    return cycle_starting(anchor_day, period)


def billing_cycles(anchor_day: int, first: Period, last: Period) -> List[BillingCycle]:
    """Consecutive cycles opening in each month from `first` through `last`"""
    cycles = []
    period = first
    while period <= last:
        cycles.append(cycle_starting(anchor_day, period))
        period = period.next()
    return cycles


def require_billing_anchor(account: Account) -> int:
    """Anchor day of a revolving account, or PreconditionError"""
    if not account.is_revolving:
        raise PreconditionError(f"Account {account.id} is not a revolving-credit account")
    anchor = account.billing_anchor_day
    if anchor is None:
        raise PreconditionError(f"Account {account.id} has no billing anchor day")
    if not 1 <= anchor <= 31:
        raise PreconditionError(f"Account {account.id} has invalid billing anchor day {anchor}")
    return anchor


def is_billable(entry: LedgerEntry, account: Account) -> bool:
    """Whether an entry counts towards the account's statement"""
    if entry.account_id != account.id:
        return False
    # Principal of an installment is already tracked by its own obligation
    return not entry.installment_linked


def aggregate(
    account: Account,
    entries: Iterable[LedgerEntry],
    exclude_installment_linked: bool = True,
) -> Dict[Period, Decimal]:
    """
    Sum billable spend per billing cycle, keyed by the period the statement is due in.

    Installment-linked entries are left out whatever `exclude_installment_linked`
    says; the flag is accepted so callers can state intent explicitly.
    Only cycles with at least one billable entry appear in the result.

    Raises:
        PreconditionError: account is not revolving or has no billing anchor
    """
    anchor = require_billing_anchor(account)

    totals: Dict[Period, Decimal] = {}
    for entry in entries:
        if not is_billable(entry, account):
            continue
        due = cycle_for(anchor, entry.entry_date).due_period
        totals[due] = totals.get(due, Decimal("0")) + abs(entry.amount)

    return dict(sorted(totals.items()))
