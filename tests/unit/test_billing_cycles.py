"""Unit tests for billing cycle windows and spend aggregation"""

import uuid
import pytest
from datetime import date, timedelta
from decimal import Decimal
from billpay_engine.domain.billing_cycles import (
    aggregate,
    billing_cycles,
    cycle_for,
    cycle_starting,
    require_billing_anchor,
)
from billpay_engine.domain.exceptions import PreconditionError
from billpay_engine.domain.models import Account, AccountKind, EntryKind, LedgerEntry, Period


@pytest.fixture
def card() -> Account:
    return Account(
        id=uuid.uuid4(),
        name="Card",
        kind=AccountKind.REVOLVING,
        opening_balance=Decimal("0"),
        billing_anchor_day=10,
        credit_limit=Decimal("3000"),
    )


def spend(account: Account, amount: str, on: date, **kwargs) -> LedgerEntry:
    return LedgerEntry(
        id=uuid.uuid4(),
        account_id=account.id,
        amount=Decimal(amount),
        entry_date=on,
        **kwargs,
    )


def test_cycle_window_from_anchor():
    """Anchor 10: Jan 15 falls in Jan 10 - Feb 9, due in February"""
    cycle = cycle_for(10, date(2026, 1, 15))
    assert cycle.start == date(2026, 1, 10)
    assert cycle.end == date(2026, 2, 9)
    assert cycle.due_period == Period(2026, 2)
    assert cycle.label == "Jan 10 - Feb 9, 2026"


def test_day_before_anchor_belongs_to_previous_cycle():
    cycle = cycle_for(10, date(2026, 1, 9))
    assert cycle.start == date(2025, 12, 10)
    assert cycle.due_period == Period(2026, 1)


def test_anchor_day_opens_new_cycle():
    assert cycle_for(10, date(2026, 1, 10)).start == date(2026, 1, 10)


def test_december_cycle_due_in_january():
    cycle = cycle_for(10, date(2025, 12, 20))
    assert cycle.end == date(2026, 1, 9)
    assert cycle.due_period == Period(2026, 1)


def test_anchor_31_clamped_in_february():
    """The February cycle opens on the 28th and the January one closes the day before"""
    assert cycle_starting(31, Period(2026, 1)).end == date(2026, 2, 27)
    assert cycle_for(31, date(2026, 2, 27)).start == date(2026, 1, 31)
    assert cycle_for(31, date(2026, 2, 28)).start == date(2026, 2, 28)


def test_consecutive_cycles_are_contiguous():
    cycles = billing_cycles(31, Period(2025, 11), Period(2026, 4))
    assert len(cycles) == 6
    for previous, following in zip(cycles, cycles[1:]):
        assert previous.end + timedelta(days=1) == following.start


def test_aggregate_attributes_spend_to_due_period(card: Account):
    """Anchor 10, spend on Jan 15/20/25 → 275 due in February"""
    entries = [
        spend(card, "100", date(2026, 1, 15)),
        spend(card, "75", date(2026, 1, 20)),
        spend(card, "100", date(2026, 1, 25)),
    ]
    assert aggregate(card, entries) == {Period(2026, 2): Decimal("275")}


def test_aggregate_splits_across_cycles(card: Account):
    entries = [
        spend(card, "20", date(2026, 1, 5)),
        spend(card, "30", date(2026, 1, 12)),
        spend(card, "40", date(2026, 2, 10)),
    ]
    totals = aggregate(card, entries)
    assert totals == {
        Period(2026, 1): Decimal("20"),
        Period(2026, 2): Decimal("30"),
        Period(2026, 3): Decimal("40"),
    }
    assert list(totals) == sorted(totals)


def test_installment_linked_entries_excluded(card: Account):
    entries = [
        spend(card, "100", date(2026, 1, 15)),
        spend(card, "900", date(2026, 1, 16), installment_linked=True),
    ]
    assert aggregate(card, entries) == {Period(2026, 2): Decimal("100")}


def test_exclusion_applies_regardless_of_flag(card: Account):
    entries = [spend(card, "900", date(2026, 1, 16), installment_linked=True)]
    assert aggregate(card, entries, exclude_installment_linked=False) == {}


def test_credits_count_by_magnitude(card: Account):
    """Value added to the card lands in the same statement as spend"""
    entries = [
        spend(card, "100", date(2026, 1, 15)),
        spend(card, "-50", date(2026, 1, 20), kind=EntryKind.TRANSFER_IN),
        spend(card, "-25", date(2026, 1, 22), kind=EntryKind.CASH_IN),
    ]
    assert aggregate(card, entries) == {Period(2026, 2): Decimal("175")}


def test_other_account_entries_ignored(card: Account):
    entries = [spend(card, "10", date(2026, 1, 15))]
    entries.append(LedgerEntry(uuid.uuid4(), uuid.uuid4(), Decimal("500"), date(2026, 1, 15)))
    assert aggregate(card, entries) == {Period(2026, 2): Decimal("10")}


def test_debit_account_rejected():
    account = Account(uuid.uuid4(), "Checking", AccountKind.DEBIT, Decimal("0"), billing_anchor_day=10)
    with pytest.raises(PreconditionError):
        aggregate(account, [])


def test_revolving_without_anchor_rejected():
    account = Account(uuid.uuid4(), "Card", AccountKind.REVOLVING, Decimal("0"))
    with pytest.raises(PreconditionError):
        require_billing_anchor(account)
