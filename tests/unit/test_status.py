"""Unit tests for schedule status derivation"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from billpay_engine.domain.exceptions import ConsistencyError
from billpay_engine.domain.models import LedgerEntry, PaymentStatus, Period, Schedule
from billpay_engine.domain.status import resolve_status, summarize_schedule


def make_schedule(expected="100", period=Period(2026, 3), due_day=15) -> Schedule:
    return Schedule(
        id=uuid.uuid4(),
        obligation_id=uuid.uuid4(),
        obligation_kind="biller",
        period=period,
        expected_amount=Decimal(expected),
        due_day=due_day,
    )


def pay(schedule: Schedule, amount: str, on: date = date(2026, 3, 10)) -> LedgerEntry:
    return LedgerEntry(
        id=uuid.uuid4(),
        account_id=uuid.uuid4(),
        amount=Decimal(amount),
        entry_date=on,
        schedule_id=schedule.id,
        obligation_id=schedule.obligation_id,
    )


BEFORE_DUE = date(2026, 3, 1)
AFTER_DUE = date(2026, 3, 16)


def test_pending_before_due_date():
    """Nothing paid and the due date is ahead"""
    schedule = make_schedule()
    assert resolve_status(schedule, [], today=BEFORE_DUE) == PaymentStatus.PENDING


def test_due_date_itself_is_not_overdue():
    schedule = make_schedule()
    assert resolve_status(schedule, [], today=date(2026, 3, 15)) == PaymentStatus.PENDING


def test_overdue_after_due_date():
    """Nothing paid and the due date has passed"""
    schedule = make_schedule()
    assert resolve_status(schedule, [], today=AFTER_DUE) == PaymentStatus.OVERDUE


def test_partial_payment():
    schedule = make_schedule()
    entries = [pay(schedule, "40")]
    assert resolve_status(schedule, entries, today=AFTER_DUE) == PaymentStatus.PARTIAL


def test_partial_payments_accumulate_to_paid():
    """Several partial payments reaching the expected amount mark the schedule paid"""
    schedule = make_schedule()
    entries = [pay(schedule, "40"), pay(schedule, "35"), pay(schedule, "25")]
    assert resolve_status(schedule, entries, today=BEFORE_DUE) == PaymentStatus.PAID


def test_overpayment_is_paid():
    schedule = make_schedule()
    entries = [pay(schedule, "150")]
    assert resolve_status(schedule, entries, today=BEFORE_DUE) == PaymentStatus.PAID


def test_entry_direction_does_not_matter():
    """A refund-style negative entry still counts by magnitude"""
    schedule = make_schedule()
    entries = [pay(schedule, "-100")]
    assert resolve_status(schedule, entries, today=AFTER_DUE) == PaymentStatus.PAID


def test_zero_expected_amount_is_paid():
    """A billing cycle with no spend owes nothing"""
    schedule = make_schedule(expected="0")
    assert resolve_status(schedule, [], today=AFTER_DUE) == PaymentStatus.PAID


def test_due_day_clamped_in_short_month():
    """Due day 31 in February falls on the last day of the month"""
    schedule = make_schedule(period=Period(2026, 2), due_day=31)
    assert schedule.due_date == date(2026, 2, 28)
    assert resolve_status(schedule, [], today=date(2026, 2, 28)) == PaymentStatus.PENDING
    assert resolve_status(schedule, [], today=date(2026, 3, 1)) == PaymentStatus.OVERDUE


def test_derivation_is_pure():
    """Same inputs give the same status and the inputs are left untouched"""
    schedule = make_schedule()
    entries = [pay(schedule, "40")]
    snapshot = list(entries)

    first = resolve_status(schedule, entries, today=AFTER_DUE)
    second = resolve_status(schedule, entries, today=AFTER_DUE)

    assert first == second == PaymentStatus.PARTIAL
    assert entries == snapshot
    assert schedule.expected_amount == Decimal("100")


def test_removing_entry_regresses_status():
    """No ghost state: a schedule paid by one entry is unpaid once that entry is gone"""
    schedule = make_schedule()
    entry = pay(schedule, "100")

    assert resolve_status(schedule, [entry], today=AFTER_DUE) == PaymentStatus.PAID
    assert resolve_status(schedule, [], today=AFTER_DUE) == PaymentStatus.OVERDUE


def test_entry_linked_to_other_schedule_raises():
    schedule = make_schedule()
    other = make_schedule()
    with pytest.raises(ConsistencyError):
        resolve_status(schedule, [pay(other, "100")], today=BEFORE_DUE)


def test_entry_referencing_other_obligation_raises():
    """Entry points at the schedule but claims a different obligation"""
    schedule = make_schedule()
    entry = pay(schedule, "100")
    entry.obligation_id = uuid.uuid4()
    with pytest.raises(ConsistencyError):
        resolve_status(schedule, [entry], today=BEFORE_DUE)


def test_summary_amounts():
    schedule = make_schedule()
    entries = [pay(schedule, "30"), pay(schedule, "20")]
    summary = summarize_schedule(schedule, entries, today=AFTER_DUE)

    assert summary.status == PaymentStatus.PARTIAL
    assert summary.paid_amount == Decimal("50")
    assert summary.remaining_amount == Decimal("50")
    assert summary.entry_ids == [e.id for e in entries]


def test_summary_remaining_never_negative():
    schedule = make_schedule()
    summary = summarize_schedule(schedule, [pay(schedule, "130")], today=AFTER_DUE)
    assert summary.remaining_amount == Decimal("0")
