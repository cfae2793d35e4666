"""Payment status derivation for schedules"""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from billpay_engine.domain.exceptions import ConsistencyError
from billpay_engine.domain.models import LedgerEntry, PaymentStatus, Schedule, ScheduleSummary


def paid_sum(entries: Iterable[LedgerEntry]) -> Decimal:
    """Total paid towards a schedule; direction of the entries does not matter"""
    return sum((abs(e.amount) for e in entries), Decimal("0"))


def check_links(schedule: Schedule, entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    """Ensure every entry actually links to `schedule`, raising ConsistencyError otherwise"""
    checked = []
    for entry in entries:
        if entry.schedule_id != schedule.id:
            raise ConsistencyError(
                f"Entry {entry.id} links to schedule {entry.schedule_id}, not {schedule.id}"
            )
        if entry.obligation_id is not None and entry.obligation_id != schedule.obligation_id:
            raise ConsistencyError(
                f"Entry {entry.id} references obligation {entry.obligation_id} "
                f"but schedule {schedule.id} belongs to {schedule.obligation_id}"
            )
        checked.append(entry)
    return checked


def resolve_status(
    schedule: Schedule,
    linked_entries: Iterable[LedgerEntry],
    today: Optional[date] = None,
) -> PaymentStatus:
    """
    Derive a schedule's status from the entries currently linked to it.

    Rules:
    - paid:    paid sum >= expected amount (overpayment is still paid)
    - partial: 0 < paid sum < expected amount
    - overdue: nothing paid and the due date is behind `today`
    - pending: nothing paid and the due date has not passed

    The result depends only on the expected amount, the due date and the sum
    of the linked entries, so removing an entry moves the status back.
    """
    entries = check_links(schedule, linked_entries)
    if today is None:
        today = date.today()

    total = paid_sum(entries)
    if total > 0 and total >= schedule.expected_amount:
        return PaymentStatus.PAID
    if total > 0:
        return PaymentStatus.PARTIAL
    if schedule.expected_amount <= 0:
        # Nothing owed for this period (e.g. a billing cycle with no spending)
        return PaymentStatus.PAID
    if today > schedule.due_date:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING


def summarize_schedule(
    schedule: Schedule,
    linked_entries: Iterable[LedgerEntry],
    today: Optional[date] = None,
) -> ScheduleSummary:
    """Status plus the paid/remaining figures shown next to it"""
    entries = check_links(schedule, linked_entries)
    status = resolve_status(schedule, entries, today=today)
    total = paid_sum(entries)
    remaining = max(schedule.expected_amount - total, Decimal("0"))
    return ScheduleSummary(
        schedule=schedule,
        status=status,
        paid_amount=total,
        remaining_amount=remaining,
        entry_ids=[e.id for e in entries],
    )
