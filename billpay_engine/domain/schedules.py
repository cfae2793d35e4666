"""Period-keyed schedule materialization for obligations"""

from typing import Iterable, List

from billpay_engine.domain.exceptions import ValidationError
from billpay_engine.domain.models import ExpectedSource, Obligation, Period, Schedule


def _schedule(obligation: Obligation, period: Period) -> Schedule:
    return Schedule(
        obligation_id=obligation.id,
        obligation_kind=obligation.kind,
        period=period,
        expected_amount=obligation.nominal_amount,
        due_day=obligation.due_day,
        expected_source=ExpectedSource.NOMINAL,
    )


def materialize_eager(obligation: Obligation, count: int = 12) -> List[Schedule]:
    """
    Generate schedules for consecutive months starting at the activation period.

    Requirements:
    - One schedule per month, `count` months from the activation anchor
    - Year rolls over when the anchor month is not January
    - Stops early where the obligation stops covering periods
      (installment term exhausted, biller deactivated)

    Args:
        obligation: Biller or installment being activated
        count: Number of months to materialize

    Returns:
        Unsaved Schedule objects carrying the nominal amount

    Example:
        Biller activated 2026-11, count 3 → 2026-11, 2026-12, 2027-01
    """
    if count <= 0:
        return []
    return [_schedule(obligation, p) for p in obligation.periods(count)]


def extend_schedules(
    obligation: Obligation,
    existing_periods: Iterable[Period],
    count: int,
) -> List[Schedule]:
    """Schedules for the first `count` covered periods that do not exist yet"""
    existing = set(existing_periods)
    return [s for s in materialize_eager(obligation, count) if s.period not in existing]


def materialize_lazy(obligation: Obligation, period: Period) -> Schedule:
    """
    Schedule created on first payment for `period`.

    Raises:
        ValidationError: obligation does not cover the period
    """
    if not obligation.covers(period):
        raise ValidationError(
            f"{obligation.kind} {obligation.id} is not active in period {period}"
        )
    return _schedule(obligation, period)
