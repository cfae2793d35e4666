"""Unit tests for period-keyed schedule materialization"""

import uuid
import pytest
from decimal import Decimal
from billpay_engine.domain.exceptions import ValidationError
from billpay_engine.domain.models import ExpectedSource, FixedBiller, Installment, Period
from billpay_engine.domain.schedules import extend_schedules, materialize_eager, materialize_lazy


def biller(activation=Period(2026, 11), deactivation=None) -> FixedBiller:
    return FixedBiller(
        id=uuid.uuid4(),
        name="Electricity",
        nominal_amount=Decimal("80"),
        due_day=20,
        activation=activation,
        deactivation=deactivation,
    )


def installment(term=4) -> Installment:
    return Installment(
        id=uuid.uuid4(),
        name="Laptop",
        nominal_amount=Decimal("250"),
        due_day=5,
        activation=Period(2026, 3),
        term_months=term,
    )


def test_eager_twelve_months_rolls_year():
    """Activated November: 2026-11 through 2027-10"""
    schedules = materialize_eager(biller(), 12)

    assert len(schedules) == 12
    assert schedules[0].period == Period(2026, 11)
    assert schedules[1].period == Period(2026, 12)
    assert schedules[2].period == Period(2027, 1)
    assert schedules[-1].period == Period(2027, 10)


def test_eager_schedules_carry_nominal_amount():
    obligation = biller()
    for schedule in materialize_eager(obligation, 3):
        assert schedule.expected_amount == Decimal("80")
        assert schedule.expected_source == ExpectedSource.NOMINAL
        assert schedule.obligation_id == obligation.id
        assert schedule.obligation_kind == "biller"
        assert schedule.id is None


def test_eager_stops_at_deactivation():
    schedules = materialize_eager(biller(deactivation=Period(2027, 1)), 12)
    assert [s.period for s in schedules] == [Period(2026, 11), Period(2026, 12), Period(2027, 1)]


def test_installment_whole_term():
    obligation = installment(term=4)
    schedules = materialize_eager(obligation, obligation.default_horizon(12))

    assert [s.period for s in schedules] == [Period(2026, m) for m in (3, 4, 5, 6)]
    assert sum(s.expected_amount for s in schedules) == Decimal("1000")


def test_installment_never_exceeds_term():
    assert len(materialize_eager(installment(term=4), 12)) == 4


def test_zero_count():
    assert materialize_eager(biller(), 0) == []


def test_extend_skips_existing_periods():
    obligation = biller()
    existing = [Period(2026, 11), Period(2026, 12)]
    created = extend_schedules(obligation, existing, 4)
    assert [s.period for s in created] == [Period(2027, 1), Period(2027, 2)]


def test_lazy_matches_eager_key():
    """A schedule created on first payment is keyed like an eager one"""
    obligation = biller()
    lazy = materialize_lazy(obligation, Period(2027, 2))
    eager = materialize_eager(obligation, 12)[3]

    assert (lazy.obligation_id, lazy.period) == (eager.obligation_id, eager.period)
    assert lazy.expected_amount == eager.expected_amount


def test_lazy_before_activation_rejected():
    with pytest.raises(ValidationError):
        materialize_lazy(biller(), Period(2026, 10))


def test_lazy_after_term_rejected():
    with pytest.raises(ValidationError):
        materialize_lazy(installment(term=4), Period(2026, 7))


def test_due_date_follows_obligation_due_day():
    schedule = materialize_lazy(biller(), Period(2027, 2))
    assert schedule.due_date.day == 20
