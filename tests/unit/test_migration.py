"""Unit tests for reading and migrating embedded legacy schedules"""

import uuid
import pytest
from decimal import Decimal
from billpay_engine.domain.exceptions import ValidationError
from billpay_engine.domain.migration import (
    LegacyEmbedded,
    Normalized,
    plan_legacy_migration,
    read_schedules,
)
from billpay_engine.domain.models import FixedBiller, Period, Schedule


@pytest.fixture
def rent() -> FixedBiller:
    return FixedBiller(
        id=uuid.uuid4(),
        name="Rent",
        nominal_amount=Decimal("1200"),
        due_day=1,
        activation=Period(2025, 10),
    )


@pytest.fixture
def legacy_rows():
    return [
        {"month": "October", "year": "2025", "expectedAmount": 1200, "paid": True, "amountPaid": 1200},
        {"month": "November", "year": 2025, "expectedAmount": "1150.50", "status": "partial"},
        {"month": "December", "year": "2025"},
    ]


def test_legacy_rows_read_as_schedules(rent: FixedBiller, legacy_rows):
    schedules = read_schedules(LegacyEmbedded(rent.id, legacy_rows), rent)

    assert [s.period for s in schedules] == [Period(2025, 10), Period(2025, 11), Period(2025, 12)]
    assert schedules[1].expected_amount == Decimal("1150.50")
    assert all(s.id is None for s in schedules)


def test_missing_expected_amount_falls_back_to_nominal(rent: FixedBiller, legacy_rows):
    schedules = read_schedules(LegacyEmbedded(rent.id, legacy_rows), rent)
    assert schedules[2].expected_amount == Decimal("1200")


def test_cached_payment_fields_are_dropped(rent: FixedBiller, legacy_rows):
    """Paid flags on embedded rows never make it onto the schedule"""
    schedule = read_schedules(LegacyEmbedded(rent.id, legacy_rows), rent)[0]
    assert not hasattr(schedule, "paid")
    assert not hasattr(schedule, "amountPaid")


def test_later_duplicate_row_wins(rent: FixedBiller):
    rows = [
        {"month": "October", "year": "2025", "expectedAmount": 1000},
        {"month": "october", "year": "2025", "expectedAmount": 1100},
    ]
    schedules = read_schedules(LegacyEmbedded(rent.id, rows), rent)
    assert len(schedules) == 1
    assert schedules[0].expected_amount == Decimal("1100")


def test_normalized_read_is_ordered(rent: FixedBiller):
    later = Schedule(rent.id, "biller", Period(2026, 2), Decimal("1200"), id=uuid.uuid4())
    earlier = Schedule(rent.id, "biller", Period(2026, 1), Decimal("1200"), id=uuid.uuid4())
    schedules = read_schedules(Normalized([later, earlier]), rent)
    assert schedules == [earlier, later]


@pytest.mark.parametrize(
    "row",
    [
        {"year": "2025"},
        {"month": "Octember", "year": "2025"},
        {"month": "October", "year": "twenty"},
        {"month": "October", "year": "2025", "expectedAmount": "lots"},
    ],
)
def test_malformed_row_rejected(rent: FixedBiller, row):
    with pytest.raises(ValidationError):
        read_schedules(LegacyEmbedded(rent.id, [row]), rent)


def test_plan_skips_already_normalized_periods(rent: FixedBiller, legacy_rows):
    plan = plan_legacy_migration(rent, legacy_rows, [Period(2025, 11)])
    assert [s.period for s in plan] == [Period(2025, 10), Period(2025, 12)]


def test_plan_is_empty_once_everything_is_normalized(rent: FixedBiller, legacy_rows):
    existing = [Period(2025, 10), Period(2025, 11), Period(2025, 12)]
    assert plan_legacy_migration(rent, legacy_rows, existing) == []
