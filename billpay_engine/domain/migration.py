"""Legacy embedded schedules and their one-shot move into the normalized store"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Union

from billpay_engine.domain.exceptions import ValidationError
from billpay_engine.domain.models import ExpectedSource, Obligation, Period, Schedule

logger = logging.getLogger(__name__)

# Cached payment state carried by embedded rows; derived from the ledger instead
CACHED_PAYMENT_FIELDS = ("amountPaid", "paid", "datePaid", "status", "receipt", "accountId")


@dataclass
class LegacyEmbedded:
    """Schedules still stored as a JSON array on the obligation row"""

    obligation_id: uuid.UUID
    rows: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Normalized:
    """Schedules stored one row per (obligation, period)"""

    schedules: List[Schedule] = field(default_factory=list)


ScheduleRepresentation = Union[LegacyEmbedded, Normalized]


def legacy_row_to_schedule(obligation: Obligation, row: Dict[str, Any]) -> Schedule:
    """Convert one embedded row; payment fields on the row are dropped"""
    try:
        period = Period.from_legacy(row["month"], row["year"])
        raw_amount = row.get("expectedAmount")
        expected = obligation.nominal_amount if raw_amount is None else Decimal(str(raw_amount))
    except (KeyError, ValueError, TypeError, InvalidOperation) as e:
        raise ValidationError(f"Malformed legacy schedule row for {obligation.id}: {row!r}") from e

    dropped = [name for name in CACHED_PAYMENT_FIELDS if row.get(name)]
    if dropped:
        logger.debug(
            "Dropping cached payment fields from legacy schedule",
            extra={"obligation_id": str(obligation.id), "period": period.key, "fields": dropped},
        )

    return Schedule(
        obligation_id=obligation.id,
        obligation_kind=obligation.kind,
        period=period,
        expected_amount=expected,
        due_day=obligation.due_day,
        expected_source=ExpectedSource.NOMINAL,
    )


def read_schedules(representation: ScheduleRepresentation, obligation: Obligation) -> List[Schedule]:
    """Single read path over either representation, ordered by period"""
    if isinstance(representation, LegacyEmbedded):
        schedules = {}
        for row in representation.rows:
            schedule = legacy_row_to_schedule(obligation, row)
            # Later rows for the same month win, as they did in the embedded array
            schedules[schedule.period] = schedule
        return [schedules[p] for p in sorted(schedules)]
    return sorted(representation.schedules, key=lambda s: s.period)


def plan_legacy_migration(
    obligation: Obligation,
    rows: Iterable[Dict[str, Any]],
    existing_periods: Iterable[Period],
) -> List[Schedule]:
    """
    Normalized schedules to insert for an obligation's embedded rows.

    Periods that already have a normalized schedule are skipped, so running
    the migration again inserts nothing.
    """
    existing = set(existing_periods)
    legacy = read_schedules(LegacyEmbedded(obligation.id, list(rows)), obligation)

    to_insert = []
    for schedule in legacy:
        if schedule.period in existing:
            logger.info(
                "Skipping legacy schedule, already normalized",
                extra={"obligation_id": str(obligation.id), "period": schedule.period.key},
            )
            continue
        to_insert.append(schedule)
    return to_insert
