"""Sign convention for ledger entries and builders for paired entries"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Tuple

from billpay_engine.domain.exceptions import ValidationError
from billpay_engine.domain.models import EntryKind, LedgerEntry

# Entries that take value out of the account they are booked on
VALUE_REMOVING = frozenset(
    {EntryKind.PAYMENT, EntryKind.WITHDRAW, EntryKind.TRANSFER_OUT, EntryKind.LOAN}
)

# Entries that bring value into the account they are booked on
VALUE_ADDING = frozenset({EntryKind.CASH_IN, EntryKind.TRANSFER_IN, EntryKind.LOAN_PAYMENT})


def signed_amount(kind: EntryKind, magnitude: Decimal) -> Decimal:
    """
    Apply the sign convention to a positive magnitude.

    Value-removing kinds are stored positive, value-adding kinds negative,
    so that balance = opening - sum(amounts) holds for every account.
    """
    magnitude = Decimal(magnitude)
    if magnitude <= 0:
        raise ValidationError(f"Amount must be positive, got {magnitude}")
    if kind in VALUE_REMOVING:
        return magnitude
    if kind in VALUE_ADDING:
        return -magnitude
    raise ValidationError(f"Unsupported entry kind: {kind}")


def build_transfer(
    source_account_id: uuid.UUID,
    destination_account_id: uuid.UUID,
    magnitude: Decimal,
    entry_date: date,
    description: str = "",
) -> Tuple[LedgerEntry, LedgerEntry]:
    """Two mirrored entries: positive on the source, negative on the destination"""
    if source_account_id == destination_account_id:
        raise ValidationError("Transfer source and destination must differ")

    out_id, in_id = uuid.uuid4(), uuid.uuid4()
    outgoing = LedgerEntry(
        id=out_id,
        account_id=source_account_id,
        amount=signed_amount(EntryKind.TRANSFER_OUT, magnitude),
        entry_date=entry_date,
        kind=EntryKind.TRANSFER_OUT,
        counter_account_id=destination_account_id,
        related_entry_id=in_id,
        description=description,
    )
    incoming = LedgerEntry(
        id=in_id,
        account_id=destination_account_id,
        amount=signed_amount(EntryKind.TRANSFER_IN, magnitude),
        entry_date=entry_date,
        kind=EntryKind.TRANSFER_IN,
        counter_account_id=source_account_id,
        related_entry_id=out_id,
        description=description,
    )
    return outgoing, incoming
