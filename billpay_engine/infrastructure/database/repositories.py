"""Data access layer mapping ORM rows to domain dataclasses"""

import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from billpay_engine.infrastructure.database.models import (
    AccountRecord,
    LedgerEntryRecord,
    ObligationRecord,
    ScheduleRecord,
)
from billpay_engine.domain.models import (
    Account,
    AccountKind,
    EntryKind,
    ExpectedSource,
    FixedBiller,
    Installment,
    LedgerEntry,
    Obligation,
    Period,
    Schedule,
)


def _account(row: AccountRecord) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        kind=AccountKind(row.kind),
        opening_balance=Decimal(row.opening_balance),
        billing_anchor_day=row.billing_anchor_day,
        credit_limit=Decimal(row.credit_limit) if row.credit_limit is not None else None,
    )


def _obligation(row: ObligationRecord) -> Obligation:
    common = dict(
        id=row.id,
        name=row.name,
        nominal_amount=Decimal(row.nominal_amount),
        due_day=row.due_day,
        activation=Period.parse(row.activation_period),
        linked_account_id=row.linked_account_id,
    )
    if row.kind == Installment.kind:
        return Installment(term_months=row.term_months or 0, **common)
    deactivation = Period.parse(row.deactivation_period) if row.deactivation_period else None
    return FixedBiller(deactivation=deactivation, **common)


def _schedule(row: ScheduleRecord, due_day: int) -> Schedule:
    return Schedule(
        id=row.id,
        obligation_id=row.obligation_id,
        obligation_kind=row.obligation_kind,
        period=Period.parse(row.period),
        expected_amount=Decimal(row.expected_amount),
        due_day=due_day,
        expected_source=ExpectedSource(row.expected_source),
    )


def _entry(row: LedgerEntryRecord) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        account_id=row.account_id,
        amount=Decimal(row.amount),
        entry_date=row.entry_date,
        kind=EntryKind(row.kind),
        counter_account_id=row.counter_account_id,
        schedule_id=row.schedule_id,
        obligation_id=row.obligation_id,
        related_entry_id=row.related_entry_id,
        installment_linked=row.installment_linked,
        description=row.description or "",
    )


class AccountRepository:
    """Repository for accounts"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, account: Account) -> Account:
        db_account = AccountRecord(
            id=account.id,
            name=account.name,
            kind=account.kind.value,
            opening_balance=account.opening_balance,
            billing_anchor_day=account.billing_anchor_day,
            credit_limit=account.credit_limit,
        )
        self.db.add(db_account)
        self.db.flush()
        return _account(db_account)

    def get_account(self, account_id: uuid.UUID) -> Optional[Account]:
        row = self.db.get(AccountRecord, account_id)
        return _account(row) if row else None


class ObligationRepository:
    """Repository for billers and installments"""

    def __init__(self, db: Session):
        self.db = db

    def create_obligation(
        self,
        obligation: Obligation,
        legacy_schedules: Optional[List[Dict[str, Any]]] = None,
    ) -> Obligation:
        db_obligation = ObligationRecord(
            id=obligation.id,
            kind=obligation.kind,
            name=obligation.name,
            nominal_amount=obligation.nominal_amount,
            due_day=obligation.due_day,
            activation_period=obligation.activation.key,
            linked_account_id=obligation.linked_account_id,
            legacy_schedules=legacy_schedules,
        )
        if isinstance(obligation, Installment):
            db_obligation.term_months = obligation.term_months
        elif isinstance(obligation, FixedBiller) and obligation.deactivation is not None:
            db_obligation.deactivation_period = obligation.deactivation.key
        self.db.add(db_obligation)
        self.db.flush()
        return _obligation(db_obligation)

    def get_obligation(self, obligation_id: uuid.UUID) -> Optional[Obligation]:
        row = self.db.get(ObligationRecord, obligation_id)
        return _obligation(row) if row else None

    def get_legacy_schedules(self, obligation_id: uuid.UUID) -> Optional[List[Dict[str, Any]]]:
        row = self.db.get(ObligationRecord, obligation_id)
        return row.legacy_schedules if row else None

    def list_with_legacy_schedules(self) -> List[uuid.UUID]:
        """Obligations that still carry an embedded schedule array"""
        rows = (
            self.db.query(ObligationRecord.id, ObligationRecord.legacy_schedules)
            .filter(ObligationRecord.legacy_schedules.isnot(None))
            .order_by(ObligationRecord.created_at)
            .all()
        )
        return [obligation_id for obligation_id, legacy in rows if legacy]

    def clear_legacy_schedules(self, obligation_id: uuid.UUID) -> None:
        row = self.db.get(ObligationRecord, obligation_id)
        if row is not None:
            row.legacy_schedules = None
            self.db.flush()


class ScheduleRepository:
    """Repository for per-period schedules"""

    def __init__(self, db: Session):
        self.db = db

    def _due_day(self, obligation_id: uuid.UUID) -> int:
        row = self.db.get(ObligationRecord, obligation_id)
        return row.due_day

    def create_schedules(self, schedules: List[Schedule]) -> List[Schedule]:
        """Insert schedules, assigning ids; caller guarantees the periods are new"""
        rows = []
        for schedule in schedules:
            db_schedule = ScheduleRecord(
                id=schedule.id or uuid.uuid4(),
                obligation_id=schedule.obligation_id,
                obligation_kind=schedule.obligation_kind,
                period=schedule.period.key,
                expected_amount=schedule.expected_amount,
                expected_source=schedule.expected_source.value,
            )
            self.db.add(db_schedule)
            rows.append((db_schedule, schedule.due_day))
        self.db.flush()
        return [_schedule(row, due_day) for row, due_day in rows]

    def get_schedule(self, schedule_id: uuid.UUID) -> Optional[Schedule]:
        row = self.db.get(ScheduleRecord, schedule_id)
        return _schedule(row, self._due_day(row.obligation_id)) if row else None

    def get_by_period(self, obligation_id: uuid.UUID, period: Period) -> Optional[Schedule]:
        row = (
            self.db.query(ScheduleRecord)
            .filter(ScheduleRecord.obligation_id == obligation_id, ScheduleRecord.period == period.key)
            .first()
        )
        return _schedule(row, self._due_day(obligation_id)) if row else None

    def list_for_obligation(self, obligation_id: uuid.UUID) -> List[Schedule]:
        """Schedules of an obligation in period order"""
        rows = (
            self.db.query(ScheduleRecord)
            .filter(ScheduleRecord.obligation_id == obligation_id)
            .order_by(ScheduleRecord.period)
            .all()
        )
        if not rows:
            return []
        due_day = self._due_day(obligation_id)
        return [_schedule(row, due_day) for row in rows]

    def update_expected(self, schedule_id: uuid.UUID, expected_amount: Decimal, source: ExpectedSource) -> None:
        row = self.db.get(ScheduleRecord, schedule_id)
        row.expected_amount = expected_amount
        row.expected_source = source.value


class LedgerRepository:
    """Repository for ledger entries (insert and delete only)"""

    def __init__(self, db: Session):
        self.db = db

    def add_entries(self, entries: List[LedgerEntry]) -> None:
        for entry in entries:
            self.db.add(
                LedgerEntryRecord(
                    id=entry.id,
                    account_id=entry.account_id,
                    amount=entry.amount,
                    entry_date=entry.entry_date,
                    kind=entry.kind.value,
                    counter_account_id=entry.counter_account_id,
                    schedule_id=entry.schedule_id,
                    obligation_id=entry.obligation_id,
                    related_entry_id=entry.related_entry_id,
                    installment_linked=entry.installment_linked,
                    description=entry.description,
                )
            )
        self.db.flush()

    def get_entry(self, entry_id: uuid.UUID) -> Optional[LedgerEntry]:
        row = self.db.get(LedgerEntryRecord, entry_id)
        return _entry(row) if row else None

    def delete_entries(self, entry_ids: List[uuid.UUID]) -> None:
        rows = self.db.query(LedgerEntryRecord).filter(LedgerEntryRecord.id.in_(entry_ids)).all()
        for row in rows:
            self.db.delete(row)
        self.db.flush()

    def for_schedule(self, schedule_id: uuid.UUID) -> List[LedgerEntry]:
        rows = (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.schedule_id == schedule_id)
            .order_by(LedgerEntryRecord.entry_date)
            .all()
        )
        return [_entry(row) for row in rows]

    def for_account(self, account_id: uuid.UUID) -> List[LedgerEntry]:
        rows = (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.account_id == account_id)
            .order_by(LedgerEntryRecord.entry_date)
            .all()
        )
        return [_entry(row) for row in rows]

    def related_to(self, entry_id: uuid.UUID) -> List[LedgerEntry]:
        """Entries pointing at `entry_id` (transfer counterpart, loan repayments)"""
        rows = (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.related_entry_id == entry_id)
            .order_by(LedgerEntryRecord.entry_date)
            .all()
        )
        return [_entry(row) for row in rows]
