"""Reconciliation service: ledger writes, derived reads and billing-cycle sync"""

import logging
import time
import uuid
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy.orm import Session

from billpay_engine.config import settings
from billpay_engine.domain import balance as balance_calc
from billpay_engine.domain.billing_cycles import aggregate, require_billing_anchor
from billpay_engine.domain.exceptions import (
    DomainException,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from billpay_engine.domain.ledger import VALUE_ADDING, VALUE_REMOVING, build_transfer, signed_amount
from billpay_engine.domain.migration import LegacyEmbedded, Normalized, plan_legacy_migration, read_schedules
from billpay_engine.domain.models import (
    Account,
    AccountKind,
    EntryKind,
    ExpectedSource,
    Installment,
    LedgerEntry,
    LoanProgress,
    Obligation,
    PaymentStatus,
    Period,
    Schedule,
    ScheduleSummary,
)
from billpay_engine.domain.schedules import extend_schedules, materialize_eager, materialize_lazy
from billpay_engine.domain.status import summarize_schedule
from billpay_engine.infrastructure.database.repositories import (
    AccountRepository,
    LedgerRepository,
    ObligationRepository,
    ScheduleRepository,
)
from billpay_engine.infrastructure.observability.logging import log_billing_sync, log_status_resolution
from billpay_engine.infrastructure.observability.metrics import (
    billing_sync_counter,
    billing_sync_latency_histogram,
    ledger_entries_deleted_counter,
    record_entries_created,
    record_status,
)
from billpay_engine.services.events import InvalidationBus, Topic, pending_for

logger = logging.getLogger(__name__)

EAGER = "eager"
LAZY = "lazy"


class ReconciliationService:
    """
    Operations the rest of the application calls into.

    Works inside the caller's session: writes are flushed, never committed,
    so the caller decides whether to commit or roll back. Invalidation
    messages for those writes reach the bus only when the session commits.
    Status and balances are derived from the ledger on every read.
    """

    def __init__(
        self,
        db: Session,
        bus: Optional[InvalidationBus] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.db = db
        self.bus = bus or InvalidationBus()
        self.invalidations = pending_for(db, self.bus)
        self.clock = clock
        self.accounts = AccountRepository(db)
        self.obligations = ObligationRepository(db)
        self.schedules = ScheduleRepository(db)
        self.ledger = LedgerRepository(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _account(self, account_id: uuid.UUID, error: Type[DomainException] = NotFoundError) -> Account:
        account = self.accounts.get_account(account_id)
        if account is None:
            raise error(f"Account {account_id} does not exist")
        return account

    def _obligation(self, obligation_id: uuid.UUID, error: Type[DomainException] = NotFoundError) -> Obligation:
        obligation = self.obligations.get_obligation(obligation_id)
        if obligation is None:
            raise error(f"Obligation {obligation_id} does not exist")
        return obligation

    def _schedule(self, schedule_id: uuid.UUID, error: Type[DomainException] = NotFoundError) -> Schedule:
        schedule = self.schedules.get_schedule(schedule_id)
        if schedule is None:
            raise error(f"Schedule {schedule_id} does not exist")
        return schedule

    def _require_normalized(self, obligation_id: uuid.UUID) -> None:
        if self.obligations.get_legacy_schedules(obligation_id):
            raise PreconditionError(
                f"Obligation {obligation_id} still has embedded schedules; migrate them first"
            )

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_account(
        self,
        name: str,
        kind: AccountKind = AccountKind.DEBIT,
        opening_balance: Decimal = Decimal("0"),
        billing_anchor_day: Optional[int] = None,
        credit_limit: Optional[Decimal] = None,
    ) -> Account:
        if billing_anchor_day is not None and not 1 <= billing_anchor_day <= 31:
            raise ValidationError(f"Billing anchor day must be 1-31, got {billing_anchor_day}")
        account = Account(
            id=uuid.uuid4(),
            name=name,
            kind=AccountKind(kind),
            opening_balance=Decimal(opening_balance),
            billing_anchor_day=billing_anchor_day,
            credit_limit=Decimal(credit_limit) if credit_limit is not None else None,
        )
        return self.accounts.create_account(account)

    def register_obligation(
        self,
        obligation: Obligation,
        strategy: str = EAGER,
        months: Optional[int] = None,
        legacy_schedules: Optional[List[dict]] = None,
    ) -> Tuple[Obligation, List[Schedule]]:
        """
        Store an obligation and materialize its schedules.

        `eager` creates the activation window up front (twelve months for
        billers by default, the whole term for installments); `lazy` creates
        nothing and leaves each period to its first payment.
        """
        if strategy not in (EAGER, LAZY):
            raise ValidationError(f"Unknown materialization strategy: {strategy}")
        if not 1 <= obligation.due_day <= 31:
            raise ValidationError(f"Due day must be 1-31, got {obligation.due_day}")
        if obligation.nominal_amount < 0:
            raise ValidationError("Nominal amount cannot be negative")
        if isinstance(obligation, Installment) and obligation.term_months <= 0:
            raise ValidationError("Installment term must be at least one month")
        if obligation.linked_account_id is not None:
            self._account(obligation.linked_account_id, error=ValidationError)
        if legacy_schedules and strategy == EAGER:
            raise ValidationError("Obligations with embedded schedules cannot be materialized eagerly")

        stored = self.obligations.create_obligation(obligation, legacy_schedules=legacy_schedules)

        created: List[Schedule] = []
        if strategy == EAGER:
            count = months if months is not None else stored.default_horizon(settings.eager_schedule_months)
            created = self.schedules.create_schedules(materialize_eager(stored, count))
            self.invalidations.add(
                Topic.SCHEDULES_CHANGED,
                obligation_ids=[stored.id],
                schedule_ids=[s.id for s in created],
            )

        logger.info(
            "Obligation registered",
            extra={
                "obligation_id": str(stored.id),
                "kind": stored.kind,
                "strategy": strategy,
                "schedules_created": len(created),
            },
        )
        return stored, created

    def get_obligation(self, obligation_id: uuid.UUID) -> Obligation:
        return self._obligation(obligation_id)

    def extend_schedules(self, obligation_id: uuid.UUID, months: int) -> List[Schedule]:
        """Materialize any missing periods among the first `months` from activation"""
        obligation = self._obligation(obligation_id)
        self._require_normalized(obligation_id)
        existing = [s.period for s in self.schedules.list_for_obligation(obligation_id)]
        created = self.schedules.create_schedules(extend_schedules(obligation, existing, months))
        if created:
            self.invalidations.add(
                Topic.SCHEDULES_CHANGED,
                obligation_ids=[obligation_id],
                schedule_ids=[s.id for s in created],
            )
        return created

    def schedules_for(self, obligation_id: uuid.UUID) -> List[Schedule]:
        """Schedules of an obligation, whichever representation currently holds them"""
        obligation = self._obligation(obligation_id)
        legacy = self.obligations.get_legacy_schedules(obligation_id)
        if legacy:
            representation = LegacyEmbedded(obligation_id, legacy)
        else:
            representation = Normalized(self.schedules.list_for_obligation(obligation_id))
        return read_schedules(representation, obligation)

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------

    def create_ledger_entry(
        self,
        account_id: uuid.UUID,
        signed_amount: Decimal,
        entry_date: date,
        schedule_id: Optional[uuid.UUID] = None,
        counter_account_id: Optional[uuid.UUID] = None,
        kind: Optional[EntryKind] = None,
        installment_linked: bool = False,
        related_entry_id: Optional[uuid.UUID] = None,
        description: str = "",
    ) -> uuid.UUID:
        """
        Append one signed entry to the ledger.

        Positive amounts remove value from the account, negative amounts add
        value. Without a `kind` the entry is a payment or a cash-in depending
        on the sign; with one, the sign must agree with it.

        Raises:
            ValidationError: unknown account, counter-account, schedule or
                related entry; zero amount; sign contradicting the kind
        """
        amount = Decimal(signed_amount)
        if amount == 0:
            raise ValidationError("Ledger entry amount cannot be zero")
        if kind is None:
            kind = EntryKind.PAYMENT if amount > 0 else EntryKind.CASH_IN
        kind = EntryKind(kind)
        if kind in VALUE_REMOVING and amount < 0:
            raise ValidationError(f"{kind.value} entries remove value and must be positive")
        if kind in VALUE_ADDING and amount > 0:
            raise ValidationError(f"{kind.value} entries add value and must be negative")

        self._account(account_id, error=ValidationError)
        if counter_account_id is not None:
            self._account(counter_account_id, error=ValidationError)
        if related_entry_id is not None and self.ledger.get_entry(related_entry_id) is None:
            raise ValidationError(f"Related entry {related_entry_id} does not exist")

        obligation_id = None
        if schedule_id is not None:
            schedule = self._schedule(schedule_id, error=ValidationError)
            obligation_id = schedule.obligation_id
            if schedule.obligation_kind == Installment.kind:
                installment_linked = True

        entry = LedgerEntry(
            id=uuid.uuid4(),
            account_id=account_id,
            amount=amount,
            entry_date=entry_date,
            kind=kind,
            counter_account_id=counter_account_id,
            schedule_id=schedule_id,
            obligation_id=obligation_id,
            related_entry_id=related_entry_id,
            installment_linked=installment_linked,
            description=description,
        )
        self.ledger.add_entries([entry])
        record_entries_created([kind.value])

        self.invalidations.add(
            Topic.ENTRY_CREATED,
            account_ids=[account_id, counter_account_id],
            schedule_ids=[schedule_id],
            obligation_ids=[obligation_id],
        )
        return entry.id

    def record_entry(
        self,
        account_id: uuid.UUID,
        kind: EntryKind,
        magnitude: Decimal,
        entry_date: date,
        **kwargs,
    ) -> uuid.UUID:
        """Create an entry from a positive magnitude, signing it from its kind"""
        kind = EntryKind(kind)
        return self.create_ledger_entry(
            account_id, signed_amount(kind, magnitude), entry_date, kind=kind, **kwargs
        )

    def record_transfer(
        self,
        source_account_id: uuid.UUID,
        destination_account_id: uuid.UUID,
        magnitude: Decimal,
        entry_date: date,
        description: str = "",
    ) -> Tuple[uuid.UUID, uuid.UUID]:
        """Book both legs of a transfer; returns (outgoing id, incoming id)"""
        self._account(source_account_id, error=ValidationError)
        self._account(destination_account_id, error=ValidationError)
        outgoing, incoming = build_transfer(
            source_account_id, destination_account_id, magnitude, entry_date, description
        )
        self.ledger.add_entries([outgoing, incoming])
        record_entries_created([outgoing.kind.value, incoming.kind.value])

        self.invalidations.add(Topic.ENTRY_CREATED, account_ids=[source_account_id, destination_account_id])
        return outgoing.id, incoming.id

    def record_loan(
        self,
        account_id: uuid.UUID,
        magnitude: Decimal,
        entry_date: date,
        counter_account_id: Optional[uuid.UUID] = None,
        description: str = "",
    ) -> uuid.UUID:
        """Money lent out of `account_id`"""
        return self.record_entry(
            account_id,
            EntryKind.LOAN,
            magnitude,
            entry_date,
            counter_account_id=counter_account_id,
            description=description,
        )

    def record_loan_repayment(
        self,
        loan_entry_id: uuid.UUID,
        account_id: uuid.UUID,
        magnitude: Decimal,
        entry_date: date,
        description: str = "",
    ) -> uuid.UUID:
        """Money coming back against a loan, received into `account_id`"""
        loan = self.ledger.get_entry(loan_entry_id)
        if loan is None or loan.kind != EntryKind.LOAN:
            raise ValidationError(f"Entry {loan_entry_id} is not a loan")
        return self.record_entry(
            account_id,
            EntryKind.LOAN_PAYMENT,
            magnitude,
            entry_date,
            related_entry_id=loan_entry_id,
            description=description,
        )

    def record_obligation_payment(
        self,
        obligation_id: uuid.UUID,
        period: Period,
        account_id: uuid.UUID,
        magnitude: Decimal,
        entry_date: date,
        description: str = "",
    ) -> uuid.UUID:
        """
        Pay an obligation for a period, creating the period's schedule on first use.

        A lazily created schedule takes the obligation's nominal amount and is
        keyed exactly like an eagerly created one.
        """
        obligation = self._obligation(obligation_id, error=ValidationError)
        self._require_normalized(obligation_id)

        schedule = self.schedules.get_by_period(obligation_id, period)
        if schedule is None:
            (schedule,) = self.schedules.create_schedules([materialize_lazy(obligation, period)])
            logger.info(
                "Schedule materialized on first payment",
                extra={"obligation_id": str(obligation_id), "period": period.key},
            )
            self.invalidations.add(
                Topic.SCHEDULES_CHANGED,
                obligation_ids=[obligation_id],
                schedule_ids=[schedule.id],
            )

        return self.record_entry(
            account_id,
            EntryKind.PAYMENT,
            magnitude,
            entry_date,
            schedule_id=schedule.id,
            description=description or obligation.name,
        )

    def delete_ledger_entry(self, entry_id: uuid.UUID) -> List[uuid.UUID]:
        """
        Remove an entry; the only undo primitive.

        Nothing besides the ledger row changes, so any schedule the entry paid
        regresses on its next read. Deleting either leg of a transfer removes
        both legs. Returns the ids that were deleted.
        """
        entry = self.ledger.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Ledger entry {entry_id} does not exist")

        doomed = [entry]
        if entry.kind in (EntryKind.TRANSFER_OUT, EntryKind.TRANSFER_IN) and entry.related_entry_id:
            counterpart = self.ledger.get_entry(entry.related_entry_id)
            if counterpart is not None:
                doomed.append(counterpart)

        self.ledger.delete_entries([e.id for e in doomed])
        ledger_entries_deleted_counter.inc(len(doomed))

        self.invalidations.add(
            Topic.ENTRY_DELETED,
            account_ids=sorted({e.account_id for e in doomed}, key=str),
            schedule_ids=[e.schedule_id for e in doomed],
            obligation_ids=[e.obligation_id for e in doomed],
        )
        return [e.id for e in doomed]

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------

    def resolve_status(self, schedule_id: uuid.UUID) -> PaymentStatus:
        """Status of a schedule from the entries linked to it right now"""
        return self.schedule_summary(schedule_id).status

    def schedule_summary(self, schedule_id: uuid.UUID) -> ScheduleSummary:
        schedule = self._schedule(schedule_id)
        entries = self.ledger.for_schedule(schedule_id)
        summary = summarize_schedule(schedule, entries, today=self.clock())

        record_status(summary.status.value)
        log_status_resolution(
            str(schedule_id), schedule.period.key, summary.status.value, str(summary.paid_amount)
        )
        return summary

    def compute_balance(self, account_id: uuid.UUID) -> Decimal:
        account = self._account(account_id)
        return balance_calc.compute_balance(account, self.ledger.for_account(account_id))

    def available_balance(self, account_id: uuid.UUID) -> Decimal:
        account = self._account(account_id)
        current = balance_calc.compute_balance(account, self.ledger.for_account(account_id))
        return balance_calc.available_balance(account, current)

    def loan_progress(self, loan_entry_id: uuid.UUID) -> LoanProgress:
        loan = self.ledger.get_entry(loan_entry_id)
        if loan is None or loan.kind != EntryKind.LOAN:
            raise NotFoundError(f"Loan entry {loan_entry_id} does not exist")
        return balance_calc.loan_progress(loan, self.ledger.related_to(loan_entry_id))

    # ------------------------------------------------------------------
    # Billing cycles
    # ------------------------------------------------------------------

    def sync_billing_cycle(self, obligation_id: uuid.UUID) -> Dict[Period, Decimal]:
        """
        Refresh expected amounts of an obligation from its linked revolving account.

        Every change is computed before the first row is touched: either all
        affected periods are rewritten or, on error, none are. Periods whose
        cycle no longer has billable spend go back to the nominal amount if
        an earlier sync had set them. Running it again on the same ledger
        changes nothing.

        Returns:
            The billing-cycle totals applied, keyed by due period
        """
        start_time = time.time()
        obligation = self._obligation(obligation_id)
        try:
            if obligation.linked_account_id is None:
                raise PreconditionError(f"Obligation {obligation_id} is not linked to a revolving account")
            account = self._account(obligation.linked_account_id, error=PreconditionError)
            require_billing_anchor(account)
            self._require_normalized(obligation_id)
        except PreconditionError:
            billing_sync_counter.labels(outcome="precondition_failed").inc()
            raise

        totals = {
            period: amount
            for period, amount in aggregate(account, self.ledger.for_account(account.id)).items()
            if obligation.covers(period)
        }
        existing = self.schedules.list_for_obligation(obligation_id)
        existing_periods = {s.period for s in existing}

        updates = []
        for schedule in existing:
            if schedule.period in totals:
                target = (totals[schedule.period], ExpectedSource.BILLING_CYCLE)
            elif schedule.expected_source == ExpectedSource.BILLING_CYCLE:
                target = (obligation.nominal_amount, ExpectedSource.NOMINAL)
            else:
                continue
            if (schedule.expected_amount, schedule.expected_source) != target:
                updates.append((schedule.id, *target))

        creates = []
        for period, amount in totals.items():
            if period in existing_periods:
                continue
            schedule = materialize_lazy(obligation, period)
            schedule.expected_amount = amount
            schedule.expected_source = ExpectedSource.BILLING_CYCLE
            creates.append(schedule)

        for schedule_id, amount, source in updates:
            self.schedules.update_expected(schedule_id, amount, source)
        created = self.schedules.create_schedules(creates)
        self.db.flush()

        duration = time.time() - start_time
        billing_sync_latency_histogram.observe(duration)
        billing_sync_counter.labels(outcome="success").inc()
        log_billing_sync(str(obligation_id), str(account.id), len(updates), len(created), duration * 1000)

        self.invalidations.add(
            Topic.BILLING_CYCLE_SYNCED,
            account_ids=[account.id],
            obligation_ids=[obligation_id],
            schedule_ids=[u[0] for u in updates] + [s.id for s in created],
        )
        return totals

    # ------------------------------------------------------------------
    # Legacy migration
    # ------------------------------------------------------------------

    def migrate_legacy_schedules(self, obligation_id: Optional[uuid.UUID] = None) -> Dict[uuid.UUID, int]:
        """
        Copy embedded schedule arrays into the schedule table, then clear them.

        Idempotent: periods already normalized are skipped and a second run
        finds nothing left to copy. Every row is parsed before any insert.

        Returns:
            Number of schedules inserted per obligation
        """
        if obligation_id is not None:
            self._obligation(obligation_id)
            targets = [obligation_id]
        else:
            targets = self.obligations.list_with_legacy_schedules()

        plans = []
        for target in targets:
            rows = self.obligations.get_legacy_schedules(target) or []
            if not rows:
                continue
            obligation = self._obligation(target)
            existing = [s.period for s in self.schedules.list_for_obligation(target)]
            plans.append((target, plan_legacy_migration(obligation, rows, existing)))

        inserted: Dict[uuid.UUID, int] = {}
        for target, schedules in plans:
            created = self.schedules.create_schedules(schedules)
            self.obligations.clear_legacy_schedules(target)
            inserted[target] = len(created)
            self.invalidations.add(
                Topic.SCHEDULES_CHANGED,
                obligation_ids=[target],
                schedule_ids=[s.id for s in created],
            )
            logger.info(
                "Legacy schedules migrated",
                extra={"obligation_id": str(target), "inserted": len(created)},
            )
        return inserted
