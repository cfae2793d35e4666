"""Obligations: registration, schedules, billing-cycle sync and legacy migration"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from billpay_engine.api.dependencies import fail, get_reconciliation_service, get_request_id
from billpay_engine.api.v1.schemas import (
    BillingSyncResponse,
    EntriesResponse,
    ExtendSchedulesRequest,
    MigrationResponse,
    ObligationCreateRequest,
    ObligationPaymentRequest,
    ObligationResponse,
    ScheduleSchema,
)
from billpay_engine.domain.exceptions import ValidationError
from billpay_engine.domain.models import FixedBiller, Installment, Obligation, Period
from billpay_engine.infrastructure.database.session import get_db
from billpay_engine.services.reconciliation import ReconciliationService

router = APIRouter()


def _to_obligation(body: ObligationCreateRequest) -> Obligation:
    common = dict(
        id=uuid.uuid4(),
        name=body.name,
        nominal_amount=body.nominal_amount,
        due_day=body.due_day,
        activation=Period.parse(body.activation_period),
        linked_account_id=body.linked_account_id,
    )
    if body.kind == Installment.kind:
        if body.term_months is None:
            raise ValidationError("term_months is required for installments")
        return Installment(term_months=body.term_months, **common)
    deactivation = Period.parse(body.deactivation_period) if body.deactivation_period else None
    return FixedBiller(deactivation=deactivation, **common)


@router.post("/obligations", response_model=ObligationResponse, status_code=201)
def create_obligation(
    request_body: ObligationCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Register a biller or installment plan.

    Flow:
    1. Build the obligation from the request
    2. Store it, with any embedded legacy schedule array as-is
    3. Materialize schedules when the strategy is eager
    """
    request_id = get_request_id(request)
    try:
        obligation, schedules = service.register_obligation(
            _to_obligation(request_body),
            strategy=request_body.strategy,
            months=request_body.months,
            legacy_schedules=request_body.legacy_schedules,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    logging.info(
        "Obligation created",
        extra={"request_id": request_id, "obligation_id": str(obligation.id)},
    )
    return ObligationResponse(
        obligation_id=str(obligation.id),
        kind=obligation.kind,
        name=obligation.name,
        schedules=[ScheduleSchema.from_domain(s) for s in schedules],
    )


@router.get("/obligations/{obligation_id}/schedules", response_model=ObligationResponse)
def list_schedules(
    obligation_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Schedules of an obligation, read from whichever representation holds them"""
    request_id = get_request_id(request)
    try:
        obligation = service.get_obligation(obligation_id)
        schedules = service.schedules_for(obligation_id)
    except Exception as e:
        fail(db, request_id, e)

    return ObligationResponse(
        obligation_id=str(obligation.id),
        kind=obligation.kind,
        name=obligation.name,
        schedules=[ScheduleSchema.from_domain(s) for s in schedules],
    )


@router.post("/obligations/{obligation_id}/schedules/extend", response_model=ObligationResponse)
def extend_schedules(
    obligation_id: uuid.UUID,
    request_body: ExtendSchedulesRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    request_id = get_request_id(request)
    try:
        obligation = service.get_obligation(obligation_id)
        created = service.extend_schedules(obligation_id, request_body.months)
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return ObligationResponse(
        obligation_id=str(obligation.id),
        kind=obligation.kind,
        name=obligation.name,
        schedules=[ScheduleSchema.from_domain(s) for s in created],
    )


@router.post("/obligations/{obligation_id}/payments", response_model=EntriesResponse, status_code=201)
def pay_obligation(
    obligation_id: uuid.UUID,
    request_body: ObligationPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Pay a period, creating its schedule if this is the first payment"""
    request_id = get_request_id(request)
    try:
        entry_id = service.record_obligation_payment(
            obligation_id,
            Period.parse(request_body.period),
            request_body.account_id,
            request_body.amount,
            request_body.entry_date,
            description=request_body.description,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(entry_id)])


@router.post("/obligations/{obligation_id}/billing-cycle/sync", response_model=BillingSyncResponse)
def sync_billing_cycle(
    obligation_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Rewrite expected amounts from the linked card's billing cycles"""
    request_id = get_request_id(request)
    try:
        totals = service.sync_billing_cycle(obligation_id)
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return BillingSyncResponse(
        obligation_id=str(obligation_id),
        totals={period.key: amount for period, amount in totals.items()},
    )


@router.post("/obligations/migrate-legacy", response_model=MigrationResponse)
def migrate_legacy(
    request: Request,
    obligation_id: Optional[uuid.UUID] = Query(None, description="Limit to one obligation"),
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Move embedded schedule arrays into the schedule table; safe to repeat"""
    request_id = get_request_id(request)
    try:
        inserted = service.migrate_legacy_schedules(obligation_id)
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return MigrationResponse(inserted={str(k): v for k, v in inserted.items()})
