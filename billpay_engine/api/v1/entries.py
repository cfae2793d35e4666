"""Ledger entries: signed and typed writes, transfers, loans and deletion"""

import uuid
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from billpay_engine.api.dependencies import fail, get_reconciliation_service, get_request_id
from billpay_engine.api.v1.schemas import (
    EntriesResponse,
    LedgerEntryCreateRequest,
    LoanProgressResponse,
    LoanRepaymentRequest,
    LoanRequest,
    TransferRequest,
    TypedEntryRequest,
)
from billpay_engine.infrastructure.database.session import get_db
from billpay_engine.services.reconciliation import ReconciliationService

router = APIRouter()


@router.post("/entries", response_model=EntriesResponse, status_code=201)
def create_entry(
    request_body: LedgerEntryCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Append a pre-signed entry.

    Positive amounts remove value from the account, negative amounts add
    value. Without a kind the entry is a payment or a cash-in by sign; a sign
    that contradicts an explicit kind is rejected with 422.
    """
    request_id = get_request_id(request)
    try:
        entry_id = service.create_ledger_entry(
            request_body.account_id,
            request_body.amount,
            request_body.entry_date,
            schedule_id=request_body.schedule_id,
            counter_account_id=request_body.counter_account_id,
            kind=request_body.kind,
            installment_linked=request_body.installment_linked,
            related_entry_id=request_body.related_entry_id,
            description=request_body.description,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(entry_id)])


@router.post("/entries/typed", response_model=EntriesResponse, status_code=201)
def create_typed_entry(
    request_body: TypedEntryRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Append an entry from a positive amount; the kind decides the sign"""
    request_id = get_request_id(request)
    try:
        entry_id = service.record_entry(
            request_body.account_id,
            request_body.kind,
            request_body.amount,
            request_body.entry_date,
            schedule_id=request_body.schedule_id,
            counter_account_id=request_body.counter_account_id,
            description=request_body.description,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(entry_id)])


@router.post("/transfers", response_model=EntriesResponse, status_code=201)
def create_transfer(
    request_body: TransferRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Book a transfer; returns the outgoing then the incoming entry id"""
    request_id = get_request_id(request)
    try:
        outgoing_id, incoming_id = service.record_transfer(
            request_body.source_account_id,
            request_body.destination_account_id,
            request_body.amount,
            request_body.entry_date,
            description=request_body.description,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(outgoing_id), str(incoming_id)])


@router.delete("/entries/{entry_id}", response_model=EntriesResponse)
def delete_entry(
    entry_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Delete an entry (and its transfer counterpart); returns every id removed"""
    request_id = get_request_id(request)
    try:
        deleted = service.delete_ledger_entry(entry_id)
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(i) for i in deleted])


@router.post("/loans", response_model=EntriesResponse, status_code=201)
def create_loan(
    request_body: LoanRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    request_id = get_request_id(request)
    try:
        entry_id = service.record_loan(
            request_body.account_id,
            request_body.amount,
            request_body.entry_date,
            counter_account_id=request_body.counter_account_id,
            description=request_body.description,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(entry_id)])


@router.post("/loans/{loan_entry_id}/repayments", response_model=EntriesResponse, status_code=201)
def repay_loan(
    loan_entry_id: uuid.UUID,
    request_body: LoanRepaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    request_id = get_request_id(request)
    try:
        entry_id = service.record_loan_repayment(
            loan_entry_id,
            request_body.account_id,
            request_body.amount,
            request_body.entry_date,
            description=request_body.description,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return EntriesResponse(entry_ids=[str(entry_id)])


@router.get("/loans/{loan_entry_id}", response_model=LoanProgressResponse)
def get_loan_progress(
    loan_entry_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Loan amount with what has been repaid so far"""
    request_id = get_request_id(request)
    try:
        progress = service.loan_progress(loan_entry_id)
    except Exception as e:
        fail(db, request_id, e)

    return LoanProgressResponse(
        loan_entry_id=str(loan_entry_id),
        loan_amount=progress.loan_amount,
        repaid_amount=progress.repaid_amount,
        remaining_amount=progress.remaining_amount,
    )
