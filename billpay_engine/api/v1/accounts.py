"""Accounts: registration and derived balances"""

import uuid
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from billpay_engine.api.dependencies import fail, get_reconciliation_service, get_request_id
from billpay_engine.api.v1.schemas import AccountCreateRequest, AccountResponse, BalanceResponse
from billpay_engine.infrastructure.database.session import get_db
from billpay_engine.services.reconciliation import ReconciliationService

router = APIRouter()


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    request_body: AccountCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Register a debit account or a revolving-credit line"""
    request_id = get_request_id(request)
    try:
        account = service.register_account(
            name=request_body.name,
            kind=request_body.kind,
            opening_balance=request_body.opening_balance,
            billing_anchor_day=request_body.billing_anchor_day,
            credit_limit=request_body.credit_limit,
        )
        db.commit()
    except Exception as e:
        fail(db, request_id, e)

    return AccountResponse(
        account_id=str(account.id),
        name=account.name,
        kind=account.kind,
        opening_balance=account.opening_balance,
        billing_anchor_day=account.billing_anchor_day,
        credit_limit=account.credit_limit,
    )


@router.get("/accounts/{account_id}/balance", response_model=BalanceResponse)
def get_balance(
    account_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Current balance derived from the ledger.

    Returns:
        Opening balance minus the signed sum of the account's entries, plus
        the spendable amount (remaining credit for revolving accounts)
    """
    request_id = get_request_id(request)
    try:
        balance = service.compute_balance(account_id)
        available = service.available_balance(account_id)
    except Exception as e:
        fail(db, request_id, e)

    return BalanceResponse(account_id=str(account_id), balance=balance, available_balance=available)
