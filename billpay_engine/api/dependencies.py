"""Dependency injection for FastAPI endpoints"""

import logging
from typing import NoReturn

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from billpay_engine.domain.exceptions import (
    ConsistencyError,
    DomainException,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from billpay_engine.infrastructure.database.session import get_db
from billpay_engine.services.events import InvalidationBus
from billpay_engine.services.reconciliation import ReconciliationService

# One bus per process; subscribers register at startup
invalidation_bus = InvalidationBus()

ERROR_STATUS = {
    ValidationError: 422,
    NotFoundError: 404,
    PreconditionError: 409,
    ConsistencyError: 409,
}


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_invalidation_bus() -> InvalidationBus:
    return invalidation_bus


def get_reconciliation_service(
    db: Session = Depends(get_db),
    bus: InvalidationBus = Depends(get_invalidation_bus),
) -> ReconciliationService:
    """Service bound to the request's session"""
    return ReconciliationService(db, bus=bus)


def fail(db: Session, request_id: str, error: Exception) -> NoReturn:
    """Roll back the request's work and turn `error` into an HTTP error"""
    db.rollback()

    if isinstance(error, DomainException):
        status_code = ERROR_STATUS.get(type(error), 400)
        if isinstance(error, ConsistencyError):
            logging.error(f"Inconsistent ledger links: {error}", extra={"request_id": request_id})
        else:
            logging.warning(f"{type(error).__name__}: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=status_code, detail=str(error))

    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    raise HTTPException(status_code=500, detail="Internal server error")
