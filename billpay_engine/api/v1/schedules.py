"""GET /v1/schedules/{schedule_id} - Derived payment status of one period"""

import uuid
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from billpay_engine.api.dependencies import fail, get_reconciliation_service, get_request_id
from billpay_engine.api.v1.schemas import ScheduleSummaryResponse
from billpay_engine.infrastructure.database.session import get_db
from billpay_engine.services.reconciliation import ReconciliationService

router = APIRouter()


@router.get("/schedules/{schedule_id}", response_model=ScheduleSummaryResponse)
def get_schedule(
    schedule_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Retrieve a schedule with its status computed from linked ledger entries.

    Returns:
        Expected, paid and remaining amounts plus pending/partial/paid/overdue
    """
    request_id = get_request_id(request)
    try:
        summary = service.schedule_summary(schedule_id)
    except Exception as e:
        fail(db, request_id, e)

    return ScheduleSummaryResponse.from_domain(summary)
