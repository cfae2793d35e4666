"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from billpay_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_status_resolution(schedule_id: str, period: str, status: str, paid_amount: str) -> None:
    """Log a derived schedule status"""
    logging.getLogger("billpay_engine.status").info(
        "Schedule status resolved",
        extra={
            "schedule_id": schedule_id,
            "period": period,
            "step": "status_resolved",
            "status": status,
            "paid_amount": paid_amount,
        },
    )


def log_billing_sync(
    obligation_id: str,
    account_id: str,
    periods_updated: int,
    periods_created: int,
    duration_ms: float,
) -> None:
    """Log the outcome of a billing-cycle sync for analysis"""
    logging.getLogger("billpay_engine.billing").info(
        "Billing cycle sync completed",
        extra={
            "obligation_id": obligation_id,
            "account_id": account_id,
            "step": "billing_sync_complete",
            "periods_updated": periods_updated,
            "periods_created": periods_created,
            "duration_ms": duration_ms,
        },
    )
