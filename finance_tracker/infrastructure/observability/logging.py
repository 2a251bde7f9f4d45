"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from finance_tracker.config import settings

logger = logging.getLogger("finance_tracker")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_payment(
    invoice_id: Any,
    user_id: str,
    payment_type: str,
    amount: Decimal,
    status: str,
) -> None:
    """Log a recorded invoice payment"""
    logger.info(
        "Invoice payment recorded",
        extra={
            "step": "invoice_payment",
            "invoice_id": str(invoice_id),
            "user_id": user_id,
            "payment_type": payment_type,
            "amount": float(amount),
            "invoice_status": status,
        },
    )


def log_batch_job(job: str, processed: int, failed: int, counts: Optional[Dict[str, int]] = None) -> None:
    """Log the outcome of a scheduled scan"""
    logger.info(
        "Batch job completed",
        extra={
            "step": "batch_complete",
            "job": job,
            "processed": processed,
            "failed": failed,
            "counts": counts or {},
        },
    )


def log_budget_override(user_id: str, allocation: Dict[str, Any], new_total: Decimal) -> None:
    """Log an expense forced through past its envelope"""
    logger.warning(
        "Budget override forced, streak reset",
        extra={
            "step": "budget_override",
            "user_id": user_id,
            "allocation": allocation.get("name"),
            "limit": allocation.get("limit"),
            "new_total": float(new_total),
        },
    )
