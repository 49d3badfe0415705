"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "pressing-gateway"


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


def log_deposit_event(
    request_id: str,
    deposit_number: str,
    step: str,
    **fields: Any,
) -> None:
    """Log a deposit lifecycle step (created, status_changed, cancelled, refunded)"""
    logging.info(
        "Deposit updated",
        extra={
            "request_id": request_id,
            "deposit_number": deposit_number,
            "step": step,
            **fields,
        },
    )


def log_payment(
    request_id: str,
    deposit_number: str,
    amount_cents: int,
    method: str,
    payment_status: str,
    installment_number: Optional[int] = None,
) -> None:
    """Log a recorded payment for reconciliation"""
    logging.info(
        "Payment recorded",
        extra={
            "request_id": request_id,
            "deposit_number": deposit_number,
            "step": "payment_applied",
            "amount_cents": amount_cents,
            "method": method,
            "payment_status": payment_status,
            "installment_number": installment_number,
        },
    )


def log_dispatch(
    request_id: str,
    deposit_number: str,
    channel: str,
    outcome: str,
    error: Optional[str] = None,
) -> None:
    """Log receipt delivery; failures are logged at error level"""
    level = logging.ERROR if outcome == "error" else logging.INFO
    logging.log(
        level,
        "Receipt dispatch",
        extra={
            "request_id": request_id,
            "deposit_number": deposit_number,
            "step": "receipt_dispatch",
            "channel": channel,
            "outcome": outcome,
            "error": error,
        },
    )
