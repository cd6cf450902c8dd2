"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from capling_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
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


def log_transaction_processed(
    request_id: str,
    user_id: str,
    transaction_id: str,
    transaction_type: str,
    classification: str,
    new_balance_cents: int,
    duration_ms: float,
) -> None:
    """Log structured transaction outcome for analysis"""
    logging.info(
        "Transaction processed successfully",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "transaction_id": transaction_id,
            "step": "transaction_complete",
            "transaction_type": transaction_type,
            "classification": classification,
            "new_balance_cents": new_balance_cents,
            "duration_ms": duration_ms,
        },
    )


def log_justification_resolved(request_id: str, user_id: str, transaction_id: str, status: str) -> None:
    logging.info(
        "Justification resolved",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "transaction_id": transaction_id,
            "step": "justification_complete",
            "justification_status": status,
        },
    )
