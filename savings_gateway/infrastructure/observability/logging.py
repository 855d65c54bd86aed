"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from savings_gateway.config import settings


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


def log_authorization(
    user_id: str,
    outcome: str,
    failed_attempts: int,
    unlock_at: datetime | None = None,
) -> None:
    """Log one PIN authorization result. Never includes the PIN or token."""
    level = logging.INFO if outcome == "issued" else logging.WARNING
    logging.log(
        level,
        "PIN authorization completed",
        extra={
            "user_id": user_id,
            "step": "pin_authorization",
            "outcome": outcome,
            "failed_attempts": failed_attempts,
            "unlock_at": unlock_at.isoformat() if unlock_at else None,
        },
    )


def log_submission(
    intent_id: str,
    user_id: str,
    outcome: str,
    total_cents: int,
    round_up_cents: int,
    duration_ms: float,
) -> None:
    """Log structured payment submission outcome for analysis"""
    logging.info(
        "Payment submission completed",
        extra={
            "intent_id": intent_id,
            "user_id": user_id,
            "step": "payment_submission",
            "outcome": outcome,
            "total_cents": total_cents,
            "round_up_cents": round_up_cents,
            "duration_ms": duration_ms,
        },
    )
