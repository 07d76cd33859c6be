"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from verifund_gateway.config import settings


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


def log_transition(
    campaign_id: str,
    from_status: str,
    to_status: str,
    actor_id: str | None,
    automatic: bool = False,
) -> None:
    """Log a committed campaign status change"""
    logging.info(
        "Campaign status changed",
        extra={
            "campaign_id": campaign_id,
            "step": "status_transition",
            "from_status": from_status,
            "to_status": to_status,
            "actor_id": actor_id,
            "automatic": automatic,
        },
    )


def log_score_update(report_id: str, user_id: str, score_percentage: int, completed_types: list[str]) -> None:
    """Log a credit score recomputation"""
    logging.info(
        "Credit score recomputed",
        extra={
            "progress_report_id": report_id,
            "user_id": user_id,
            "step": "credit_score_update",
            "score_percentage": score_percentage,
            "completed_document_types": completed_types,
        },
    )
