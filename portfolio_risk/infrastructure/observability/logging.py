"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from portfolio_risk.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: Optional[str] = None) -> None:
    """Route the root logger to stdout as JSON, at `level` or the configured log level"""
    logger = logging.getLogger()
    logger.setLevel(level or settings.log_level)

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_portfolio_report(
    loan_count: int,
    health_score: float,
    health_grade: str,
    concentration_score: int,
    action_count: int,
    duration_ms: float,
) -> None:
    """Log structured report outcome for analysis"""
    logging.getLogger("portfolio_risk.report").info(
        "Portfolio report completed",
        extra={
            "step": "portfolio_report_complete",
            "loan_count": loan_count,
            "health_score": health_score,
            "health_grade": health_grade,
            "concentration_score": concentration_score,
            "action_count": action_count,
            "duration_ms": duration_ms,
        },
    )
