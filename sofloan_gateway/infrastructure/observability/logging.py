"""Structured JSON logging"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from sofloan_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding timestamp, level and service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on stdout"""
    logger = logging.getLogger()
    logger.setLevel(level)

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger.addHandler(handler)


def log_schedule_computed(
    request_id: Optional[str],
    payment_frequency: str,
    number_of_payments: int,
    payment_amount: float,
    duration_ms: float,
) -> None:
    logging.info(
        "Payment schedule computed",
        extra={
            "request_id": request_id,
            "step": "schedule_computed",
            "payment_frequency": payment_frequency,
            "number_of_payments": number_of_payments,
            "payment_amount": payment_amount,
            "duration_ms": duration_ms,
        },
    )


def log_ibv_summary(
    request_id: Optional[str],
    request_guid: str,
    account_count: int,
    transaction_count: int,
    nsf_all_time: int,
    duration_ms: float,
) -> None:
    """Log the outcome of a bank-verification summary for underwriting analysis"""
    logging.info(
        "IBV summary computed",
        extra={
            "request_id": request_id,
            "request_guid": request_guid,
            "step": "ibv_summary_complete",
            "account_count": account_count,
            "transaction_count": transaction_count,
            "nsf_all_time": nsf_all_time,
            "duration_ms": duration_ms,
        },
    )
