"""
Observability Infrastructure

Structured logging with correlation tracking and the Prometheus metrics the
scheduling and scanning flows record.
"""

import contextvars
import logging
import sys
import uuid
from typing import Any

import structlog
from prometheus_client import Counter, Histogram

from .config import Settings, settings

# Context variables for correlation tracking
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
staff_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "staff_id", default=""
)

# Prometheus metrics
REQUEST_COUNT = Counter(
    "alterations_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_DURATION = Histogram(
    "alterations_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
)

PARTS_SCHEDULED = Counter(
    "alterations_parts_scheduled_total",
    "Garment parts placed on a work day",
    ["unit", "lane"],
)

CAPACITY_EXHAUSTED = Counter(
    "alterations_capacity_exhausted_total",
    "Scheduling attempts that found no day with spare capacity",
    ["unit"],
)

SCANS_PROCESSED = Counter(
    "alterations_qr_scans_total",
    "QR scans processed by the lifecycle state machine",
    ["scan_type", "outcome"],
)

SCHEDULER_DURATION = Histogram(
    "alterations_scheduler_operation_duration_seconds",
    "Scheduler operation duration",
    ["operation_type"],
)


class CorrelationIdProcessor:
    """Structlog processor to add correlation ID to all log entries."""

    def __call__(
        self, logger: Any, name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        correlation_id = correlation_id_var.get("")
        staff_id = staff_id_var.get("")

        if correlation_id:
            event_dict["correlation_id"] = correlation_id
        if staff_id:
            event_dict["staff_id"] = staff_id

        return event_dict


def setup_structured_logging(config: Settings | None = None) -> None:
    """Configure structured logging with JSON output and correlation tracking."""
    config = config or settings

    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        CorrelationIdProcessor(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
    ]

    if config.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=config.ENVIRONMENT == "local")
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if config.LOG_SQL:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for request tracking."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    correlation_id_var.set(correlation_id)
    return correlation_id


def set_staff_id(staff_id: str) -> None:
    """Set acting staff member for request tracking."""
    staff_id_var.set(staff_id)
