"""
Default subscribers for domain events.

Customer notifications are delivered by a separate subsystem; this service
only emits the structured log record that subsystem consumes.
"""

from alterations.core.observability import get_logger
from alterations.domain.scheduling.events.domain_events import (
    JobStatusChanged,
    PartRescheduled,
    PartScheduled,
)

from .event_bus import InMemoryEventBus

logger = get_logger(__name__)


def notify_job_status_changed(event: JobStatusChanged) -> None:
    logger.info(
        "Job ready for customer notification",
        job_id=event.job_id,
        job_number=event.job_number,
        old_status=event.old_status,
        new_status=event.new_status,
    )


def log_part_scheduled(event: PartScheduled) -> None:
    logger.debug(
        "Part scheduled",
        job_id=event.job_id,
        part_id=event.part_id,
        day=event.scheduled_for.isoformat(),
        unit=event.capacity_unit,
        assigned_to=event.assigned_to,
    )


def log_part_rescheduled(event: PartRescheduled) -> None:
    logger.info(
        "Part rescheduled",
        part_id=event.part_id,
        old_day=event.old_day.isoformat() if event.old_day else None,
        new_day=event.new_day.isoformat(),
    )


def register_default_handlers(bus: InMemoryEventBus) -> InMemoryEventBus:
    bus.subscribe(JobStatusChanged, notify_job_status_changed)
    bus.subscribe(PartScheduled, log_part_scheduled)
    bus.subscribe(PartRescheduled, log_part_rescheduled)
    return bus
