"""
Domain Events

Raised by the scheduling and lifecycle services and published on the
in-process event bus once the surrounding unit of work has committed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent:
    """Marker base class for all domain events."""

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class PartScheduled(DomainEvent):
    """Raised when a garment part is placed on a work day."""

    job_id: int
    part_id: int
    scheduled_for: date
    capacity_unit: str
    assigned_to: int | None
    last_minute: bool = False
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PartRescheduled(DomainEvent):
    """Raised when a scheduled part is explicitly moved to another day."""

    job_id: int
    part_id: int
    old_day: date | None
    new_day: date
    assigned_to: int | None
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class TailorAssigned(DomainEvent):
    job_id: int
    part_id: int
    staff_id: int
    previous_staff_id: int | None
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PartStatusChanged(DomainEvent):
    """Raised when a QR scan moves a part along its lifecycle."""

    job_id: int
    part_id: int
    old_status: str
    new_status: str
    scanned_by: int
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class JobStatusChanged(DomainEvent):
    """
    Raised when a job rolls up to COMPLETE or PICKED_UP.

    This is the hook the customer notification subsystem listens on.
    """

    job_id: int
    job_number: str
    old_status: str
    new_status: str
    occurred_at: datetime = field(default_factory=_now)
