"""
Result value objects returned by the scheduling and lifecycle services.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .enums import JobStatus


class CandidateReason(str, Enum):
    AVAILABLE = "Available"
    OUT_OF_SCHEDULE = "Out of schedule"
    MAX_WORKLOAD = "Max workload reached"
    NOT_WORKING = "Not working that day"


@dataclass(frozen=True)
class TailorCandidate:
    """One skilled staff member considered for a time window."""

    staff_id: int
    name: str
    proficiency: int
    reason: CandidateReason
    workload: int | None = None

    @property
    def is_available(self) -> bool:
        return self.reason == CandidateReason.AVAILABLE


@dataclass(frozen=True)
class PartAssignment:
    part_id: int
    assigned_to: int | None
    reason: str
    candidates: list[TailorCandidate] = field(default_factory=list)
    changed: bool = False


@dataclass(frozen=True)
class PartScheduleResult:
    part_id: int
    day: date
    assigned_to: int | None
    already_scheduled: bool = False


class ScanResult(str, Enum):
    """Human readable outcome recorded on every scan log row."""

    SUCCESS = "Success"
    WORK_ALREADY_STARTED = "Work already started"
    WORK_NOT_IN_PROGRESS = "Work not in progress"
    NOT_READY_FOR_PICKUP = "Part not ready for pickup"


@dataclass(frozen=True)
class ScanOutcome:
    qr_code: str
    part_id: int
    job_id: int
    result: ScanResult
    part_status: JobStatus
    job_status: JobStatus
    scan_log_id: int
    transitioned: bool = False
