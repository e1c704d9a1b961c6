"""
Scheduling and scanning Data Transfer Objects.

Request DTOs keep enum fields as plain strings; they are parsed by the
domain services so an unknown value surfaces as a domain ``ValidationError``
(400) rather than a schema error.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


# Scanning
class ScanRequest(BaseModel):
    scan_type: str = Field(..., description="START_WORK, FINISH_WORK, PICKUP or STATUS_CHECK")
    location: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=1000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"scan_type": "START_WORK", "location": "Station 2"}
        }
    )


class ScanResponse(BaseModel):
    qr_code: str
    part_id: int
    job_id: int
    result: str
    part_status: str
    job_status: str
    scan_log_id: int
    transitioned: bool


class ScanLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    qr_code: str
    part_id: int
    scanned_by: int
    scan_type: str
    location: str | None = None
    result: str
    notes: str | None = None
    timestamp: datetime


# Intake
class CreatePartRequest(BaseModel):
    part_name: str = Field(..., min_length=1, max_length=100)
    part_type: str = Field(..., description="JACKET, VEST, SHIRT, PANTS, SKIRT, DRESS or OTHER")
    estimated_time_minutes: int | None = Field(None, ge=1, le=24 * 60)
    priority: str = Field("NORMAL", description="LOW, NORMAL, HIGH or RUSH")
    required_skill: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=1000)


class CreateJobRequest(BaseModel):
    parts: list[CreatePartRequest] = Field(default_factory=list)
    due_date: date | None = None
    rush_order: bool = False
    last_minute: bool = False
    linked_event_date: date | None = None
    notes: str | None = Field(None, max_length=1000)
    auto_schedule: bool = True

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "due_date": "2026-11-20",
                "parts": [
                    {"part_name": "Jacket sleeves", "part_type": "JACKET", "required_skill": "sleeves"},
                    {"part_name": "Trouser hem", "part_type": "PANTS"},
                ],
            }
        }
    )


# Scheduling
class PartScheduleResponse(BaseModel):
    part_id: int
    day: date
    assigned_to: int | None = None
    already_scheduled: bool = False


class CreateJobResponse(BaseModel):
    job_id: int
    job_number: str
    qr_code: str
    part_ids: list[int]
    schedule: list[PartScheduleResponse] = Field(default_factory=list)
    schedule_error: str | None = None


class ScheduleJobRequest(BaseModel):
    earliest: date | None = Field(None, description="Do not place parts before this day")


class ScheduleJobResponse(BaseModel):
    job_id: int
    parts: list[PartScheduleResponse]


class BulkScheduleRequest(BaseModel):
    start_date: date | None = None


class BulkScheduleResponse(BaseModel):
    jobs_processed: int


class RescheduleRequest(BaseModel):
    new_day: date
    allow_non_working_day: bool = False


# Assignment
class TailorCandidateResponse(BaseModel):
    staff_id: int
    name: str
    proficiency: int
    workload: int | None = None
    reason: str


class PartAssignmentResponse(BaseModel):
    part_id: int
    assigned_to: int | None = None
    reason: str
    changed: bool = False
    candidates: list[TailorCandidateResponse] = Field(default_factory=list)


class AutoAssignResponse(BaseModel):
    job_id: int
    assignments: list[PartAssignmentResponse]


class AssignTailorRequest(BaseModel):
    staff_id: int = Field(..., ge=1)
    reason: str | None = Field(None, max_length=200)

    model_config = ConfigDict(
        json_schema_extra={"example": {"staff_id": 3, "reason": "Customer asked for Maria"}}
    )


class AssignmentLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    part_id: int
    old_staff_id: int | None = None
    new_staff_id: int
    changed_by: int | None = None
    method: str
    reason: str | None = None
    timestamp: datetime


# Job status and dates
class UpdateDueDateRequest(BaseModel):
    due_date: date


class JobStatusResponse(BaseModel):
    job_id: int
    job_number: str
    status: str
    due_date: date | None = None


# Board
class CapacityDayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    jacket_capacity: int
    pants_capacity: int
    assigned_jackets: int
    assigned_pants: int
    jackets_left: int
    pants_left: int
    is_non_working_day: bool
    is_closed: bool
    total_parts: int
    last_minute_parts: int
    notes: str | None = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    part_id: int
    part_name: str
    part_type: str
    assigned_to: int | None = None
    status: str
    job_number: str
