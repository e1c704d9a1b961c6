"""
SQLModel table definitions for the alterations workroom.

These models serve both as SQLAlchemy ORM tables and as Pydantic models. The
``version`` columns back the compare-and-swap updates issued by the
repositories; nothing else should write the capacity counters or part status.
"""

import datetime as dt
from typing import Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from alterations.domain.scheduling.value_objects.enums import (
    AssignmentMethod,
    GarmentPartType,
    JobStatus,
    PartPriority,
    ScanType,
)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TimestampedModel(SQLModel):
    """Base model with timestamp fields."""

    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime | None = None


# Capacity
class WorkDayPlan(TimestampedModel, table=True):
    """Per-day jacket/pants capacity and how much of it is already reserved."""

    __tablename__ = "work_day_plans"

    id: int | None = Field(default=None, primary_key=True)
    work_date: dt.date = Field(unique=True, index=True)
    jacket_capacity: int = Field(default=5, ge=0)
    pants_capacity: int = Field(default=6, ge=0)
    assigned_jackets: int = Field(default=0, ge=0)
    assigned_pants: int = Field(default=0, ge=0)
    is_closed: bool = Field(default=False)
    notes: str | None = None

    @property
    def jackets_left(self) -> int:
        return max(0, self.jacket_capacity - self.assigned_jackets)

    @property
    def pants_left(self) -> int:
        return max(0, self.pants_capacity - self.assigned_pants)


class GlobalHoliday(TimestampedModel, table=True):
    """Shop-wide closure lookup."""

    __tablename__ = "global_holidays"

    id: int | None = Field(default=None, primary_key=True)
    holiday_date: dt.date = Field(unique=True, index=True)
    name: str = Field(default="Closed", max_length=100)
    is_closed: bool = Field(default=True)


# Staff directory
class StaffMember(TimestampedModel, table=True):
    __tablename__ = "staff_members"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(min_length=1, max_length=100)
    role: str = Field(default="tailor", max_length=30, index=True)
    is_active: bool = Field(default=True)
    can_work: bool = Field(default=True)
    # None means no recurring schedule configured
    weekly_availability: dict | None = Field(default=None, sa_column=Column(JSON))

    skills: list["StaffSkill"] = Relationship(
        back_populates="staff", cascade_delete=True
    )


class StaffSkill(SQLModel, table=True):
    """Proficiency (1 to 5) of a staff member in one alteration skill."""

    __tablename__ = "staff_skills"
    __table_args__ = (UniqueConstraint("staff_id", "skill"),)

    id: int | None = Field(default=None, primary_key=True)
    staff_id: int = Field(foreign_key="staff_members.id", index=True)
    skill: str = Field(max_length=50, index=True)
    proficiency: int = Field(default=1, ge=1, le=5)

    staff: StaffMember | None = Relationship(back_populates="skills")


# Jobs
class AlterationJob(TimestampedModel, table=True):
    __tablename__ = "alteration_jobs"

    id: int | None = Field(default=None, primary_key=True)
    job_number: str = Field(max_length=50, unique=True, index=True)
    qr_code: str = Field(max_length=80, unique=True, index=True)
    status: JobStatus = Field(default=JobStatus.NOT_STARTED, index=True)
    due_date: dt.date | None = None
    rush_order: bool = Field(default=False)
    last_minute: bool = Field(default=False)
    linked_event_date: dt.date | None = None
    notes: str | None = None
    version: int = Field(default=0, ge=0)

    parts: list["AlterationJobPart"] = Relationship(
        back_populates="job",
        cascade_delete=True,
        sa_relationship_kwargs={"order_by": "AlterationJobPart.id"},
    )


class AlterationJobPart(TimestampedModel, table=True):
    __tablename__ = "alteration_job_parts"

    id: int | None = Field(default=None, primary_key=True)
    job_id: int = Field(foreign_key="alteration_jobs.id", index=True)
    part_name: str = Field(max_length=100)
    part_type: GarmentPartType = Field(default=GarmentPartType.OTHER)
    status: JobStatus = Field(default=JobStatus.NOT_STARTED, index=True)
    qr_code: str = Field(max_length=80, unique=True, index=True)
    estimated_time_minutes: int = Field(default=60, ge=1)
    priority: PartPriority = Field(default=PartPriority.NORMAL)
    required_skill: str | None = Field(default=None, max_length=50)
    scheduled_for: dt.date | None = Field(default=None, index=True)
    assigned_to: int | None = Field(
        default=None, foreign_key="staff_members.id", index=True
    )
    notes: str | None = None
    version: int = Field(default=0, ge=0)

    job: Optional[AlterationJob] = Relationship(back_populates="parts")


# Audit
class QRScanLog(SQLModel, table=True):
    """Append-only record of every scan of a known QR code."""

    __tablename__ = "qr_scan_logs"

    id: int | None = Field(default=None, primary_key=True)
    qr_code: str = Field(max_length=80, index=True)
    part_id: int = Field(foreign_key="alteration_job_parts.id", index=True)
    scanned_by: int = Field(foreign_key="staff_members.id", index=True)
    scan_type: ScanType
    location: str | None = Field(default=None, max_length=100)
    result: str = Field(max_length=100)
    notes: str | None = None
    timestamp: dt.datetime = Field(default_factory=utcnow, index=True)


class AssignmentLog(SQLModel, table=True):
    """Append-only record of every change of a part's assignee."""

    __tablename__ = "assignment_logs"

    id: int | None = Field(default=None, primary_key=True)
    job_id: int = Field(foreign_key="alteration_jobs.id", index=True)
    part_id: int = Field(foreign_key="alteration_job_parts.id", index=True)
    old_staff_id: int | None = Field(default=None, foreign_key="staff_members.id")
    new_staff_id: int = Field(foreign_key="staff_members.id", index=True)
    # None when the change was not made by an identified staff member
    changed_by: int | None = Field(default=None, foreign_key="staff_members.id")
    method: AssignmentMethod
    reason: str | None = Field(default=None, max_length=200)
    timestamp: dt.datetime = Field(default_factory=utcnow, index=True)
