"""
Job intake: create an alteration job with its parts and try to schedule it.

Scheduling right after intake is best effort; a job that cannot be placed yet
is still created and picked up later by bulk scheduling.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date

from alterations.core.config import Settings
from alterations.core.observability import get_logger
from alterations.domain.scheduling.services.job_scheduler import JobScheduler
from alterations.domain.scheduling.value_objects.enums import (
    JACKET_UNIT_PARTS,
    PANTS_UNIT_PARTS,
    GarmentPartType,
    PartPriority,
)
from alterations.domain.scheduling.value_objects.results import PartScheduleResult
from alterations.domain.shared.exceptions import (
    CapacityExhaustedError,
    ValidationError,
)
from alterations.infrastructure.database.models import AlterationJob, AlterationJobPart
from alterations.infrastructure.database.unit_of_work import SqlModelUnitOfWork

logger = get_logger(__name__)


def _token() -> str:
    return uuid.uuid4().hex[:12].upper()


def new_job_number() -> str:
    return f"AJ-{_token()}"


def new_job_qr_code() -> str:
    return f"QR-{_token()}"


def new_part_qr_code() -> str:
    return f"QR-PART-{_token()}"


@dataclass
class NewPart:
    part_name: str
    part_type: GarmentPartType | str
    estimated_time_minutes: int | None = None
    priority: PartPriority | str = PartPriority.NORMAL
    required_skill: str | None = None
    notes: str | None = None


@dataclass
class IntakeResult:
    job_id: int
    job_number: str
    qr_code: str
    part_ids: list[int]
    schedule: list[PartScheduleResult] = field(default_factory=list)
    schedule_error: str | None = None


class JobIntakeService:
    def __init__(
        self,
        uow: SqlModelUnitOfWork,
        scheduler: JobScheduler,
        config: Settings,
    ):
        self._uow = uow
        self._scheduler = scheduler
        self._config = config

    def create_job(
        self,
        parts: list[NewPart],
        due_date: date | None = None,
        rush_order: bool = False,
        last_minute: bool = False,
        linked_event_date: date | None = None,
        notes: str | None = None,
        auto_schedule: bool = True,
    ) -> IntakeResult:
        # Parse every enum before anything is written
        parsed = [
            (
                part_in,
                GarmentPartType.parse(part_in.part_type, "part_type"),
                PartPriority.parse(part_in.priority, "priority"),
            )
            for part_in in parts
        ]
        for part_in, part_type, _ in parsed:
            if not part_in.part_name or not part_in.part_name.strip():
                raise ValidationError("part_name", part_in.part_name, "value is required")
            if self._config.STRICT_PART_TYPE_UNITS and part_type not in (
                JACKET_UNIT_PARTS | PANTS_UNIT_PARTS
            ):
                raise ValidationError(
                    "part_type", part_type.value, "has no capacity unit", "UNMAPPED_PART_TYPE"
                )

        with self._uow:
            job = self._uow.jobs.add(
                AlterationJob(
                    job_number=new_job_number(),
                    qr_code=new_job_qr_code(),
                    due_date=due_date,
                    rush_order=rush_order,
                    last_minute=last_minute,
                    linked_event_date=linked_event_date,
                    notes=notes,
                )
            )
            part_ids = []
            for part_in, part_type, priority in parsed:
                part = self._uow.jobs.add_part(
                    AlterationJobPart(
                        job_id=job.id,
                        part_name=part_in.part_name.strip(),
                        part_type=part_type,
                        qr_code=new_part_qr_code(),
                        estimated_time_minutes=part_in.estimated_time_minutes
                        or self._config.DEFAULT_ESTIMATED_MINUTES,
                        priority=priority,
                        required_skill=(
                            part_in.required_skill.strip().lower()
                            if part_in.required_skill
                            else None
                        ),
                        notes=part_in.notes,
                    )
                )
                part_ids.append(part.id)
            result = IntakeResult(
                job_id=job.id,
                job_number=job.job_number,
                qr_code=job.qr_code,
                part_ids=part_ids,
            )

        logger.info(
            "Alteration job created",
            job_id=result.job_id,
            job_number=result.job_number,
            parts=len(part_ids),
            last_minute=last_minute,
        )

        if auto_schedule and part_ids:
            try:
                result.schedule = self._scheduler.schedule_job_parts(result.job_id)
            except CapacityExhaustedError as e:
                logger.warning(
                    "Auto-scheduling after intake failed",
                    job_id=result.job_id,
                    reason=e.message,
                )
                result.schedule_error = e.message
        return result

    def update_due_date(self, job_id: int, due_date: date) -> AlterationJob:
        """
        Change a job's due date.

        Parts that already have a day are not moved; ``reschedule_part`` is
        the path for that. Later scheduling runs use the new date.

        Raises:
            EntityNotFoundError: unknown job
            ValidationError: the job is finished, or the date falls after the
                linked event
        """
        with self._uow:
            job = self._uow.jobs.lock_job(job_id)
            if job.status.is_finished:
                raise ValidationError(
                    "job_id",
                    job_id,
                    f"cannot change the due date of a job in status {job.status.value}",
                )
            if job.linked_event_date is not None and due_date > job.linked_event_date:
                raise ValidationError(
                    "due_date",
                    due_date.isoformat(),
                    "cannot be after the linked event date",
                    "DUE_AFTER_EVENT",
                )
            previous = job.due_date
            if previous != due_date:
                self._uow.jobs.update_due_date(job, due_date)

        logger.info(
            "Job due date updated",
            job_id=job_id,
            previous=previous.isoformat() if previous else None,
            due_date=due_date.isoformat(),
        )
        return job
