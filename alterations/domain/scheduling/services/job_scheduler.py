"""
Job Scheduler

Places every unscheduled part of a job on a work day with spare capacity,
consistent with the job's due date and urgency, and picks a day-of assignee.

A job is scheduled inside one unit of work: either all of its unscheduled
parts are placed or none are, and the capacity reserved along the way rolls
back with the failure.
"""

from collections.abc import Callable
from datetime import date, timedelta

from alterations.core.config import Settings
from alterations.core.observability import (
    CAPACITY_EXHAUSTED,
    PARTS_SCHEDULED,
    SCHEDULER_DURATION,
    get_logger,
)
from alterations.domain.scheduling.events.domain_events import (
    PartRescheduled,
    PartScheduled,
)
from alterations.domain.scheduling.services.calendar_service import ShopCalendar
from alterations.domain.scheduling.services.capacity_service import CapacityService
from alterations.domain.scheduling.services.staff_availability_service import (
    StaffAvailabilityService,
)
from alterations.domain.scheduling.services.workload_balancer import WorkloadBalancer
from alterations.domain.scheduling.value_objects.enums import CapacityUnit, JobStatus
from alterations.domain.scheduling.value_objects.results import PartScheduleResult
from alterations.domain.shared.exceptions import (
    CapacityExhaustedError,
    ConcurrencyConflictError,
    NoSchedulableDayError,
    ValidationError,
)
from alterations.infrastructure.database.models import AlterationJob, AlterationJobPart
from alterations.infrastructure.database.unit_of_work import SqlModelUnitOfWork

logger = get_logger(__name__)

BULK_SCHEDULABLE_STATUSES = (JobStatus.NOT_STARTED, JobStatus.IN_PROGRESS)

# Default lead times
EVENT_LEAD_DAYS = 7
DEFAULT_DUE_DAYS = 14
PREFERRED_LEAD_DAYS = 3
URGENT_LEAD_DAYS = 1


class JobScheduler:
    def __init__(
        self,
        uow: SqlModelUnitOfWork,
        calendar: ShopCalendar,
        capacity: CapacityService,
        availability: StaffAvailabilityService,
        balancer: WorkloadBalancer,
        config: Settings,
        today: Callable[[], date] = date.today,
    ):
        self._uow = uow
        self._calendar = calendar
        self._capacity = capacity
        self._availability = availability
        self._balancer = balancer
        self._config = config
        self._today = today

    # Date resolution
    @staticmethod
    def target_due_for(job: AlterationJob, today: date) -> date:
        """Due date, else a week before the linked event, else two weeks out."""
        if job.due_date is not None:
            return job.due_date
        if job.linked_event_date is not None:
            return job.linked_event_date - timedelta(days=EVENT_LEAD_DAYS)
        return today + timedelta(days=DEFAULT_DUE_DAYS)

    @staticmethod
    def preferred_start_for(target_due: date, today: date) -> date:
        # Jobs taken in close to their deadline go to the day before it
        if today + timedelta(days=PREFERRED_LEAD_DAYS) >= target_due:
            return target_due - timedelta(days=URGENT_LEAD_DAYS)
        return target_due - timedelta(days=PREFERRED_LEAD_DAYS)

    def search_start_for(
        self, job: AlterationJob, today: date, earliest: date | None = None
    ) -> date:
        floor = max(earliest, today) if earliest else today
        if job.last_minute:
            return self._calendar.next_non_working_weekday(floor)
        preferred = self.preferred_start_for(self.target_due_for(job, today), today)
        return max(preferred, floor)

    # Scheduling
    def schedule_job_parts(
        self, job_id: int, earliest: date | None = None
    ) -> list[PartScheduleResult]:
        """
        Schedule every part of the job that has no day yet.

        Already scheduled parts are reported with ``already_scheduled`` and
        left untouched, so calling this twice never double-reserves.

        Raises:
            EntityNotFoundError: unknown job
            CapacityExhaustedError: some part found no day before the due
                date, or the search ran past the horizon
        """
        with SCHEDULER_DURATION.labels(operation_type="schedule_job").time():
            with self._uow:
                job = self._uow.jobs.lock_job(job_id)
                placements = self._schedule_locked(job, earliest)
                lane = "last_minute" if job.last_minute else "standard"

        results = [result for result, _ in placements]
        newly_placed = [(r, unit) for r, unit in placements if not r.already_scheduled]
        for _, unit in newly_placed:
            PARTS_SCHEDULED.labels(unit=unit.value, lane=lane).inc()
        logger.info(
            "Job scheduled",
            job_id=job_id,
            parts_scheduled=len(newly_placed),
            parts_already_scheduled=len(results) - len(newly_placed),
            lane=lane,
        )
        return results

    def _schedule_locked(
        self, job: AlterationJob, earliest: date | None
    ) -> list[tuple[PartScheduleResult, CapacityUnit | None]]:
        today = self._today()
        target_due = self.target_due_for(job, today)
        origin = self.search_start_for(job, today, earliest)

        placements: list[tuple[PartScheduleResult, CapacityUnit | None]] = []
        cursor = origin
        for part in self._uow.jobs.parts_for_job(job.id):
            if part.scheduled_for is not None:
                placements.append(
                    (
                        PartScheduleResult(
                            part.id, part.scheduled_for, part.assigned_to, already_scheduled=True
                        ),
                        None,
                    )
                )
                continue

            unit = self._capacity.capacity_unit_for(part.part_type)
            cursor, assignee = self._place_part(job, part, unit, cursor, origin, target_due)
            placements.append((PartScheduleResult(part.id, cursor, assignee), unit))
            self._uow.add_domain_event(
                PartScheduled(
                    job_id=job.id,
                    part_id=part.id,
                    scheduled_for=cursor,
                    capacity_unit=unit.value,
                    assigned_to=assignee,
                    last_minute=job.last_minute,
                )
            )
        return placements

    def _place_part(
        self,
        job: AlterationJob,
        part: AlterationJobPart,
        unit: CapacityUnit,
        start: date,
        origin: date,
        target_due: date,
    ) -> tuple[date, int | None]:
        day = start
        while True:
            if not self._calendar.within_horizon(origin, day):
                CAPACITY_EXHAUSTED.labels(unit=unit.value).inc()
                raise NoSchedulableDayError(origin, self._calendar.horizon_days)
            if not job.last_minute and day > target_due:
                CAPACITY_EXHAUSTED.labels(unit=unit.value).inc()
                raise CapacityExhaustedError(
                    f"No {unit.value.lower()} capacity for part {part.id} "
                    f"before {target_due.isoformat()}",
                    unit=unit.value,
                    day=target_due,
                    details={"job_id": job.id, "part_id": part.id},
                )

            plan = self._capacity.get_or_create(day)
            if plan.is_closed or self._calendar.is_closed(day):
                day = self._advance(job, day, origin)
                continue
            if self._calendar.is_non_working_day(day) and not job.last_minute:
                day = self._advance(job, day, origin)
                continue

            try:
                self._capacity.reserve(day, unit)
            except CapacityExhaustedError:
                day = self._advance(job, day, origin)
                continue

            assignee = self._balancer.pick_assignee(
                self._availability.working_staff_on(day), day
            )
            self._uow.jobs.schedule_part(part, day, assignee)
            return day, assignee

    def _advance(self, job: AlterationJob, day: date, origin: date) -> date:
        if job.last_minute:
            return self._calendar.next_non_working_weekday(day)
        try:
            return self._calendar.find_next_schedulable_day(day + timedelta(days=1))
        except NoSchedulableDayError:
            raise NoSchedulableDayError(origin, self._calendar.horizon_days) from None

    # Explicit reschedule
    def reschedule_part(
        self,
        part_id: int,
        new_day: date,
        allow_non_working_day: bool = False,
    ) -> PartScheduleResult:
        """
        Move one part to ``new_day``, the only path that changes a set day.

        Capacity is reserved on the new day before it is released on the old
        one. The current assignee is kept if they work ``new_day``, otherwise
        a new one is picked.
        """
        with self._uow:
            part = self._uow.jobs.get_part(part_id)
            job = self._uow.jobs.lock_job(part.job_id)

            if not part.status.is_open_work:
                raise ValidationError(
                    "part_id", part_id, f"cannot reschedule a part in status {part.status.value}"
                )
            if new_day < self._today():
                raise ValidationError("new_day", new_day.isoformat(), "cannot be in the past")

            old_day = part.scheduled_for
            if old_day == new_day:
                return PartScheduleResult(part.id, new_day, part.assigned_to, already_scheduled=True)

            plan = self._capacity.get_or_create(new_day)
            if plan.is_closed or self._calendar.is_closed(new_day):
                raise ValidationError("new_day", new_day.isoformat(), "the shop is closed", "DAY_CLOSED")
            if (
                self._calendar.is_non_working_day(new_day)
                and not job.last_minute
                and not allow_non_working_day
            ):
                raise ValidationError(
                    "new_day",
                    new_day.isoformat(),
                    "only last-minute work may be placed on the non-working weekday",
                    "NON_WORKING_DAY",
                )

            unit = self._capacity.capacity_unit_for(part.part_type)
            self._capacity.reserve(new_day, unit)
            if old_day is not None:
                self._capacity.release(old_day, unit)

            working = self._availability.working_staff_on(new_day)
            assignee = part.assigned_to
            if assignee is None or assignee not in working:
                assignee = self._balancer.pick_assignee(working, new_day)

            self._uow.jobs.move_part(part, old_day, new_day, assignee)
            self._uow.add_domain_event(
                PartRescheduled(
                    job_id=job.id,
                    part_id=part_id,
                    old_day=old_day,
                    new_day=new_day,
                    assigned_to=assignee,
                )
            )

        return PartScheduleResult(part_id, new_day, assignee)

    # Bulk
    def bulk_auto_schedule(self, start_date: date | None = None) -> int:
        """
        Schedule every open job that still has unscheduled parts, one at a time.

        Each job commits on its own; a job that runs out of capacity, loses a
        concurrent write or carries an unschedulable part is logged and
        skipped. Returns the number of jobs scheduled.
        """
        with SCHEDULER_DURATION.labels(operation_type="bulk").time():
            job_ids = self._uow.jobs.jobs_with_unscheduled_parts(BULK_SCHEDULABLE_STATUSES)
            processed = 0
            for job_id in job_ids:
                try:
                    self.schedule_job_parts(job_id, earliest=start_date)
                except (
                    CapacityExhaustedError,
                    ConcurrencyConflictError,
                    ValidationError,
                ) as e:
                    logger.info(
                        "Bulk scheduling skipped job",
                        job_id=job_id,
                        error_type=e.error_type.value,
                        reason=e.message,
                    )
                    continue
                processed += 1

        logger.info("Bulk scheduling completed", candidates=len(job_ids), processed=processed)
        return processed
