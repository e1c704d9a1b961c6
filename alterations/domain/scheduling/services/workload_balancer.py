"""
Workload Balancer

Two independent rankings:

* ``pick_assignee`` spreads day-of work across whoever is working, by the
  minutes of open work each person already holds on that day.
* ``find_available_tailors`` is the skill-gated, appointment-style ranking
  used by ``auto_assign_tailors_for_job``.

Manual assignment goes through ``assign_tailor_to_part``. Every change of a
part's assignee made here is recorded in the assignment log.
"""

from collections.abc import Callable, Sequence
from datetime import date, datetime

from alterations.core.config import Settings
from alterations.core.observability import get_logger
from alterations.domain.scheduling.events.domain_events import TailorAssigned
from alterations.domain.scheduling.services.staff_availability_service import (
    StaffAvailabilityService,
)
from alterations.domain.scheduling.value_objects.enums import AssignmentMethod
from alterations.domain.scheduling.value_objects.results import (
    CandidateReason,
    PartAssignment,
    TailorCandidate,
)
from alterations.domain.scheduling.value_objects.weekly_schedule import (
    WeeklyAvailability,
)
from alterations.domain.shared.exceptions import ValidationError
from alterations.infrastructure.database.models import (
    AlterationJob,
    AlterationJobPart,
    AssignmentLog,
)
from alterations.infrastructure.database.unit_of_work import SqlModelUnitOfWork

logger = get_logger(__name__)

MAX_ASSIGNMENT_LOG_PAGE = 500


class WorkloadBalancer:
    def __init__(
        self,
        uow: SqlModelUnitOfWork,
        availability: StaffAvailabilityService,
        config: Settings,
        today: Callable[[], date] = date.today,
    ):
        self._uow = uow
        self._availability = availability
        self._config = config
        self._today = today

    def workload_on(self, staff_id: int, day: date) -> int:
        """Minutes of NOT_STARTED/IN_PROGRESS work scheduled for ``staff_id`` on ``day``."""
        return self._uow.jobs.open_minutes_for_staff(staff_id, day)

    def pick_assignee(self, candidates: Sequence[int], day: date) -> int | None:
        """
        Candidate with the lowest same-day workload.

        Ties go to whichever candidate comes first; no proficiency filter.
        """
        best_id: int | None = None
        best_load: int | None = None
        for staff_id in candidates:
            load = self.workload_on(staff_id, day)
            if best_load is None or load < best_load:
                best_id, best_load = staff_id, load
        return best_id

    def find_available_tailors(
        self,
        skill: str,
        duration_minutes: int,
        preferred_start: datetime,
        max_minutes_per_day: int | None = None,
    ) -> list[TailorCandidate]:
        """
        Rank skilled staff for the window ``[preferred_start, +duration)``.

        Only staff at ``MIN_TAILOR_PROFICIENCY`` or better are considered, and
        only those the availability resolver counts as working that day can be
        available. Available candidates come back ordered by workload
        ascending, then proficiency descending. When nobody is available the
        whole candidate list is returned with the reason each one was
        rejected.
        """
        if not skill or not skill.strip():
            raise ValidationError("skill", skill, "value is required")
        if duration_minutes < 1:
            raise ValidationError("duration_minutes", duration_minutes, "must be positive")
        cap = max_minutes_per_day or self._config.MAX_TAILOR_MINUTES_PER_DAY
        day = preferred_start.date()
        working = set(self._availability.working_staff_on(day))

        candidates: list[TailorCandidate] = []
        for member, proficiency in self._uow.staff.with_skill(
            skill, self._config.MIN_TAILOR_PROFICIENCY
        ):
            availability = WeeklyAvailability.from_json(member.weekly_availability)
            if availability is None or not availability.covers_window(
                preferred_start, duration_minutes
            ):
                candidates.append(
                    TailorCandidate(
                        member.id, member.name, proficiency, CandidateReason.OUT_OF_SCHEDULE
                    )
                )
                continue

            # Non-working weekday or a role that is not scheduled
            if member.id not in working:
                candidates.append(
                    TailorCandidate(
                        member.id, member.name, proficiency, CandidateReason.NOT_WORKING
                    )
                )
                continue

            workload = self.workload_on(member.id, day)
            if workload + duration_minutes > cap:
                candidates.append(
                    TailorCandidate(
                        member.id,
                        member.name,
                        proficiency,
                        CandidateReason.MAX_WORKLOAD,
                        workload,
                    )
                )
                continue

            candidates.append(
                TailorCandidate(
                    member.id, member.name, proficiency, CandidateReason.AVAILABLE, workload
                )
            )

        available = [c for c in candidates if c.is_available]
        if not available:
            return candidates
        return sorted(available, key=lambda c: (c.workload, -c.proficiency))

    def preferred_start_for(self, part: AlterationJobPart) -> datetime:
        day = part.scheduled_for or self._today()
        return datetime.combine(day, self._config.SHOP_OPEN_TIME)

    def auto_assign_tailors_for_job(
        self, job_id: int, max_minutes_per_day: int | None = None
    ) -> list[PartAssignment]:
        """
        Skill-gated assignment for every open part of the job with a required skill.

        Consecutive parts rotate away from the previous part's assignee when
        another available tailor exists. Parts without a required skill keep
        their current assignment.
        """
        with self._uow:
            job = self._uow.jobs.lock_job(job_id)
            details: list[PartAssignment] = []
            last_assigned: int | None = None

            for part in self._uow.jobs.parts_for_job(job.id):
                if not part.required_skill:
                    details.append(
                        PartAssignment(part.id, part.assigned_to, "No skill required")
                    )
                    continue
                if not part.status.is_open_work:
                    details.append(
                        PartAssignment(part.id, part.assigned_to, "Part already finished")
                    )
                    continue

                candidates = self.find_available_tailors(
                    part.required_skill,
                    part.estimated_time_minutes,
                    self.preferred_start_for(part),
                    max_minutes_per_day,
                )
                available = [c for c in candidates if c.is_available]
                if not available:
                    details.append(
                        PartAssignment(
                            part.id, part.assigned_to, "No available tailor", candidates
                        )
                    )
                    continue

                chosen = next(
                    (c for c in available if c.staff_id != last_assigned), available[0]
                )
                last_assigned = chosen.staff_id
                reason = (
                    f"Assigned (workload: {chosen.workload or 0} min, "
                    f"proficiency: {chosen.proficiency})"
                )
                part_id = part.id
                changed = self._reassign(
                    job, part, chosen.staff_id, AssignmentMethod.AUTO, reason
                )
                details.append(
                    PartAssignment(part_id, chosen.staff_id, reason, candidates, changed)
                )

        logger.info(
            "Auto-assignment completed",
            job_id=job_id,
            parts=len(details),
            assigned=sum(1 for d in details if d.changed),
        )
        return details

    def assign_tailor_to_part(
        self,
        part_id: int,
        staff_id: int,
        changed_by: int | None = None,
        reason: str | None = None,
    ) -> PartAssignment:
        """
        Manually assign ``staff_id`` to one part.

        A scheduled part only accepts someone working its day.

        Raises:
            EntityNotFoundError: unknown part or staff member
            ValidationError: the part is finished, or the staff member cannot
                take work on the part's day
            ConcurrencyConflictError: the part changed concurrently
        """
        reason = reason.strip() if reason and reason.strip() else "Manual assignment"
        with self._uow:
            part = self._uow.jobs.get_part(part_id)
            job = self._uow.jobs.lock_job(part.job_id)
            member = self._uow.staff.get_by_id_required(staff_id)

            if not part.status.is_open_work:
                raise ValidationError(
                    "part_id", part_id, f"cannot assign a part in status {part.status.value}"
                )
            if not member.is_active or not member.can_work:
                raise ValidationError(
                    "staff_id", staff_id, "staff member cannot take work", "STAFF_NOT_WORKING"
                )
            day = part.scheduled_for
            if day is not None and staff_id not in self._availability.working_staff_on(day):
                raise ValidationError(
                    "staff_id",
                    staff_id,
                    f"is not working on {day.isoformat()}",
                    "STAFF_NOT_WORKING",
                )

            changed = self._reassign(
                job, part, staff_id, AssignmentMethod.MANUAL, reason, changed_by
            )

        logger.info(
            "Part assigned manually",
            part_id=part_id,
            staff_id=staff_id,
            changed_by=changed_by,
            changed=changed,
        )
        return PartAssignment(part_id, staff_id, reason, changed=changed)

    def list_assignment_logs(self, part_id: int, limit: int = 50) -> list[AssignmentLog]:
        """Assignee changes of one part, newest first."""
        limit = max(1, min(limit, MAX_ASSIGNMENT_LOG_PAGE))
        return self._uow.assignment_logs.for_part(part_id, limit=limit)

    def _reassign(
        self,
        job: AlterationJob,
        part: AlterationJobPart,
        staff_id: int,
        method: AssignmentMethod,
        reason: str,
        changed_by: int | None = None,
    ) -> bool:
        previous = part.assigned_to
        if previous == staff_id:
            return False

        job_id, part_id = job.id, part.id
        self._uow.jobs.assign_part(part, staff_id)
        self._uow.assignment_logs.add(
            AssignmentLog(
                job_id=job_id,
                part_id=part_id,
                old_staff_id=previous,
                new_staff_id=staff_id,
                changed_by=changed_by,
                method=method,
                reason=reason[:200],
            )
        )
        self._uow.add_domain_event(
            TailorAssigned(
                job_id=job_id,
                part_id=part_id,
                staff_id=staff_id,
                previous_staff_id=previous,
            )
        )
        return True
