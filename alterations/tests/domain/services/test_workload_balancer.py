"""
Unit Tests for the Workload Balancer

Covers day-of assignee selection and the skill-gated tailor ranking used by
auto-assignment.
"""

from datetime import date, datetime

import pytest

from alterations.application.service_factory import build_scheduling_services
from alterations.domain.scheduling.events.domain_events import TailorAssigned
from alterations.domain.scheduling.value_objects.enums import AssignmentMethod, JobStatus
from alterations.domain.scheduling.value_objects.results import CandidateReason
from alterations.domain.shared.exceptions import EntityNotFoundError, ValidationError
from alterations.tests.factories import (
    TODAY,
    create_job,
    create_part,
    create_staff,
    fixed_today,
    make_settings,
    reload,
    weekly_schedule,
)

DAY = date(2026, 3, 10)
THURSDAY = date(2026, 3, 5)
TUESDAY = date(2026, 3, 17)
EVERY_DAY = (0, 1, 2, 3, 4, 5, 6)
MORNING = datetime(2026, 3, 2, 10, 0)


class TestPickAssignee:
    """Test spreading same-day work across the staff who are in."""

    def test_no_candidates(self, services):
        assert services.balancer.pick_assignee([], DAY) is None

    def test_lowest_workload_wins(self, session, services):
        busy = create_staff(session)
        free = create_staff(session)
        job = create_job(session, part_types=[])
        create_part(session, job, scheduled_for=DAY, assigned_to=busy.id, estimated_time_minutes=120)

        assert services.balancer.pick_assignee([busy.id, free.id], DAY) == free.id

    def test_ties_go_to_first_candidate(self, session, services):
        first = create_staff(session)
        second = create_staff(session)

        assert services.balancer.pick_assignee([first.id, second.id], DAY) == first.id

    def test_workload_only_counts_open_work_on_that_day(self, session, services):
        member = create_staff(session)
        job = create_job(session, part_types=[])
        create_part(session, job, scheduled_for=DAY, assigned_to=member.id, estimated_time_minutes=30)
        create_part(
            session,
            job,
            scheduled_for=DAY,
            assigned_to=member.id,
            status=JobStatus.IN_PROGRESS,
            estimated_time_minutes=45,
        )
        create_part(
            session,
            job,
            scheduled_for=DAY,
            assigned_to=member.id,
            status=JobStatus.COMPLETE,
            estimated_time_minutes=90,
        )
        create_part(session, job, scheduled_for=date(2026, 3, 11), assigned_to=member.id)

        assert services.balancer.workload_on(member.id, DAY) == 75


class TestFindAvailableTailors:
    """Test the skill-gated ranking for a time window."""

    def test_requires_skill(self, services):
        with pytest.raises(ValidationError):
            services.balancer.find_available_tailors(" ", 60, MORNING)

    def test_requires_positive_duration(self, services):
        with pytest.raises(ValidationError):
            services.balancer.find_available_tailors("hemming", 0, MORNING)

    def test_low_proficiency_excluded(self, session, services):
        create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 2})

        assert services.balancer.find_available_tailors("hemming", 60, MORNING) == []

    def test_skill_match_is_case_insensitive(self, session, services):
        member = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 3})

        candidates = services.balancer.find_available_tailors("Hemming", 60, MORNING)

        assert [c.staff_id for c in candidates] == [member.id]

    def test_ordered_by_workload_then_proficiency(self, session, services):
        schedule = weekly_schedule()
        loaded = create_staff(session, weekly_availability=schedule, skills={"hemming": 5})
        expert = create_staff(session, weekly_availability=schedule, skills={"hemming": 5})
        competent = create_staff(session, weekly_availability=schedule, skills={"hemming": 3})
        job = create_job(session, part_types=[])
        create_part(session, job, scheduled_for=TODAY, assigned_to=loaded.id)

        candidates = services.balancer.find_available_tailors("hemming", 60, MORNING)

        assert [c.staff_id for c in candidates] == [expert.id, competent.id, loaded.id]
        assert all(c.reason == CandidateReason.AVAILABLE for c in candidates)
        assert candidates[-1].workload == 60

    def test_unavailable_candidates_returned_with_reasons(self, session, services):
        off_today = create_staff(
            session, weekly_availability=weekly_schedule(weekdays=(1,)), skills={"hemming": 4}
        )
        no_schedule = create_staff(session, skills={"hemming": 4})
        full = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})
        job = create_job(session, part_types=[])
        create_part(
            session, job, scheduled_for=TODAY, assigned_to=full.id, estimated_time_minutes=450
        )

        candidates = services.balancer.find_available_tailors("hemming", 60, MORNING)
        reasons = {c.staff_id: c.reason for c in candidates}

        assert reasons == {
            off_today.id: CandidateReason.OUT_OF_SCHEDULE,
            no_schedule.id: CandidateReason.OUT_OF_SCHEDULE,
            full.id: CandidateReason.MAX_WORKLOAD,
        }

    def test_window_must_fit_a_block(self, session, services):
        create_staff(
            session,
            weekly_availability=weekly_schedule(start="09:00", end="10:30"),
            skills={"hemming": 4},
        )

        candidates = services.balancer.find_available_tailors("hemming", 60, MORNING)

        assert candidates[0].reason == CandidateReason.OUT_OF_SCHEDULE

    def test_staff_outside_schedulable_roles_not_working(self, session, services):
        manager = create_staff(
            session, role="manager", weekly_availability=weekly_schedule(), skills={"hemming": 5}
        )

        candidates = services.balancer.find_available_tailors("hemming", 60, MORNING)

        assert [(c.staff_id, c.reason) for c in candidates] == [
            (manager.id, CandidateReason.NOT_WORKING)
        ]

    def test_nobody_works_the_non_working_weekday(self, session, services):
        create_staff(
            session, weekly_availability=weekly_schedule(weekdays=EVERY_DAY), skills={"hemming": 4}
        )

        candidates = services.balancer.find_available_tailors(
            "hemming", 60, datetime(2026, 3, 5, 10, 0)
        )

        assert candidates[0].reason == CandidateReason.NOT_WORKING

    def test_max_minutes_override(self, session, services):
        member = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})

        candidates = services.balancer.find_available_tailors(
            "hemming", 90, MORNING, max_minutes_per_day=60
        )

        assert candidates[0].staff_id == member.id
        assert candidates[0].reason == CandidateReason.MAX_WORKLOAD


class TestAutoAssignTailors:
    """Test skill-gated assignment across a job's parts."""

    def test_unknown_job(self, services):
        with pytest.raises(EntityNotFoundError):
            services.balancer.auto_assign_tailors_for_job(9999)

    def test_rotates_between_available_tailors(self, session, services, event_bus):
        schedule = weekly_schedule()
        first = create_staff(session, weekly_availability=schedule, skills={"hemming": 5})
        second = create_staff(session, weekly_availability=schedule, skills={"hemming": 4})
        job = create_job(session, part_types=["PANTS", "PANTS"], required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert [d.assigned_to for d in details] == [first.id, second.id]
        assert all(d.changed for d in details)
        assert details[0].reason == "Assigned (workload: 0 min, proficiency: 5)"
        assert len(event_bus.get_event_history(TailorAssigned)) == 2

    def test_single_tailor_takes_every_part(self, session, services):
        only = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})
        job = create_job(session, part_types=["PANTS", "SKIRT"], required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert [d.assigned_to for d in details] == [only.id, only.id]

    def test_parts_without_skill_left_alone(self, session, services):
        create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})
        job = create_job(session, part_types=["JACKET"])

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert details[0].assigned_to is None
        assert details[0].reason == "No skill required"
        assert not details[0].changed

    def test_finished_parts_skipped(self, session, services):
        create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})
        job = create_job(session, part_types=[])
        part = create_part(session, job, status=JobStatus.COMPLETE, required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert details[0].reason == "Part already finished"
        assert reload(session, part).assigned_to is None

    def test_no_available_tailor_keeps_current_assignee(self, session, services):
        current = create_staff(session)
        create_staff(session, weekly_availability=weekly_schedule(weekdays=(1,)), skills={"hemming": 4})
        job = create_job(session, part_types=[])
        part = create_part(session, job, assigned_to=current.id, required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert details[0].reason == "No available tailor"
        assert details[0].assigned_to == current.id
        assert details[0].candidates[0].reason == CandidateReason.OUT_OF_SCHEDULE
        assert reload(session, part).assigned_to == current.id

    def test_reassigning_same_tailor_is_not_a_change(self, session, services, event_bus):
        member = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})
        job = create_job(session, part_types=[])
        part = create_part(session, job, assigned_to=member.id, required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert not details[0].changed
        assert event_bus.get_event_history(TailorAssigned) == []
        assert reload(session, part).version == 0

    def test_last_minute_part_on_non_working_weekday_stays_unassigned(self, session, services):
        create_staff(
            session, weekly_availability=weekly_schedule(weekdays=EVERY_DAY), skills={"hemming": 4}
        )
        job = create_job(session, part_types=[], last_minute=True)
        part = create_part(session, job, scheduled_for=THURSDAY, required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert details[0].reason == "No available tailor"
        assert details[0].candidates[0].reason == CandidateReason.NOT_WORKING
        assert reload(session, part).assigned_to is None

    def test_only_schedulable_roles_are_assigned(self, session, services):
        create_staff(
            session, role="manager", weekly_availability=weekly_schedule(), skills={"hemming": 5}
        )
        tailor = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 3})
        job = create_job(session, part_types=[])
        part = create_part(session, job, scheduled_for=TUESDAY, required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert details[0].assigned_to == tailor.id
        assert reload(session, part).assigned_to in services.availability.working_staff_on(TUESDAY)

    def test_configured_roles_widen_the_pool(self, session, event_bus):
        services = build_scheduling_services(
            session,
            make_settings(SCHEDULABLE_ROLES="tailor,manager"),
            event_bus,
            today=fixed_today,
        )
        manager = create_staff(
            session, role="manager", weekly_availability=weekly_schedule(), skills={"hemming": 5}
        )
        job = create_job(session, part_types=[])
        create_part(session, job, scheduled_for=TUESDAY, required_skill="hemming")

        details = services.balancer.auto_assign_tailors_for_job(job.id)

        assert details[0].assigned_to == manager.id

    def test_auto_assignment_is_logged(self, session, services):
        member = create_staff(session, weekly_availability=weekly_schedule(), skills={"hemming": 4})
        job = create_job(session, part_types=[])
        part = create_part(session, job, scheduled_for=TUESDAY, required_skill="hemming")

        services.balancer.auto_assign_tailors_for_job(job.id)

        logs = services.balancer.list_assignment_logs(part.id)
        assert [(log.method, log.new_staff_id, log.old_staff_id) for log in logs] == [
            (AssignmentMethod.AUTO, member.id, None)
        ]
        assert logs[0].changed_by is None


class TestManualAssignment:
    """Test assigning a staff member to a part by hand."""

    def test_assigns_and_logs(self, session, services, event_bus):
        previous = create_staff(session)
        chosen = create_staff(session)
        desk = create_staff(session, role="front_desk")
        job = create_job(session, part_types=[])
        part = create_part(session, job, scheduled_for=TUESDAY, assigned_to=previous.id)

        result = services.balancer.assign_tailor_to_part(
            part.id, chosen.id, changed_by=desk.id, reason="  Customer request "
        )

        assert result.changed
        assert result.reason == "Customer request"
        assert reload(session, part).assigned_to == chosen.id
        log = services.balancer.list_assignment_logs(part.id)[0]
        assert log.method == AssignmentMethod.MANUAL
        assert (log.old_staff_id, log.new_staff_id, log.changed_by) == (
            previous.id,
            chosen.id,
            desk.id,
        )
        assert log.reason == "Customer request"
        event = event_bus.get_event_history(TailorAssigned)[0]
        assert (event.staff_id, event.previous_staff_id) == (chosen.id, previous.id)

    def test_default_reason(self, session, services):
        member = create_staff(session)
        part = create_part(session, create_job(session, part_types=[]), scheduled_for=TUESDAY)

        result = services.balancer.assign_tailor_to_part(part.id, member.id)

        assert result.reason == "Manual assignment"

    def test_same_assignee_is_not_a_change(self, session, services, event_bus):
        member = create_staff(session)
        job = create_job(session, part_types=[])
        part = create_part(session, job, scheduled_for=TUESDAY, assigned_to=member.id)

        result = services.balancer.assign_tailor_to_part(part.id, member.id)

        assert not result.changed
        assert services.balancer.list_assignment_logs(part.id) == []
        assert event_bus.get_event_history(TailorAssigned) == []
        assert reload(session, part).version == 0

    def test_rejects_staff_not_working_the_scheduled_day(self, session, services):
        weekend_only = create_staff(session, weekly_availability=weekly_schedule(weekdays=(5, 6)))
        job = create_job(session, part_types=[])
        part = create_part(session, job, scheduled_for=TUESDAY)

        with pytest.raises(ValidationError) as exc_info:
            services.balancer.assign_tailor_to_part(part.id, weekend_only.id)

        assert exc_info.value.error_code == "STAFF_NOT_WORKING"
        assert reload(session, part).assigned_to is None

    def test_rejects_anyone_on_the_non_working_weekday(self, session, services):
        member = create_staff(session, weekly_availability=weekly_schedule(weekdays=EVERY_DAY))
        job = create_job(session, part_types=[], last_minute=True)
        part = create_part(session, job, scheduled_for=THURSDAY)

        with pytest.raises(ValidationError):
            services.balancer.assign_tailor_to_part(part.id, member.id)

    def test_rejects_role_outside_schedule(self, session, services):
        manager = create_staff(session, role="manager")
        part = create_part(session, create_job(session, part_types=[]), scheduled_for=TUESDAY)

        with pytest.raises(ValidationError):
            services.balancer.assign_tailor_to_part(part.id, manager.id)

    def test_unscheduled_part_accepts_any_working_staff(self, session, services):
        member = create_staff(session, weekly_availability=weekly_schedule(weekdays=(5,)))
        part = create_part(session, create_job(session, part_types=[]))

        result = services.balancer.assign_tailor_to_part(part.id, member.id)

        assert result.assigned_to == member.id

    def test_rejects_inactive_staff(self, session, services):
        inactive = create_staff(session, is_active=False)
        part = create_part(session, create_job(session, part_types=[]))

        with pytest.raises(ValidationError):
            services.balancer.assign_tailor_to_part(part.id, inactive.id)

    def test_rejects_finished_part(self, session, services):
        member = create_staff(session)
        part = create_part(
            session, create_job(session, part_types=[]), status=JobStatus.COMPLETE
        )

        with pytest.raises(ValidationError):
            services.balancer.assign_tailor_to_part(part.id, member.id)

    def test_unknown_part_or_staff(self, session, services):
        member = create_staff(session)
        part = create_part(session, create_job(session, part_types=[]))

        with pytest.raises(EntityNotFoundError):
            services.balancer.assign_tailor_to_part(9999, member.id)
        with pytest.raises(EntityNotFoundError):
            services.balancer.assign_tailor_to_part(part.id, 9999)
