"""
Tests for the Garment Lifecycle State Machine

QR scans drive a part NOT_STARTED -> IN_PROGRESS -> COMPLETE -> PICKED_UP,
and the job status rolls up from its parts.
"""

import pytest
from sqlalchemy import update
from sqlmodel import select

from alterations.domain.scheduling.events.domain_events import (
    JobStatusChanged,
    PartStatusChanged,
)
from alterations.domain.scheduling.services import roll_up_status
from alterations.domain.scheduling.value_objects.enums import (
    GarmentPartType,
    JobStatus,
    ScanType,
)
from alterations.domain.scheduling.value_objects.results import ScanResult
from alterations.domain.shared.exceptions import (
    AuthenticationError,
    ConcurrencyConflictError,
    QRCodeNotFoundError,
    ValidationError,
)
from alterations.infrastructure.database.models import (
    AlterationJob,
    AlterationJobPart,
    QRScanLog,
)
from alterations.tests.factories import create_job, create_staff, reload


@pytest.fixture
def scanner(session):
    return create_staff(session, name="Scanner")


@pytest.fixture
def job(session):
    return create_job(session, part_types=[GarmentPartType.JACKET, GarmentPartType.PANTS])


def _scan_all(services, job, scan_type, scanner):
    return [services.lifecycle.scan_qr_code(p.qr_code, scan_type, scanner.id) for p in job.parts]


class TestRollUpStatus:
    def test_empty_keeps_current(self):
        assert roll_up_status([], JobStatus.IN_PROGRESS) == JobStatus.IN_PROGRESS

    def test_all_picked_up(self):
        statuses = [JobStatus.PICKED_UP, JobStatus.PICKED_UP]
        assert roll_up_status(statuses, JobStatus.COMPLETE) == JobStatus.PICKED_UP

    def test_all_finished_is_complete(self):
        statuses = [JobStatus.COMPLETE, JobStatus.PICKED_UP]
        assert roll_up_status(statuses, JobStatus.NOT_STARTED) == JobStatus.COMPLETE

    def test_open_work_keeps_current(self):
        statuses = [JobStatus.COMPLETE, JobStatus.IN_PROGRESS]
        assert roll_up_status(statuses, JobStatus.NOT_STARTED) == JobStatus.NOT_STARTED


class TestScanTransitions:
    """Test each scan type against each part state."""

    def test_start_work(self, session, services, scanner, job):
        part = job.parts[0]

        outcome = services.lifecycle.scan_qr_code(part.qr_code, "START_WORK", scanner.id)

        assert outcome.result == ScanResult.SUCCESS
        assert outcome.transitioned
        assert outcome.part_status == JobStatus.IN_PROGRESS
        assert outcome.job_status == JobStatus.NOT_STARTED

        stored = reload(session, part)
        assert stored.status == JobStatus.IN_PROGRESS
        assert stored.version == 1

    def test_start_work_assigns_unassigned_part_to_scanner(self, session, services, scanner, job):
        part = job.parts[0]

        services.lifecycle.scan_qr_code(part.qr_code, ScanType.START_WORK, scanner.id)

        assert reload(session, part).assigned_to == scanner.id

    def test_start_work_keeps_existing_assignee(self, session, services, scanner, job):
        tailor = create_staff(session)
        part = job.parts[0]
        part.assigned_to = tailor.id
        session.add(part)
        session.commit()

        services.lifecycle.scan_qr_code(part.qr_code, ScanType.START_WORK, scanner.id)

        assert reload(session, part).assigned_to == tailor.id

    def test_second_start_is_rejected_but_logged(self, session, services, scanner, job):
        qr_code = job.parts[0].qr_code
        services.lifecycle.scan_qr_code(qr_code, ScanType.START_WORK, scanner.id)

        outcome = services.lifecycle.scan_qr_code(qr_code, ScanType.START_WORK, scanner.id)

        assert outcome.result == ScanResult.WORK_ALREADY_STARTED
        assert not outcome.transitioned
        assert outcome.part_status == JobStatus.IN_PROGRESS
        logs = services.lifecycle.list_scan_logs(qr_code=qr_code)
        assert [log.result for log in logs] == ["Work already started", "Success"]

    def test_finish_before_start(self, services, scanner, job):
        outcome = services.lifecycle.scan_qr_code(
            job.parts[0].qr_code, ScanType.FINISH_WORK, scanner.id
        )

        assert outcome.result == ScanResult.WORK_NOT_IN_PROGRESS
        assert outcome.part_status == JobStatus.NOT_STARTED

    def test_pickup_before_complete(self, services, scanner, job):
        outcome = services.lifecycle.scan_qr_code(job.parts[0].qr_code, ScanType.PICKUP, scanner.id)

        assert outcome.result == ScanResult.NOT_READY_FOR_PICKUP

    def test_status_check_changes_nothing(self, session, services, scanner, job):
        part = job.parts[0]

        outcome = services.lifecycle.scan_qr_code(part.qr_code, ScanType.STATUS_CHECK, scanner.id)

        assert outcome.result == ScanResult.SUCCESS
        assert not outcome.transitioned
        assert reload(session, part).version == 0

    def test_qr_code_whitespace_trimmed(self, services, scanner, job):
        outcome = services.lifecycle.scan_qr_code(
            f"  {job.parts[0].qr_code} ", ScanType.STATUS_CHECK, scanner.id
        )

        assert outcome.qr_code == job.parts[0].qr_code


class TestJobRollUp:
    """Test the job status following its parts through the lifecycle."""

    def test_full_lifecycle(self, session, services, event_bus, scanner, job):
        _scan_all(services, job, ScanType.START_WORK, scanner)
        finished = _scan_all(services, job, ScanType.FINISH_WORK, scanner)

        assert finished[0].job_status == JobStatus.NOT_STARTED
        assert finished[-1].job_status == JobStatus.COMPLETE

        picked = _scan_all(services, job, ScanType.PICKUP, scanner)

        assert picked[-1].job_status == JobStatus.PICKED_UP
        assert reload(session, job).status == JobStatus.PICKED_UP

        changes = event_bus.get_event_history(JobStatusChanged)
        assert [(e.old_status, e.new_status) for e in changes] == [
            ("NOT_STARTED", "COMPLETE"),
            ("COMPLETE", "PICKED_UP"),
        ]
        assert changes[0].job_number == job.job_number
        assert len(event_bus.get_event_history(PartStatusChanged)) == 6

    def test_partial_pickup_keeps_job_complete(self, session, services, scanner, job):
        _scan_all(services, job, ScanType.START_WORK, scanner)
        _scan_all(services, job, ScanType.FINISH_WORK, scanner)

        outcome = services.lifecycle.scan_qr_code(job.parts[0].qr_code, ScanType.PICKUP, scanner.id)

        assert outcome.job_status == JobStatus.COMPLETE
        assert reload(session, job).status == JobStatus.COMPLETE


class TestJobHold:
    """Test the manual ON_HOLD override on top of the roll-up."""

    def test_hold_and_release_untouched_job(self, session, services, job):
        held = services.lifecycle.hold_job(job.id)

        assert held.status == JobStatus.ON_HOLD
        assert services.lifecycle.hold_job(job.id).status == JobStatus.ON_HOLD

        released = services.lifecycle.release_job(job.id)

        assert released.status == JobStatus.NOT_STARTED
        assert reload(session, job).status == JobStatus.NOT_STARTED

    def test_release_resumes_started_job(self, session, services, scanner, job):
        services.lifecycle.hold_job(job.id)
        outcome = services.lifecycle.scan_qr_code(
            job.parts[0].qr_code, ScanType.START_WORK, scanner.id
        )

        assert outcome.transitioned
        assert outcome.job_status == JobStatus.ON_HOLD
        assert services.lifecycle.release_job(job.id).status == JobStatus.IN_PROGRESS

    def test_hold_does_not_block_completion(self, services, scanner, job):
        services.lifecycle.hold_job(job.id)
        _scan_all(services, job, ScanType.START_WORK, scanner)
        finished = _scan_all(services, job, ScanType.FINISH_WORK, scanner)

        # The last finish rolls the held job up to COMPLETE
        assert finished[-1].job_status == JobStatus.COMPLETE
        with pytest.raises(ValidationError):
            services.lifecycle.release_job(job.id)

    def test_release_of_held_job_with_finished_parts_notifies(
        self, session, services, event_bus, scanner, job
    ):
        _scan_all(services, job, ScanType.START_WORK, scanner)
        _scan_all(services, job, ScanType.FINISH_WORK, scanner)
        # Written directly; hold_job refuses a finished job
        session.execute(
            update(AlterationJob)
            .where(AlterationJob.id == job.id)
            .values(status=JobStatus.ON_HOLD)
        )
        session.commit()

        released = services.lifecycle.release_job(job.id)

        assert released.status == JobStatus.COMPLETE
        assert event_bus.get_event_history(JobStatusChanged)[-1].old_status == "IN_PROGRESS"

    def test_cannot_hold_finished_job(self, session, services):
        done = create_job(session, status=JobStatus.COMPLETE)

        with pytest.raises(ValidationError) as exc_info:
            services.lifecycle.hold_job(done.id)

        assert exc_info.value.error_code == "INVALID_STATUS_CHANGE"

    def test_release_requires_hold(self, services, job):
        with pytest.raises(ValidationError):
            services.lifecycle.release_job(job.id)

    def test_held_jobs_skipped_by_bulk_scheduling(self, session, services, job):
        services.lifecycle.hold_job(job.id)

        assert services.scheduler.bulk_auto_schedule() == 0
        assert all(p.scheduled_for is None for p in reload(session, job).parts)


class TestScanErrors:
    def test_unknown_qr_code_writes_no_log(self, session, services, scanner):
        with pytest.raises(QRCodeNotFoundError):
            services.lifecycle.scan_qr_code("QR-NOPE", ScanType.START_WORK, scanner.id)

        assert session.exec(select(QRScanLog)).all() == []

    def test_unknown_scanner(self, services, job):
        with pytest.raises(AuthenticationError):
            services.lifecycle.scan_qr_code(job.parts[0].qr_code, ScanType.START_WORK, 999)

    def test_invalid_scan_type(self, services, scanner, job):
        with pytest.raises(ValidationError) as exc_info:
            services.lifecycle.scan_qr_code(job.parts[0].qr_code, "REPAIR", scanner.id)

        assert exc_info.value.error_code == "INVALID_ENUM_VALUE"

    def test_blank_qr_code(self, services, scanner):
        with pytest.raises(ValidationError):
            services.lifecycle.scan_qr_code("  ", ScanType.START_WORK, scanner.id)

    def test_stale_part_version_conflicts(self, session, services, job):
        part = job.parts[0]
        assert part.version == 0
        # Another writer bumps the row behind this session's back
        session.execute(
            update(AlterationJobPart)
            .where(AlterationJobPart.id == part.id)
            .values(version=AlterationJobPart.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrencyConflictError):
            services.uow.jobs.transition_part_status(
                part, JobStatus.NOT_STARTED, JobStatus.IN_PROGRESS
            )
        session.rollback()


class TestScanLogs:
    def test_filters_and_limit(self, services, scanner, job):
        first, second = job.parts
        services.lifecycle.scan_qr_code(first.qr_code, ScanType.STATUS_CHECK, scanner.id)
        services.lifecycle.scan_qr_code(second.qr_code, ScanType.STATUS_CHECK, scanner.id)
        services.lifecycle.scan_qr_code(second.qr_code, ScanType.START_WORK, scanner.id)

        assert len(services.lifecycle.list_scan_logs(part_id=second.id)) == 2
        assert len(services.lifecycle.list_scan_logs(scanned_by=scanner.id)) == 3
        assert len(services.lifecycle.list_scan_logs(limit=1)) == 1
        newest = services.lifecycle.list_scan_logs(limit=1)[0]
        assert newest.scan_type == ScanType.START_WORK

    def test_limit_clamped(self, services, scanner, job):
        services.lifecycle.scan_qr_code(job.parts[0].qr_code, ScanType.STATUS_CHECK, scanner.id)

        assert len(services.lifecycle.list_scan_logs(limit=0)) == 1
