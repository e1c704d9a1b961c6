"""
Garment Lifecycle State Machine

QR scans move a part NOT_STARTED -> IN_PROGRESS -> COMPLETE -> PICKED_UP.
A scan that does not fit the part's current state is a business outcome,
not an error: the part is left alone and the scan is still logged with a
descriptive result.
"""

from collections.abc import Iterable

from alterations.core.observability import SCANS_PROCESSED, get_logger
from alterations.domain.scheduling.events.domain_events import (
    JobStatusChanged,
    PartStatusChanged,
)
from alterations.domain.scheduling.value_objects.enums import JobStatus, ScanType
from alterations.domain.scheduling.value_objects.results import ScanOutcome, ScanResult
from alterations.domain.shared.exceptions import AuthenticationError, ValidationError
from alterations.infrastructure.database.models import AlterationJob, QRScanLog
from alterations.infrastructure.database.unit_of_work import SqlModelUnitOfWork

logger = get_logger(__name__)

# scan type -> (required status, new status, result when the part is elsewhere)
TRANSITIONS: dict[ScanType, tuple[JobStatus, JobStatus, ScanResult]] = {
    ScanType.START_WORK: (
        JobStatus.NOT_STARTED,
        JobStatus.IN_PROGRESS,
        ScanResult.WORK_ALREADY_STARTED,
    ),
    ScanType.FINISH_WORK: (
        JobStatus.IN_PROGRESS,
        JobStatus.COMPLETE,
        ScanResult.WORK_NOT_IN_PROGRESS,
    ),
    ScanType.PICKUP: (
        JobStatus.COMPLETE,
        JobStatus.PICKED_UP,
        ScanResult.NOT_READY_FOR_PICKUP,
    ),
}

NOTIFY_ON = frozenset({JobStatus.COMPLETE, JobStatus.PICKED_UP})

MAX_SCAN_LOG_PAGE = 500


def roll_up_status(part_statuses: Iterable[JobStatus], current: JobStatus) -> JobStatus:
    """
    Aggregate job status from its parts.

    All parts picked up -> PICKED_UP; otherwise all parts finished (COMPLETE
    or PICKED_UP) -> COMPLETE; otherwise the job keeps ``current``.
    """
    statuses = list(part_statuses)
    if not statuses:
        return current
    if all(status == JobStatus.PICKED_UP for status in statuses):
        return JobStatus.PICKED_UP
    if all(status.is_finished for status in statuses):
        return JobStatus.COMPLETE
    return current


class GarmentLifecycleService:
    def __init__(self, uow: SqlModelUnitOfWork):
        self._uow = uow

    def scan_qr_code(
        self,
        qr_code: str,
        scan_type: ScanType | str,
        scanner_id: int,
        location: str | None = None,
        notes: str | None = None,
    ) -> ScanOutcome:
        """
        Apply one scan event to the part behind ``qr_code``.

        Every scan of a known code appends a ``QRScanLog`` row in the same
        transaction as the status change.

        Raises:
            ValidationError: unknown scan type or blank QR code
            AuthenticationError: the scanner is not a known staff member
            QRCodeNotFoundError: no part carries ``qr_code``
            ConcurrencyConflictError: another scan changed the part first
        """
        scan_type = ScanType.parse(scan_type, "scan_type")
        if not qr_code or not qr_code.strip():
            raise ValidationError("qr_code", qr_code, "value is required")
        qr_code = qr_code.strip()

        with self._uow:
            if self._uow.staff.get_by_id(scanner_id) is None:
                raise AuthenticationError(f"Unknown staff member: {scanner_id}")

            part = self._uow.jobs.get_part_by_qr(qr_code)
            job = self._uow.jobs.lock_job(part.job_id)
            # Re-read under the job lock
            part = self._uow.jobs.get_part_by_qr(qr_code)

            old_status = part.status
            job_status = job.status
            result = ScanResult.SUCCESS
            transitioned = False

            if scan_type in TRANSITIONS:
                required, new_status, rejection = TRANSITIONS[scan_type]
                if old_status != required:
                    result = rejection
                else:
                    assign_to = None
                    if scan_type == ScanType.START_WORK and part.assigned_to is None:
                        assign_to = scanner_id
                    self._uow.jobs.transition_part_status(
                        part, required, new_status, assigned_to=assign_to
                    )
                    transitioned = True
                    self._uow.add_domain_event(
                        PartStatusChanged(
                            job_id=job.id,
                            part_id=part.id,
                            old_status=old_status.value,
                            new_status=new_status.value,
                            scanned_by=scanner_id,
                        )
                    )
                    job_status = self._roll_up(job)

            log = self._uow.scan_logs.add(
                QRScanLog(
                    qr_code=qr_code,
                    part_id=part.id,
                    scanned_by=scanner_id,
                    scan_type=scan_type,
                    location=location,
                    result=result.value,
                    notes=notes,
                )
            )
            outcome = ScanOutcome(
                qr_code=qr_code,
                part_id=part.id,
                job_id=job.id,
                result=result,
                part_status=part.status,
                job_status=job_status,
                scan_log_id=log.id,
                transitioned=transitioned,
            )

        SCANS_PROCESSED.labels(
            scan_type=scan_type.value,
            outcome="transition" if transitioned else "no_change",
        ).inc()
        logger.info(
            "QR scan processed",
            qr_code=qr_code,
            scan_type=scan_type.value,
            result=result.value,
            part_status=outcome.part_status.value,
            job_status=outcome.job_status.value,
        )
        return outcome

    def hold_job(self, job_id: int) -> AlterationJob:
        """
        Manually put an open job ON_HOLD.

        Scans keep working on a held job; bulk scheduling skips it. Holding a
        job that is already on hold is a no-op.
        """
        with self._uow:
            job = self._uow.jobs.lock_job(job_id)
            previous = job.status
            if previous != JobStatus.ON_HOLD:
                if not previous.is_open_work:
                    raise ValidationError(
                        "status",
                        previous.value,
                        "only open jobs can be put on hold",
                        "INVALID_STATUS_CHANGE",
                    )
                self._uow.jobs.update_job_status(job, JobStatus.ON_HOLD)

        logger.info("Job put on hold", job_id=job_id, previous_status=previous.value)
        return job

    def release_job(self, job_id: int) -> AlterationJob:
        """
        Lift a hold and hand the job back to the part roll-up.

        The job resumes IN_PROGRESS when any part has moved past NOT_STARTED,
        NOT_STARTED otherwise, and is then rolled up like after a scan.
        """
        with self._uow:
            job = self._uow.jobs.lock_job(job_id)
            if job.status != JobStatus.ON_HOLD:
                raise ValidationError(
                    "status", job.status.value, "job is not on hold", "INVALID_STATUS_CHANGE"
                )
            parts = self._uow.jobs.parts_for_job(job.id)
            resumed = (
                JobStatus.IN_PROGRESS
                if any(p.status != JobStatus.NOT_STARTED for p in parts)
                else JobStatus.NOT_STARTED
            )
            self._uow.jobs.update_job_status(job, resumed)
            status = self._roll_up(job)

        logger.info("Job released from hold", job_id=job_id, status=status.value)
        return job

    def _roll_up(self, job) -> JobStatus:
        # Full, fresh part set; never the snapshot taken before the transition
        parts = self._uow.jobs.parts_for_job(job.id)
        current = job.status
        rolled = roll_up_status((p.status for p in parts), current)
        if rolled == current:
            return current

        job_number = job.job_number
        self._uow.jobs.update_job_status(job, rolled)
        if rolled in NOTIFY_ON:
            self._uow.add_domain_event(
                JobStatusChanged(
                    job_id=job.id,
                    job_number=job_number,
                    old_status=current.value,
                    new_status=rolled.value,
                )
            )
        return rolled

    def list_scan_logs(
        self,
        qr_code: str | None = None,
        part_id: int | None = None,
        scanned_by: int | None = None,
        limit: int = 50,
    ) -> list[QRScanLog]:
        """Scan history, newest first."""
        limit = max(1, min(limit, MAX_SCAN_LOG_PAGE))
        return self._uow.scan_logs.search(
            qr_code=qr_code, part_id=part_id, scanned_by=scanned_by, limit=limit
        )
