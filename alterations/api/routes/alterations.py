"""
Alteration API Routes.

QR scanning, job intake, scheduling and tailor assignment. Domain errors are
translated to HTTP responses by the handlers registered on the app.
"""

from datetime import datetime

from fastapi import APIRouter, Query, status

from alterations.api.deps import ActingStaffDep, ScannerDep, ServicesDep
from alterations.application.dtos.scheduling_dtos import (
    AssignmentLogResponse,
    AssignTailorRequest,
    AutoAssignResponse,
    BulkScheduleRequest,
    BulkScheduleResponse,
    CreateJobRequest,
    CreateJobResponse,
    JobStatusResponse,
    PartAssignmentResponse,
    PartScheduleResponse,
    RescheduleRequest,
    ScanLogResponse,
    ScanRequest,
    ScanResponse,
    ScheduleJobRequest,
    ScheduleJobResponse,
    TailorCandidateResponse,
    UpdateDueDateRequest,
)
from alterations.domain.scheduling.services import NewPart
from alterations.infrastructure.database.models import AlterationJob
from alterations.domain.scheduling.value_objects.results import (
    PartScheduleResult,
    TailorCandidate,
)

router = APIRouter(prefix="/alterations", tags=["alterations"])


@router.post(
    "/scan/{qr_code}",
    summary="Process a QR scan",
    response_model=ScanResponse,
    responses={
        400: {"description": "Invalid scan type"},
        401: {"description": "Missing or unknown scanner"},
        404: {"description": "Unknown QR code"},
        409: {"description": "Concurrent scan of the same part"},
    },
)
def scan_qr_code(
    qr_code: str,
    request: ScanRequest,
    scanner_id: ScannerDep,
    services: ServicesDep,
) -> ScanResponse:
    outcome = services.lifecycle.scan_qr_code(
        qr_code,
        request.scan_type,
        scanner_id,
        location=request.location,
        notes=request.notes,
    )
    return ScanResponse(
        qr_code=outcome.qr_code,
        part_id=outcome.part_id,
        job_id=outcome.job_id,
        result=outcome.result.value,
        part_status=outcome.part_status.value,
        job_status=outcome.job_status.value,
        scan_log_id=outcome.scan_log_id,
        transitioned=outcome.transitioned,
    )


@router.get("/scan-logs", summary="List QR scans", response_model=list[ScanLogResponse])
def list_scan_logs(
    services: ServicesDep,
    qr_code: str | None = Query(None),
    part_id: int | None = Query(None),
    scanned_by: int | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
) -> list[ScanLogResponse]:
    logs = services.lifecycle.list_scan_logs(
        qr_code=qr_code, part_id=part_id, scanned_by=scanned_by, limit=limit
    )
    return [
        ScanLogResponse(
            id=log.id,
            qr_code=log.qr_code,
            part_id=log.part_id,
            scanned_by=log.scanned_by,
            scan_type=log.scan_type.value,
            location=log.location,
            result=log.result,
            notes=log.notes,
            timestamp=log.timestamp,
        )
        for log in logs
    ]


@router.post(
    "/jobs",
    summary="Create alteration job",
    description="Create a job with its parts and try to schedule it right away.",
    response_model=CreateJobResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid part type or priority"}},
)
def create_job(request: CreateJobRequest, services: ServicesDep) -> CreateJobResponse:
    result = services.intake.create_job(
        parts=[
            NewPart(
                part_name=part.part_name,
                part_type=part.part_type,
                estimated_time_minutes=part.estimated_time_minutes,
                priority=part.priority,
                required_skill=part.required_skill,
                notes=part.notes,
            )
            for part in request.parts
        ],
        due_date=request.due_date,
        rush_order=request.rush_order,
        last_minute=request.last_minute,
        linked_event_date=request.linked_event_date,
        notes=request.notes,
        auto_schedule=request.auto_schedule,
    )
    return CreateJobResponse(
        job_id=result.job_id,
        job_number=result.job_number,
        qr_code=result.qr_code,
        part_ids=result.part_ids,
        schedule=[_schedule_response(r) for r in result.schedule],
        schedule_error=result.schedule_error,
    )


@router.post(
    "/jobs/{job_id}/schedule",
    summary="Schedule a job's parts",
    response_model=ScheduleJobResponse,
    responses={
        404: {"description": "Job not found"},
        409: {"description": "No capacity before the due date"},
    },
)
def schedule_job(
    job_id: int,
    services: ServicesDep,
    request: ScheduleJobRequest | None = None,
) -> ScheduleJobResponse:
    earliest = request.earliest if request else None
    results = services.scheduler.schedule_job_parts(job_id, earliest=earliest)
    return ScheduleJobResponse(
        job_id=job_id, parts=[_schedule_response(r) for r in results]
    )


@router.post(
    "/jobs/{job_id}/auto-assign",
    summary="Skill-based tailor assignment",
    response_model=AutoAssignResponse,
    responses={404: {"description": "Job not found"}},
)
def auto_assign(job_id: int, services: ServicesDep) -> AutoAssignResponse:
    details = services.balancer.auto_assign_tailors_for_job(job_id)
    return AutoAssignResponse(
        job_id=job_id,
        assignments=[
            PartAssignmentResponse(
                part_id=d.part_id,
                assigned_to=d.assigned_to,
                reason=d.reason,
                changed=d.changed,
                candidates=[_candidate_response(c) for c in d.candidates],
            )
            for d in details
        ],
    )


@router.put(
    "/jobs/{job_id}/due-date",
    summary="Change a job's due date",
    response_model=JobStatusResponse,
    responses={
        400: {"description": "Job finished or date after the linked event"},
        404: {"description": "Job not found"},
    },
)
def update_due_date(
    job_id: int, request: UpdateDueDateRequest, services: ServicesDep
) -> JobStatusResponse:
    return _job_status_response(services.intake.update_due_date(job_id, request.due_date))


@router.post(
    "/jobs/{job_id}/hold",
    summary="Put a job on hold",
    response_model=JobStatusResponse,
    responses={
        400: {"description": "Job is not open"},
        404: {"description": "Job not found"},
    },
)
def hold_job(job_id: int, services: ServicesDep) -> JobStatusResponse:
    return _job_status_response(services.lifecycle.hold_job(job_id))


@router.post(
    "/jobs/{job_id}/release",
    summary="Release a held job",
    response_model=JobStatusResponse,
    responses={
        400: {"description": "Job is not on hold"},
        404: {"description": "Job not found"},
    },
)
def release_job(job_id: int, services: ServicesDep) -> JobStatusResponse:
    return _job_status_response(services.lifecycle.release_job(job_id))


@router.post(
    "/schedule/bulk",
    summary="Schedule all open jobs",
    response_model=BulkScheduleResponse,
)
def bulk_schedule(
    services: ServicesDep, request: BulkScheduleRequest | None = None
) -> BulkScheduleResponse:
    start_date = request.start_date if request else None
    return BulkScheduleResponse(
        jobs_processed=services.scheduler.bulk_auto_schedule(start_date)
    )


@router.post(
    "/parts/{part_id}/reschedule",
    summary="Move a part to another day",
    response_model=PartScheduleResponse,
    responses={
        400: {"description": "Closed or non-working day"},
        404: {"description": "Part not found"},
        409: {"description": "No capacity left on the new day"},
    },
)
def reschedule_part(
    part_id: int, request: RescheduleRequest, services: ServicesDep
) -> PartScheduleResponse:
    result = services.scheduler.reschedule_part(
        part_id, request.new_day, allow_non_working_day=request.allow_non_working_day
    )
    return _schedule_response(result)


@router.post(
    "/parts/{part_id}/assign",
    summary="Assign a staff member to a part",
    response_model=PartAssignmentResponse,
    responses={
        400: {"description": "Part finished or staff member not working that day"},
        401: {"description": "Unknown acting staff member"},
        404: {"description": "Part or staff member not found"},
        409: {"description": "Part changed concurrently"},
    },
)
def assign_part(
    part_id: int,
    request: AssignTailorRequest,
    services: ServicesDep,
    changed_by: ActingStaffDep,
) -> PartAssignmentResponse:
    result = services.balancer.assign_tailor_to_part(
        part_id, request.staff_id, changed_by=changed_by, reason=request.reason
    )
    return PartAssignmentResponse(
        part_id=result.part_id,
        assigned_to=result.assigned_to,
        reason=result.reason,
        changed=result.changed,
    )


@router.get(
    "/parts/{part_id}/assignment-logs",
    summary="Assignee history of a part",
    response_model=list[AssignmentLogResponse],
)
def list_assignment_logs(
    part_id: int,
    services: ServicesDep,
    limit: int = Query(50, ge=1, le=500),
) -> list[AssignmentLogResponse]:
    return [
        AssignmentLogResponse(
            id=log.id,
            job_id=log.job_id,
            part_id=log.part_id,
            old_staff_id=log.old_staff_id,
            new_staff_id=log.new_staff_id,
            changed_by=log.changed_by,
            method=log.method.value,
            reason=log.reason,
            timestamp=log.timestamp,
        )
        for log in services.balancer.list_assignment_logs(part_id, limit=limit)
    ]


@router.get(
    "/tailors/available",
    summary="Rank tailors for a time window",
    response_model=list[TailorCandidateResponse],
)
def available_tailors(
    services: ServicesDep,
    skill: str = Query(..., min_length=1),
    duration: int = Query(60, ge=1, le=24 * 60, description="Minutes"),
    start: datetime = Query(..., description="Preferred start of the work"),
    max_minutes: int | None = Query(None, ge=1),
) -> list[TailorCandidateResponse]:
    candidates = services.balancer.find_available_tailors(
        skill, duration, start, max_minutes_per_day=max_minutes
    )
    return [_candidate_response(c) for c in candidates]


def _schedule_response(result: PartScheduleResult) -> PartScheduleResponse:
    return PartScheduleResponse(
        part_id=result.part_id,
        day=result.day,
        assigned_to=result.assigned_to,
        already_scheduled=result.already_scheduled,
    )


def _candidate_response(candidate: TailorCandidate) -> TailorCandidateResponse:
    return TailorCandidateResponse(
        staff_id=candidate.staff_id,
        name=candidate.name,
        proficiency=candidate.proficiency,
        workload=candidate.workload,
        reason=candidate.reason.value,
    )


def _job_status_response(job: AlterationJob) -> JobStatusResponse:
    return JobStatusResponse(
        job_id=job.id,
        job_number=job.job_number,
        status=job.status.value,
        due_date=job.due_date,
    )
