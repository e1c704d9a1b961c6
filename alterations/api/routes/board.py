"""Capacity board and daily assignment views."""

from datetime import date

from fastapi import APIRouter, Query

from alterations.api.deps import ServicesDep, TodayDep
from alterations.application.dtos.scheduling_dtos import (
    AssignmentResponse,
    CapacityDayResponse,
)

router = APIRouter(prefix="/alterations", tags=["board"])


@router.get(
    "/capacity",
    summary="Capacity window",
    description="Per-day capacity for the board view; days is clamped to 1..60.",
    response_model=list[CapacityDayResponse],
)
def capacity_window(
    services: ServicesDep,
    today: TodayDep,
    start: date | None = Query(None, description="First day, defaults to today"),
    days: int = Query(14),
) -> list[CapacityDayResponse]:
    rows = services.board.list_capacity_window(start or today(), days)
    return [CapacityDayResponse.model_validate(row) for row in rows]


@router.get(
    "/assignments/{day}",
    summary="Parts scheduled for a day",
    response_model=list[AssignmentResponse],
)
def assignments_for_day(day: date, services: ServicesDep) -> list[AssignmentResponse]:
    rows = services.board.list_assignments_for_day(day)
    return [AssignmentResponse.model_validate(row) for row in rows]
