"""
Board query service for the workroom calendar views.

Read-only: days that have no plan row yet are shown with the default
capacities instead of being created by a GET.
"""

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from alterations.core.config import Settings
from alterations.domain.scheduling.services.calendar_service import ShopCalendar
from alterations.infrastructure.database.unit_of_work import SqlModelUnitOfWork

MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 60


@dataclass
class CapacityDayRow:
    """One day of the capacity board."""

    date: date
    jacket_capacity: int
    pants_capacity: int
    assigned_jackets: int
    assigned_pants: int
    jackets_left: int
    pants_left: int
    is_non_working_day: bool
    is_closed: bool
    total_parts: int = 0
    last_minute_parts: int = 0
    notes: str | None = None


@dataclass
class AssignmentRow:
    part_id: int
    part_name: str
    part_type: str
    assigned_to: int | None
    status: str
    job_number: str
    scheduled_for: date


class BoardQueryService:
    def __init__(self, uow: SqlModelUnitOfWork, calendar: ShopCalendar, config: Settings):
        self._uow = uow
        self._calendar = calendar
        self._config = config

    def list_capacity_window(self, start: date, days: int = 14) -> list[CapacityDayRow]:
        """Capacity rows for ``days`` consecutive days from ``start`` (clamped to 1..60)."""
        days = max(MIN_WINDOW_DAYS, min(days, MAX_WINDOW_DAYS))
        end = start + timedelta(days=days - 1)

        plans = {plan.work_date: plan for plan in self._uow.work_days.list_between(start, end)}
        counts = self._uow.jobs.part_counts_between(start, end)
        closures = self._uow.holidays.closed_days_between(start, end)

        rows = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            plan = plans.get(day)
            non_working = self._calendar.is_non_working_day(day)
            total, last_minute = counts.get(day, (0, 0))

            if plan is not None:
                jacket_capacity, pants_capacity = plan.jacket_capacity, plan.pants_capacity
                assigned_jackets, assigned_pants = plan.assigned_jackets, plan.assigned_pants
                is_closed = plan.is_closed or day in closures
                notes = plan.notes
            else:
                jacket_capacity = self._config.DEFAULT_JACKET_CAPACITY
                pants_capacity = self._config.DEFAULT_PANTS_CAPACITY
                assigned_jackets = assigned_pants = 0
                is_closed = day in closures
                notes = None

            if notes is None and non_working:
                notes = f"{calendar.day_name[day.weekday()]}: only last-minute allowed"

            rows.append(
                CapacityDayRow(
                    date=day,
                    jacket_capacity=jacket_capacity,
                    pants_capacity=pants_capacity,
                    assigned_jackets=assigned_jackets,
                    assigned_pants=assigned_pants,
                    jackets_left=max(0, jacket_capacity - assigned_jackets),
                    pants_left=max(0, pants_capacity - assigned_pants),
                    is_non_working_day=non_working,
                    is_closed=is_closed,
                    total_parts=total,
                    last_minute_parts=last_minute,
                    notes=notes,
                )
            )
        return rows

    def list_assignments_for_day(self, day: date) -> list[AssignmentRow]:
        return [
            AssignmentRow(
                part_id=part.id,
                part_name=part.part_name,
                part_type=part.part_type.value,
                assigned_to=part.assigned_to,
                status=part.status.value,
                job_number=job_number,
                scheduled_for=day,
            )
            for part, job_number in self._uow.jobs.parts_scheduled_on(day)
        ]
