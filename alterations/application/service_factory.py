"""
Explicit construction of the scheduling services for one session.

Nothing here is a module-level singleton: the API builds one set per request
and tests build their own around an in-memory database.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from sqlmodel import Session

from alterations.application.queries.board_queries import BoardQueryService
from alterations.core.config import Settings
from alterations.domain.scheduling.services import (
    CapacityService,
    GarmentLifecycleService,
    JobIntakeService,
    JobScheduler,
    ShopCalendar,
    StaffAvailabilityService,
    WorkloadBalancer,
)
from alterations.infrastructure.database.unit_of_work import SqlModelUnitOfWork
from alterations.infrastructure.events import InMemoryEventBus


@dataclass
class SchedulingServices:
    uow: SqlModelUnitOfWork
    calendar: ShopCalendar
    capacity: CapacityService
    availability: StaffAvailabilityService
    balancer: WorkloadBalancer
    scheduler: JobScheduler
    lifecycle: GarmentLifecycleService
    intake: JobIntakeService
    board: BoardQueryService


def build_scheduling_services(
    session: Session,
    config: Settings,
    event_bus: InMemoryEventBus | None = None,
    today: Callable[[], date] = date.today,
) -> SchedulingServices:
    uow = SqlModelUnitOfWork(session, event_bus)
    calendar = ShopCalendar(uow.holidays, config)
    capacity = CapacityService(uow.work_days, calendar, config)
    availability = StaffAvailabilityService(uow.staff, calendar, config)
    balancer = WorkloadBalancer(uow, availability, config, today)
    scheduler = JobScheduler(
        uow, calendar, capacity, availability, balancer, config, today
    )
    return SchedulingServices(
        uow=uow,
        calendar=calendar,
        capacity=capacity,
        availability=availability,
        balancer=balancer,
        scheduler=scheduler,
        lifecycle=GarmentLifecycleService(uow),
        intake=JobIntakeService(uow, scheduler, config),
        board=BoardQueryService(uow, calendar, config),
    )
