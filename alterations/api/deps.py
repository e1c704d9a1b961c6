"""
API Dependencies

Request-scoped sessions, explicitly constructed services and scanner
identification for the alteration routes.
"""

from collections.abc import Callable, Generator
from datetime import date
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlmodel import Session

from alterations.application.service_factory import (
    SchedulingServices,
    build_scheduling_services,
)
from alterations.core.config import Settings
from alterations.core.observability import get_logger, set_staff_id
from alterations.domain.shared.exceptions import AuthenticationError
from alterations.infrastructure.database.models import StaffMember
from alterations.infrastructure.events import InMemoryEventBus

logger = get_logger(__name__)


def get_db(request: Request) -> Generator[Session, None, None]:
    with Session(request.app.state.engine) as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_event_bus(request: Request) -> InMemoryEventBus:
    return request.app.state.event_bus


def get_today() -> Callable[[], date]:
    return date.today


SessionDep = Annotated[Session, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
EventBusDep = Annotated[InMemoryEventBus, Depends(get_event_bus)]
TodayDep = Annotated[Callable[[], date], Depends(get_today)]


def get_services(
    session: SessionDep,
    config: SettingsDep,
    event_bus: EventBusDep,
    today: TodayDep,
) -> SchedulingServices:
    return build_scheduling_services(session, config, event_bus, today)


ServicesDep = Annotated[SchedulingServices, Depends(get_services)]


def _resolve_staff_id(session: Session, x_staff_id: str) -> int:
    try:
        staff_id = int(x_staff_id.strip())
    except ValueError:
        raise AuthenticationError("Invalid staff identifier") from None

    member = session.get(StaffMember, staff_id)
    if member is None or not member.is_active:
        logger.warning("Request rejected for unknown staff", staff_id=staff_id)
        raise AuthenticationError(f"Unknown staff member: {staff_id}")

    set_staff_id(str(staff_id))
    return staff_id


def get_scanner_id(
    session: SessionDep,
    x_staff_id: Annotated[str | None, Header()] = None,
) -> int:
    """Identify the scanning staff member from the ``X-Staff-ID`` header."""
    if not x_staff_id or not x_staff_id.strip():
        raise AuthenticationError()
    return _resolve_staff_id(session, x_staff_id)


def get_acting_staff_id(
    session: SessionDep,
    x_staff_id: Annotated[str | None, Header()] = None,
) -> int | None:
    """Staff member behind a manual change, when the header is sent."""
    if not x_staff_id or not x_staff_id.strip():
        return None
    return _resolve_staff_id(session, x_staff_id)


ScannerDep = Annotated[int, Depends(get_scanner_id)]
ActingStaffDep = Annotated[int | None, Depends(get_acting_staff_id)]
