"""
Domain-aware Unit of Work implementation.

Coordinates the repositories of one transaction and collects domain events
raised while it runs. Events are published only after a successful commit;
on rollback they are dropped.
"""

from sqlmodel import Session

from alterations.core.observability import get_logger
from alterations.domain.scheduling.events.domain_events import DomainEvent
from alterations.infrastructure.events.event_bus import InMemoryEventBus

from .repositories import (
    AssignmentLogRepository,
    HolidayRepository,
    JobRepository,
    ScanLogRepository,
    StaffRepository,
    WorkDayRepository,
)

logger = get_logger(__name__)


class SqlModelUnitOfWork:
    """
    Transaction boundary over a request-scoped SQLModel session.

    Usage:
        with uow:
            part = uow.jobs.get_part_by_qr(qr_code)
            ...
            uow.add_domain_event(PartStatusChanged(...))

    Leaving the block normally commits; an exception rolls back every write
    made inside it, including capacity reservations.
    """

    def __init__(self, session: Session, event_bus: InMemoryEventBus | None = None):
        self.session = session
        self.event_bus = event_bus
        self._domain_events: list[DomainEvent] = []

        self.work_days = WorkDayRepository(session)
        self.holidays = HolidayRepository(session)
        self.jobs = JobRepository(session)
        self.staff = StaffRepository(session)
        self.scan_logs = ScanLogRepository(session)
        self.assignment_logs = AssignmentLogRepository(session)

    def __enter__(self) -> "SqlModelUnitOfWork":
        self._domain_events.clear()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def commit(self) -> None:
        """Commit the transaction and publish domain events."""
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise
        self._publish_domain_events()

    def rollback(self) -> None:
        """Rollback the transaction and clear domain events."""
        self.session.rollback()
        self._domain_events.clear()

    def add_domain_event(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def get_pending_events(self) -> list[DomainEvent]:
        return self._domain_events.copy()

    def _publish_domain_events(self) -> None:
        events, self._domain_events = self._domain_events, []
        if not events or self.event_bus is None:
            return

        try:
            self.event_bus.publish_batch(events)
        except Exception as e:
            # The transaction is already committed
            logger.error(
                "Failed to publish domain events",
                event_count=len(events),
                error=str(e),
                exc_info=True,
            )
