from datetime import date

from alterations.core.config import Settings
from alterations.core.observability import get_logger
from alterations.domain.scheduling.services.calendar_service import ShopCalendar
from alterations.domain.scheduling.value_objects.weekly_schedule import (
    WeeklyAvailability,
)
from alterations.infrastructure.database.models import StaffMember
from alterations.infrastructure.database.repositories import StaffRepository

logger = get_logger(__name__)


class StaffAvailabilityService:
    """Resolves which schedulable staff members work on a given day."""

    def __init__(self, staff: StaffRepository, calendar: ShopCalendar, config: Settings):
        self._staff = staff
        self._calendar = calendar
        self._roles = config.SCHEDULABLE_ROLES

    @staticmethod
    def availability_of(member: StaffMember) -> WeeklyAvailability | None:
        return WeeklyAvailability.from_json(member.weekly_availability)

    def is_working(self, member: StaffMember, day: date) -> bool:
        availability = self.availability_of(member)
        # No recurring schedule configured means available every open day
        if availability is None:
            return True
        return availability.is_working_on(day)

    def working_staff_on(self, day: date) -> list[int]:
        """
        Ids of staff working on ``day``, ascending.

        Nobody is returned for the non-working weekday.
        """
        if self._calendar.is_non_working_day(day):
            return []

        working = [
            member.id
            for member in self._staff.list_schedulable(self._roles)
            if self.is_working(member, day)
        ]
        logger.debug("Working staff resolved", day=day.isoformat(), count=len(working))
        return working
