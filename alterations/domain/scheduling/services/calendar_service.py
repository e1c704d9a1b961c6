"""
Shop calendar: which days work may be placed on.

Every search here is bounded by ``SCHEDULING_HORIZON_DAYS``; running off the
end raises ``NoSchedulableDayError`` instead of looping forever.
"""

from datetime import date, timedelta

from alterations.core.config import Settings
from alterations.core.observability import get_logger
from alterations.domain.shared.exceptions import NoSchedulableDayError
from alterations.infrastructure.database.repositories import HolidayRepository

logger = get_logger(__name__)


class ShopCalendar:
    def __init__(self, holidays: HolidayRepository, config: Settings):
        self._holidays = holidays
        self._non_working_weekday = config.NON_WORKING_WEEKDAY
        self._horizon_days = config.SCHEDULING_HORIZON_DAYS

    @property
    def horizon_days(self) -> int:
        return self._horizon_days

    def is_closed(self, day: date) -> bool:
        return self._holidays.is_closed(day)

    def is_non_working_day(self, day: date) -> bool:
        """The weekday reserved for last-minute work (Thursday by default)."""
        return day.weekday() == self._non_working_weekday

    def find_next_schedulable_day(
        self, from_date: date, allow_non_working_day: bool = False
    ) -> date:
        """
        First day on or after ``from_date`` that is open for normal work.

        Closed days are always skipped; the non-working weekday is skipped
        unless ``allow_non_working_day`` is set.

        Raises:
            NoSchedulableDayError: nothing qualifies within the horizon
        """
        for offset in range(self._horizon_days + 1):
            candidate = from_date + timedelta(days=offset)
            if self.is_closed(candidate):
                continue
            if not allow_non_working_day and self.is_non_working_day(candidate):
                continue
            return candidate

        logger.warning(
            "Day search exhausted horizon",
            from_date=from_date.isoformat(),
            horizon_days=self._horizon_days,
        )
        raise NoSchedulableDayError(from_date, self._horizon_days)

    def next_non_working_weekday(self, from_date: date) -> date:
        """The next occurrence of the non-working weekday strictly after ``from_date``."""
        days_ahead = (self._non_working_weekday - from_date.weekday()) % 7
        if days_ahead == 0:
            days_ahead = 7
        return from_date + timedelta(days=days_ahead)

    def within_horizon(self, origin: date, candidate: date) -> bool:
        return (candidate - origin).days <= self._horizon_days
