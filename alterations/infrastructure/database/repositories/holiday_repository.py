from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from alterations.domain.shared.exceptions import DatabaseError
from alterations.infrastructure.database.models import GlobalHoliday

from .base import BaseRepository


class HolidayRepository(BaseRepository[GlobalHoliday]):
    """Read access to the shop-wide closure lookup."""

    @property
    def entity_class(self) -> type[GlobalHoliday]:
        return GlobalHoliday

    def is_closed(self, day: date) -> bool:
        try:
            statement = select(GlobalHoliday.id).where(
                GlobalHoliday.holiday_date == day,
                GlobalHoliday.is_closed == True,  # noqa: E712
            )
            return self.session.exec(statement).first() is not None
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during is_closed: {str(e)}") from e

    def closed_days_between(self, start: date, end: date) -> set[date]:
        try:
            statement = select(GlobalHoliday.holiday_date).where(
                GlobalHoliday.holiday_date >= start,
                GlobalHoliday.holiday_date <= end,
                GlobalHoliday.is_closed == True,  # noqa: E712
            )
            return set(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during closed_days_between: {str(e)}"
            ) from e
