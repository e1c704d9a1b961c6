"""
Work day capacity persistence.

The counters on ``work_day_plans`` are only ever changed through the
conditional UPDATE statements below, so ``assigned_* <= *_capacity`` holds
even with several writers racing on the same day.
"""

from datetime import date

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from alterations.core.observability import get_logger
from alterations.domain.scheduling.value_objects.enums import CapacityUnit
from alterations.domain.shared.exceptions import DatabaseError
from alterations.infrastructure.database.models import WorkDayPlan, utcnow

from .base import BaseRepository

logger = get_logger(__name__)

_COUNTER_COLUMNS = {
    CapacityUnit.JACKET: ("assigned_jackets", "jacket_capacity"),
    CapacityUnit.PANTS: ("assigned_pants", "pants_capacity"),
}


class WorkDayRepository(BaseRepository[WorkDayPlan]):
    @property
    def entity_class(self) -> type[WorkDayPlan]:
        return WorkDayPlan

    def get_by_date(self, day: date) -> WorkDayPlan | None:
        try:
            statement = select(WorkDayPlan).where(WorkDayPlan.work_date == day)
            return self.session.exec(
                statement.execution_options(populate_existing=True)
            ).first()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during get_by_date: {str(e)}") from e

    def list_between(self, start: date, end: date) -> list[WorkDayPlan]:
        """Plans with ``start <= work_date <= end`` that already exist."""
        try:
            statement = (
                select(WorkDayPlan)
                .where(WorkDayPlan.work_date >= start, WorkDayPlan.work_date <= end)
                .order_by(WorkDayPlan.work_date)
                .execution_options(populate_existing=True)
            )
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during list_between: {str(e)}") from e

    def insert_if_absent(
        self,
        day: date,
        jacket_capacity: int,
        pants_capacity: int,
        is_closed: bool,
    ) -> None:
        """Create the plan row for ``day`` unless another writer already did."""
        values = {
            "work_date": day,
            "jacket_capacity": jacket_capacity,
            "pants_capacity": pants_capacity,
            "assigned_jackets": 0,
            "assigned_pants": 0,
            "is_closed": is_closed,
            "created_at": utcnow(),
        }
        dialect = self.session.get_bind().dialect.name
        try:
            if dialect == "postgresql":
                statement = (
                    postgresql.insert(WorkDayPlan)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["work_date"])
                )
                self.session.execute(statement)
            elif dialect == "sqlite":
                statement = (
                    sqlite.insert(WorkDayPlan)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["work_date"])
                )
                self.session.execute(statement)
            else:
                self._insert_in_savepoint(values)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Database error during insert_if_absent: {str(e)}"
            ) from e

    def _insert_in_savepoint(self, values: dict) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(WorkDayPlan(**values))
        except IntegrityError:
            # Lost the race; the row written by the other transaction stands
            logger.debug("Work day plan already exists", day=values["work_date"].isoformat())

    def try_increment(self, day: date, unit: CapacityUnit, count: int = 1) -> bool:
        """
        Atomically add ``count`` to the unit's counter if it stays within capacity.

        Returns False when the day is full or has no plan row.
        """
        assigned_name, capacity_name = _COUNTER_COLUMNS[unit]
        assigned = getattr(WorkDayPlan, assigned_name)
        capacity = getattr(WorkDayPlan, capacity_name)
        statement = (
            update(WorkDayPlan)
            .where(WorkDayPlan.work_date == day, assigned + count <= capacity)
            .values({assigned_name: assigned + count, "updated_at": utcnow()})
            .execution_options(synchronize_session=False)
        )
        return self._execute_counter_update(statement, "try_increment")

    def try_decrement(self, day: date, unit: CapacityUnit, count: int = 1) -> bool:
        """Atomically subtract ``count`` from the unit's counter, never below zero."""
        assigned_name, _ = _COUNTER_COLUMNS[unit]
        assigned = getattr(WorkDayPlan, assigned_name)
        statement = (
            update(WorkDayPlan)
            .where(WorkDayPlan.work_date == day, assigned - count >= 0)
            .values({assigned_name: assigned - count, "updated_at": utcnow()})
            .execution_options(synchronize_session=False)
        )
        return self._execute_counter_update(statement, "try_decrement")

    def _execute_counter_update(self, statement, operation: str) -> bool:
        try:
            result = self.session.execute(statement)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during {operation}: {str(e)}") from e
