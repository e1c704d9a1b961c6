"""
Capacity Store

Per-day jacket and pants capacity. ``reserve`` is the only way the assigned
counters go up and it never overshoots the day's capacity.
"""

from datetime import date

from alterations.core.config import Settings
from alterations.core.observability import get_logger
from alterations.domain.scheduling.services.calendar_service import ShopCalendar
from alterations.domain.scheduling.value_objects.enums import (
    JACKET_UNIT_PARTS,
    PANTS_UNIT_PARTS,
    CapacityUnit,
    GarmentPartType,
)
from alterations.domain.shared.exceptions import (
    CapacityExhaustedError,
    DatabaseError,
    ValidationError,
)
from alterations.infrastructure.database.models import WorkDayPlan
from alterations.infrastructure.database.repositories import WorkDayRepository

logger = get_logger(__name__)


class CapacityService:
    def __init__(
        self,
        work_days: WorkDayRepository,
        calendar: ShopCalendar,
        config: Settings,
    ):
        self._work_days = work_days
        self._calendar = calendar
        self._config = config

    def capacity_unit_for(self, part_type: GarmentPartType | str) -> CapacityUnit:
        """
        Map a garment part type onto the capacity pool it consumes.

        JACKET/VEST/SHIRT use jacket capacity, PANTS/SKIRT use pants capacity.
        Anything else counts as a jacket unless strict mapping is configured.
        """
        part_type = GarmentPartType.parse(part_type, "part_type")
        if part_type in JACKET_UNIT_PARTS:
            return CapacityUnit.JACKET
        if part_type in PANTS_UNIT_PARTS:
            return CapacityUnit.PANTS

        if self._config.STRICT_PART_TYPE_UNITS:
            raise ValidationError(
                "part_type",
                part_type.value,
                "has no capacity unit",
                "UNMAPPED_PART_TYPE",
            )
        logger.warning(
            "Part type has no capacity unit, counting as jacket",
            part_type=part_type.value,
        )
        return CapacityUnit.JACKET

    def get_or_create(self, day: date) -> WorkDayPlan:
        """Return the plan for ``day``, creating it with default capacities if absent."""
        plan = self._work_days.get_by_date(day)
        if plan is not None:
            return plan

        self._work_days.insert_if_absent(
            day,
            jacket_capacity=self._config.DEFAULT_JACKET_CAPACITY,
            pants_capacity=self._config.DEFAULT_PANTS_CAPACITY,
            is_closed=self._calendar.is_closed(day),
        )
        plan = self._work_days.get_by_date(day)
        if plan is None:
            raise DatabaseError(f"Work day plan missing after insert: {day.isoformat()}")
        logger.debug("Work day plan created", day=day.isoformat())
        return plan

    def reserve(self, day: date, unit: CapacityUnit, count: int = 1) -> WorkDayPlan:
        """
        Take ``count`` units of capacity on ``day``.

        Raises:
            CapacityExhaustedError: the day cannot absorb ``count`` more units
        """
        if count < 1:
            raise ValidationError("count", count, "must be at least 1")
        self.get_or_create(day)

        if not self._work_days.try_increment(day, unit, count):
            raise CapacityExhaustedError(
                f"No {unit.value.lower()} capacity left on {day.isoformat()}",
                unit=unit.value,
                day=day,
            )

        plan = self._work_days.get_by_date(day)
        logger.debug(
            "Capacity reserved",
            day=day.isoformat(),
            unit=unit.value,
            count=count,
        )
        return plan

    def release(self, day: date, unit: CapacityUnit, count: int = 1) -> bool:
        """
        Give back ``count`` units on ``day``; counters never drop below zero.

        Returns False when there was nothing to release.
        """
        released = self._work_days.try_decrement(day, unit, count)
        if not released:
            logger.warning(
                "Capacity release ignored",
                day=day.isoformat(),
                unit=unit.value,
                count=count,
            )
        return released

    def remaining(self, day: date) -> tuple[int, int]:
        """``(jackets_left, pants_left)`` for ``day``."""
        plan = self.get_or_create(day)
        return plan.jackets_left, plan.pants_left
