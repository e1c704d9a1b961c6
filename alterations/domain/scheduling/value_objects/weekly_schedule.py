"""
Recurring weekly availability of a staff member.

Stored as JSON on the staff record; keys are Python weekday numbers
(``"0"`` = Monday) so ``date.weekday()`` indexes it directly.
"""

from datetime import date, datetime, time, timedelta

from pydantic import BaseModel, Field, field_validator, model_validator


class TimeBlock(BaseModel):
    """A contiguous working block within one day."""

    start: time
    end: time

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeBlock":
        if self.end <= self.start:
            raise ValueError("block end must be after block start")
        return self

    def contains_window(self, window_start: time, duration_minutes: int) -> bool:
        """Whether ``[window_start, window_start + duration)`` fits inside the block."""
        anchor = date(2000, 1, 1)
        start_dt = datetime.combine(anchor, window_start)
        end_dt = start_dt + timedelta(minutes=duration_minutes)
        block_start = datetime.combine(anchor, self.start)
        block_end = datetime.combine(anchor, self.end)
        return block_start <= start_dt and end_dt <= block_end


class DaySchedule(BaseModel):
    is_off: bool = False
    blocks: list[TimeBlock] = Field(default_factory=list)

    @property
    def is_working(self) -> bool:
        return not self.is_off and len(self.blocks) > 0


class WeeklyAvailability(BaseModel):
    days: dict[int, DaySchedule] = Field(default_factory=dict)

    @field_validator("days")
    @classmethod
    def _weekday_keys(cls, v: dict[int, DaySchedule]) -> dict[int, DaySchedule]:
        for weekday in v:
            if weekday < 0 or weekday > 6:
                raise ValueError(f"weekday out of range: {weekday}")
        return v

    @classmethod
    def from_json(cls, raw: dict | None) -> "WeeklyAvailability | None":
        """Parse the stored JSON column; ``None`` means no schedule configured."""
        if raw is None:
            return None
        return cls.model_validate({"days": raw})

    def to_json(self) -> dict:
        return {
            str(weekday): day.model_dump(mode="json")
            for weekday, day in sorted(self.days.items())
        }

    def for_weekday(self, weekday: int) -> DaySchedule:
        # A weekday missing from a configured schedule is a day off
        return self.days.get(weekday, DaySchedule(is_off=True))

    def is_working_on(self, day: date) -> bool:
        return self.for_weekday(day.weekday()).is_working

    def covers_window(self, start: datetime, duration_minutes: int) -> bool:
        day_schedule = self.for_weekday(start.weekday())
        if not day_schedule.is_working:
            return False
        return any(
            block.contains_window(start.time(), duration_minutes)
            for block in day_schedule.blocks
        )
