"""Domain enums for alteration scheduling and garment tracking."""

from enum import Enum

from alterations.domain.shared.exceptions import ValidationError


class _ParsedEnum(str, Enum):
    """String enum parsed once at the boundary; unknown values are rejected."""

    @classmethod
    def parse(cls, raw: "str | _ParsedEnum | None", field_name: str | None = None):
        if isinstance(raw, cls):
            return raw
        field = field_name or cls.__name__
        if raw is None or not str(raw).strip():
            raise ValidationError(field, raw, "value is required")
        normalised = str(raw).strip().upper()
        try:
            return cls(normalised)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValidationError(
                field, raw, f"must be one of: {allowed}", "INVALID_ENUM_VALUE"
            ) from None


class JobStatus(_ParsedEnum):
    """Status shared by alteration jobs and their parts."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    PICKED_UP = "PICKED_UP"
    ON_HOLD = "ON_HOLD"

    @property
    def is_terminal(self) -> bool:
        """Check if the status is terminal (garment has left the shop)."""
        return self == JobStatus.PICKED_UP

    @property
    def is_open_work(self) -> bool:
        """Statuses that still count towards a tailor's workload."""
        return self in {JobStatus.NOT_STARTED, JobStatus.IN_PROGRESS}

    @property
    def is_finished(self) -> bool:
        return self in {JobStatus.COMPLETE, JobStatus.PICKED_UP}


class GarmentPartType(_ParsedEnum):
    JACKET = "JACKET"
    VEST = "VEST"
    SHIRT = "SHIRT"
    PANTS = "PANTS"
    SKIRT = "SKIRT"
    DRESS = "DRESS"
    OTHER = "OTHER"


class CapacityUnit(str, Enum):
    """The two daily capacity pools of the workroom."""

    JACKET = "JACKET"
    PANTS = "PANTS"


JACKET_UNIT_PARTS = frozenset(
    {GarmentPartType.JACKET, GarmentPartType.VEST, GarmentPartType.SHIRT}
)
PANTS_UNIT_PARTS = frozenset({GarmentPartType.PANTS, GarmentPartType.SKIRT})


class PartPriority(_ParsedEnum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    RUSH = "RUSH"

    @property
    def numeric_value(self) -> int:
        priority_map = {
            PartPriority.LOW: 1,
            PartPriority.NORMAL: 2,
            PartPriority.HIGH: 3,
            PartPriority.RUSH: 4,
        }
        return priority_map[self]


class ScanType(_ParsedEnum):
    """QR scan events accepted by the garment lifecycle state machine."""

    START_WORK = "START_WORK"
    FINISH_WORK = "FINISH_WORK"
    PICKUP = "PICKUP"
    STATUS_CHECK = "STATUS_CHECK"


class AssignmentMethod(str, Enum):
    """How a part came to be assigned to a staff member."""

    MANUAL = "MANUAL"
    AUTO = "AUTO"
