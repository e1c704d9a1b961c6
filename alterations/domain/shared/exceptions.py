"""
Domain Exceptions

Custom exceptions for scheduling and lifecycle errors, discriminated by
``ErrorType`` so the API layer can map them onto HTTP responses without
inspecting messages.
"""

from datetime import date
from enum import Enum


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CAPACITY_EXHAUSTED = "capacity_exhausted"
    CONCURRENCY = "concurrency"
    AUTHENTICATION = "authentication"
    REPOSITORY = "repository"


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, str | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when input fails domain validation (bad ids, unknown enum values)."""

    def __init__(
        self,
        field_name: str,
        value: str | int | float | bool | None,
        message: str,
        error_code: str | None = None,
    ) -> None:
        self.field_name = field_name
        self.value = value
        self.error_code = error_code or "VALIDATION_ERROR"

        details: dict[str, str | int | bool | None] = {
            "field": field_name,
            "value": str(value) if value is not None else None,
            "error_code": self.error_code,
        }
        super().__init__(
            f"Validation failed for field '{field_name}': {message}",
            ErrorType.VALIDATION,
            details,
        )


class EntityNotFoundError(DomainError):
    """Raised when a job, part or staff member cannot be found."""

    def __init__(self, entity_type: str, entity_id: int | str) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            ErrorType.NOT_FOUND,
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class QRCodeNotFoundError(EntityNotFoundError):
    """Raised when a scanned QR code matches no job part."""

    def __init__(self, qr_code: str) -> None:
        super().__init__("QR code", qr_code)
        self.qr_code = qr_code


class CapacityExhaustedError(DomainError):
    """
    No day with spare capacity could be found.

    This is a business outcome: it is surfaced to the caller and never retried
    in a loop. ``reserve`` also raises it for a single full day, in which case
    the scheduler moves on to the next candidate day.
    """

    def __init__(
        self,
        message: str,
        unit: str | None = None,
        day: date | None = None,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        capacity_details = dict(details or {})
        capacity_details.update(
            {"unit": unit, "day": day.isoformat() if day else None}
        )
        super().__init__(message, ErrorType.CAPACITY_EXHAUSTED, capacity_details)
        self.unit = unit
        self.day = day


class NoSchedulableDayError(CapacityExhaustedError):
    """The bounded day search ran out of horizon without finding an open day."""

    def __init__(self, from_date: date, horizon_days: int) -> None:
        super().__init__(
            f"No schedulable day within {horizon_days} days of {from_date.isoformat()}",
            details={
                "from_date": from_date.isoformat(),
                "horizon_days": horizon_days,
            },
        )
        self.from_date = from_date
        self.horizon_days = horizon_days


class ConcurrencyConflictError(DomainError):
    """Lost an optimistic-lock race; the whole operation is safe to retry."""

    def __init__(self, entity_type: str, entity_id: int | str) -> None:
        super().__init__(
            f"Concurrent modification of {entity_type}: {entity_id}",
            ErrorType.CONCURRENCY,
            {"entity_type": entity_type, "entity_id": str(entity_id), "retryable": True},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class AuthenticationError(DomainError):
    """Raised when the acting staff member cannot be identified."""

    def __init__(self, message: str = "Staff identification required") -> None:
        super().__init__(message, ErrorType.AUTHENTICATION)


class DatabaseError(DomainError):
    """Raised when a database operation fails unexpectedly."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorType.REPOSITORY)
