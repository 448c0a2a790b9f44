"""Booking error taxonomy.

Every error carries a stable machine `code` and a human-readable `reason`.
Validation errors are recoverable and reported to the caller as-is;
StorageError wraps persistence failures that are not validation outcomes.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for all booking failures."""

    code = "booking_error"
    default_reason = "booking request failed"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "reason": self.reason}


class BookingValidationError(BookingError):
    """A booking request was rejected by validation."""

    code = "validation_error"


class DuplicateUnitBookingError(BookingValidationError):
    """Guest already holds a booking for this unit."""

    code = "duplicate_unit_booking"
    default_reason = "guest cannot book the same unit multiple times"


class GuestAlreadyBookedError(BookingValidationError):
    """Guest already holds a booking elsewhere."""

    code = "guest_already_booked"
    default_reason = "guest cannot be in multiple units at the same time"


class UnitUnavailableError(BookingValidationError):
    """Requested dates conflict with an existing booking on the unit."""

    code = "unit_unavailable"
    default_reason = "unit already occupied for requested dates"

    def __init__(
        self,
        reason: str | None = None,
        *,
        conflicting_booking_id: str | None = None,
    ) -> None:
        self.conflicting_booking_id = conflicting_booking_id
        super().__init__(reason)


class BookingNotFoundError(BookingValidationError):
    code = "booking_not_found"
    default_reason = "invalid booking ID"


class InvalidInputError(BookingValidationError):
    code = "invalid_input"
    default_reason = "invalid booking input"


class StorageError(BookingError):
    """Persistence failure (connectivity, unexpected constraint, ...)."""

    code = "storage_error"
    default_reason = "booking storage unavailable"


EXTEND_CONFLICT_REASON = "unit booked on given dates"
