"""Booking service - validated create and extend-stay flows.

Each flow runs inside a single store session:
1. Take the serialization locks (guest before unit).
2. Run the conflict checks, short-circuiting on the first failure.
3. Write, then commit when the session exits.

Because the locks are held from the first read to the commit, two requests
for the same unit (or the same guest) cannot both pass validation before
either writes. The store constraints catch anything that bypasses the
service and surface it as the same errors.
"""

from __future__ import annotations

from datetime import date, datetime

from staybook.domain.conflicts import (
    find_unit_conflict,
    guest_has_any_booking,
    guest_has_unit_booking,
)
from staybook.domain.errors import (
    EXTEND_CONFLICT_REASON,
    BookingNotFoundError,
    BookingValidationError,
    DuplicateUnitBookingError,
    GuestAlreadyBookedError,
    InvalidInputError,
    UnitUnavailableError,
)
from staybook.domain.models import Booking, BookingFilter
from staybook.infra.store import BookingStore
from staybook.infra.time import as_date, nights_after
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

logger = get_logger(__name__)

# bookings.number_of_nights is a Postgres integer
MAX_NIGHTS = 2_147_483_647


def _require_text(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be a non-empty string")
    return value


def _require_positive_int(value: object, field: str) -> int:
    # bool is an int subclass; True is not a night count
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{field} must be an integer")
    if value < 1:
        raise InvalidInputError(f"{field} must be at least 1")
    if value > MAX_NIGHTS:
        raise InvalidInputError(f"{field} out of range")
    return value


def _stay_end(start: date, nights: int, field: str) -> date:
    try:
        return nights_after(start, nights)
    except OverflowError:
        raise InvalidInputError(f"{field} out of range") from None


def _require_date(value: object, field: str) -> date:
    try:
        return as_date(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be a calendar date") from None


class BookingService:
    """Validates and records bookings against an injected BookingStore."""

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def create_booking(
        self,
        guest_name: str,
        unit_id: str,
        check_in: date | datetime | str,
        number_of_nights: int,
    ) -> Booking:
        """Create a booking if it violates none of the booking rules.

        Checks, in order:
        1. The guest has never booked this unit.
        2. The guest holds no other booking at all.
        3. The unit is free for [check_in, check_in + number_of_nights).

        Returns:
            The stored booking.

        Raises:
            InvalidInputError: Malformed guest, unit, date or night count.
            DuplicateUnitBookingError: Rule 1 failed.
            GuestAlreadyBookedError: Rule 2 failed.
            UnitUnavailableError: Rule 3 failed (also when a concurrent
                writer won the race for the same nights).
            StorageError: The store failed.
        """
        guest_name = _require_text(guest_name, "guest_name")
        unit_id = _require_text(unit_id, "unit_id")
        check_in = _require_date(check_in, "check_in")
        number_of_nights = _require_positive_int(number_of_nights, "number_of_nights")
        check_out = _stay_end(check_in, number_of_nights, "number_of_nights")

        try:
            with self._store.session() as session:
                session.lock_guest(guest_name)
                session.lock_unit(unit_id)

                if guest_has_unit_booking(session, guest_name, unit_id):
                    raise DuplicateUnitBookingError()

                if guest_has_any_booking(session, guest_name):
                    raise GuestAlreadyBookedError()

                conflict = find_unit_conflict(
                    session,
                    unit_id=unit_id,
                    range_start=check_in,
                    range_end=check_out,
                )
                if conflict is not None:
                    raise UnitUnavailableError(conflicting_booking_id=conflict.id)

                booking = session.create_booking(
                    guest_name=guest_name,
                    unit_id=unit_id,
                    check_in=check_in,
                    number_of_nights=number_of_nights,
                )
        except BookingValidationError as exc:
            logger.info(
                "booking rejected",
                extra={
                    "extra_fields": safe_log_context(
                        code=exc.code,
                        unit_id=unit_id,
                        check_in=check_in,
                        check_out=check_out,
                    ),
                },
            )
            raise

        logger.info(
            "booking created",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking.id,
                    unit_id=unit_id,
                    check_in=check_in,
                    check_out=check_out,
                    number_of_nights=number_of_nights,
                ),
            },
        )
        return booking

    def extend_stay(self, booking_id: str, add_nights: int) -> Booking:
        """Append add_nights nights right after the booking's check-out.

        Only the added nights [check_out, check_out + add_nights) are checked
        against the unit's other bookings; the nights the booking already
        holds are its own.

        Raises:
            InvalidInputError: add_nights is not a positive integer.
            BookingNotFoundError: No booking with this ID.
            UnitUnavailableError: An added night is already taken. The
                booking is left unchanged.
            StorageError: The store failed.
        """
        add_nights = _require_positive_int(add_nights, "add_nights")

        try:
            with self._store.session() as session:
                booking = session.find_booking_by_id(booking_id)
                if booking is None:
                    raise BookingNotFoundError()

                session.lock_unit(booking.unit_id)
                # Re-read under the unit lock; a concurrent extend may have won
                booking = session.find_booking_by_id(booking_id)
                if booking is None:
                    raise BookingNotFoundError()

                window_start = booking.check_out
                window_end = _stay_end(window_start, add_nights, "add_nights")

                conflict = find_unit_conflict(
                    session,
                    unit_id=booking.unit_id,
                    range_start=window_start,
                    range_end=window_end,
                    exclude_booking_id=booking.id,
                )
                if conflict is not None:
                    raise UnitUnavailableError(
                        EXTEND_CONFLICT_REASON,
                        conflicting_booking_id=conflict.id,
                    )

                updated = session.update_booking(
                    booking.id,
                    number_of_nights=booking.number_of_nights + add_nights,
                )
        except BookingValidationError as exc:
            logger.info(
                "extend stay rejected",
                extra={
                    "extra_fields": safe_log_context(
                        code=exc.code,
                        booking_id=booking_id,
                        add_nights=add_nights,
                    ),
                },
            )
            raise

        logger.info(
            "stay extended",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=updated.id,
                    unit_id=updated.unit_id,
                    check_out=updated.check_out,
                    number_of_nights=updated.number_of_nights,
                ),
            },
        )
        return updated

    def get_booking(self, booking_id: str) -> Booking:
        with self._store.session() as session:
            booking = session.find_booking_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError()
        return booking

    def list_bookings(
        self,
        *,
        guest_name: str | None = None,
        unit_id: str | None = None,
    ) -> list[Booking]:
        """List bookings, optionally filtered by exact guest and/or unit."""
        with self._store.session() as session:
            return session.find_bookings(
                BookingFilter(guest_name=guest_name, unit_id=unit_id)
            )
