"""Stay conflict detection.

Centralised logic to check whether a proposed stay collides with bookings
already held by the same unit or the same guest.

Overlap formula on half-open ranges [check_in, check_out):

    (new_check_in < existing_check_out) AND (new_check_out > existing_check_in)

Strict inequality allows check-out day == check-in day (back-to-back stays
are OK). Empty or inverted ranges never overlap anything.

The helpers only read through a BookingSession; callers that act on the
answer must hold the unit (and guest) locks of that same session.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from staybook.domain.models import Booking, BookingFilter
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

if TYPE_CHECKING:
    from staybook.infra.store import BookingSession

logger = get_logger(__name__)


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Return True if [a_start, a_end) and [b_start, b_end) share a night."""
    if a_start >= a_end or b_start >= b_end:
        return False
    return a_start < b_end and a_end > b_start


def find_unit_conflict(
    session: BookingSession,
    *,
    unit_id: str,
    range_start: date,
    range_end: date,
    exclude_booking_id: str | None = None,
) -> Booking | None:
    """Return the earliest booking on unit_id that overlaps the range.

    Args:
        session: Open store session.
        unit_id: Unit to check.
        range_start: First night of the candidate range (inclusive).
        range_end: Night after the candidate range (exclusive).
        exclude_booking_id: Booking to ignore (the one being extended).

    Returns:
        The first conflicting booking by check-in, or None.
    """
    if range_start >= range_end:
        return None

    candidates = session.find_bookings(
        BookingFilter(
            unit_id=unit_id,
            overlapping=(range_start, range_end),
            exclude_id=exclude_booking_id,
        )
    )
    for existing in candidates:
        if intervals_overlap(existing.check_in, existing.check_out, range_start, range_end):
            # Only IDs and dates are logged, never the guest
            logger.warning(
                "unit conflict detected",
                extra={
                    "extra_fields": safe_log_context(
                        unit_id=unit_id,
                        requested_check_in=range_start,
                        requested_check_out=range_end,
                        conflicting_booking_id=existing.id,
                        existing_check_in=existing.check_in,
                        existing_check_out=existing.check_out,
                    ),
                },
            )
            return existing

    return None


def overlaps(
    session: BookingSession,
    unit_id: str,
    range_start: date,
    range_end: date,
    *,
    exclude_booking_id: str | None = None,
) -> bool:
    """True if any booking on unit_id intersects [range_start, range_end)."""
    return (
        find_unit_conflict(
            session,
            unit_id=unit_id,
            range_start=range_start,
            range_end=range_end,
            exclude_booking_id=exclude_booking_id,
        )
        is not None
    )


def guest_has_unit_booking(session: BookingSession, guest_name: str, unit_id: str) -> bool:
    """True if the guest has ever booked this unit (exact, case-sensitive match)."""
    return bool(session.find_bookings(BookingFilter(guest_name=guest_name, unit_id=unit_id)))


def guest_has_any_booking(session: BookingSession, guest_name: str) -> bool:
    """True if the guest holds any booking at all, on any unit and any dates."""
    return bool(session.find_bookings(BookingFilter(guest_name=guest_name)))
