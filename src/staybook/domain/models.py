"""Booking value types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from staybook.infra.time import nights_after


@dataclass(frozen=True)
class Booking:
    """A guest's stay on one unit over contiguous nights.

    The stay occupies the half-open interval [check_in, check_out).

    Attributes:
        id: Store-assigned identifier (immutable).
        guest_name: Guest identity, compared by exact string match.
        unit_id: Rented unit.
        check_in: First occupied night.
        number_of_nights: Nights occupied from check_in (>= 1).
        created_at: Set by the store on insert.
        updated_at: Set by the store on extend.
    """

    id: str
    guest_name: str
    unit_id: str
    check_in: date
    number_of_nights: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def check_out(self) -> date:
        """First night after departure (exclusive end)."""
        return nights_after(self.check_in, self.number_of_nights)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "guest_name": self.guest_name,
            "unit_id": self.unit_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "number_of_nights": self.number_of_nights,
        }


@dataclass(frozen=True)
class BookingFilter:
    """Query filter understood by every booking store.

    All set fields are ANDed. `overlapping` selects bookings whose stay
    intersects the half-open range (start, end); `exclude_id` drops one
    booking from the result.
    """

    guest_name: str | None = None
    unit_id: str | None = None
    overlapping: tuple[date, date] | None = None
    exclude_id: str | None = None
