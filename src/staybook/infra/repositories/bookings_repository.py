"""Bookings repository - persistence for booking records.

Uses raw SQL with psycopg2 (no ORM). Every function expects a cursor that
is already inside a transaction (with txn() as cur:).

Stay overlap is expressed on the half-open range
[check_in, check_in + number_of_nights):

    existing.check_in < new_check_out AND existing_check_out > new_check_in

The same predicate backs the bookings_no_unit_overlap exclusion constraint.
"""

from __future__ import annotations

import uuid
from datetime import date

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.models import Booking

_COLUMNS = "id, guest_name, unit_id, check_in, number_of_nights, created_at, updated_at"


def _row_to_booking(row: tuple) -> Booking:
    return Booking(
        id=str(row[0]),
        guest_name=row[1],
        unit_id=row[2],
        check_in=row[3],
        number_of_nights=row[4],
        created_at=row[5],
        updated_at=row[6],
    )


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def find_bookings(
    cur: PgCursor,
    *,
    guest_name: str | None = None,
    unit_id: str | None = None,
    overlapping: tuple[date, date] | None = None,
    exclude_id: str | None = None,
) -> list[Booking]:
    """Return bookings matching every given filter, ordered by check-in.

    Args:
        cur: Database cursor.
        guest_name: Exact, case-sensitive guest match.
        unit_id: Exact unit match.
        overlapping: (start, end) half-open range the stay must intersect.
        exclude_id: Booking ID to leave out (the booking being extended).
    """
    conditions: list[str] = []
    params: list = []

    if guest_name is not None:
        conditions.append("guest_name = %s")
        params.append(guest_name)
    if unit_id is not None:
        conditions.append("unit_id = %s")
        params.append(unit_id)
    if overlapping is not None:
        start, end = overlapping
        conditions.append("check_in < %s")  # existing check-in < new check-out
        conditions.append("check_in + number_of_nights > %s")  # existing check-out > new check-in
        params.extend([end, start])
    if exclude_id is not None and _is_uuid(exclude_id):
        conditions.append("id != %s")
        params.append(exclude_id)

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM bookings
        {where}
        ORDER BY check_in, created_at
        """,
        params,
    )
    return [_row_to_booking(row) for row in cur.fetchall()]


def get_booking(cur: PgCursor, booking_id: str) -> Booking | None:
    """Fetch one booking by ID.

    IDs that are not UUIDs cannot exist and return None without a query.
    """
    if not _is_uuid(booking_id):
        return None

    cur.execute(
        f"SELECT {_COLUMNS} FROM bookings WHERE id = %s",
        (booking_id,),
    )
    row = cur.fetchone()
    return _row_to_booking(row) if row is not None else None


def insert_booking(
    cur: PgCursor,
    *,
    guest_name: str,
    unit_id: str,
    check_in: date,
    number_of_nights: int,
) -> Booking:
    """Insert a booking and return the stored row.

    Raises:
        psycopg2.errors.ExclusionViolation: Unit or guest stay overlaps.
        psycopg2.errors.UniqueViolation: Guest already booked this unit.
    """
    cur.execute(
        f"""
        INSERT INTO bookings (guest_name, unit_id, check_in, number_of_nights)
        VALUES (%s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """,
        (guest_name, unit_id, check_in, number_of_nights),
    )
    return _row_to_booking(cur.fetchone())


def update_booking_nights(
    cur: PgCursor,
    booking_id: str,
    *,
    number_of_nights: int,
) -> Booking | None:
    """Set number_of_nights on a booking. Returns None if the ID is unknown."""
    if not _is_uuid(booking_id):
        return None

    cur.execute(
        f"""
        UPDATE bookings
        SET number_of_nights = %s,
            updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (number_of_nights, booking_id),
    )
    row = cur.fetchone()
    return _row_to_booking(row) if row is not None else None
