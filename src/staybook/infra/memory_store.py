"""Process-local booking store.

Mirrors the Postgres backend closely enough to run the booking service in
dev and tests:
- lock_unit/lock_guest take per-key threading locks held until the session
  exits (the in-process counterpart of pg_advisory_xact_lock);
- writes re-check the same rules as the bookings table constraints, so a
  caller that skips the service checks still cannot double-book a unit.

Writes are applied immediately; there is no rollback. The booking service
only writes as the last step of a session.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Iterator

from staybook.domain.conflicts import intervals_overlap
from staybook.domain.errors import (
    EXTEND_CONFLICT_REASON,
    BookingNotFoundError,
    DuplicateUnitBookingError,
    GuestAlreadyBookedError,
    UnitUnavailableError,
)
from staybook.domain.models import Booking, BookingFilter
from staybook.infra.time import nights_after, utc_now


def _matches(booking: Booking, flt: BookingFilter) -> bool:
    if flt.guest_name is not None and booking.guest_name != flt.guest_name:
        return False
    if flt.unit_id is not None and booking.unit_id != flt.unit_id:
        return False
    if flt.exclude_id is not None and booking.id == flt.exclude_id:
        return False
    if flt.overlapping is not None:
        start, end = flt.overlapping
        if not intervals_overlap(booking.check_in, booking.check_out, start, end):
            return False
    return True


class InMemoryBookingSession:
    """BookingSession over an InMemoryBookingStore."""

    def __init__(self, store: InMemoryBookingStore) -> None:
        self._store = store
        self._held: list[threading.Lock] = []
        self._held_keys: set[tuple[str, str]] = set()

    def find_bookings(self, flt: BookingFilter) -> list[Booking]:
        with self._store._data_lock:
            found = [b for b in self._store._bookings.values() if _matches(b, flt)]
        return sorted(found, key=lambda b: (b.check_in, b.created_at))

    def find_booking_by_id(self, booking_id: str) -> Booking | None:
        with self._store._data_lock:
            return self._store._bookings.get(booking_id)

    def create_booking(
        self,
        *,
        guest_name: str,
        unit_id: str,
        check_in: date,
        number_of_nights: int,
    ) -> Booking:
        booking = Booking(
            id=str(uuid.uuid4()),
            guest_name=guest_name,
            unit_id=unit_id,
            check_in=check_in,
            number_of_nights=number_of_nights,
            created_at=utc_now(),
            updated_at=None,
        )
        with self._store._data_lock:
            self._store._check_constraints(booking, extending=False)
            self._store._bookings[booking.id] = booking
        return booking

    def update_booking(self, booking_id: str, *, number_of_nights: int) -> Booking:
        with self._store._data_lock:
            current = self._store._bookings.get(booking_id)
            if current is None:
                raise BookingNotFoundError()
            updated = replace(
                current, number_of_nights=number_of_nights, updated_at=utc_now()
            )
            self._store._check_constraints(updated, extending=True)
            self._store._bookings[booking_id] = updated
        return updated

    def lock_unit(self, unit_id: str) -> None:
        self._acquire("unit", unit_id)

    def lock_guest(self, guest_name: str) -> None:
        self._acquire("guest", guest_name)

    def _acquire(self, namespace: str, key: str) -> None:
        if (namespace, key) in self._held_keys:
            return
        lock = self._store._key_lock(namespace, key)
        lock.acquire()
        self._held.append(lock)
        self._held_keys.add((namespace, key))

    def release(self) -> None:
        """Release every lock taken by this session, newest first."""
        while self._held:
            self._held.pop().release()
        self._held_keys.clear()


class InMemoryBookingStore:
    """Dict-backed BookingStore, safe for use from multiple threads."""

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._data_lock = threading.Lock()
        self._key_locks: dict[tuple[str, str], threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    @contextmanager
    def session(self) -> Iterator[InMemoryBookingSession]:
        session = InMemoryBookingSession(self)
        try:
            yield session
        finally:
            session.release()

    def all_bookings(self) -> list[Booking]:
        with self._data_lock:
            return list(self._bookings.values())

    def _key_lock(self, namespace: str, key: str) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get((namespace, key))
            if lock is None:
                lock = threading.Lock()
                self._key_locks[(namespace, key)] = lock
            return lock

    def _check_constraints(self, candidate: Booking, *, extending: bool) -> None:
        """Apply the bookings table constraints. Caller holds _data_lock."""
        end = nights_after(candidate.check_in, candidate.number_of_nights)
        for other in self._bookings.values():
            if other.id == candidate.id:
                continue
            same_stay = intervals_overlap(
                other.check_in, other.check_out, candidate.check_in, end
            )
            if other.unit_id == candidate.unit_id and same_stay:
                if extending:
                    raise UnitUnavailableError(
                        EXTEND_CONFLICT_REASON, conflicting_booking_id=other.id
                    )
                raise UnitUnavailableError(conflicting_booking_id=other.id)
            if other.guest_name == candidate.guest_name:
                if other.unit_id == candidate.unit_id:
                    raise DuplicateUnitBookingError()
                if same_stay:
                    raise GuestAlreadyBookedError()
