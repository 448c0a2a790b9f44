"""Concurrency tests for booking writes.

Threads are lined up on a Barrier so their sessions start together; the
unit/guest locks must still serialize them so that at most one overlapping
stay lands per unit. The Postgres class needs DATABASE_URL with migrations
applied.
"""

from __future__ import annotations

import os
import threading
from datetime import date

import pytest

from staybook.domain.bookings import BookingService
from staybook.domain.errors import (
    BookingValidationError,
    GuestAlreadyBookedError,
    UnitUnavailableError,
)
from staybook.infra.memory_store import InMemoryBookingStore

N_THREADS = 8


def _race(n, target):
    """Run target(i) on n threads released together; collect results and errors."""
    barrier = threading.Barrier(n)
    results = []
    errors = []
    guard = threading.Lock()

    def worker(i):
        barrier.wait()
        try:
            value = target(i)
        except BookingValidationError as exc:
            with guard:
                errors.append(exc)
        else:
            with guard:
                results.append(value)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results, errors


class TestInMemoryRaces:
    def test_overlapping_creates_single_winner(self):
        store = InMemoryBookingStore()
        service = BookingService(store)

        results, errors = _race(
            N_THREADS,
            lambda i: service.create_booking(f"guest-{i}", "U1", date(2024, 1, 1 + i % 2), 3),
        )

        assert len(results) == 1
        assert len(errors) == N_THREADS - 1
        assert all(isinstance(e, UnitUnavailableError) for e in errors)
        assert len(store.all_bookings()) == 1

    def test_same_guest_different_units(self):
        store = InMemoryBookingStore()
        service = BookingService(store)

        results, errors = _race(
            N_THREADS,
            lambda i: service.create_booking("Alice", f"U{i}", date(2024, 1, 1), 2),
        )

        assert len(results) == 1
        assert all(isinstance(e, GuestAlreadyBookedError) for e in errors)
        assert len(store.all_bookings()) == 1

    def test_extend_races_create_for_same_nights(self):
        store = InMemoryBookingStore()
        service = BookingService(store)
        alice = service.create_booking("Alice", "U1", date(2024, 1, 1), 3)

        def target(i):
            if i == 0:
                return service.extend_stay(alice.id, 2)
            return service.create_booking(f"guest-{i}", "U1", date(2024, 1, 4), 1)

        results, errors = _race(N_THREADS, target)

        assert len(results) == 1
        assert len(errors) == N_THREADS - 1
        bookings = sorted(store.all_bookings(), key=lambda b: b.check_in)
        for earlier, later in zip(bookings, bookings[1:]):
            assert earlier.check_out <= later.check_in

    def test_disjoint_creates_all_succeed(self):
        store = InMemoryBookingStore()
        service = BookingService(store)

        results, errors = _race(
            N_THREADS,
            lambda i: service.create_booking(f"guest-{i}", "U1", date(2024, 2, 1 + 2 * i), 2),
        )

        assert errors == []
        assert len(results) == N_THREADS


_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@pytest.fixture
def pg_service():
    from staybook.infra.db import txn
    from staybook.infra.store import PostgresBookingStore

    with txn() as cur:
        cur.execute("DELETE FROM bookings WHERE unit_id LIKE 'race-%%'")
    yield BookingService(PostgresBookingStore())
    with txn() as cur:
        cur.execute("DELETE FROM bookings WHERE unit_id LIKE 'race-%%'")


@_skip_no_db
class TestPostgresRaces:
    def test_overlapping_creates_single_winner(self, pg_service):
        results, errors = _race(
            N_THREADS,
            lambda i: pg_service.create_booking(f"race-guest-{i}", "race-U1", date(2024, 1, 1), 3),
        )

        assert len(results) == 1
        assert all(isinstance(e, UnitUnavailableError) for e in errors)
        assert len(pg_service.list_bookings(unit_id="race-U1")) == 1
