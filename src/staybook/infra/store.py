"""Booking store boundary.

The booking service talks to persistence only through a BookingStore:
`store.session()` opens one unit of work (a transaction for Postgres) and
yields a BookingSession with the narrow query contract below. Locks taken
through the session are held until the session exits, on every exit path.

Backends are selectable via BOOKING_STORE env var:
- memory (default): process-local store, for dev and tests
- postgres: psycopg2 against DATABASE_URL
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import date
from typing import ContextManager, Iterator, Protocol

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from staybook.domain.errors import (
    EXTEND_CONFLICT_REASON,
    BookingNotFoundError,
    DuplicateUnitBookingError,
    GuestAlreadyBookedError,
    StorageError,
    UnitUnavailableError,
)
from staybook.domain.models import Booking, BookingFilter
from staybook.infra.db import DatabaseNotConfiguredError, advisory_xact_lock, txn
from staybook.infra.repositories import bookings_repository as repo
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

logger = get_logger(__name__)

# Advisory lock namespaces (first key of pg_advisory_xact_lock)
UNIT_LOCK_NAMESPACE = 1
GUEST_LOCK_NAMESPACE = 2

# Constraint names from migrations/sql/001_bookings.sql
UNIT_OVERLAP_CONSTRAINT = "bookings_no_unit_overlap"
GUEST_OVERLAP_CONSTRAINT = "bookings_no_guest_overlap"
GUEST_UNIT_UNIQUE_CONSTRAINT = "bookings_guest_unit_unique"


class BookingSession(Protocol):
    """Read/write operations available inside one store session."""

    def find_bookings(self, flt: BookingFilter) -> list[Booking]:
        ...

    def find_booking_by_id(self, booking_id: str) -> Booking | None:
        ...

    def create_booking(
        self,
        *,
        guest_name: str,
        unit_id: str,
        check_in: date,
        number_of_nights: int,
    ) -> Booking:
        ...

    def update_booking(self, booking_id: str, *, number_of_nights: int) -> Booking:
        ...

    def lock_unit(self, unit_id: str) -> None:
        ...

    def lock_guest(self, guest_name: str) -> None:
        ...


class BookingStore(Protocol):
    def session(self) -> ContextManager[BookingSession]:
        ...


def constraint_error(constraint_name: str | None, *, extending: bool = False):
    """Map a violated constraint name to the matching booking error.

    Returns None for constraints this module does not own.
    """
    if constraint_name == UNIT_OVERLAP_CONSTRAINT:
        if extending:
            return UnitUnavailableError(EXTEND_CONFLICT_REASON)
        return UnitUnavailableError()
    if constraint_name == GUEST_OVERLAP_CONSTRAINT:
        return GuestAlreadyBookedError()
    if constraint_name == GUEST_UNIT_UNIQUE_CONSTRAINT:
        return DuplicateUnitBookingError()
    return None


class PostgresBookingSession:
    """BookingSession bound to a cursor inside an open transaction."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def find_bookings(self, flt: BookingFilter) -> list[Booking]:
        return repo.find_bookings(
            self._cur,
            guest_name=flt.guest_name,
            unit_id=flt.unit_id,
            overlapping=flt.overlapping,
            exclude_id=flt.exclude_id,
        )

    def find_booking_by_id(self, booking_id: str) -> Booking | None:
        return repo.get_booking(self._cur, booking_id)

    def create_booking(
        self,
        *,
        guest_name: str,
        unit_id: str,
        check_in: date,
        number_of_nights: int,
    ) -> Booking:
        try:
            return repo.insert_booking(
                self._cur,
                guest_name=guest_name,
                unit_id=unit_id,
                check_in=check_in,
                number_of_nights=number_of_nights,
            )
        except (pg_errors.ExclusionViolation, pg_errors.UniqueViolation) as exc:
            self._raise_constraint(exc, unit_id=unit_id, extending=False)

    def update_booking(self, booking_id: str, *, number_of_nights: int) -> Booking:
        try:
            booking = repo.update_booking_nights(
                self._cur, booking_id, number_of_nights=number_of_nights
            )
        except (pg_errors.ExclusionViolation, pg_errors.UniqueViolation) as exc:
            self._raise_constraint(exc, booking_id=booking_id, extending=True)
        if booking is None:
            raise BookingNotFoundError()
        return booking

    def lock_unit(self, unit_id: str) -> None:
        advisory_xact_lock(self._cur, UNIT_LOCK_NAMESPACE, unit_id)

    def lock_guest(self, guest_name: str) -> None:
        advisory_xact_lock(self._cur, GUEST_LOCK_NAMESPACE, guest_name)

    def _raise_constraint(self, exc: psycopg2.Error, *, extending: bool, **context):
        constraint = getattr(exc.diag, "constraint_name", None)
        error = constraint_error(constraint, extending=extending)
        logger.warning(
            "booking write rejected by constraint",
            extra={
                "extra_fields": safe_log_context(constraint=constraint, **context),
            },
        )
        if error is None:
            raise StorageError(f"constraint violated: {constraint}") from exc
        raise error from exc


class PostgresBookingStore:
    """BookingStore backed by the bookings table."""

    @contextmanager
    def session(self) -> Iterator[PostgresBookingSession]:
        try:
            with txn() as cur:
                yield PostgresBookingSession(cur)
        except (psycopg2.Error, DatabaseNotConfiguredError) as exc:
            logger.error(
                "booking storage failure",
                extra={
                    "extra_fields": safe_log_context(
                        error_type=type(exc).__name__,
                        pgcode=getattr(exc, "pgcode", None),
                    ),
                },
            )
            raise StorageError() from exc


def build_store(backend: str | None = None) -> BookingStore:
    """Create the store selected by BOOKING_STORE (or the explicit backend).

    Raises:
        ValueError: If the backend name is unknown.
    """
    if backend is None:
        backend = os.environ.get("BOOKING_STORE", "memory")

    if backend == "memory":
        from staybook.infra.memory_store import InMemoryBookingStore

        return InMemoryBookingStore()
    if backend == "postgres":
        return PostgresBookingStore()
    raise ValueError(f"Unknown BOOKING_STORE: {backend}")
