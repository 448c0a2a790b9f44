"""Shared pytest fixtures for Staybook tests."""
import sys
sys.dont_write_bytecode = True

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from staybook.api.factory import create_app  # noqa: E402
from staybook.domain.bookings import BookingService  # noqa: E402
from staybook.infra.memory_store import InMemoryBookingStore  # noqa: E402


@pytest.fixture
def store():
    """Fresh in-memory store per test."""
    return InMemoryBookingStore()


@pytest.fixture
def service(store):
    return BookingService(store)


@pytest.fixture
def client(store):
    """API client wired to the test's in-memory store."""
    return TestClient(create_app(store=store))


@pytest.fixture
def alice_booking(service):
    """Alice on U1 for 2024-01-01 .. 2024-01-04 (3 nights)."""
    return service.create_booking("Alice", "U1", date(2024, 1, 1), 3)
