"""Bookings endpoints.

POST /bookings                              create a booking
GET  /bookings                              list (guest_name / unit_id filters)
GET  /bookings/{booking_id}                 read one booking
POST /bookings/{booking_id}/actions/extend-stay

Validation failures map to 400 with {"code", "reason"} as detail
(404 for an unknown booking); storage failures map to 503.
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from staybook.domain.bookings import BookingService
from staybook.domain.errors import (
    BookingError,
    BookingNotFoundError,
    BookingValidationError,
)
from staybook.infra.time import as_date
from staybook.observability.correlation import get_correlation_id
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context


class CreateBookingRequest(BaseModel):
    """Request body for booking creation.

    Accepts snake_case or the camelCase names used by older clients
    (guestName, unitID, checkInDate, numberOfNights).
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    guest_name: str = Field(..., alias="guestName")
    unit_id: str = Field(..., alias="unitID")
    check_in: date | datetime = Field(..., alias="checkInDate")
    number_of_nights: int = Field(..., alias="numberOfNights")

    @field_validator("check_in")
    @classmethod
    def normalize_check_in(cls, v: date | datetime) -> date:
        # Time of day carries no meaning for a stay
        return as_date(v)


class ExtendStayRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    add_nights: int = Field(..., alias="addNights")


router = APIRouter(prefix="/bookings", tags=["bookings"])

logger = get_logger(__name__)


def get_booking_service(request: Request) -> BookingService:
    """Booking service attached by create_app (override in tests)."""
    return request.app.state.booking_service


def _to_http(exc: BookingError, action: str) -> HTTPException:
    if isinstance(exc, BookingNotFoundError):
        status_code = 404
    elif isinstance(exc, BookingValidationError):
        status_code = 400
    else:
        status_code = 503
        logger.error(
            f"{action} failed in storage",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    code=exc.code,
                )
            },
        )
    return HTTPException(status_code=status_code, detail=exc.to_dict())


@router.post("", status_code=201)
def create_booking(
    body: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> dict:
    """Create a booking; 400 with the rejection reason if any rule fails."""
    try:
        booking = service.create_booking(
            body.guest_name,
            body.unit_id,
            body.check_in,
            body.number_of_nights,
        )
    except BookingError as exc:
        raise _to_http(exc, "create booking") from exc
    return booking.to_dict()


@router.get("")
def list_bookings(
    guest_name: str | None = Query(None),
    unit_id: str | None = Query(None),
    service: BookingService = Depends(get_booking_service),
) -> dict:
    try:
        bookings = service.list_bookings(guest_name=guest_name, unit_id=unit_id)
    except BookingError as exc:
        raise _to_http(exc, "list bookings") from exc
    return {"bookings": [b.to_dict() for b in bookings]}


@router.get("/{booking_id}")
def get_booking(
    booking_id: str = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service),
) -> dict:
    try:
        booking = service.get_booking(booking_id)
    except BookingError as exc:
        raise _to_http(exc, "get booking") from exc
    return booking.to_dict()


@router.post("/{booking_id}/actions/extend-stay")
def extend_stay(
    body: ExtendStayRequest,
    booking_id: str = Path(..., description="Booking ID"),
    service: BookingService = Depends(get_booking_service),
) -> dict:
    """Add nights after the current check-out if the unit is free."""
    try:
        booking = service.extend_stay(booking_id, body.add_nights)
    except BookingError as exc:
        raise _to_http(exc, "extend stay") from exc
    return booking.to_dict()
