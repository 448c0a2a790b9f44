"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from staybook.domain.bookings import BookingService
from staybook.infra.store import BookingStore, build_store
from staybook.observability.correlation import CORRELATION_ID_HEADER, correlation_scope

from .routers import public
from .routes import bookings


def create_app(store: BookingStore | None = None) -> FastAPI:
    """Create the FastAPI app wired to a booking store.

    Args:
        store: Explicit store. If None, build_store() picks one from
               BOOKING_STORE (defaults to the in-memory store).

    Returns:
        Configured FastAPI application.
    """
    if store is None:
        store = build_store()

    app = FastAPI(
        title="Staybook",
        docs_url=None,
        redoc_url=None,
    )
    app.state.booking_service = BookingService(store)

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    app.include_router(public.router)
    app.include_router(bookings.router)

    return app
