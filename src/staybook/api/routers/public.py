"""Public-facing liveness routes."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness check; always succeeds."""
    return {"status": "ok"}
