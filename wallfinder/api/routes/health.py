"""Liveness endpoint."""

from fastapi import APIRouter

from wallfinder.api.services.state import engine_status

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str | None]:
    """Report that the API is up and what the calibration engine is doing.

    Never starts the engine; `engine` is `idle` until a status or stream
    request creates it.
    """

    return {"status": "ok", **engine_status()}
