"""API route definitions."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from .. import __version__

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class StatsResponse(BaseModel):
    """In-memory cache sizes of the running bot."""
    dedup_size: int
    dedup_capacity: int
    dedup_sweep_running: bool
    preference_count: int
    preference_capacity: int
    canned_response_count: int


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/stats", response_model=StatsResponse)
async def stats(request: Request):
    """Report dedup guard and preference store occupancy.

    Returns 503 until the lifespan handler has built the router.
    """
    bot_router = getattr(request.app.state, "router", None)
    if bot_router is None:
        raise HTTPException(status_code=503, detail="Bot not initialized")

    return StatsResponse(
        dedup_size=len(bot_router.dedup),
        dedup_capacity=bot_router.dedup.capacity,
        dedup_sweep_running=bot_router.dedup.running,
        preference_count=len(bot_router.preferences),
        preference_capacity=bot_router.preferences.capacity,
        canned_response_count=len(bot_router.canned),
    )
