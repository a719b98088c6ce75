from fastapi import APIRouter, Request
from schemas.events import StatsResponse
from logging_config import get_logger

logger = get_logger(__name__)

stats_router = APIRouter(tags=["stats"])


@stats_router.get("/health")
async def health():
    return {"status": "ok"}


@stats_router.get("/stats", response_model=StatsResponse)
async def get_stats(request: Request):
    """
    Snapshot of the relay's in-memory state.

    Returns:
    - connections: open WebSocket connections
    - participants: connections that picked a name and mode
    - sessions: active one-to-one pairings (text and video)
    - group_members: users in the public group chat
    - waiting: queue length per pairwise mode
    """
    stats = request.app.state.controller.stats()
    logger.debug(f"Stats requested: {stats}")
    return StatsResponse(**stats)
