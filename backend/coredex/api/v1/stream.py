"""
stream.py - Live stats stream

Server-sent events for the dashboard counters.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ...services.broadcaster import StatsBroadcaster
from ..deps import get_broadcaster

router = APIRouter()


@router.get("/stream/stats")
async def stream_stats(request: Request, broadcaster: StatsBroadcaster = Depends(get_broadcaster)):
    """Push {totalUsers, totalAnalysis, fakePercentage} every few seconds until the client leaves."""
    return StreamingResponse(
        broadcaster.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
