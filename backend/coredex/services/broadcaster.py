"""
broadcaster.py - Live Stats Broadcaster

Keeps one push channel per connected dashboard client. Each channel
pushes a fresh stats snapshot right away and then on a fixed interval
until the client goes away, at which point its timer loop stops and the
channel is dropped from the registry.
"""
import asyncio
import itertools
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Set

from starlette.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlmodel import Session

from .stats import live_snapshot

logger = logging.getLogger(__name__)

Snapshot = Dict[str, int]


def format_sse(data: Dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


class StatsBroadcaster:
    """Registry of open stats channels, held on app.state."""

    def __init__(self, engine: Engine, interval: float = 3.0):
        self.engine = engine
        self.interval = interval
        self._channels: Set[int] = set()
        self._ids = itertools.count(1)

    @property
    def open_channels(self) -> int:
        return len(self._channels)

    def _read_snapshot(self) -> Snapshot:
        with Session(self.engine) as session:
            return live_snapshot(session)

    async def snapshot(self) -> Snapshot:
        # Storage reads are blocking; keep them off the event loop
        return await run_in_threadpool(self._read_snapshot)

    async def stream(self, is_disconnected: Callable[[], Awaitable[bool]]) -> AsyncIterator[str]:
        """
        Server-sent events for one client.

        Args:
            is_disconnected: Awaitable check for the client having gone away

        Yields:
            SSE frames carrying {totalUsers, totalAnalysis, fakePercentage}
        """
        channel_id = next(self._ids)
        self._channels.add(channel_id)
        logger.info(f"Stats channel {channel_id} opened ({self.open_channels} open)")
        try:
            while not await is_disconnected():
                try:
                    data = await self.snapshot()
                except Exception:
                    logger.exception(f"Stats snapshot failed for channel {channel_id}")
                else:
                    yield format_sse(data)
                await asyncio.sleep(self.interval)
        finally:
            self._channels.discard(channel_id)
            logger.info(f"Stats channel {channel_id} closed ({self.open_channels} open)")
