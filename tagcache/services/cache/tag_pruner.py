"""
Tag Index Pruner

Tag member-sets carry no expiry, so references to keys that expired
on their own accumulate. The pruner periodically drops them.
"""

import asyncio
from typing import Optional

import structlog

from .cache_manager import CacheManager

logger = structlog.get_logger(__name__)


class TagIndexPruner:
    """Background task running ``CacheManager.prune_tags`` on an interval."""

    def __init__(self, cache_manager: CacheManager, interval_seconds: float = 3600.0):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cache_manager = cache_manager
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.runs = 0
        self.last_pruned = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Run one pruning pass and return the references removed."""
        pruned = await self.cache_manager.prune_tags()
        self.runs += 1
        self.last_pruned = pruned
        return pruned

    def start(self) -> None:
        """Start the background loop. Must be called from a running loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="tagcache-tag-pruner")
        logger.info("Tag index pruner started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Tag index pruner stopped", runs=self.runs)

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                pruned = await self.run_once()
                logger.debug("Tag index pruning pass", pruned=pruned, runs=self.runs)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Tag index pruner loop error", error=str(e))
