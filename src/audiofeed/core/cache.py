"""Feed cache controller.

Holds the single materialized feed and decides when to rebuild it:

- cold: the first request builds synchronously
- warm: served while younger than the TTL and the library signature and
  base URL are unchanged; otherwise rebuilt and replaced
- forced: rebuilt unconditionally

At most one rebuild per base URL runs at a time. Requests arriving while a
rebuild for their base URL is in flight await that rebuild and share its
result (or its error). A failed rebuild leaves the previous entry in place.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from audiofeed.core.logging import get_logger
from audiofeed.core.models import CacheEntry, FeedDocument

logger = get_logger(__name__)

BuildFn = Callable[[str], Awaitable[FeedDocument]]
SignatureFn = Callable[[], Awaitable[str]]


@dataclass(frozen=True)
class CacheStatus:
    warm: bool
    age_seconds: float | None
    item_count: int
    built_at: datetime | None
    rebuilding: bool


class FeedCacheController:
    """Memoized, invalidation-aware producer of the FeedDocument."""

    def __init__(
        self,
        build: BuildFn,
        signature: SignatureFn,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._build = build
        self._signature = signature
        self.ttl_seconds = ttl_seconds
        self._clock = clock

        self._entry: CacheEntry | None = None
        self._inflight: dict[str, asyncio.Task[CacheEntry]] = {}
        self.rebuild_count = 0

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    async def get(self, base_url: str) -> FeedDocument:
        """Return the cached feed, rebuilding it when stale.

        Raises:
            FeedBuildError: If a needed rebuild fails (the old entry is kept)
        """
        signature = await self._signature()
        entry = self._entry
        now = self._clock()

        if entry is not None and entry.is_fresh(now, signature, base_url):
            logger.verbose(f"Using cached feed (age: {round(entry.age(now))}s)")
            return entry.document

        if entry is None:
            logger.verbose("Feed cache is cold, building")
        else:
            logger.verbose("Feed cache is stale, rebuilding")

        new_entry = await self._join_or_start(signature, base_url)
        return new_entry.document

    async def refresh(self, base_url: str) -> FeedDocument:
        """Rebuild regardless of TTL and signature.

        A rebuild already in flight for the same base URL is joined rather
        than duplicated.
        """
        signature = await self._signature()
        logger.info("Forced feed refresh")
        new_entry = await self._join_or_start(signature, base_url)
        return new_entry.document

    def status(self) -> CacheStatus:
        entry = self._entry
        rebuilding = any(not task.done() for task in self._inflight.values())
        if entry is None:
            return CacheStatus(False, None, 0, None, rebuilding)
        return CacheStatus(
            warm=True,
            age_seconds=entry.age(self._clock()),
            item_count=entry.document.item_count,
            built_at=entry.document.built_at,
            rebuilding=rebuilding,
        )

    async def _join_or_start(self, signature: str, base_url: str) -> CacheEntry:
        task = self._inflight.get(base_url)
        if task is None or task.done():
            task = asyncio.ensure_future(self._rebuild(signature, base_url))
            self._inflight[base_url] = task
        else:
            logger.verbose("Joining feed rebuild already in progress")
        # Shield: one cancelled waiter must not cancel the shared rebuild.
        return await asyncio.shield(task)

    async def _rebuild(self, signature: str, base_url: str) -> CacheEntry:
        self.rebuild_count += 1
        try:
            document = await self._build(base_url)
        except Exception as e:
            if self._entry is not None:
                logger.error(f"Feed rebuild failed, keeping previous feed: {e}")
            else:
                logger.error(f"Feed build failed: {e}")
            raise
        finally:
            self._inflight.pop(base_url, None)

        entry = CacheEntry(
            document=document,
            built_at=self._clock(),
            library_signature=signature,
            base_url=base_url,
            ttl=self.ttl_seconds,
        )
        self._entry = entry
        logger.verbose(f"Feed cache updated: {document.item_count} track(s)")
        return entry
