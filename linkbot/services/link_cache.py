"""TTL cache in front of every link fetch.

Hits are answered from memory. Misses go through one of two guards:

- ``per_url``: concurrent misses for the same URL share a single in-flight
  task, different URLs fetch in parallel.
- ``global``: one lock per cache instance serializes every miss, whatever
  the URL. The lock has no timeout of its own; only the fetch and upload
  timeouts bound how long other lookups wait behind it.

Failed lookups are never stored, so the next mention of a URL retries.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional

from linkbot.core.errors import LinkFetchError, UploadError
from linkbot.services.extractor import LinkMetadata, extract_metadata
from linkbot.services.http_fetch import PageFetcher
from linkbot.services.relocator import ImageRelocator

logger = logging.getLogger(__name__)

LOCK_MODES = ("per_url", "global")
DEFAULT_TTL_SEC = 300


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: LinkMetadata
    expires_at: float


class FetchStatus(str, Enum):
    FRESH = "fresh"
    CACHED = "cached"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchResult:
    status: FetchStatus
    metadata: Optional[LinkMetadata] = None
    error: Optional[LinkFetchError] = None


def _retrieve_exception(task: asyncio.Task) -> None:
    # Keeps "exception was never retrieved" quiet when every waiter went away.
    if not task.cancelled():
        task.exception()


class LinkCache:
    def __init__(
        self,
        fetcher: PageFetcher,
        relocator: Optional[ImageRelocator] = None,
        *,
        ttl: float = DEFAULT_TTL_SEC,
        lock_mode: str = "per_url",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if lock_mode not in LOCK_MODES:
            raise ValueError(f"lock_mode must be one of {LOCK_MODES}, got {lock_mode!r}")
        self._fetcher = fetcher
        self._relocator = relocator
        self.ttl = ttl
        self.lock_mode = lock_mode
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, url: str) -> Optional[LinkMetadata]:
        """Return the unexpired entry for ``url`` without fetching."""
        entry = self._entries.get(url)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            # Only drop the entry we looked at; a refresh may already have replaced it.
            if self._entries.get(url) is entry:
                del self._entries[url]
            logger.debug("Cache entry expired: %s", url)
            return None
        return entry.value

    async def get_or_fetch(self, url: str) -> LinkMetadata:
        cached = self.peek(url)
        if cached is not None:
            logger.debug("Cache hit: %s", url)
            return cached
        # Shielded so an abandoned caller leaves the fetch running to completion.
        return await asyncio.shield(self._start(url))

    async def lookup(self, url: str) -> FetchResult:
        cached = self.peek(url)
        if cached is not None:
            return FetchResult(FetchStatus.CACHED, metadata=cached)
        try:
            metadata = await self.get_or_fetch(url)
        except LinkFetchError as exc:
            return FetchResult(FetchStatus.FAILED, error=exc)
        return FetchResult(FetchStatus.FRESH, metadata=metadata)

    def _start(self, url: str) -> asyncio.Task:
        if self.lock_mode == "global":
            task = asyncio.ensure_future(self._populate_serialized(url))
            task.add_done_callback(_retrieve_exception)
            return task

        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._populate(url))
            self._inflight[url] = task
            task.add_done_callback(functools.partial(self._finished, url))
        return task

    def _finished(self, url: str, task: asyncio.Task) -> None:
        if self._inflight.get(url) is task:
            del self._inflight[url]
        _retrieve_exception(task)

    async def _populate_serialized(self, url: str) -> LinkMetadata:
        async with self._lock:
            cached = self.peek(url)
            if cached is not None:
                return cached
            return await self._populate(url)

    async def _populate(self, url: str) -> LinkMetadata:
        logger.debug("Cache miss, fetching: %s", url)
        page = await self._fetcher.fetch(url)
        metadata = extract_metadata(
            page.body, page.content_type, url, page.encoding, base_url=page.final_url
        )

        if metadata.image_ref and self._relocator is not None:
            try:
                uploaded = await self._relocator.relocate(metadata.image_ref)
            except UploadError as exc:
                logger.warning("Image upload failed for %s: %s", url, exc)
            else:
                metadata = replace(metadata, uploaded_image_ref=uploaded)

        self._entries[url] = CacheEntry(
            key=url, value=metadata, expires_at=self._clock() + self.ttl
        )
        return metadata

    def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired link entries", len(expired))
        return len(expired)

    async def run_sweeper(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def clear(self) -> None:
        self._entries.clear()
