from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

import httpx

from linkbot.core.config import Settings
from linkbot.core.errors import LinkFetchError
from linkbot.core.media_store import HttpMediaStore, MediaStore
from linkbot.services.expansions import Expansion, image_expansion, notice_expansion
from linkbot.services.extractor import LinkMetadata
from linkbot.services.http_fetch import PageFetcher
from linkbot.services.link_cache import LinkCache
from linkbot.services.relocator import ImageRelocator
from linkbot.utils.url_detector import detect_urls

logger = logging.getLogger(__name__)


class LinkPreviewService:
    """
    Detects URLs in chat text and renders preview expansions for each one.

    Constructed once per running bot and passed to whoever handles incoming
    messages. ``aclose`` releases the HTTP client if the service created it.
    """

    def __init__(
        self,
        cache: LinkCache,
        *,
        enabled: bool = True,
        error_notices: bool = False,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.cache = cache
        self.enabled = enabled
        self.error_notices = error_notices
        self._client = client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        media_store: Optional[MediaStore] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "LinkPreviewService":
        owned_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.LINK_REQUEST_TIMEOUT),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )

        fetcher = PageFetcher(
            client,
            timeout=settings.LINK_REQUEST_TIMEOUT,
            max_bytes=settings.LINK_MAX_RESPONSE_BYTES,
            user_agent=settings.LINK_USER_AGENT,
            default_ua_hosts=settings.LINK_DEFAULT_UA_HOSTS,
        )

        if media_store is None and settings.MEDIA_UPLOAD_URL:
            media_store = HttpMediaStore(
                client,
                settings.MEDIA_UPLOAD_URL,
                settings.MEDIA_ACCESS_TOKEN,
                max_bytes=settings.LINK_MAX_RESPONSE_BYTES,
                timeout=settings.LINK_REQUEST_TIMEOUT,
                user_agent=settings.LINK_USER_AGENT,
            )
        if media_store is None:
            logger.info("No media store configured; image previews are disabled")
        relocator = (
            ImageRelocator(media_store, timeout=settings.LINK_REQUEST_TIMEOUT)
            if media_store is not None
            else None
        )

        cache = LinkCache(
            fetcher,
            relocator,
            ttl=settings.LINK_CACHE_TTL_SEC,
            lock_mode=settings.LINK_LOCK_MODE,
        )
        return cls(
            cache,
            enabled=settings.LINK_FETCH_ENABLED,
            error_notices=settings.LINK_ERROR_NOTICES,
            client=client if owned_client else None,
        )

    async def _expand(self, url: str) -> List[Tuple[str, Expansion]]:
        metadata: Optional[LinkMetadata] = None
        error: Optional[LinkFetchError] = None
        try:
            metadata = await self.cache.get_or_fetch(url)
        except LinkFetchError as exc:
            logger.warning("Got error fetching URL %s: %s", url, exc)
            error = exc

        results: List[Tuple[str, Expansion]] = []
        image = image_expansion(metadata)
        if image is not None:
            results.append((url, image))
        elif metadata is not None:
            logger.debug("No image for %s", url)

        notice = notice_expansion(metadata, error, error_notices=self.error_notices)
        if notice is not None:
            results.append((url, notice))
        elif metadata is not None:
            logger.debug("No title or description for %s", url)
        return results

    async def process(self, text: str) -> List[Tuple[str, Expansion]]:
        """Return ``(url, expansion)`` pairs in the order the URLs appear."""
        if not self.enabled:
            return []
        urls = list(detect_urls(text))
        if not urls:
            return []
        per_url = await asyncio.gather(*(self._expand(url) for url in urls))
        return [pair for pairs in per_url for pair in pairs]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
