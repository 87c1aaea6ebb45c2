from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlparse

import httpx

from linkbot.core.config import BROWSER_USER_AGENT, DEFAULT_UA_HOSTS
from linkbot.core.errors import BadStatus, FetchTimeout, NetworkError, TooLarge

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0
DEFAULT_MAX_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class FetchedPage:
    url: str
    final_url: str
    status_code: int
    content_type: str
    body: bytes
    encoding: Optional[str] = None


def keeps_default_user_agent(url: str, hosts: Iterable[str]) -> bool:
    """True when ``url`` belongs to one of ``hosts`` or a subdomain of one."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    for allowed in hosts:
        allowed = allowed.lower()
        if host == allowed or host.endswith("." + allowed):
            return True
    return False


class PageFetcher:
    """Single bounded GET per call through a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_bytes: int = DEFAULT_MAX_BYTES,
        user_agent: str = BROWSER_USER_AGENT,
        default_ua_hosts: Iterable[str] = DEFAULT_UA_HOSTS,
    ) -> None:
        self._client = client
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.user_agent = user_agent
        self.default_ua_hosts = tuple(h.lower() for h in default_ua_hosts)

    def headers_for(self, url: str) -> dict:
        if keeps_default_user_agent(url, self.default_ua_hosts):
            return {}
        return {"User-Agent": self.user_agent}

    async def fetch(self, url: str) -> FetchedPage:
        try:
            return await asyncio.wait_for(self._fetch(url), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise FetchTimeout(url, self.timeout) from exc

    async def _fetch(self, url: str) -> FetchedPage:
        try:
            async with self._client.stream(
                "GET",
                url,
                headers=self.headers_for(url),
                timeout=self.timeout,
                follow_redirects=True,
            ) as response:
                if response.status_code != 200:
                    raise BadStatus(url, response.status_code)

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise TooLarge(url, self.max_bytes)

                total = 0
                chunks: list[bytes] = []
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > self.max_bytes:
                        raise TooLarge(url, self.max_bytes)
                    chunks.append(chunk)

                content_type = response.headers.get("content-type", "")
                encoding = response.charset_encoding
                final_url = str(response.url)
        except httpx.TimeoutException as exc:
            raise FetchTimeout(url, self.timeout) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkError(url, str(exc) or exc.__class__.__name__) from exc

        logger.debug("Fetched %s (%d bytes, %s)", url, total, content_type or "no type")
        return FetchedPage(
            url=url,
            final_url=final_url,
            status_code=200,
            content_type=content_type,
            body=b"".join(chunks),
            encoding=encoding,
        )
