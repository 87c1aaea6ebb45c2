"""Media store capability used to re-host preview images.

The pipeline only needs ``upload(remote_url) -> reference``. Credentials are
obtained elsewhere and handed in already valid.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Protocol
from urllib.parse import urlparse

import httpx

from linkbot.core.config import BROWSER_USER_AGENT
from linkbot.core.errors import BadStatus, NetworkError, TooLarge, UploadError

logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    async def upload(self, remote_url: str) -> str:
        """Fetch ``remote_url``, store it, and return a stable reference."""
        ...


class HttpMediaStore:
    """
    Downloads a remote resource and POSTs it to a media upload endpoint.

    The endpoint follows the Matrix content repository shape: raw bytes in,
    ``{"content_uri": "mxc://..."}`` out. Only non-empty ``image/*`` bodies
    are accepted, and the download plus the upload share one deadline.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        upload_url: str,
        access_token: str,
        *,
        max_bytes: int = 5 * 1024 * 1024,
        timeout: float = 3.0,
        user_agent: str = BROWSER_USER_AGENT,
    ) -> None:
        self._client = client
        self.upload_url = upload_url
        self.access_token = access_token
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.user_agent = user_agent

    async def _download(self, remote_url: str) -> tuple[bytes, str]:
        async with self._client.stream(
            "GET",
            remote_url,
            headers={"User-Agent": self.user_agent, "Accept": "image/*,*/*;q=0.8"},
            follow_redirects=True,
        ) as response:
            if response.status_code != 200:
                raise BadStatus(remote_url, response.status_code)
            content_type = response.headers.get("content-type", "")
            if not content_type.split(";", 1)[0].strip().lower().startswith("image/"):
                raise UploadError(remote_url, f"Not an image: {content_type or 'no content-type'}")
            total = 0
            chunks: list[bytes] = []
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > self.max_bytes:
                    raise TooLarge(remote_url, self.max_bytes)
                chunks.append(chunk)
        if not total:
            raise UploadError(remote_url, "Downloaded image is empty")
        return b"".join(chunks), content_type

    async def upload(self, remote_url: str) -> str:
        try:
            return await asyncio.wait_for(self._upload(remote_url), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise UploadError(remote_url, f"Upload timed out after {self.timeout:g}s") from exc

    async def _upload(self, remote_url: str) -> str:
        try:
            data, content_type = await self._download(remote_url)
        except httpx.HTTPError as exc:
            raise NetworkError(remote_url, str(exc) or exc.__class__.__name__) from exc

        filename = os.path.basename(urlparse(remote_url).path) or "image"
        try:
            response = await self._client.post(
                self.upload_url,
                params={"filename": filename},
                content=data,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": content_type,
                },
            )
            response.raise_for_status()
            content_uri = response.json().get("content_uri")
        except (httpx.HTTPError, ValueError) as exc:
            raise UploadError(remote_url, f"Upload failed: {exc}") from exc

        if not content_uri:
            raise UploadError(remote_url, "Upload response carried no content_uri")
        logger.debug("Uploaded %s as %s", remote_url, content_uri)
        return content_uri
