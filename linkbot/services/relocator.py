from __future__ import annotations

import asyncio
from typing import Optional

from linkbot.core.errors import LinkFetchError, UploadError
from linkbot.core.media_store import MediaStore


class ImageRelocator:
    """Re-hosts a discovered preview image through the media store."""

    def __init__(self, media_store: MediaStore, *, timeout: Optional[float] = None) -> None:
        self._store = media_store
        self.timeout = timeout

    async def relocate(self, image_ref: str) -> str:
        if not image_ref:
            raise ValueError("image_ref must be non-empty")
        try:
            uploaded = await asyncio.wait_for(self._store.upload(image_ref), timeout=self.timeout)
        except UploadError:
            raise
        except asyncio.TimeoutError as exc:
            raise UploadError(image_ref, "Media store timed out") from exc
        except LinkFetchError as exc:
            raise UploadError(image_ref, f"Could not fetch image: {exc}") from exc
        except Exception as exc:
            raise UploadError(image_ref, f"Media store failed: {exc}") from exc
        if not uploaded:
            raise UploadError(image_ref, "Media store returned an empty reference")
        return uploaded
