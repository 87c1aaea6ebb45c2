"""Turn link metadata into outbound chat messages.

Both producers read the same ``LinkMetadata`` and neither assumes the other
ran, so a single URL may yield an image, a notice, both, or nothing.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from bs4 import BeautifulSoup

from linkbot.core.errors import LinkFetchError
from linkbot.services.extractor import LinkMetadata

DEFAULT_IMAGE_SIZE = 120


@dataclass(frozen=True)
class ImagePreview:
    ref: str
    width: int = DEFAULT_IMAGE_SIZE
    height: int = DEFAULT_IMAGE_SIZE
    caption: str = ""

    kind = "image"

    def to_message(self) -> Dict[str, Any]:
        return {
            "msgtype": "m.image",
            "body": self.caption,
            "url": self.ref,
            "info": {"w": self.width, "h": self.height},
        }


@dataclass(frozen=True)
class NoticePreview:
    html_body: str

    kind = "notice"

    def to_message(self) -> Dict[str, Any]:
        plain = BeautifulSoup(self.html_body, "lxml").get_text(separator="\n")
        return {
            "msgtype": "m.notice",
            "body": plain,
            "format": "org.matrix.custom.html",
            "formatted_body": self.html_body,
        }


Expansion = Union[ImagePreview, NoticePreview]


def image_expansion(metadata: Optional[LinkMetadata]) -> Optional[ImagePreview]:
    # Only the relocated reference counts; a raw image_ref is never shown.
    if metadata is None or not metadata.uploaded_image_ref:
        return None

    width, height = DEFAULT_IMAGE_SIZE, DEFAULT_IMAGE_SIZE
    if metadata.video_width and metadata.video_height:
        width, height = metadata.video_width, metadata.video_height

    return ImagePreview(
        ref=metadata.uploaded_image_ref,
        width=width,
        height=height,
        caption=metadata.title or "",
    )


def notice_expansion(
    metadata: Optional[LinkMetadata],
    error: Optional[LinkFetchError] = None,
    *,
    error_notices: bool = False,
) -> Optional[NoticePreview]:
    if error is not None:
        if not error_notices:
            return None
        return NoticePreview(f"Error fetching: {html.escape(str(error))}")

    if metadata is None or not (metadata.title or metadata.description):
        return None

    url = metadata.canonical_url or ""
    link_text = html.escape(metadata.title or url)
    body = f'<a href="{html.escape(url, quote=True)}">{link_text}</a>'
    if metadata.description:
        body += f"<br>{html.escape(metadata.description)}"
    return NoticePreview(body)
