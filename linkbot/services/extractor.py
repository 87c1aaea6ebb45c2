"""Open Graph metadata extraction with an HTML ``<title>`` fallback."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, ParserRejectedMarkup

from linkbot.core.errors import ParseFailure

logger = logging.getLogger(__name__)

HTML_MIME_PATTERN = re.compile(r"(text/html|application/xhtml\+xml)", re.IGNORECASE)

# field name -> recognized tag names, earlier names win
RECOGNIZED_TAGS: Dict[str, tuple] = {
    "title": ("og:title",),
    "description": ("og:description", "description"),
    "content_type": ("og:type",),
    "canonical_url": ("og:url",),
    "image_ref": ("og:image",),
    "video_width": ("og:video:width",),
    "video_height": ("og:video:height",),
}
_ALL_TAG_NAMES = {name for names in RECOGNIZED_TAGS.values() for name in names}


@dataclass(frozen=True)
class LinkMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    content_type: Optional[str] = None
    canonical_url: Optional[str] = None
    image_ref: Optional[str] = None
    video_width: Optional[int] = None
    video_height: Optional[int] = None
    uploaded_image_ref: Optional[str] = None


def media_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def _collect_meta_tags(soup: BeautifulSoup) -> Dict[str, str]:
    found: Dict[str, str] = {}
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name")
        if not key:
            continue
        key = key.strip().lower()
        if key not in _ALL_TAG_NAMES or key in found:
            continue
        content = (tag.get("content") or "").strip()
        if content:
            found[key] = content
    return found


def _first(tags: Dict[str, str], field: str) -> Optional[str]:
    for name in RECOGNIZED_TAGS[field]:
        if tags.get(name):
            return tags[name]
    return None


def _as_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _html_title(soup: BeautifulSoup) -> Optional[str]:
    node = soup.find("title")
    if node is None:
        return None
    title = node.get_text().strip()
    return title or None


def extract_metadata(
    body: bytes,
    content_type: Optional[str],
    url: str,
    encoding: Optional[str] = None,
    base_url: Optional[str] = None,
) -> LinkMetadata:
    """
    Build ``LinkMetadata`` for a fetched document.

    ``url`` is the requested URL and the canonical fallback; ``base_url`` is
    where the document was finally served from after redirects, used to
    resolve relative image references.

    Missing fields are left as ``None``. Only markup the parser refuses
    outright raises ``ParseFailure``.
    """
    mime = media_type(content_type)

    if mime and not HTML_MIME_PATTERN.search(mime):
        image_ref = (base_url or url) if mime.startswith("image/") else None
        return LinkMetadata(content_type=mime, canonical_url=url, image_ref=image_ref)

    try:
        soup = BeautifulSoup(body, "lxml", from_encoding=encoding)
    except ParserRejectedMarkup as exc:
        raise ParseFailure(url, f"Unparseable document: {exc}") from exc

    tags = _collect_meta_tags(soup)

    image_ref = _first(tags, "image_ref")
    if image_ref and not image_ref.lower().startswith(("http://", "https://", "data:")):
        image_ref = urljoin(base_url or url, image_ref)

    title = _first(tags, "title") or _html_title(soup)

    return LinkMetadata(
        title=title,
        description=_first(tags, "description"),
        content_type=_first(tags, "content_type") or mime or None,
        canonical_url=_first(tags, "canonical_url") or url,
        image_ref=image_ref or None,
        video_width=_as_int(_first(tags, "video_width")),
        video_height=_as_int(_first(tags, "video_height")),
    )
