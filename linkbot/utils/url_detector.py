import ipaddress
import re
from typing import Iterator, Optional
from urllib.parse import urlsplit

# Scheme is mandatory; bare hostnames like "example.com" never match.
URL_REGEX = re.compile(
    r"\bhttps?://[^\s<>\"'`{}|\\^/?#]+(?:[/?#][^\s<>\"'`{}|\\^]*)?",
    re.IGNORECASE,
)

_TRAILING_PUNCT = ".,;:!?'\"*"
_BRACKETS = {")": "(", "]": "[", "}": "{"}
_HOST_LABEL = re.compile(r"^(?!-)[^\W_](?:[\w-]{0,61}[^\W_])?$", re.UNICODE)


def _trim(candidate: str) -> str:
    while candidate:
        last = candidate[-1]
        if last in _TRAILING_PUNCT:
            candidate = candidate[:-1]
        elif last in _BRACKETS and candidate.count(last) > candidate.count(_BRACKETS[last]):
            candidate = candidate[:-1]
        else:
            break
    return candidate


def _valid_host(host: str) -> bool:
    if host.startswith("["):
        try:
            ipaddress.IPv6Address(host.strip("[]"))
        except ValueError:
            return False
        return True
    if host.lower() == "localhost":
        return True
    try:
        ipaddress.IPv4Address(host)
        return True
    except ValueError:
        pass
    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    if labels[-1].isdigit():
        return False
    return all(_HOST_LABEL.match(label) for label in labels)


def validate_url(candidate: str) -> Optional[str]:
    """Return ``candidate`` if it is a plausible absolute http(s) URL."""
    try:
        parts = urlsplit(candidate)
        parts.port  # raises on a malformed port
    except ValueError:
        return None
    if parts.scheme.lower() not in {"http", "https"}:
        return None
    hostinfo = parts.netloc.rpartition("@")[2]
    if hostinfo.startswith("["):
        host = hostinfo[: hostinfo.find("]") + 1]
    else:
        host = hostinfo.partition(":")[0]
    if not host or not _valid_host(host):
        return None
    return candidate


def detect_urls(text: Optional[str]) -> Iterator[str]:
    """
    Yield every well-formed URL in ``text`` in order of appearance.

    Duplicates are yielded once per occurrence.
    """
    if not text:
        return
    for match in URL_REGEX.finditer(text):
        url = validate_url(_trim(match.group(0)))
        if url:
            yield url
