"""Failures of a single URL lookup.

None of these are fatal to the hosting process. Fetch-layer errors abort one
lookup and are never cached; ``UploadError`` only costs the preview image.
"""

from __future__ import annotations


class LinkFetchError(Exception):
    kind = "error"

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class NetworkError(LinkFetchError):
    kind = "network"


class FetchTimeout(LinkFetchError):
    kind = "timeout"

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(url, f"Timed out after {timeout:g}s")
        self.timeout = timeout


class BadStatus(LinkFetchError):
    kind = "bad_status"

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"Status code {status_code} is not 200")
        self.status_code = status_code


class TooLarge(LinkFetchError):
    kind = "too_large"

    def __init__(self, url: str, limit: int) -> None:
        super().__init__(url, f"Response body exceeds {limit} bytes")
        self.limit = limit


class ParseFailure(LinkFetchError):
    kind = "parse_failure"


class UploadError(LinkFetchError):
    kind = "upload"
