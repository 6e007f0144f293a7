"""Failure taxonomy for upstream sources."""

from __future__ import annotations


class SourceError(Exception):
    """Base class for any failure fetching or parsing one source."""


class TransportError(SourceError):
    """Network-level failure: DNS, connect, timeout, reset."""


class HttpStatusError(SourceError):
    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"HTTP {status_code} from {url}")
        self.url = url
        self.status_code = status_code


class MalformedPayloadError(SourceError):
    """Body could not be decoded or did not have the expected shape."""


class StaleSnapshotError(SourceError):
    """Parsed snapshot is older than the one already held."""
