from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, TypeVar

from .errors import MalformedPayloadError
from .fetcher import HttpFetcher

SnapshotT = TypeVar("SnapshotT")


class SourceProvider(ABC, Generic[SnapshotT]):
    """One upstream source feeding exactly one ``DashboardState`` slot."""

    #: Name of the ``DashboardState`` slot this source writes.
    key: str

    async def fetch(self, http: HttpFetcher) -> SnapshotT:
        raw = await self.request(http)
        try:
            return self.parse(raw)
        except MalformedPayloadError:
            raise
        except (AttributeError, KeyError, IndexError, TypeError, ValueError, ArithmeticError) as exc:
            raise MalformedPayloadError(
                f"Unexpected {self.key} payload: {type(exc).__name__}: {exc}"
            ) from exc

    @abstractmethod
    async def request(self, http: HttpFetcher) -> Any:
        raise NotImplementedError

    @abstractmethod
    def parse(self, payload: Any) -> SnapshotT:
        raise NotImplementedError


class TimeProvider(ABC):
    @abstractmethod
    def now(self) -> datetime:
        raise NotImplementedError
