from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class Settled(Generic[T]):
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(awaitables: Iterable[Awaitable[T]]) -> List[Settled[T]]:
    """Wait for every awaitable; collect each result or error in input order."""
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    return [
        Settled(error=result) if isinstance(result, BaseException) else Settled(value=result)
        for result in results
    ]
