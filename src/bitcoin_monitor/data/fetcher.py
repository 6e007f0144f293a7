"""HTTP access layer shared by all sources."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Mapping

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from bitcoin_monitor.config.models import HttpConfig
from bitcoin_monitor.data.errors import HttpStatusError, MalformedPayloadError, TransportError

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise MalformedPayloadError(f"Non-finite number in payload: {name}")


class HttpFetcher:
    """Issue GET requests and map every failure onto ``SourceError``."""

    def __init__(self, config: HttpConfig, client: httpx.AsyncClient | None = None) -> None:
        self._cfg = config
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
        )

    async def get_text(self, url: str, params: Mapping[str, str] | None = None) -> str:
        response = await self._get(url, params)
        return response.text.strip()

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        response = await self._get(url, params)
        try:
            # Decimal keeps difficulty values exact.
            return json.loads(response.text, parse_float=Decimal, parse_constant=_reject_constant)
        except ValueError as exc:
            raise MalformedPayloadError(f"Invalid JSON from {url}: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, url: str, params: Mapping[str, str] | None) -> httpx.Response:
        async for attempt in self._retrying():
            with attempt:
                try:
                    response = await self._client.get(url, params=params)
                except httpx.HTTPError as exc:
                    raise TransportError(f"{type(exc).__name__} for {url}: {exc}") from exc
                if not response.is_success:
                    raise HttpStatusError(url, response.status_code)
                logger.debug("GET %s -> %s", url, response.status_code)
                return response
        raise RuntimeError("Unreachable HttpFetcher._get")

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            wait=wait_fixed(self._cfg.retry_wait_seconds),
            stop=stop_after_attempt(self._cfg.retry_attempts),
            retry=retry_if_exception_type((TransportError, HttpStatusError)),
            reraise=True,
        )
