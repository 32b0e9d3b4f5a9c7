"""Async HTTP client abstraction for signed recognition API calls."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Protocol

import httpx

from .config import AsrServiceConfig
from .errors import RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)


class AsyncHttpClientProtocol(Protocol):
    """Minimal async transport used by the signed action client."""

    async def post_json(
        self,
        url: str,
        content: bytes,
        *,
        headers: Mapping[str, str],
        timeout: float,
    ) -> httpx.Response:  # pragma: no cover - protocol signature
        """Send a pre-serialised JSON body and return the HTTP response."""
        ...

    async def close(self) -> None:  # pragma: no cover - protocol signature
        """Close pooled connections."""
        ...


class AsrHttpClient(AsyncHttpClientProtocol):
    """httpx-based client that manages connection pooling for the recognition API."""

    def __init__(
        self,
        config: AsrServiceConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise the HTTP client with optional *config* and test *transport*."""
        self._config = config or AsrServiceConfig()
        limits = httpx.Limits(max_connections=self._config.max_connections or None)
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            http2=self._config.enable_http2 and transport is None,
            limits=limits,
            transport=transport,
        )

    async def post_json(
        self,
        url: str,
        content: bytes,
        *,
        headers: Mapping[str, str],
        timeout: float,
    ) -> httpx.Response:
        """POST *content* byte-for-byte with the supplied signed *headers*."""
        started = time.perf_counter()
        logger.debug("POST %s (%d byte body, timeout %.1fs)", url, len(content), timeout)
        try:
            response = await self._client.post(
                url,
                content=content,
                headers=dict(headers),
                timeout=timeout,
                follow_redirects=False,
            )
        except httpx.TimeoutException as exc:
            logger.error("HTTP POST to %s timed out after %.1fs", url, timeout)
            raise RequestTimeoutError(f"Request timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            logger.error("HTTP POST to %s failed: %s", url, exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("HTTP POST to %s returned status %s", url, status)
            raise TransportError(f"HTTP {status} from recognition service") from exc
        logger.debug(
            "POST %s completed in %.2f ms",
            url,
            (time.perf_counter() - started) * 1000.0,
        )
        return response

    async def close(self) -> None:
        """Close the pooled httpx client."""
        await self._client.aclose()
        logger.debug("Closed recognition HTTP client for %s", self._client.base_url)
