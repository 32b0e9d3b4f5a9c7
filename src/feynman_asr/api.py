"""Signed action calls against the recognition API."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from .config import AsrServiceConfig, Credentials
from .errors import RemoteRejectedError
from .http import AsyncHttpClientProtocol, AsrHttpClient
from .models import SigningRequest
from .schemas import ResponseBody
from .signing import CONTENT_TYPE, serialize_payload, sign

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
ResponseT = TypeVar("ResponseT", bound=ResponseBody)


def system_clock() -> int:
    """Return the current Unix time in whole seconds."""
    return int(time.time())


class AsrApiClient:
    """Sends one freshly signed POST per action invocation.

    Each call takes a single timestamp from *clock*, uses it for both the
    ``X-TC-Timestamp`` header and the credential scope date, and sends exactly
    the JSON text that was signed.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        config: AsrServiceConfig | None = None,
        http_client: AsyncHttpClientProtocol | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Bind immutable *credentials* and the service *config* to an HTTP client."""
        self._credentials = credentials
        self._config = config or AsrServiceConfig()
        self._http_client = http_client or AsrHttpClient(self._config)
        self._clock = clock or system_clock

    @property
    def config(self) -> AsrServiceConfig:
        """Return the service configuration in use."""
        return self._config

    async def call(
        self,
        action: str,
        payload: Mapping[str, Any],
        *,
        response_model: type[ResponseT],
        timeout: float,
    ) -> ResponseT:
        """Invoke *action* with *payload* and parse the ``Response`` body.

        Raises:
            SigningError: If the request cannot be signed.
            TransportError: If the HTTP exchange fails (``RequestTimeoutError`` on timeout).
            RemoteRejectedError: If the provider returns an error or a malformed body.

        """
        body = serialize_payload(payload)
        request = SigningRequest(
            http_method="POST",
            uri_path="/",
            query_string="",
            content_type=CONTENT_TYPE,
            host=self._config.host,
            action=action,
            timestamp=self._clock(),
            payload=body,
        )
        headers = self._build_headers(request, sign(self._credentials, request))
        logger.debug("Invoking %s at timestamp %d", action, request.timestamp)
        response = await self._http_client.post_json(
            "/", body.encode("utf-8"), headers=headers, timeout=timeout
        )
        return _parse_response(action, response.content, response_model)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.close()

    def _build_headers(self, request: SigningRequest, authorization: str) -> dict[str, str]:
        return {
            "Authorization": authorization,
            "Content-Type": request.content_type,
            "Host": request.host,
            "X-TC-Action": request.action,
            "X-TC-Version": self._config.version,
            "X-TC-Timestamp": str(request.timestamp),
            "X-TC-Region": self._credentials.region,
        }


def _parse_response(action: str, content: bytes, response_model: type[ResponseT]) -> ResponseT:
    """Unwrap the ``Response`` envelope and raise on provider errors."""
    try:
        document = json.loads(content)
    except ValueError as exc:
        logger.error("%s response was not valid JSON", action)
        raise RemoteRejectedError(f"{action} response was not valid JSON") from exc
    envelope = document.get("Response") if isinstance(document, dict) else None
    if not isinstance(envelope, dict):
        logger.error("%s response is missing the Response envelope", action)
        raise RemoteRejectedError(f"{action} response is missing the Response envelope")
    try:
        parsed = response_model.model_validate(envelope)
    except ValidationError as exc:
        logger.error("%s response failed validation: %s", action, exc.error_count())
        raise RemoteRejectedError(f"{action} response could not be parsed") from exc
    if parsed.error is not None:
        logger.error(
            "%s rejected by provider: %s (request %s)",
            action,
            parsed.error.code,
            parsed.request_id,
        )
        raise RemoteRejectedError(
            parsed.error.message or parsed.error.code,
            code=parsed.error.code,
            request_id=parsed.request_id,
        )
    return parsed
