"""Stub collaborators and response builders shared by the test modules."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx


FIXED_TIMESTAMP = 1551113065


@dataclass(frozen=True, slots=True)
class RecordedRequest:
    """A single POST captured by :class:`RecordingHttpClient`."""

    url: str
    content: bytes
    headers: Mapping[str, str]
    timeout: float

    @property
    def action(self) -> str:
        """Return the action named by the request headers."""
        return self.headers["X-TC-Action"]

    @property
    def payload(self) -> dict[str, Any]:
        """Return the decoded JSON body."""
        return json.loads(self.content)


Handler = Callable[[str, dict[str, Any]], httpx.Response | Exception]


def _empty_requests() -> list[RecordedRequest]:
    return []


@dataclass(slots=True)
class RecordingHttpClient:
    """HTTP client stub satisfying ``AsyncHttpClientProtocol``; dispatches on the action."""

    handler: Handler
    requests: list[RecordedRequest] = field(default_factory=_empty_requests)
    closed: bool = False

    async def post_json(
        self,
        url: str,
        content: bytes,
        *,
        headers: Mapping[str, str],
        timeout: float,
    ) -> httpx.Response:
        """Record the request and return (or raise) the handler's outcome."""
        recorded = RecordedRequest(url=url, content=content, headers=dict(headers), timeout=timeout)
        self.requests.append(recorded)
        outcome = self.handler(recorded.action, recorded.payload)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self) -> None:
        """Mark the client closed."""
        self.closed = True

    def actions(self) -> list[str]:
        """Return the action names in request order."""
        return [request.action for request in self.requests]


def envelope(body: Mapping[str, Any], *, request_id: str = "req-1") -> httpx.Response:
    """Wrap *body* in the provider's ``Response`` envelope."""
    return httpx.Response(200, json={"Response": {**body, "RequestId": request_id}})


def status_response(
    task_id: int, status: int, *, result: str = "", error_msg: str = ""
) -> httpx.Response:
    """Return a ``DescribeTaskStatus`` response for *task_id*."""
    return envelope(
        {
            "Data": {
                "TaskId": task_id,
                "Status": status,
                "StatusStr": {0: "waiting", 1: "doing", 2: "success", 3: "failed"}.get(status),
                "Result": result,
                "ErrorMsg": error_msg,
            }
        }
    )


def error_response(code: str, message: str) -> httpx.Response:
    """Return a provider error envelope."""
    return envelope({"Error": {"Code": code, "Message": message}}, request_id="req-err")
