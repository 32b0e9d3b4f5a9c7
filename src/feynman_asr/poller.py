"""Status polling for asynchronous recognition tasks.

Transition policy lives entirely in :func:`next_state` so the attempt budget can
be exercised without a network layer. :class:`TaskPoller` only performs the
queries, the fixed inter-attempt sleep and the bookkeeping around them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .api import AsrApiClient
from .config import PollingConfig
from .errors import RemoteRejectedError, TransportError
from .models import (
    REMOTE_STATUS_FAILED,
    REMOTE_STATUS_RUNNING,
    REMOTE_STATUS_SUCCEEDED,
    Exhausted,
    Failed,
    Pending,
    PollState,
    QueryFailed,
    Running,
    StatusObservation,
    Succeeded,
    TerminalPollState,
    TranscriptionTask,
    is_terminal,
)
from .schemas import DescribeTaskStatusResponse
from .telemetry import (
    NullTelemetrySink,
    PollAttemptEvent,
    PollErrorEvent,
    TaskCompletedMetric,
    TelemetrySink,
)

logger = logging.getLogger(__name__)

STATUS_ACTION = "DescribeTaskStatus"

StatusQuery = Callable[[int], Awaitable[StatusObservation]]
Sleep = Callable[[float], Awaitable[None]]


def classify(observation: StatusObservation, attempt: int) -> PollState:
    """Map a provider status code onto a poll state.

    Every code other than success and failure keeps the task non-terminal;
    ``Running`` is reported for the provider's "doing" code purely for logging.
    """
    if observation.status_code == REMOTE_STATUS_SUCCEEDED:
        return Succeeded(attempt=attempt, text=observation.result_text)
    if observation.status_code == REMOTE_STATUS_FAILED:
        message = (
            observation.error_message
            or observation.status_label
            or "Recognition task failed"
        )
        return Failed(attempt=attempt, message=message)
    if observation.status_code == REMOTE_STATUS_RUNNING:
        return Running(attempt=attempt)
    return Pending(attempt=attempt)


def next_state(
    previous: PollState,
    attempt: int,
    max_attempts: int,
    observation: StatusObservation | TransportError,
) -> PollState:
    """Return the state after *attempt* given its *observation*.

    A transport error keeps *previous* unless this is the final allotted attempt,
    which yields ``QueryFailed``. A non-terminal provider status on the final
    attempt yields ``Exhausted``.
    """
    if is_terminal(previous):
        raise ValueError("Terminal poll states accept no further transitions")
    final = attempt >= max_attempts
    if isinstance(observation, TransportError):
        return QueryFailed(attempt=attempt, error=observation) if final else previous
    state = classify(observation, attempt)
    if final and not is_terminal(state):
        return Exhausted(attempt=attempt)
    return state


class TaskStatusClient:
    """Performs one signed ``DescribeTaskStatus`` query per call."""

    def __init__(self, api: AsrApiClient) -> None:
        """Create a status client that signs through *api*."""
        self._api = api

    async def query(self, task_id: int) -> StatusObservation:
        """Return the provider's current view of *task_id*.

        Raises:
            TransportError: If the query fails at the transport level.
            RemoteRejectedError: If the provider rejects the query.

        """
        response = await self._api.call(
            STATUS_ACTION,
            {"TaskId": task_id},
            response_model=DescribeTaskStatusResponse,
            timeout=self._api.config.query_timeout,
        )
        if response.data is None:
            raise RemoteRejectedError(
                f"Status response for task {task_id} carried no data",
                request_id=response.request_id,
            )
        data = response.data
        return StatusObservation(
            task_id=data.task_id,
            status_code=data.status,
            result_text=data.result or "",
            error_message=data.error_msg or "",
            status_label=data.status_str,
        )


class TaskPoller:
    """Waits for a task to reach a terminal state within a fixed attempt budget."""

    def __init__(
        self,
        query: StatusQuery,
        config: PollingConfig | None = None,
        *,
        telemetry: TelemetrySink | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        """Create a poller issuing status queries through *query*."""
        self._query = query
        self._config = config or PollingConfig()
        self._telemetry = telemetry or NullTelemetrySink()
        self._sleep = sleep or asyncio.sleep

    async def wait(self, task: TranscriptionTask) -> TerminalPollState:
        """Poll *task* until it succeeds, fails, or the attempt budget runs out.

        Transport errors are tolerated on every attempt but the last. Provider
        rejections are not retried. Cancelling the awaiting coroutine abandons the
        wait; the remote task keeps running on the provider side.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        max_attempts = self._config.max_attempts
        state: PollState = Pending(attempt=0)
        attempt = 1
        logger.info(
            "Waiting for task %d: up to %d attempt(s) over about %.0fs",
            task.task_id,
            max_attempts,
            self._config.deadline_seconds,
        )
        try:
            # next_state yields a terminal state no later than attempt max_attempts.
            while True:
                state = await self._attempt(task, state, attempt, max_attempts)
                if is_terminal(state):
                    return self._finish(task, state, loop.time() - started)
                await self._sleep(self._config.interval)
                attempt += 1
        except asyncio.CancelledError:
            logger.info(
                "Stopped waiting for task %d after cancellation; remote task is abandoned",
                task.task_id,
            )
            raise

    async def _attempt(
        self,
        task: TranscriptionTask,
        previous: PollState,
        attempt: int,
        max_attempts: int,
    ) -> PollState:
        try:
            observation = await self._query(task.task_id)
        except TransportError as exc:
            logger.warning(
                "Status query for task %d failed (attempt %d/%d): %s",
                task.task_id,
                attempt,
                max_attempts,
                exc,
            )
            self._telemetry.record_event(
                PollErrorEvent(
                    task_id=task.task_id,
                    attempt=attempt,
                    error_type=exc.__class__.__name__,
                    message=str(exc),
                )
            )
            return next_state(previous, attempt, max_attempts, exc)

        state = next_state(previous, attempt, max_attempts, observation)
        task.apply(state)
        logger.debug(
            "Task %d status code %d -> %s (attempt %d/%d)",
            task.task_id,
            observation.status_code,
            type(state).__name__,
            attempt,
            max_attempts,
        )
        self._telemetry.record_event(
            PollAttemptEvent(task_id=task.task_id, attempt=attempt, state=type(state).__name__)
        )
        return state

    def _finish(
        self, task: TranscriptionTask, state: TerminalPollState, elapsed: float
    ) -> TerminalPollState:
        name = type(state).__name__
        if isinstance(state, Succeeded):
            logger.info("Task %d succeeded after %d attempt(s)", task.task_id, state.attempt)
        else:
            logger.error(
                "Task %d ended as %s after %d attempt(s): %s",
                task.task_id,
                name,
                state.attempt,
                state.message,
            )
        self._telemetry.record_metric(
            TaskCompletedMetric(
                task_id=task.task_id,
                attempts=state.attempt,
                elapsed_seconds=elapsed,
                state=name,
            )
        )
        return state
