"""Tests for the task polling state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import pytest

from feynman_asr.config import PollingConfig
from feynman_asr.errors import RemoteRejectedError, RequestTimeoutError, TransportError
from feynman_asr.models import (
    Exhausted,
    Failed,
    Pending,
    QueryFailed,
    Running,
    StatusObservation,
    Succeeded,
    TaskStatus,
    TranscriptionTask,
)
from feynman_asr.poller import TaskPoller, classify, next_state
from feynman_asr.telemetry import (
    PollAttemptEvent,
    PollErrorEvent,
    TaskCompletedMetric,
    TelemetryEvent,
    TelemetryMetric,
)

TASK_ID = 4242
INTERVAL = 2.0

Step = StatusObservation | Exception


def _status(code: int, *, result: str = "", error: str = "") -> StatusObservation:
    return StatusObservation(
        task_id=TASK_ID, status_code=code, result_text=result, error_message=error
    )


class ScriptedStatusQuery:
    """Status query stub replaying one scripted step per attempt."""

    def __init__(self, steps: Sequence[Step]) -> None:
        """Store the *steps* to replay in order."""
        self._steps = list(steps)
        self.calls = 0

    async def __call__(self, task_id: int) -> StatusObservation:
        """Return or raise the next scripted step."""
        assert task_id == TASK_ID
        if self.calls >= len(self._steps):
            raise AssertionError("Poller queried beyond its attempt budget")
        step = self._steps[self.calls]
        self.calls += 1
        if isinstance(step, Exception):
            raise step
        return step


class RecordingSleep:
    """Sleep stub that records requested delays without waiting."""

    def __init__(self) -> None:
        """Initialise the delay log."""
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        """Record *seconds* and yield control once."""
        self.delays.append(seconds)
        await asyncio.sleep(0)


class RecordingTelemetrySink:
    """Telemetry sink capturing every signal."""

    def __init__(self) -> None:
        """Initialise signal storage."""
        self.events: list[TelemetryEvent] = []
        self.metrics: list[TelemetryMetric] = []

    def record_event(self, event: TelemetryEvent) -> None:
        """Store *event*."""
        self.events.append(event)

    def record_metric(self, metric: TelemetryMetric) -> None:
        """Store *metric*."""
        self.metrics.append(metric)


def _poller(
    query: ScriptedStatusQuery,
    sleep: RecordingSleep,
    *,
    max_attempts: int = 60,
    telemetry: RecordingTelemetrySink | None = None,
) -> TaskPoller:
    return TaskPoller(
        query,
        PollingConfig(max_attempts=max_attempts, interval=INTERVAL),
        telemetry=telemetry,
        sleep=sleep,
    )


def test_classify_maps_remote_codes() -> None:
    assert classify(_status(0), 1) == Pending(attempt=1)
    assert classify(_status(1), 1) == Running(attempt=1)
    assert classify(_status(7), 1) == Pending(attempt=1)
    assert classify(_status(2, result="ok"), 3) == Succeeded(attempt=3, text="ok")
    assert classify(_status(3, error="bad audio"), 2) == Failed(attempt=2, message="bad audio")


def test_failed_without_message_gets_generic_text() -> None:
    state = classify(_status(3), 1)
    assert isinstance(state, Failed)
    assert state.message == "Recognition task failed"


def test_next_state_tolerates_transport_error_before_final_attempt() -> None:
    previous = Running(attempt=1)
    state = next_state(previous, 2, 5, TransportError("reset"))
    assert state is previous


def test_next_state_final_transport_error_is_query_failed() -> None:
    error = RequestTimeoutError("timed out")
    state = next_state(Running(attempt=4), 5, 5, error)
    assert isinstance(state, QueryFailed)
    assert state.error is error
    assert state.message == "timed out"


def test_next_state_final_non_terminal_status_is_exhausted() -> None:
    state = next_state(Running(attempt=4), 5, 5, _status(1))
    assert isinstance(state, Exhausted)
    assert "try again later" in state.message


def test_next_state_terminal_status_on_final_attempt_wins() -> None:
    assert next_state(Running(attempt=4), 5, 5, _status(2, result="done")) == Succeeded(
        attempt=5, text="done"
    )


def test_next_state_rejects_transition_out_of_terminal_state() -> None:
    with pytest.raises(ValueError):
        next_state(Succeeded(attempt=1, text="x"), 2, 5, _status(1))


@pytest.mark.asyncio
async def test_succeeds_on_attempt_n_after_non_terminal_statuses() -> None:
    query = ScriptedStatusQuery([_status(0), _status(1), _status(1), _status(2, result="hi")])
    sleep = RecordingSleep()
    task = TranscriptionTask.submitted(TASK_ID)

    state = await _poller(query, sleep).wait(task)

    assert state == Succeeded(attempt=4, text="hi")
    assert query.calls == 4
    assert sleep.delays == [INTERVAL] * 3
    assert task.status is TaskStatus.SUCCEEDED
    assert task.result_text == "hi"


@pytest.mark.asyncio
async def test_exhausts_budget_without_extra_attempts() -> None:
    budget = 5
    query = ScriptedStatusQuery([_status(1)] * budget)
    sleep = RecordingSleep()
    task = TranscriptionTask.submitted(TASK_ID)

    state = await _poller(query, sleep, max_attempts=budget).wait(task)

    assert isinstance(state, Exhausted)
    assert state.attempt == budget
    assert query.calls == budget
    assert len(sleep.delays) == budget - 1
    assert task.status is TaskStatus.RUNNING


@pytest.mark.asyncio
async def test_transient_errors_then_success() -> None:
    query = ScriptedStatusQuery(
        [TransportError("reset"), RequestTimeoutError("slow"), _status(2, result="text")]
    )
    sleep = RecordingSleep()
    telemetry = RecordingTelemetrySink()

    state = await _poller(query, sleep, max_attempts=3, telemetry=telemetry).wait(
        TranscriptionTask.submitted(TASK_ID)
    )

    assert state == Succeeded(attempt=3, text="text")
    errors = [event for event in telemetry.events if isinstance(event, PollErrorEvent)]
    assert [event.attempt for event in errors] == [1, 2]
    assert errors[1].error_type == "RequestTimeoutError"


@pytest.mark.asyncio
async def test_transport_error_on_final_attempt_is_query_failed() -> None:
    query = ScriptedStatusQuery([_status(0), _status(1), TransportError("unreachable")])
    state = await _poller(query, RecordingSleep(), max_attempts=3).wait(
        TranscriptionTask.submitted(TASK_ID)
    )
    assert isinstance(state, QueryFailed)
    assert state.attempt == 3
    assert state.message == "unreachable"


@pytest.mark.asyncio
async def test_remote_failure_is_terminal() -> None:
    query = ScriptedStatusQuery([_status(1), _status(3, error="audio decode failed")])
    sleep = RecordingSleep()
    task = TranscriptionTask.submitted(TASK_ID)

    state = await _poller(query, sleep).wait(task)

    assert state == Failed(attempt=2, message="audio decode failed")
    assert sleep.delays == [INTERVAL]
    assert task.status is TaskStatus.FAILED
    assert task.error_message == "audio decode failed"


@pytest.mark.asyncio
async def test_remote_rejection_is_not_retried() -> None:
    query = ScriptedStatusQuery(
        [_status(1), RemoteRejectedError("task not found", code="InvalidParameter")]
    )
    with pytest.raises(RemoteRejectedError, match="task not found"):
        await _poller(query, RecordingSleep()).wait(TranscriptionTask.submitted(TASK_ID))
    assert query.calls == 2


@pytest.mark.asyncio
async def test_terminal_task_is_never_polled_again() -> None:
    task = TranscriptionTask.submitted(TASK_ID)
    query = ScriptedStatusQuery([_status(2, result="once")])
    await _poller(query, RecordingSleep()).wait(task)
    with pytest.raises(RuntimeError, match="already Succeeded"):
        task.apply(Running(attempt=2))


@pytest.mark.asyncio
async def test_emits_attempt_events_and_completion_metric() -> None:
    telemetry = RecordingTelemetrySink()
    query = ScriptedStatusQuery([_status(0), _status(2, result="x")])
    await _poller(query, RecordingSleep(), telemetry=telemetry).wait(
        TranscriptionTask.submitted(TASK_ID)
    )

    attempts = [event for event in telemetry.events if isinstance(event, PollAttemptEvent)]
    assert [(event.attempt, event.state) for event in attempts] == [
        (1, "Pending"),
        (2, "Succeeded"),
    ]
    (metric,) = telemetry.metrics
    assert isinstance(metric, TaskCompletedMetric)
    assert metric.attempts == 2
    assert metric.state == "Succeeded"


@pytest.mark.asyncio
async def test_cancellation_abandons_wait() -> None:
    entered = asyncio.Event()

    async def hanging_query(task_id: int) -> StatusObservation:
        entered.set()
        await asyncio.Event().wait()
        raise AssertionError("unreachable")

    poller = TaskPoller(hanging_query, PollingConfig(max_attempts=3, interval=0.0))
    waiter = asyncio.create_task(poller.wait(TranscriptionTask.submitted(TASK_ID)))
    await entered.wait()
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter


@pytest.mark.asyncio
async def test_real_sleep_interval_is_respected() -> None:
    query = ScriptedStatusQuery([_status(0), _status(2, result="t")])
    poller = TaskPoller(query, PollingConfig(max_attempts=2, interval=0.01))
    loop = asyncio.get_running_loop()
    started = loop.time()
    state = await poller.wait(TranscriptionTask.submitted(TASK_ID))
    assert isinstance(state, Succeeded)
    assert loop.time() - started >= 0.009


@pytest.mark.asyncio
async def test_final_attempt_ends_wait_and_logs_deadline(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="feynman_asr.poller")
    query = ScriptedStatusQuery([TransportError("down")])
    state = await _poller(query, RecordingSleep(), max_attempts=1).wait(
        TranscriptionTask.submitted(TASK_ID)
    )
    assert isinstance(state, QueryFailed)
    assert query.calls == 1
    assert any("over about 0s" in record.getMessage() for record in caplog.records)
