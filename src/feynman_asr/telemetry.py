"""Telemetry hook interfaces for recognition task lifecycle signals."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TelemetrySignal:
    """Common base for signals raised while a recognition request is in flight."""

    emitted_at: datetime = field(init=False)

    def __post_init__(self) -> None:
        """Record the UTC emission time."""
        object.__setattr__(self, "emitted_at", datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class TelemetryEvent(TelemetrySignal):
    """Point-in-time occurrence such as a submission or a poll attempt."""


@dataclass(frozen=True, slots=True)
class TelemetryMetric(TelemetrySignal):
    """Measured outcome summarising a finished task."""


@dataclass(frozen=True, slots=True)
class TaskSubmittedEvent(TelemetryEvent):
    """Event emitted once the provider accepted an asynchronous task."""

    task_id: int
    audio_bytes: int
    engine: str


@dataclass(frozen=True, slots=True)
class PollAttemptEvent(TelemetryEvent):
    """Event emitted after each status query that produced a provider status."""

    task_id: int
    attempt: int
    state: str


@dataclass(frozen=True, slots=True)
class PollErrorEvent(TelemetryEvent):
    """Event emitted when a status query fails at the transport level."""

    task_id: int
    attempt: int
    error_type: str
    message: str | None = None


@dataclass(frozen=True, slots=True)
class TaskCompletedMetric(TelemetryMetric):
    """Metric emitted when polling for a task reaches a terminal state."""

    task_id: int
    attempts: int
    elapsed_seconds: float
    state: str


class TelemetrySink(Protocol):
    """Receiver for task lifecycle signals emitted by the poller and orchestrator."""

    def record_event(self, event: TelemetryEvent) -> None:  # pragma: no cover - protocol
        """Accept a lifecycle event."""
        ...

    def record_metric(self, metric: TelemetryMetric) -> None:  # pragma: no cover - protocol
        """Accept a completion metric."""
        ...


class NullTelemetrySink(TelemetrySink):
    """Default sink used when no telemetry receiver is configured."""

    def record_event(self, event: TelemetryEvent) -> None:
        """Ignore *event*."""

    def record_metric(self, metric: TelemetryMetric) -> None:
        """Ignore *metric*."""
