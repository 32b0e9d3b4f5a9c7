"""Typed data models for signed requests, recognition tasks, and transcripts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TypeGuard

from .errors import TransportError


@dataclass(frozen=True, slots=True)
class SigningRequest:
    """Inputs to the request signature, built fresh for every outbound call."""

    http_method: str
    uri_path: str
    query_string: str
    content_type: str
    host: str
    action: str
    timestamp: int
    payload: str


@dataclass(frozen=True, slots=True)
class AudioFormat:
    """Container and sample-rate hint supplied alongside raw audio bytes."""

    voice_format: str = "wav"
    sample_rate: int = 16000


class TaskStatus(str, Enum):
    """Lifecycle of an asynchronous recognition task."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` for states that accept no further transitions."""
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


# Remote status codes reported by DescribeTaskStatus.
REMOTE_STATUS_RUNNING = 1
REMOTE_STATUS_SUCCEEDED = 2
REMOTE_STATUS_FAILED = 3


@dataclass(frozen=True, slots=True)
class StatusObservation:
    """One successful status query as reported by the provider."""

    task_id: int
    status_code: int
    result_text: str = ""
    error_message: str = ""
    status_label: str | None = None


# Poll states form a closed tagged union; see ``poller.next_state``.


@dataclass(frozen=True, slots=True)
class Pending:
    """Provider has not started the task (or reported an unrecognised code)."""

    attempt: int


@dataclass(frozen=True, slots=True)
class Running:
    """Provider reports the task as in progress."""

    attempt: int


@dataclass(frozen=True, slots=True)
class Succeeded:
    """Provider finished the task and returned transcript text."""

    attempt: int
    text: str


@dataclass(frozen=True, slots=True)
class Failed:
    """Provider finished the task with an error."""

    attempt: int
    message: str


@dataclass(frozen=True, slots=True)
class Exhausted:
    """Attempt budget ran out without a terminal provider status."""

    attempt: int
    message: str = "Recognition did not finish in time; try again later"


@dataclass(frozen=True, slots=True)
class QueryFailed:
    """The final allotted status query failed at the transport level."""

    attempt: int
    error: TransportError

    @property
    def message(self) -> str:
        """Return the transport error text."""
        return str(self.error) or self.error.__class__.__name__


PollState = Pending | Running | Succeeded | Failed | Exhausted | QueryFailed
TerminalPollState = Succeeded | Failed | Exhausted | QueryFailed


def is_terminal(state: PollState) -> TypeGuard[TerminalPollState]:
    """Return ``True`` when *state* ends the polling loop."""
    return isinstance(state, Succeeded | Failed | Exhausted | QueryFailed)


@dataclass(slots=True)
class TranscriptionTask:
    """Asynchronous recognition job tracked for the lifetime of one orchestration call."""

    task_id: int
    submitted_at: datetime
    status: TaskStatus = TaskStatus.PENDING
    result_text: str | None = None
    error_message: str | None = None

    @classmethod
    def submitted(cls, task_id: int) -> TranscriptionTask:
        """Create a pending task stamped with the current UTC time."""
        return cls(task_id=task_id, submitted_at=datetime.now(UTC))

    def apply(self, state: PollState) -> None:
        """Update the task from a provider-derived poll *state*.

        ``Exhausted`` and ``QueryFailed`` describe the wait, not the remote task,
        so they leave the task status untouched.
        """
        if self.status.is_terminal:
            raise RuntimeError(f"Task {self.task_id} is already {self.status.value}")
        if isinstance(state, Running):
            self.status = TaskStatus.RUNNING
        elif isinstance(state, Pending):
            self.status = TaskStatus.PENDING
        elif isinstance(state, Succeeded):
            self.status = TaskStatus.SUCCEEDED
            self.result_text = state.text
        elif isinstance(state, Failed):
            self.status = TaskStatus.FAILED
            self.error_message = state.message


@dataclass(frozen=True, slots=True)
class TranscriptOutput:
    """Raw provider transcript and its timestamp-free rendition."""

    raw_text: str
    cleaned_text: str
    task_id: int | None = None
    status: TaskStatus = TaskStatus.SUCCEEDED


@dataclass(frozen=True, slots=True)
class TaskStatusSnapshot:
    """Point-in-time view of a task returned by the status lookup."""

    task_id: int
    status: TaskStatus
    result_text: str | None = None
    cleaned_text: str | None = None
    error_message: str | None = None
    status_label: str | None = None
