"""Exception hierarchy for the Feynman speech-recognition client."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Caller-facing classification of a failed transcription."""

    VALIDATION_ERROR = "ValidationError"
    REMOTE_REJECTED = "RemoteRejected"
    TIMEOUT = "Timeout"
    EXHAUSTED = "Exhausted"
    QUERY_FAILED = "QueryFailed"
    SIGNING_ERROR = "SigningError"


class AsrError(Exception):
    """Base exception for all speech-recognition client errors."""


class InputValidationError(AsrError):
    """Raised when caller input violates a precondition before any network call."""


class SigningError(AsrError):
    """Raised when a request cannot be signed because its inputs are malformed."""


class RemoteRejectedError(AsrError):
    """Raised when the provider answers with a well-formed error response."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        """Store the provider *message* verbatim along with its error *code*."""
        super().__init__(message)
        self.message = message
        self.code = code
        self.request_id = request_id


class TransportError(AsrError):
    """Raised when an HTTP request cannot be completed."""


class RequestTimeoutError(TransportError):
    """Raised when an HTTP request exceeds its timeout."""


class TranscriptionFailed(AsrError):
    """Unified terminal failure surfaced by the orchestrator."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        task_id: int | None = None,
        request_id: str | None = None,
    ) -> None:
        """Record the failure *kind* and the most specific available *message*."""
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.task_id = task_id
        self.request_id = request_id
