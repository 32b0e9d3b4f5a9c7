"""Async client for signed, polled cloud speech recognition."""

from __future__ import annotations

from .config import (
    AsrServiceConfig,
    Credentials,
    PollingConfig,
    RecognitionConfig,
    load_credentials_from_environment,
)
from .errors import (
    AsrError,
    ErrorKind,
    InputValidationError,
    RemoteRejectedError,
    RequestTimeoutError,
    SigningError,
    TranscriptionFailed,
    TransportError,
)
from .models import (
    AudioFormat,
    SigningRequest,
    TaskStatus,
    TaskStatusSnapshot,
    TranscriptionTask,
    TranscriptOutput,
)
from .normalizer import clean_transcript
from .orchestrator import OrchestratorDependencies, TranscriptionOrchestrator
from .schemas import TranscriptionFailure, TranscriptionResult, TranscriptionSuccess
from .signing import sign

__all__ = [
    "AsrError",
    "AsrServiceConfig",
    "AudioFormat",
    "Credentials",
    "ErrorKind",
    "InputValidationError",
    "OrchestratorDependencies",
    "PollingConfig",
    "RecognitionConfig",
    "RemoteRejectedError",
    "RequestTimeoutError",
    "SigningError",
    "SigningRequest",
    "TaskStatus",
    "TaskStatusSnapshot",
    "TranscriptOutput",
    "TranscriptionFailed",
    "TranscriptionFailure",
    "TranscriptionOrchestrator",
    "TranscriptionResult",
    "TranscriptionSuccess",
    "TranscriptionTask",
    "TransportError",
    "clean_transcript",
    "load_credentials_from_environment",
    "sign",
]
