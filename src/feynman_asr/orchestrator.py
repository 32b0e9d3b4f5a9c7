"""Entry point coordinating submission, polling and normalisation of transcripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

from .api import AsrApiClient, Clock
from .config import AsrServiceConfig, Credentials, PollingConfig, RecognitionConfig
from .errors import (
    AsrError,
    ErrorKind,
    InputValidationError,
    RemoteRejectedError,
    SigningError,
    TranscriptionFailed,
    TransportError,
)
from .http import AsyncHttpClientProtocol
from .models import (
    REMOTE_STATUS_FAILED,
    REMOTE_STATUS_RUNNING,
    REMOTE_STATUS_SUCCEEDED,
    AudioFormat,
    Exhausted,
    Failed,
    QueryFailed,
    Succeeded,
    TaskStatus,
    TaskStatusSnapshot,
    TerminalPollState,
    TranscriptionTask,
    TranscriptOutput,
)
from .normalizer import clean_transcript
from .poller import Sleep, StatusQuery, TaskPoller, TaskStatusClient
from .schemas import (
    FailureDiagnostics,
    TranscriptionFailure,
    TranscriptionResult,
    TranscriptionSuccess,
)
from .submitter import TaskSubmitter
from .sync import SyncRecognizer
from .telemetry import NullTelemetrySink, TaskSubmittedEvent, TelemetrySink

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OrchestratorDependencies:
    """Optional dependency overrides for :class:`TranscriptionOrchestrator`."""

    http_client: AsyncHttpClientProtocol | None = None
    service_config: AsrServiceConfig | None = None
    polling_config: PollingConfig | None = None
    recognition_config: RecognitionConfig | None = None
    telemetry: TelemetrySink | None = None
    clock: Clock | None = None
    status_query: StatusQuery | None = None
    sleep: Sleep | None = None


class TranscriptionOrchestrator:
    """Turns raw audio bytes into a cleaned transcript.

    The orchestrator holds no task state between calls: each ``transcribe``
    creates its own :class:`TranscriptionTask` and drops it once a terminal
    state has been consumed. Concurrent calls share only the immutable
    credentials and the pooled HTTP client.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        dependencies: OrchestratorDependencies | None = None,
    ) -> None:
        """Wire the signer-backed collaborators from *credentials* and overrides."""
        deps = dependencies or OrchestratorDependencies()
        self._telemetry = deps.telemetry or NullTelemetrySink()
        self._recognition_config = deps.recognition_config or RecognitionConfig()
        self._api = AsrApiClient(
            credentials,
            config=deps.service_config,
            http_client=deps.http_client,
            clock=deps.clock,
        )
        self._submitter = TaskSubmitter(self._api, self._recognition_config)
        self._sync = SyncRecognizer(self._api, self._recognition_config)
        self._status_client = TaskStatusClient(self._api)
        self._status_query = deps.status_query or self._status_client.query
        self._poller = TaskPoller(
            self._status_query,
            deps.polling_config,
            telemetry=self._telemetry,
            sleep=deps.sleep,
        )

    async def __aenter__(self) -> TranscriptionOrchestrator:
        """Return the orchestrator for use in an ``async with`` block."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close HTTP resources on exit."""
        await self.close()

    async def close(self) -> None:
        """Release the pooled HTTP client."""
        await self._api.close()

    async def transcribe(
        self,
        audio: bytes,
        *,
        audio_format: AudioFormat | None = None,
        synchronous: bool = False,
    ) -> TranscriptOutput:
        """Transcribe *audio*, via single-shot recognition when *synchronous* is set.

        Raises:
            TranscriptionFailed: For every failure, carrying its :class:`ErrorKind`.

        """
        if synchronous:
            return await self._transcribe_sync(audio, audio_format)
        return await self._transcribe_async(audio, audio_format)

    async def transcribe_result(
        self,
        audio: bytes,
        *,
        audio_format: AudioFormat | None = None,
        synchronous: bool = False,
        diagnostic: bool = False,
    ) -> TranscriptionResult:
        """Transcribe *audio* and return a caller-facing result instead of raising.

        Failure results carry only the error kind and message unless *diagnostic*
        is set, in which case the exception type and provider request id are added.
        """
        try:
            output = await self.transcribe(
                audio, audio_format=audio_format, synchronous=synchronous
            )
        except TranscriptionFailed as exc:
            return _failure_result(exc, diagnostic=diagnostic)
        return TranscriptionSuccess(
            text=output.cleaned_text,
            raw_text=output.raw_text,
            task_id=output.task_id,
            status=output.status,
        )

    async def lookup_task(self, task_id: int) -> TaskStatusSnapshot:
        """Return the current status of a previously submitted task without resubmitting.

        Raises:
            TranscriptionFailed: If the status query fails or is rejected.

        """
        logger.info("Looking up status of task %d", task_id)
        try:
            observation = await self._status_query(task_id)
        except TransportError as exc:
            raise TranscriptionFailed(
                ErrorKind.QUERY_FAILED, str(exc), task_id=task_id
            ) from exc
        except AsrError as exc:
            raise _as_failure(exc, task_id=task_id) from exc

        status = _task_status_for(observation.status_code)
        result_text = observation.result_text if status is TaskStatus.SUCCEEDED else None
        error_message = None
        if status is TaskStatus.FAILED:
            error_message = observation.error_message or observation.status_label
        return TaskStatusSnapshot(
            task_id=observation.task_id,
            status=status,
            result_text=result_text,
            cleaned_text=clean_transcript(result_text),
            error_message=error_message,
            status_label=observation.status_label,
        )

    async def _transcribe_sync(
        self, audio: bytes, audio_format: AudioFormat | None
    ) -> TranscriptOutput:
        try:
            raw_text = await self._sync.transcribe_sync(audio, audio_format)
        except AsrError as exc:
            raise _as_failure(exc) from exc
        return TranscriptOutput(raw_text=raw_text, cleaned_text=clean_transcript(raw_text))

    async def _transcribe_async(
        self, audio: bytes, audio_format: AudioFormat | None
    ) -> TranscriptOutput:
        try:
            task_id = await self._submitter.submit(audio, audio_format)
        except AsrError as exc:
            raise _as_failure(exc) from exc

        self._telemetry.record_event(
            TaskSubmittedEvent(
                task_id=task_id,
                audio_bytes=len(audio),
                engine=self._engine_label(audio_format),
            )
        )
        task = TranscriptionTask.submitted(task_id)
        try:
            outcome = await self._poller.wait(task)
        except AsrError as exc:
            raise _as_failure(exc, task_id=task_id) from exc
        return _output_for(task, outcome)

    def _engine_label(self, audio_format: AudioFormat | None) -> str:
        sample_rate = (
            audio_format.sample_rate
            if audio_format is not None
            else self._recognition_config.default_sample_rate
        )
        return self._recognition_config.engine_for(sample_rate)


def _output_for(task: TranscriptionTask, outcome: TerminalPollState) -> TranscriptOutput:
    """Map a terminal poll state to the transcript or a unified failure."""
    if isinstance(outcome, Succeeded):
        return TranscriptOutput(
            raw_text=outcome.text,
            cleaned_text=clean_transcript(outcome.text),
            task_id=task.task_id,
            status=task.status,
        )
    if isinstance(outcome, Failed):
        kind = ErrorKind.REMOTE_REJECTED
    elif isinstance(outcome, Exhausted):
        kind = ErrorKind.EXHAUSTED
    else:
        kind = ErrorKind.QUERY_FAILED
    failure = TranscriptionFailed(kind, outcome.message, task_id=task.task_id)
    if isinstance(outcome, QueryFailed):
        raise failure from outcome.error
    raise failure


def _as_failure(exc: AsrError, *, task_id: int | None = None) -> TranscriptionFailed:
    """Classify a collaborator exception as a :class:`TranscriptionFailed`."""
    if isinstance(exc, TranscriptionFailed):
        return exc
    request_id: str | None = None
    if isinstance(exc, InputValidationError):
        kind = ErrorKind.VALIDATION_ERROR
    elif isinstance(exc, SigningError):
        kind = ErrorKind.SIGNING_ERROR
    elif isinstance(exc, RemoteRejectedError):
        kind = ErrorKind.REMOTE_REJECTED
        request_id = exc.request_id
    elif isinstance(exc, TransportError):
        # Timeouts and connection failures share the transport-level kind.
        kind = ErrorKind.TIMEOUT
    else:
        kind = ErrorKind.REMOTE_REJECTED
    logger.error("Transcription failed (%s): %s", kind.value, exc)
    return TranscriptionFailed(kind, str(exc), task_id=task_id, request_id=request_id)


def _failure_result(exc: TranscriptionFailed, *, diagnostic: bool) -> TranscriptionFailure:
    diagnostics = None
    if diagnostic:
        cause = exc.__cause__ if exc.__cause__ is not None else exc
        diagnostics = FailureDiagnostics(
            exception_type=cause.__class__.__name__,
            request_id=exc.request_id,
        )
    return TranscriptionFailure(
        error_kind=exc.kind,
        message=exc.message,
        task_id=exc.task_id,
        diagnostics=diagnostics,
    )


def _task_status_for(status_code: int) -> TaskStatus:
    if status_code == REMOTE_STATUS_SUCCEEDED:
        return TaskStatus.SUCCEEDED
    if status_code == REMOTE_STATUS_FAILED:
        return TaskStatus.FAILED
    if status_code == REMOTE_STATUS_RUNNING:
        return TaskStatus.RUNNING
    return TaskStatus.PENDING
