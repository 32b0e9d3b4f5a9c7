"""Pydantic schemas for provider responses and caller-facing results."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind
from .models import TaskStatus, TaskStatusSnapshot


class ApiErrorDetail(BaseModel):
    """Error object embedded in a rejected provider response."""

    model_config = ConfigDict(extra="ignore")

    code: str = Field(alias="Code", description="Provider error code.")
    message: str = Field(default="", alias="Message", description="Provider error message.")


class ResponseBody(BaseModel):
    """Fields common to every ``Response`` envelope body."""

    model_config = ConfigDict(extra="ignore")

    request_id: str | None = Field(
        default=None, alias="RequestId", description="Provider request identifier."
    )
    error: ApiErrorDetail | None = Field(
        default=None, alias="Error", description="Present when the provider rejected the call."
    )


class TaskHandle(BaseModel):
    """Data block returned by ``CreateRecTask``."""

    model_config = ConfigDict(extra="ignore")

    task_id: int | None = Field(default=None, alias="TaskId", description="Task identifier.")


class CreateRecTaskResponse(ResponseBody):
    """Response body for an asynchronous task submission."""

    data: TaskHandle | None = Field(default=None, alias="Data")


class TaskStatusData(BaseModel):
    """Data block returned by ``DescribeTaskStatus``."""

    model_config = ConfigDict(extra="ignore")

    task_id: int = Field(alias="TaskId", description="Task identifier.")
    status: int = Field(alias="Status", description="0 waiting, 1 doing, 2 success, 3 failed.")
    status_str: str | None = Field(
        default=None, alias="StatusStr", description="Human-readable status label."
    )
    result: str | None = Field(default=None, alias="Result", description="Transcript text.")
    error_msg: str | None = Field(
        default=None, alias="ErrorMsg", description="Failure reason for status 3."
    )


class DescribeTaskStatusResponse(ResponseBody):
    """Response body for a task status query."""

    data: TaskStatusData | None = Field(default=None, alias="Data")


class SentenceRecognitionResponse(ResponseBody):
    """Response body for single-shot recognition."""

    result: str | None = Field(default=None, alias="Result", description="Transcript text.")
    audio_duration: int | None = Field(
        default=None, alias="AudioDuration", description="Audio duration in milliseconds."
    )


class FailureDiagnostics(BaseModel):
    """Extra failure context exposed only in diagnostic mode."""

    model_config = ConfigDict(populate_by_name=True)

    exception_type: str = Field(serialization_alias="exceptionType")
    request_id: str | None = Field(default=None, serialization_alias="requestId")


class TranscriptionSuccess(BaseModel):
    """Caller-facing result of a successful transcription."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[True] = True
    text: str = Field(description="Transcript with timing annotations removed.")
    raw_text: str | None = Field(
        default=None,
        serialization_alias="rawText",
        description="Transcript as returned by the provider.",
    )
    task_id: int | None = Field(
        default=None,
        serialization_alias="taskId",
        description="Provider task identifier; absent on the synchronous path.",
    )
    status: TaskStatus = Field(default=TaskStatus.SUCCEEDED)


class TranscriptionFailure(BaseModel):
    """Caller-facing result of a failed transcription."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[False] = False
    error_kind: ErrorKind = Field(serialization_alias="errorKind")
    message: str
    task_id: int | None = Field(default=None, serialization_alias="taskId")
    diagnostics: FailureDiagnostics | None = None


TranscriptionResult = TranscriptionSuccess | TranscriptionFailure


class TaskStatusView(BaseModel):
    """Caller-facing view of a task returned by the status lookup."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    task_id: int = Field(serialization_alias="taskId")
    status: TaskStatus
    text: str | None = Field(default=None, description="Cleaned transcript once succeeded.")
    message: str | None = Field(default=None, description="Provider error once failed.")

    @classmethod
    def from_snapshot(cls, snapshot: TaskStatusSnapshot) -> TaskStatusView:
        """Build the view from a lookup *snapshot*."""
        return cls(
            task_id=snapshot.task_id,
            status=snapshot.status,
            text=snapshot.cleaned_text,
            message=snapshot.error_message,
        )
