"""Asynchronous recognition task submission."""

from __future__ import annotations

import base64
import logging
from typing import Any

from .api import AsrApiClient
from .config import RecognitionConfig
from .errors import InputValidationError, RemoteRejectedError
from .models import AudioFormat
from .schemas import CreateRecTaskResponse

logger = logging.getLogger(__name__)

SUBMIT_ACTION = "CreateRecTask"
SOURCE_TYPE_INLINE = 1


def encode_audio(audio: bytes) -> str:
    """Return *audio* as base64 text, rejecting an empty payload."""
    if not audio:
        raise InputValidationError("No audio data provided")
    return base64.b64encode(audio).decode("ascii")


class TaskSubmitter:
    """Uploads inline audio and returns the provider-assigned task identifier."""

    def __init__(self, api: AsrApiClient, config: RecognitionConfig | None = None) -> None:
        """Create a submitter that signs requests through *api*."""
        self._api = api
        self._config = config or RecognitionConfig()

    def build_payload(self, audio: bytes, audio_format: AudioFormat) -> dict[str, Any]:
        """Return the ``CreateRecTask`` body for *audio*."""
        encoded = encode_audio(audio)
        try:
            engine = self._config.engine_for(audio_format.sample_rate)
        except ValueError as exc:
            raise InputValidationError(str(exc)) from exc
        return {
            "EngineModelType": engine,
            "ChannelNum": self._config.channel_num,
            "ResTextFormat": self._config.res_text_format,
            "SourceType": SOURCE_TYPE_INLINE,
            "Data": encoded,
            "DataLen": len(audio),
        }

    async def submit(self, audio: bytes, audio_format: AudioFormat | None = None) -> int:
        """Submit *audio* for asynchronous recognition and return the task id.

        Raises:
            InputValidationError: If *audio* is empty or the sample rate is unsupported.
            RemoteRejectedError: If the response carries no task identifier.
            RequestTimeoutError: If the submission exceeds its timeout.

        """
        payload = self.build_payload(audio, audio_format or self._default_format())
        logger.info(
            "Submitting %d byte(s) of audio with engine %s",
            len(audio),
            payload["EngineModelType"],
        )
        response = await self._api.call(
            SUBMIT_ACTION,
            payload,
            response_model=CreateRecTaskResponse,
            timeout=self._api.config.submit_timeout,
        )
        task_id = response.data.task_id if response.data is not None else None
        if task_id is None:
            logger.error("Submission response carried no task id (request %s)", response.request_id)
            raise RemoteRejectedError(
                "Recognition service did not return a task id",
                request_id=response.request_id,
            )
        logger.info("Recognition task %d accepted", task_id)
        return task_id

    def _default_format(self) -> AudioFormat:
        return AudioFormat(
            voice_format=self._config.default_voice_format,
            sample_rate=self._config.default_sample_rate,
        )
