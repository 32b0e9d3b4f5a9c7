"""Single-shot recognition for short audio clips."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from .api import AsrApiClient
from .config import RecognitionConfig
from .errors import InputValidationError
from .models import AudioFormat
from .schemas import SentenceRecognitionResponse
from .submitter import SOURCE_TYPE_INLINE, encode_audio

logger = logging.getLogger(__name__)

SYNC_ACTION = "SentenceRecognition"


class SyncRecognizer:
    """Recognises a clip in one signed request/response round trip."""

    def __init__(self, api: AsrApiClient, config: RecognitionConfig | None = None) -> None:
        """Create a recogniser that signs through *api*."""
        self._api = api
        self._config = config or RecognitionConfig()

    def validate(self, audio: bytes) -> None:
        """Reject empty or oversized *audio* before any network call."""
        if not audio:
            raise InputValidationError("No audio data provided")
        if len(audio) > self._config.max_sync_bytes:
            raise InputValidationError(
                f"Audio is {len(audio)} bytes; synchronous recognition accepts at most "
                f"{self._config.max_sync_bytes} bytes"
            )

    def build_payload(self, audio: bytes, audio_format: AudioFormat) -> dict[str, Any]:
        """Return the ``SentenceRecognition`` body for *audio*."""
        try:
            engine = self._config.engine_for(audio_format.sample_rate)
        except ValueError as exc:
            raise InputValidationError(str(exc)) from exc
        return {
            "ProjectId": self._config.project_id,
            "SubServiceType": self._config.sub_service_type,
            "EngSerViceType": engine,
            "SourceType": SOURCE_TYPE_INLINE,
            "VoiceFormat": audio_format.voice_format,
            "UsrAudioKey": uuid.uuid4().hex,
            "Data": encode_audio(audio),
            "DataLen": len(audio),
        }

    async def transcribe_sync(self, audio: bytes, audio_format: AudioFormat | None = None) -> str:
        """Return the provider transcript for a clip of at most ``max_sync_bytes``.

        Raises:
            InputValidationError: If *audio* is empty or too large.
            RemoteRejectedError: If the provider rejects the clip.
            RequestTimeoutError: If the call exceeds its timeout.

        """
        self.validate(audio)
        resolved = audio_format or AudioFormat(
            voice_format=self._config.default_voice_format,
            sample_rate=self._config.default_sample_rate,
        )
        payload = self.build_payload(audio, resolved)
        logger.info(
            "Recognising %d byte(s) synchronously with engine %s",
            len(audio),
            payload["EngSerViceType"],
        )
        response = await self._api.call(
            SYNC_ACTION,
            payload,
            response_model=SentenceRecognitionResponse,
            timeout=self._api.config.sync_timeout,
        )
        return response.result or ""
