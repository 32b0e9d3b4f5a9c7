"""Configuration schemas for the speech-recognition client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    SecretStr,
)

MAX_SYNC_AUDIO_BYTES: Final[int] = 5 * 1024 * 1024
DEFAULT_REGION: Final[str] = "ap-shanghai"


class Credentials(BaseModel):
    """API key pair and scope used to sign every outbound request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    secret_id: str = Field(..., min_length=1, description="Access key identifier")
    secret_key: SecretStr = Field(..., description="Access key secret; never logged")
    region: str = Field(default=DEFAULT_REGION, min_length=1, description="Service region")
    service: str = Field(default="asr", min_length=1, description="Service name for signing")


class AsrServiceConfig(BaseModel):
    """Endpoint and HTTP tuning parameters for the recognition service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(
        default="asr.tencentcloudapi.com", min_length=1, description="API host name"
    )
    version: str = Field(default="2019-06-14", description="Value of the X-TC-Version header")
    submit_timeout: PositiveFloat = Field(
        default=30.0, description="Timeout (seconds) for task submission"
    )
    query_timeout: PositiveFloat = Field(
        default=10.0, description="Timeout (seconds) for each task status query"
    )
    sync_timeout: PositiveFloat = Field(
        default=30.0, description="Timeout (seconds) for single-shot recognition"
    )
    max_connections: NonNegativeInt = Field(
        default=10, description="Maximum concurrent HTTP connections"
    )
    enable_http2: bool = Field(
        default=True, description="Whether HTTP/2 should be attempted when available"
    )

    @property
    def base_url(self) -> str:
        """Return the HTTPS root URL for the configured host."""
        return f"https://{self.host}"

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> AsrServiceConfig:
        """Build a configuration from environment variables.

        Recognised variables:
            - ``ASR_HOST`` overrides the API host
            - ``ASR_SUBMIT_TIMEOUT`` / ``ASR_QUERY_TIMEOUT`` / ``ASR_SYNC_TIMEOUT`` (seconds)
        """
        source = dict(os.environ if env is None else env)
        updates: dict[str, object] = {}
        host = source.get("ASR_HOST")
        if host:
            updates["host"] = host
        for env_key, field in (
            ("ASR_SUBMIT_TIMEOUT", "submit_timeout"),
            ("ASR_QUERY_TIMEOUT", "query_timeout"),
            ("ASR_SYNC_TIMEOUT", "sync_timeout"),
        ):
            raw = source.get(env_key)
            if raw is None:
                continue
            try:
                updates[field] = float(raw)
            except ValueError as exc:
                raise ValueError(f"{env_key} must be a floating point value") from exc
        return cls.model_validate(updates)


class PollingConfig(BaseModel):
    """Attempt budget for waiting on an asynchronous recognition task."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: PositiveInt = Field(
        default=60, description="Maximum number of status queries per task"
    )
    interval: float = Field(
        default=2.0, ge=0.0, description="Fixed delay in seconds between status queries"
    )

    @property
    def deadline_seconds(self) -> float:
        """Return the approximate upper bound spent sleeping between attempts."""
        return (self.max_attempts - 1) * self.interval

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> PollingConfig:
        """Build a configuration from ``ASR_POLL_MAX_ATTEMPTS`` and ``ASR_POLL_INTERVAL``."""
        source = dict(os.environ if env is None else env)
        updates: dict[str, object] = {}
        raw_attempts = source.get("ASR_POLL_MAX_ATTEMPTS")
        if raw_attempts is not None:
            try:
                updates["max_attempts"] = int(raw_attempts)
            except ValueError as exc:
                raise ValueError("ASR_POLL_MAX_ATTEMPTS must be an integer") from exc
        raw_interval = source.get("ASR_POLL_INTERVAL")
        if raw_interval is not None:
            try:
                updates["interval"] = float(raw_interval)
            except ValueError as exc:
                raise ValueError("ASR_POLL_INTERVAL must be a floating point value") from exc
        return cls.model_validate(updates)


class RecognitionConfig(BaseModel):
    """Recognition parameters shared by the asynchronous and synchronous paths."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    language: str = Field(
        default="zh", min_length=1, description="Language suffix of the engine model"
    )
    channel_num: PositiveInt = Field(default=1, description="Audio channel count (async)")
    res_text_format: NonNegativeInt = Field(
        default=0, description="Result text format requested from the async engine"
    )
    sub_service_type: NonNegativeInt = Field(
        default=2, description="Sub-service type for single-shot recognition"
    )
    project_id: NonNegativeInt = Field(default=0, description="Provider project identifier")
    default_voice_format: str = Field(default="wav", description="Fallback audio container")
    default_sample_rate: PositiveInt = Field(default=16000, description="Fallback sample rate")
    supported_sample_rates: frozenset[int] = Field(
        default=frozenset({8000, 16000}),
        description="Sample rates for which an engine model exists",
    )
    max_sync_bytes: PositiveInt = Field(
        default=MAX_SYNC_AUDIO_BYTES,
        description="Largest raw payload accepted by the synchronous path",
    )

    def engine_for(self, sample_rate: int) -> str:
        """Return the engine model name for *sample_rate* (e.g. ``16k_zh``)."""
        if sample_rate not in self.supported_sample_rates:
            supported = ", ".join(str(rate) for rate in sorted(self.supported_sample_rates))
            raise ValueError(f"Unsupported sample rate {sample_rate}; expected one of {supported}")
        return f"{sample_rate // 1000}k_{self.language}"

    @classmethod
    def from_environment(cls, *, env: Mapping[str, str] | None = None) -> RecognitionConfig:
        """Build a configuration from ``ASR_LANGUAGE`` when present."""
        source = dict(os.environ if env is None else env)
        language = source.get("ASR_LANGUAGE")
        return cls(language=language) if language else cls()


def load_credentials_from_environment(*, env: Mapping[str, str] | None = None) -> Credentials:
    """Load signing credentials from environment variables.

    Requires ``TENCENTCLOUD_SECRET_ID`` and ``TENCENTCLOUD_SECRET_KEY``;
    ``TENCENTCLOUD_REGION`` is optional. The CLI loads ``.env`` via python-dotenv
    prior to calling this function, so no file parsing occurs here.

    Raises:
        ValueError: If the required keys cannot be resolved.

    """
    resolved_env = dict(os.environ if env is None else env)

    required = ("TENCENTCLOUD_SECRET_ID", "TENCENTCLOUD_SECRET_KEY")
    missing = [key for key in required if not resolved_env.get(key)]
    if missing:
        raise ValueError(f"Missing credential keys: {', '.join(missing)}")
    return Credentials(
        secret_id=resolved_env["TENCENTCLOUD_SECRET_ID"],
        secret_key=SecretStr(resolved_env["TENCENTCLOUD_SECRET_KEY"]),
        region=resolved_env.get("TENCENTCLOUD_REGION") or DEFAULT_REGION,
    )
