"""Command-line interface for transcribing audio files."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import traceback
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from .config import (
    AsrServiceConfig,
    PollingConfig,
    RecognitionConfig,
    load_credentials_from_environment,
)
from .errors import TranscriptionFailed
from .models import AudioFormat, TaskStatusSnapshot
from .orchestrator import OrchestratorDependencies, TranscriptionOrchestrator
from .schemas import TaskStatusView, TranscriptionFailure, TranscriptionSuccess

LOG_LEVELS: Final[dict[str, int]] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed command-line options for the transcription CLI.

    Exactly one of ``audio_path`` or ``task_id`` is set.
    """

    audio_path: Path | None
    task_id: int | None
    synchronous: bool
    voice_format: str
    sample_rate: int
    dotenv_path: Path | None
    log_level: int
    max_attempts: int | None = None
    poll_interval: float | None = None
    diagnostic: bool = False


def _setup_logging(log_level: int) -> logging.Logger:
    """Configure logging and return the CLI logger.

    Reduces noise from network libraries at non-DEBUG levels.
    """
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    return logging.getLogger("feynman_asr.cli")


def parse_cli_args(argv: Sequence[str] | None = None) -> CliOptions:
    """Parse command-line arguments into :class:`CliOptions`."""
    parser = argparse.ArgumentParser(
        prog="feynman-asr",
        description="Transcribe an audio file with the cloud speech-recognition service.",
    )
    parser.add_argument(
        "audio",
        nargs="?",
        type=Path,
        default=None,
        help="Audio file to transcribe (omit when using --task-id)",
    )
    parser.add_argument(
        "--task-id",
        type=int,
        default=None,
        help="Look up the status of an existing task instead of submitting audio",
    )
    parser.add_argument(
        "--sync",
        dest="synchronous",
        action="store_true",
        help="Use single-shot recognition (audio up to 5 MiB) instead of a polled task",
    )
    parser.add_argument(
        "--voice-format",
        default="wav",
        help="Audio container format hint (default: wav)",
    )
    parser.add_argument(
        "--sample-rate",
        type=int,
        default=16000,
        help="Audio sample rate in Hz; selects the engine model (default: 16000)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Maximum number of status queries before giving up (default: 60)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between status queries (default: 2)",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file containing TENCENTCLOUD_SECRET_ID/KEY",
    )
    parser.add_argument(
        "--log-level",
        choices=tuple(LOG_LEVELS.keys()),
        default="WARNING",
        help="Log level for diagnostic output",
    )
    parser.add_argument(
        "--diagnostic",
        action="store_true",
        help="Include exception type and provider request id in failure output",
    )

    namespace = parser.parse_args(argv)
    if namespace.audio is None and namespace.task_id is None:
        parser.error("an audio file or --task-id is required")
    if namespace.audio is not None and namespace.task_id is not None:
        parser.error("--task-id cannot be combined with an audio file")
    if namespace.max_attempts is not None and namespace.max_attempts <= 0:
        parser.error("--max-attempts must be greater than zero")
    if namespace.poll_interval is not None and namespace.poll_interval < 0:
        parser.error("--poll-interval must be zero or positive")

    return CliOptions(
        audio_path=namespace.audio,
        task_id=namespace.task_id,
        synchronous=namespace.synchronous,
        voice_format=namespace.voice_format,
        sample_rate=namespace.sample_rate,
        dotenv_path=namespace.dotenv,
        log_level=LOG_LEVELS[namespace.log_level],
        max_attempts=namespace.max_attempts,
        poll_interval=namespace.poll_interval,
        diagnostic=namespace.diagnostic,
    )


def resolve_polling_config(options: CliOptions) -> PollingConfig:
    """Merge environment polling settings with CLI overrides."""
    base = PollingConfig.from_environment()
    updates: dict[str, object] = {}
    if options.max_attempts is not None:
        updates["max_attempts"] = options.max_attempts
    if options.poll_interval is not None:
        updates["interval"] = options.poll_interval
    return base.model_copy(update=updates) if updates else base


def format_result(result: TranscriptionSuccess | TranscriptionFailure) -> str:
    """Render a caller-facing result as JSON."""
    return result.model_dump_json(by_alias=True, exclude_none=True)


def format_snapshot(snapshot: TaskStatusSnapshot) -> str:
    """Render a task status snapshot as JSON."""
    view = TaskStatusView.from_snapshot(snapshot)
    return view.model_dump_json(by_alias=True, exclude_none=True)


async def run_async(options: CliOptions) -> int:
    """Execute the CLI workflow and return the process exit code."""
    logger = _setup_logging(options.log_level)

    dotenv_file = (
        str(options.dotenv_path) if options.dotenv_path is not None else find_dotenv(usecwd=True)
    )
    if dotenv_file:
        load_dotenv(dotenv_file, override=True)
        logger.info("Loaded environment from %s (override=True)", dotenv_file)
    else:
        logger.debug("No .env file found; relying on process environment only")

    try:
        credentials = load_credentials_from_environment()
        dependencies = OrchestratorDependencies(
            service_config=AsrServiceConfig.from_environment(),
            polling_config=resolve_polling_config(options),
            recognition_config=RecognitionConfig.from_environment(),
        )
    except (ValueError, ValidationError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    async with TranscriptionOrchestrator(credentials, dependencies=dependencies) as orchestrator:
        if options.task_id is not None:
            try:
                snapshot = await orchestrator.lookup_task(options.task_id)
            except TranscriptionFailed as exc:
                print(f"error: {exc.kind.value}: {exc.message}", file=sys.stderr)
                return 1
            print(format_snapshot(snapshot))
            return 0

        assert options.audio_path is not None
        try:
            audio = options.audio_path.read_bytes()
        except OSError as exc:
            print(f"error: cannot read {options.audio_path}: {exc.strerror}", file=sys.stderr)
            return 1
        result = await orchestrator.transcribe_result(
            audio,
            audio_format=AudioFormat(
                voice_format=options.voice_format, sample_rate=options.sample_rate
            ),
            synchronous=options.synchronous,
            diagnostic=options.diagnostic,
        )
    print(format_result(result))
    return 0 if result.success else 1


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the ``feynman-asr`` console script."""
    options = parse_cli_args(argv)
    try:
        exit_code = asyncio.run(run_async(options))
    except KeyboardInterrupt:
        exit_code = 130
    except Exception:  # noqa: BLE001
        traceback.print_exc(limit=1)
        exit_code = 1
    raise SystemExit(exit_code)
