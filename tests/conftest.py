"""Shared fixtures for the speech-recognition client tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from helpers import FIXED_TIMESTAMP
from pydantic import SecretStr

from feynman_asr.config import Credentials


@pytest.fixture(name="credentials")
def credentials_fixture() -> Credentials:
    """Provide deterministic signing credentials."""
    return Credentials(
        secret_id="AKIDEXAMPLE",
        secret_key=SecretStr("example-secret-key"),
        region="ap-shanghai",
    )


@pytest.fixture(name="fixed_clock")
def fixed_clock_fixture() -> Callable[[], int]:
    """Provide a clock pinned to a known Unix timestamp."""
    return lambda: FIXED_TIMESTAMP
