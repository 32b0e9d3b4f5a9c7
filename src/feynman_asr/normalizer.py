"""Strip provider timing annotations from recognised text."""

from __future__ import annotations

import re
from typing import Final, overload

# A bracketed span such as ``[0:0.640,0:5.580]`` plus any whitespace after it.
_TIMESTAMP_PATTERN: Final[re.Pattern[str]] = re.compile(r"\[[^\]]*\]\s*")


@overload
def clean_transcript(text: str) -> str: ...


@overload
def clean_transcript(text: None) -> None: ...


def clean_transcript(text: str | None) -> str | None:
    """Remove every bracketed timing annotation from *text* and trim the result.

    ``None`` and the empty string are returned unchanged.
    """
    if not text:
        return text
    return _TIMESTAMP_PATTERN.sub("", text).strip()
