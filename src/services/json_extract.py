from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

OPENING_FENCE_PATTERN = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
CLOSING_FENCE_PATTERN = re.compile(r"\r?\n?```\s*$")


@dataclass(frozen=True)
class ParseOutcome:
    ok: bool
    value: Any = None


NOT_PARSED = ParseOutcome(ok=False)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, with or without a language tag."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = OPENING_FENCE_PATTERN.sub("", cleaned, count=1)
        cleaned = CLOSING_FENCE_PATTERN.sub("", cleaned, count=1)
    elif cleaned.endswith("```"):
        cleaned = CLOSING_FENCE_PATTERN.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_json_text(text: object) -> ParseOutcome:
    if not isinstance(text, str):
        return NOT_PARSED

    cleaned = strip_code_fences(text)
    if not cleaned:
        return NOT_PARSED

    try:
        return ParseOutcome(ok=True, value=json.loads(cleaned))
    except (ValueError, RecursionError):
        return NOT_PARSED
