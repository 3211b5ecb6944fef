"""
Shapes an upstream recipe payload can arrive in.

Each recognized shape is a variant of a closed union. `classify_envelope`
returns every variant a value matches, most specific first, and always
finishes with `Unrecognized` when nothing applies. `extract_candidate` walks
those variants in order and stops at the first one that yields a list.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .json_extract import parse_json_text

MAX_ENVELOPE_DEPTH = 3


@dataclass(frozen=True)
class BareList:
    """`[{...}, {...}]`"""
    items: list


@dataclass(frozen=True)
class TextPayload:
    """A JSON document serialized as a (possibly fenced) string."""
    text: str


@dataclass(frozen=True)
class ContentField:
    """`{"content": "<json text>"}`"""
    text: str


@dataclass(frozen=True)
class ProviderPassthrough:
    """`[{"content": [{"text": "<json text>"}]}]` as relayed by some providers."""
    text: str


@dataclass(frozen=True)
class RecipesField:
    """`{"recipes": [...]}`"""
    items: list


@dataclass(frozen=True)
class Unrecognized:
    value: Any


Envelope = Union[BareList, TextPayload, ContentField, ProviderPassthrough, RecipesField, Unrecognized]


def _passthrough_text(value: list) -> Optional[str]:
    if not value or not isinstance(value[0], dict):
        return None
    content = value[0].get("content")
    if not isinstance(content, list) or not content or not isinstance(content[0], dict):
        return None
    text = content[0].get("text")
    return text if isinstance(text, str) else None


def classify_envelope(value: Any) -> list[Envelope]:
    matches: list[Envelope] = []

    if isinstance(value, list):
        passthrough = _passthrough_text(value)
        if passthrough is not None and "title" not in value[0]:
            # A relayed provider message is never itself a recipe list.
            matches.append(ProviderPassthrough(passthrough))
        else:
            matches.append(BareList(value))
            if passthrough is not None:
                matches.append(ProviderPassthrough(passthrough))
    elif isinstance(value, str):
        matches.append(TextPayload(value))
    elif isinstance(value, dict):
        content = value.get("content")
        if isinstance(content, str):
            matches.append(ContentField(content))
        recipes = value.get("recipes")
        if isinstance(recipes, list):
            matches.append(RecipesField(recipes))

    if not matches:
        matches.append(Unrecognized(value))
    return matches


def _unwrap(envelope: Envelope, depth: int) -> Optional[list]:
    if isinstance(envelope, (BareList, RecipesField)):
        return envelope.items
    if isinstance(envelope, (TextPayload, ContentField, ProviderPassthrough)):
        if depth >= MAX_ENVELOPE_DEPTH:
            return None
        outcome = parse_json_text(envelope.text)
        if not outcome.ok:
            return None
        return extract_candidate(outcome.value, depth + 1)
    if isinstance(envelope, Unrecognized):
        return None
    raise TypeError(f"Unknown envelope variant: {type(envelope).__name__}")


def extract_candidate(value: Any, depth: int = 0) -> Optional[list]:
    """Return the first recipe-list candidate found in `value`, or None."""
    for envelope in classify_envelope(value):
        candidate = _unwrap(envelope, depth)
        if candidate is not None:
            return candidate
    return None
