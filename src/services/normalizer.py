from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from src.app.domain.errors import EmptyResultError, UpstreamFormatError
from src.app.domain.models import RecipeDraft

from .envelopes import extract_candidate

logger = logging.getLogger(__name__)


def _coerce_draft(item: Any) -> Optional[RecipeDraft]:
    if not isinstance(item, dict):
        return None
    try:
        return RecipeDraft.model_validate(item)
    except PydanticValidationError as err:
        logger.debug("Dropping recipe candidate: %s", err.errors(include_url=False))
        return None


def normalize_recipes(payload: Any) -> list[RecipeDraft]:
    """
    Reduce an upstream payload to a non-empty list of RecipeDraft.

    Raises:
        UpstreamFormatError: no recipe list could be located in the payload
        EmptyResultError: a list was located but held no usable recipe
    """
    candidate = extract_candidate(payload)
    if candidate is None:
        logger.warning("Unrecognized AI response shape: %s", type(payload).__name__)
        raise UpstreamFormatError("Invalid AI response: unrecognized response shape")

    drafts = [draft for draft in map(_coerce_draft, candidate) if draft is not None]
    if len(drafts) < len(candidate):
        logger.info("Discarded %d of %d recipe candidates", len(candidate) - len(drafts), len(candidate))

    if not drafts:
        raise EmptyResultError("No recipes generated")

    return drafts
