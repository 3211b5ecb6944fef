# src/app/services/generation_service.py
"""
Recipe generation service.
Turns a free-text ingredient list into normalized recipe drafts.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from src.app.domain.errors import UpstreamTransportError, ValidationError
from src.app.domain.models import GenerationMode, RecipeDraft, RecipeSource
from src.app.services.fanout import RecipeFanOut
from src.services.normalizer import normalize_recipes
from src.services.providers import ProviderConfig, RecipeProvider, select_provider

logger = logging.getLogger(__name__)

ProviderSelector = Callable[[ProviderConfig, Optional[httpx.AsyncBaseTransport]], RecipeProvider]
Sleeper = Callable[[float], Awaitable[None]]

RETRY_BASE_DELAY_SECONDS = 0.5
RETRY_MAX_DELAY_SECONDS = 10.0


def retry_delay(attempt: int, exc: UpstreamTransportError) -> float:
    """Delay before retry number `attempt`: Retry-After when given, else exponential backoff."""
    if exc.retry_after is not None:
        return min(exc.retry_after, RETRY_MAX_DELAY_SECONDS)
    return min(RETRY_BASE_DELAY_SECONDS * 2 ** (attempt - 1), RETRY_MAX_DELAY_SECONDS)


class GenerationService:
    """
    Service for AI recipe generation.

    Responsibilities:
    - Reject blank input before any upstream call
    - Pick the upstream provider from configuration
    - Normalize the upstream payload into RecipeDraft objects
    - Hand successful results to the persistence fan-out for signed-in users
    """

    def __init__(
        self,
        config: ProviderConfig,
        fanout: Optional[RecipeFanOut] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        provider_selector: ProviderSelector = select_provider,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.config = config
        self._fanout = fanout
        self._transport = transport
        self._select_provider = provider_selector
        self._sleep = sleep

    async def generate(
        self,
        ingredients_text: str,
        user_id: Optional[str] = None,
        mode: GenerationMode = "ingredients",
    ) -> list[RecipeDraft]:
        """
        Generate recipes for the given ingredients.

        Args:
            ingredients_text: Free-text ingredient list
            user_id: Requesting user; when set, results are also saved
            mode: Generation mode forwarded to the workflow webhook

        Returns:
            A non-empty list of RecipeDraft

        Raises:
            ValidationError: ingredients_text is blank
            ConfigurationError: no upstream provider configured
            UpstreamTransportError: upstream unreachable or non-2xx
            UpstreamFormatError: upstream answered with an unusable body
            EmptyResultError: upstream answered with no recipes
        """
        ingredients_text = (ingredients_text or "").strip()
        if not ingredients_text:
            raise ValidationError("Ingredients are required")

        provider = self._select_provider(self.config, self._transport)
        payload = await self._fetch_with_retry(provider, ingredients_text, mode)
        drafts = normalize_recipes(payload)

        logger.info(
            "Generated recipes: count=%d, provider=%s, user=%s",
            len(drafts),
            provider.name,
            user_id or "anonymous",
        )

        if user_id and self._fanout is not None:
            snapshot = [draft.model_copy(deep=True) for draft in drafts]
            await self._fanout.persist(snapshot, user_id, RecipeSource.AI)

        return drafts

    async def _fetch_with_retry(self, provider: RecipeProvider, ingredients_text: str, mode: str):
        attempts = self.config.transport_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await provider.fetch_payload(ingredients_text, mode)
            except UpstreamTransportError as exc:
                if not exc.retryable or attempt == attempts:
                    raise
                delay = retry_delay(attempt, exc)
                logger.warning(
                    "Upstream transport error (attempt %d/%d, provider=%s), retrying in %.1fs: %s",
                    attempt,
                    attempts,
                    provider.name,
                    delay,
                    exc,
                )
                await self._sleep(delay)
