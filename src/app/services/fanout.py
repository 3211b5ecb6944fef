# src/app/services/fanout.py
"""
Best-effort persistence of generated recipes.

This is the only place in the generation flow where failures are logged and
dropped instead of raised: the caller's response is already computed and must
not depend on whether the store accepted the rows.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from src.app.domain.models import RecipeDraft, RecipeRecord, RecipeSource
from src.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], RecipeRepository]


class RecipeFanOut:
    """
    Stores generated drafts against a user.

    The repository is resolved lazily through `repository_factory` so that an
    unavailable store surfaces inside `persist` (and is logged there) rather
    than while wiring the request.
    """

    def __init__(self, repository_factory: RepositoryFactory):
        self._repository_factory = repository_factory

    async def persist(
        self,
        drafts: Sequence[RecipeDraft],
        user_id: str,
        source: RecipeSource = RecipeSource.AI,
    ) -> Optional[list[RecipeRecord]]:
        """
        Save drafts for a user. Never raises and never retries.

        Returns:
            The stored records, or None when the save failed
        """
        if not drafts:
            return []

        try:
            repository = self._repository_factory()
            records = await run_in_threadpool(repository.insert_recipes, list(drafts), user_id, source)
        except Exception as exc:
            logger.warning(
                "Failed to save %s recipes for user=%s: %s",
                source.value,
                user_id,
                exc,
            )
            return None

        logger.info("Saved %d %s recipes for user=%s", len(records), source.value, user_id)
        return records
