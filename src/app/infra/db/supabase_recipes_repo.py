from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from supabase import Client

from src.app.domain.models import RecipeDraft, RecipeRecord, RecipeSource
from src.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)


def _draft_to_row(draft: RecipeDraft, user_id: Optional[str], source: RecipeSource) -> dict[str, Any]:
    return {
        "title": draft.title,
        "description": draft.description,
        "ingredients": list(draft.ingredients),
        "steps": list(draft.steps),
        "source": source.value,
        "user_id": user_id,
    }


def _row_to_record(row: dict[str, Any]) -> RecipeRecord:
    return RecipeRecord(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description"),
        ingredients=row.get("ingredients"),
        steps=row.get("steps"),
        user_id=str(row["user_id"]) if row.get("user_id") else None,
        source=RecipeSource(str(row.get("source") or RecipeSource.AI.value)),
    )


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client):
        self._client = client

    def insert_recipes(
        self,
        drafts: Sequence[RecipeDraft],
        user_id: Optional[str],
        source: RecipeSource,
    ) -> list[RecipeRecord]:
        if not drafts:
            return []

        rows = [_draft_to_row(draft, user_id, source) for draft in drafts]
        result = self._client.table(self.TABLE_NAME).insert(rows).execute()
        records = [_row_to_record(row) for row in (result.data or [])]

        logger.info(
            "Inserted recipes: count=%d, user=%s, source=%s",
            len(records),
            user_id,
            source.value,
        )
        return records
