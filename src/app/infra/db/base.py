# src/app/infra/db/base.py
"""
Abstract base class for the recipe repository.
This interface allows swapping the record store used to persist recipes.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from src.app.domain.models import RecipeDraft, RecipeRecord, RecipeSource


class RecipeRepository(ABC):
    """
    Abstract interface for recipe persistence.

    Implementations:
    - SupabaseRecipeRepository: `recipes` table in Supabase
    """

    @abstractmethod
    def insert_recipes(
        self,
        drafts: Sequence[RecipeDraft],
        user_id: Optional[str],
        source: RecipeSource,
    ) -> list[RecipeRecord]:
        """
        Store recipe drafts in a single insert.

        Args:
            drafts: Recipes to store, in order
            user_id: Owner of the recipes (None for unowned recipes)
            source: Where the recipes came from

        Returns:
            The stored records, with their assigned ids
        """
        pass
