# src/app/domain/models.py
"""
Domain models for recipe generation and recipe chat.
Pure data structures, validated with pydantic, no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


GenerationMode = Literal["ingredients", "meal"]


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _render_item(item: Any) -> str:
    """Render one list entry as text; objects become their scalar values joined by spaces."""
    if isinstance(item, dict):
        parts = [str(part) for part in item.values() if _is_scalar(part)]
        if not parts:
            raise ValueError("list item object has no text values")
        return " ".join(parts)
    if _is_scalar(item):
        return item if isinstance(item, str) else str(item)
    raise ValueError(f"unsupported list item: {type(item).__name__}")


def _coerce_text_list(value: Any) -> list[str]:
    """Accept None, a single string (one item per line) or a list of text items."""
    if value is None:
        return []
    if isinstance(value, str):
        return [line for line in value.splitlines() if line.strip()]
    if isinstance(value, (list, tuple)):
        return [_render_item(item) for item in value if item is not None]
    raise ValueError("expected a list of strings")


class RecipeSource(str, Enum):
    """Origin of a persisted recipe."""
    AI = "AI"
    USER = "USER"
    SAVED = "SAVED"


class RecipeDraft(BaseModel):
    """
    A recipe produced by normalization, not yet persisted.

    Missing ingredients/steps become empty lists; the title is the only
    field that must carry content.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str = Field(..., min_length=1)
    description: str = ""
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _check_title(cls, value: Any) -> Any:
        # Kept verbatim; only whitespace-only titles are refused.
        if isinstance(value, str) and not value.strip():
            raise ValueError("title must not be blank")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("ingredients", "steps", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> list[str]:
        return _coerce_text_list(value)


class RecipeRecord(RecipeDraft):
    """A recipe as stored in the `recipes` collection."""
    id: str
    user_id: Optional[str] = None
    source: RecipeSource = RecipeSource.AI


class GenerationRequest(BaseModel):
    ingredients_text: str
    requesting_user_id: Optional[str] = None
    mode: GenerationMode = "ingredients"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatContext(BaseModel):
    title: str = ""
    description: Optional[str] = None
    ingredients: list[str] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return bool(self.title.strip()) and len(self.ingredients) > 0


@dataclass
class ChatReply:
    """Normalized answer from the recipe chat webhook."""
    reply: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        if self.reply is None:
            return dict(self.raw)
        return {**self.raw, "reply": self.reply}
