from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from src.app.domain.models import ChatContext, ChatMessage, GenerationMode, RecipeDraft


class GenerateRecipesRequest(BaseModel):
    ingredients: str = ""
    mode: GenerationMode = "ingredients"


class GeneratedRecipes(BaseModel):
    recipes: list[RecipeDraft]


class GenerateRecipesResponse(BaseModel):
    success: bool = True
    data: GeneratedRecipes


class RecipeChatRequest(BaseModel):
    message: str = ""
    context: ChatContext = Field(default_factory=ChatContext)
    history: Optional[list[ChatMessage]] = None


class RecipeChatResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
