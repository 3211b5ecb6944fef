from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Request

from src.app.deps import CurrentUser, get_chat_proxy, get_generation_service, get_optional_user
from src.app.domain.errors import ValidationError
from src.app.schemas.recipes import (
    ErrorResponse,
    GeneratedRecipes,
    GenerateRecipesRequest,
    GenerateRecipesResponse,
    RecipeChatRequest,
    RecipeChatResponse,
)
from src.app.services.chat_proxy import ChatProxy
from src.app.services.generation_service import GenerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])

DISCONNECT_POLL_SECONDS = 0.5

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    500: {"model": ErrorResponse, "description": "Configuration error or unusable AI response"},
    502: {"model": ErrorResponse, "description": "Upstream AI service failed"},
}

T = TypeVar("T")


class ClientDisconnectedError(Exception):
    pass


async def _run_until_disconnected(request: Request, awaitable: Awaitable[T]) -> T:
    """Await `awaitable`, cancelling it if the client goes away first."""
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling upstream call: %s", request.url.path)
                raise ClientDisconnectedError(request.url.path)
    finally:
        if not task.done():
            task.cancel()


@router.post("/generate", response_model=GenerateRecipesResponse, responses=ERROR_RESPONSES)
async def generate_recipes(
    payload: GenerateRecipesRequest,
    request: Request,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    service: GenerationService = Depends(get_generation_service),
) -> GenerateRecipesResponse:
    if not payload.ingredients.strip():
        raise ValidationError("Ingredients are required")

    recipes = await _run_until_disconnected(
        request,
        service.generate(payload.ingredients, user.id if user else None, payload.mode),
    )
    return GenerateRecipesResponse(data=GeneratedRecipes(recipes=recipes))


@router.post("/{recipe_id}/chat", response_model=RecipeChatResponse, responses=ERROR_RESPONSES)
async def chat_about_recipe(
    recipe_id: str,
    payload: RecipeChatRequest,
    request: Request,
    proxy: ChatProxy = Depends(get_chat_proxy),
) -> RecipeChatResponse:
    reply = await _run_until_disconnected(
        request,
        proxy.chat(recipe_id, payload.message, payload.context, payload.history),
    )
    return RecipeChatResponse(data=reply.as_payload())
