# src/app/deps.py (singletons exposed as FastAPI dependencies)

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from src.app.config import settings
from src.app.domain.errors import ConfigurationError
from src.app.infra.db.base import RecipeRepository
from src.app.infra.db.supabase_recipes_repo import SupabaseRecipeRepository
from src.app.services.chat_proxy import ChatProxy
from src.app.services.fanout import RecipeFanOut
from src.app.services.generation_service import GenerationService
from src.services.providers import ProviderConfig

logger = logging.getLogger(__name__)

_client: Client | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY.get_secret_value())
    return _client


def get_recipe_repository() -> RecipeRepository:
    return SupabaseRecipeRepository(get_supabase())


@lru_cache
def get_provider_config() -> ProviderConfig:
    return ProviderConfig.from_settings(settings)


def get_generation_service(config: ProviderConfig = Depends(get_provider_config)) -> GenerationService:
    return GenerationService(config, fanout=RecipeFanOut(get_recipe_repository))


def get_chat_proxy(config: ProviderConfig = Depends(get_provider_config)) -> ChatProxy:
    return ChatProxy(config)


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None


def get_optional_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> Optional[CurrentUser]:
    """
    Resolve Authorization: Bearer <access_token> to a Supabase user when possible.
    Anonymous callers (no token, invalid token, no store configured) get None.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        return None

    try:
        res = get_supabase().auth.get_user(cred.credentials)
    except Exception as exc:
        logger.info("Ignoring unverifiable bearer token: %s", exc)
        return None

    user = getattr(res, "user", None)
    if not user:
        return None
    return CurrentUser(id=str(user.id), email=user.email)
