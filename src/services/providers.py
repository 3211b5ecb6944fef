"""
Upstream selection for recipe generation.

A direct model gateway is preferred whenever a gateway credential is present;
otherwise the workflow webhook is used. With neither configured the request
fails before any network access.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx

from src.app.domain.errors import ConfigurationError

from .gateway_client import GatewayClient
from .webhook_client import WebhookClient

if TYPE_CHECKING:
    from src.app.config import Settings

logger = logging.getLogger(__name__)

LOVABLE_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
LOVABLE_MODEL = "google/gemini-2.5-flash"
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_CHAT_WEBHOOK_URL = "https://wishh.app.n8n.cloud/webhook/recipe-chat"
DEFAULT_TIMEOUT_SECONDS = 60.0


def _secret(value: Any) -> Optional[str]:
    if value is None:
        return None
    raw = value.get_secret_value() if hasattr(value, "get_secret_value") else str(value)
    return raw.strip() or None


@dataclass(frozen=True)
class GatewayCredential:
    api_url: str
    api_key: str
    model_name: str


@dataclass(frozen=True)
class ProviderConfig:
    """Read-only upstream configuration, built once per process."""

    lovable_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    recipe_webhook_url: Optional[str] = None
    chat_webhook_url: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    transport_retries: int = 0

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ProviderConfig":
        return cls(
            lovable_api_key=_secret(settings.LOVABLE_API_KEY),
            openai_api_key=_secret(settings.OPENAI_API_KEY),
            recipe_webhook_url=(settings.N8N_WEBHOOK_URL or "").strip() or None,
            chat_webhook_url=(settings.RECIPE_CHAT_WEBHOOK_URL or "").strip() or None,
            timeout_seconds=settings.AI_REQUEST_TIMEOUT_SECONDS,
            transport_retries=settings.AI_TRANSPORT_RETRIES,
        )

    @property
    def gateway_credential(self) -> Optional[GatewayCredential]:
        if self.lovable_api_key:
            return GatewayCredential(LOVABLE_GATEWAY_URL, self.lovable_api_key, LOVABLE_MODEL)
        if self.openai_api_key:
            return GatewayCredential(OPENAI_CHAT_URL, self.openai_api_key, OPENAI_MODEL)
        return None

    @property
    def resolved_chat_webhook_url(self) -> str:
        return self.chat_webhook_url or self.recipe_webhook_url or DEFAULT_CHAT_WEBHOOK_URL


class RecipeProvider(ABC):
    """An upstream able to answer a recipe generation request with a raw payload."""

    name: str

    @abstractmethod
    async def fetch_payload(self, ingredients_text: str, mode: str = "ingredients") -> Any:
        """Return the untrusted upstream payload for the Response Normalizer."""


class GatewayProvider(RecipeProvider):
    name = "gateway"

    def __init__(self, client: GatewayClient) -> None:
        self.client = client

    async def fetch_payload(self, ingredients_text: str, mode: str = "ingredients") -> Any:
        # The gateway prompt is ingredient based; `mode` only matters to the webhook.
        return await self.client.complete(ingredients_text)


class WebhookProvider(RecipeProvider):
    name = "webhook"

    def __init__(self, client: WebhookClient) -> None:
        self.client = client

    async def fetch_payload(self, ingredients_text: str, mode: str = "ingredients") -> Any:
        return await self.client.request_recipes(ingredients_text, mode)


def select_provider(
    config: ProviderConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RecipeProvider:
    credential = config.gateway_credential
    if credential is not None:
        logger.debug("Using AI gateway provider: model=%s", credential.model_name)
        return GatewayProvider(
            GatewayClient(
                api_url=credential.api_url,
                api_key=credential.api_key,
                model_name=credential.model_name,
                timeout_seconds=config.timeout_seconds,
                transport=transport,
            )
        )

    if config.recipe_webhook_url:
        logger.debug("Using recipe webhook provider")
        return WebhookProvider(
            WebhookClient(
                url=config.recipe_webhook_url,
                timeout_seconds=config.timeout_seconds,
                transport=transport,
            )
        )

    raise ConfigurationError("AI provider not configured: set a gateway API key or N8N_WEBHOOK_URL")
