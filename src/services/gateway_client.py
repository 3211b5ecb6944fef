from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from src.app.domain.errors import ConfigurationError, UpstreamFormatError

from .http import ensure_success, post_json
from .prompts import build_recipe_messages

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7


def _completion_content(data: Any) -> str:
    """Pull `choices[0].message.content` out of an OpenAI-style completion."""
    choices = data.get("choices") if isinstance(data, dict) else None
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
    raise UpstreamFormatError("Invalid AI response: completion did not include message content")


class GatewayClient:
    """Chat-completion client for an OpenAI-compatible model gateway."""

    label = "AI gateway"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model_name: str,
        timeout_seconds: float,
        temperature: float = DEFAULT_TEMPERATURE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("AI API key not configured")
        self.api_url = api_url
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, ingredients_text: str) -> dict[str, Any]:
        return {
            "model": self.model_name,
            "messages": build_recipe_messages(ingredients_text),
            "temperature": self.temperature,
        }

    async def complete(self, ingredients_text: str) -> str:
        response = await post_json(
            self.api_url,
            self.build_payload(ingredients_text),
            label=self.label,
            timeout_seconds=self.timeout_seconds,
            headers=self._headers(),
            transport=self._transport,
        )
        ensure_success(
            response,
            label=self.label,
            message="Failed to generate recipes",
            status_code=response.status_code if response.status_code >= 400 else None,
        )

        try:
            data = response.json()
        except ValueError as err:
            raise UpstreamFormatError("Invalid AI response: completion body is not JSON") from err

        content = _completion_content(data)
        logger.info("AI gateway completion received: model=%s chars=%d", self.model_name, len(content))
        return content
