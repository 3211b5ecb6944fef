from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from src.app.domain.errors import ConfigurationError

from .http import decode_body, ensure_success, post_json

logger = logging.getLogger(__name__)


class WebhookClient:
    """Posts recipe generation requests to a workflow-automation webhook."""

    label = "Recipe webhook"

    def __init__(
        self,
        url: str,
        timeout_seconds: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not url:
            raise ConfigurationError("Recipe webhook URL not configured")
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def request_recipes(self, ingredients_text: str, mode: str = "ingredients") -> Any:
        logger.info("Sending recipe request to webhook: %s (mode=%s)", self.url, mode)
        response = await post_json(
            self.url,
            {"ingredients": ingredients_text, "mode": mode},
            label=self.label,
            timeout_seconds=self.timeout_seconds,
            transport=self._transport,
        )
        ensure_success(
            response,
            label=self.label,
            message="Failed to generate recipes",
            status_code=response.status_code if response.status_code >= 400 else None,
        )
        return decode_body(response)
