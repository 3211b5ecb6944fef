from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import httpx

from src.app.domain.errors import UpstreamFormatError, ValidationError
from src.app.domain.models import ChatContext, ChatMessage, ChatReply
from src.services.http import ensure_success, post_json
from src.services.providers import ProviderConfig

logger = logging.getLogger(__name__)

CHAT_STATUS_CODE = 502
REPLY_KEYS = ("reply", "message", "output", "text")


def _reply_text(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data if data.strip() else None
    if isinstance(data, dict):
        for key in REPLY_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value
    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                text = _reply_text(item)
                if text is not None:
                    return text
    return None


def _extract_reply(data: Any) -> ChatReply:
    """
    Wrap any decoded webhook body as a ChatReply.

    Objects pass through as-is; any other value is kept whole under "data".
    `reply` is only set when reply text is found.
    """
    raw = data if isinstance(data, dict) else {"data": data}
    return ChatReply(reply=_reply_text(data), raw=raw)


class ChatProxy:
    """Forwards "ask about this recipe" questions to the recipe chat webhook."""

    label = "AI chef webhook"

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport

    @property
    def url(self) -> str:
        return self.config.resolved_chat_webhook_url

    async def chat(
        self,
        recipe_id: str,
        message: str,
        context: ChatContext,
        history: Optional[Sequence[ChatMessage]] = None,
    ) -> ChatReply:
        message = (message or "").strip()
        if not message:
            raise ValidationError("Message is required")
        if context is None or not context.is_complete:
            raise ValidationError("Recipe context is incomplete")

        payload = {
            "recipeId": recipe_id,
            "message": message,
            "context": context.model_dump(),
            "history": [item.model_dump() for item in history or []],
        }

        response = await post_json(
            self.url,
            payload,
            label=self.label,
            timeout_seconds=self.config.timeout_seconds,
            transport=self._transport,
        )
        ensure_success(
            response,
            label=self.label,
            message=f"Failed to fetch AI chef response from {self.url}",
            status_code=CHAT_STATUS_CODE,
        )

        text = response.text
        try:
            data = json.loads(text)
        except ValueError as err:
            logger.error("Recipe chat response parse error: %s raw=%r", err, text[:200])
            raise UpstreamFormatError("Invalid response from AI chef", status_code=CHAT_STATUS_CODE) from err

        reply = _extract_reply(data)
        logger.info(
            "Recipe chat reply received: recipe=%s chars=%d",
            recipe_id,
            len(reply.reply) if reply.reply is not None else 0,
        )
        return reply
