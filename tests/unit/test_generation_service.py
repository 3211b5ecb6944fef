from __future__ import annotations

import json
from typing import Optional, Sequence

import httpx
import pytest

from src.app.domain.errors import (
    ConfigurationError,
    EmptyResultError,
    UpstreamFormatError,
    UpstreamTransportError,
    ValidationError,
)
from src.app.domain.models import RecipeDraft, RecipeRecord, RecipeSource
from src.app.infra.db.base import RecipeRepository
from src.app.services.fanout import RecipeFanOut
from src.app.services.generation_service import RETRY_MAX_DELAY_SECONDS, GenerationService
from src.services.providers import ProviderConfig

WEBHOOK_URL = "https://hooks.example.com/webhook/recipes"

THREE_RECIPES = [
    {"title": "Chicken Fried Rice", "description": "Wok classic", "ingredients": ["chicken", "rice"], "steps": ["Fry"]},
    {"title": "Chicken & Rice Soup", "description": "Comforting", "ingredients": ["chicken", "rice", "broth"], "steps": ["Simmer"]},
    {"title": "Arroz con Pollo", "description": "One pot", "ingredients": ["chicken", "rice", "saffron"], "steps": ["Bake"]},
]


class CountingTransport(httpx.MockTransport):
    def __init__(self, responses: list[httpx.Response]) -> None:
        self.calls = 0
        self._responses = list(responses)
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return self._responses.pop(0)


class RecipeRepositoryStub(RecipeRepository):
    def __init__(self) -> None:
        self.inserted: list[tuple[list[RecipeDraft], Optional[str], RecipeSource]] = []

    def insert_recipes(
        self,
        drafts: Sequence[RecipeDraft],
        user_id: Optional[str],
        source: RecipeSource,
    ) -> list[RecipeRecord]:
        self.inserted.append((list(drafts), user_id, source))
        return [
            RecipeRecord(id=f"r-{index}", user_id=user_id, source=source, **draft.model_dump())
            for index, draft in enumerate(drafts)
        ]


class FailingRecipeRepository(RecipeRepository):
    def __init__(self) -> None:
        self.attempts = 0

    def insert_recipes(
        self,
        drafts: Sequence[RecipeDraft],
        user_id: Optional[str],
        source: RecipeSource,
    ) -> list[RecipeRecord]:
        self.attempts += 1
        if isinstance(drafts, list):
            drafts.clear()
        raise RuntimeError("violates foreign key constraint recipes_user_id_fkey")


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _gateway_response(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def _service(
    config: ProviderConfig,
    transport: httpx.AsyncBaseTransport,
    repository: Optional[RecipeRepository] = None,
    sleep: Optional[RecordingSleep] = None,
) -> GenerationService:
    fanout = RecipeFanOut(lambda: repository) if repository is not None else None
    return GenerationService(config, fanout=fanout, transport=transport, sleep=sleep or RecordingSleep())


class TestGenerate:
    @pytest.mark.asyncio
    async def test_gateway_fenced_array_yields_all_recipes(self) -> None:
        transport = CountingTransport([_gateway_response(f"```json\n{json.dumps(THREE_RECIPES)}\n```")])
        service = _service(ProviderConfig(lovable_api_key="key"), transport)

        drafts = await service.generate("chicken, rice")

        assert len(drafts) == 3
        assert [draft.title for draft in drafts] == [recipe["title"] for recipe in THREE_RECIPES]

    @pytest.mark.asyncio
    async def test_webhook_bare_array_matches_wrapped_array(self) -> None:
        two = THREE_RECIPES[:2]
        bare = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL), CountingTransport([httpx.Response(200, json=two)]))
        wrapped = _service(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            CountingTransport([httpx.Response(200, json={"recipes": two})]),
        )

        assert await bare.generate("chicken") == await wrapped.generate("chicken")

    @pytest.mark.asyncio
    async def test_webhook_fenced_content_wrapper(self) -> None:
        body = {"content": '```json\n[{"title":"X","description":"d","ingredients":["a"],"steps":["b"]}]\n```'}
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL), CountingTransport([httpx.Response(200, json=body)]))

        drafts = await service.generate("a")

        assert [draft.title for draft in drafts] == ["X"]

    @pytest.mark.asyncio
    async def test_webhook_plain_text_raises_format_error(self) -> None:
        service = _service(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            CountingTransport([httpx.Response(200, text="not json at all")]),
        )

        with pytest.raises(UpstreamFormatError) as exc_info:
            await service.generate("a")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_empty_list_raises_empty_result(self) -> None:
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL), CountingTransport([httpx.Response(200, json=[])]))

        with pytest.raises(EmptyResultError):
            await service.generate("a")

    @pytest.mark.asyncio
    async def test_blank_ingredients_fail_without_network(self) -> None:
        transport = CountingTransport([])
        service = _service(ProviderConfig(openai_api_key="key"), transport)

        with pytest.raises(ValidationError):
            await service.generate("   ")

        assert transport.calls == 0

    @pytest.mark.asyncio
    async def test_no_provider_fails_without_network(self) -> None:
        transport = CountingTransport([])
        service = _service(ProviderConfig(), transport)

        with pytest.raises(ConfigurationError):
            await service.generate("eggs")

        assert transport.calls == 0


class TestTransportRetry:
    @pytest.mark.asyncio
    async def test_no_retry_by_default(self) -> None:
        transport = CountingTransport([httpx.Response(503, text="unavailable")])
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL), transport)

        with pytest.raises(UpstreamTransportError):
            await service.generate("eggs")

        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_retryable_transport_error_is_retried(self) -> None:
        transport = CountingTransport([
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json=THREE_RECIPES),
        ])
        sleep = RecordingSleep()
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL, transport_retries=1), transport, sleep=sleep)

        drafts = await service.generate("eggs")

        assert len(drafts) == 3
        assert transport.calls == 2
        assert sleep.delays == [0.5]

    @pytest.mark.asyncio
    async def test_backoff_doubles_between_attempts(self) -> None:
        transport = CountingTransport(
            [httpx.Response(502, text="bad gateway") for _ in range(3)] + [httpx.Response(200, json=THREE_RECIPES)]
        )
        sleep = RecordingSleep()
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL, transport_retries=3), transport, sleep=sleep)

        await service.generate("eggs")

        assert sleep.delays == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_rate_limit_waits_for_retry_after(self) -> None:
        transport = CountingTransport([
            httpx.Response(429, text="slow down", headers={"Retry-After": "3"}),
            httpx.Response(200, json=THREE_RECIPES),
        ])
        sleep = RecordingSleep()
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL, transport_retries=2), transport, sleep=sleep)

        await service.generate("eggs")

        assert sleep.delays == [3.0]
        assert transport.calls == 2

    @pytest.mark.asyncio
    async def test_retry_after_is_capped(self) -> None:
        transport = CountingTransport([
            httpx.Response(429, text="slow down", headers={"Retry-After": "3600"}),
            httpx.Response(200, json=THREE_RECIPES),
        ])
        sleep = RecordingSleep()
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL, transport_retries=1), transport, sleep=sleep)

        await service.generate("eggs")

        assert sleep.delays == [RETRY_MAX_DELAY_SECONDS]

    @pytest.mark.asyncio
    async def test_no_sleep_after_last_attempt(self) -> None:
        transport = CountingTransport([httpx.Response(503, text="unavailable") for _ in range(2)])
        sleep = RecordingSleep()
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL, transport_retries=1), transport, sleep=sleep)

        with pytest.raises(UpstreamTransportError):
            await service.generate("eggs")

        assert sleep.delays == [0.5]

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self) -> None:
        transport = CountingTransport([httpx.Response(401, text="bad key")])
        service = _service(ProviderConfig(openai_api_key="key", transport_retries=3), transport)

        with pytest.raises(UpstreamTransportError) as exc_info:
            await service.generate("eggs")

        assert exc_info.value.status_code == 401
        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_format_error_is_not_retried(self) -> None:
        transport = CountingTransport([httpx.Response(200, text="not json at all")])
        service = _service(ProviderConfig(recipe_webhook_url=WEBHOOK_URL, transport_retries=3), transport)

        with pytest.raises(UpstreamFormatError):
            await service.generate("eggs")

        assert transport.calls == 1


class TestPersistenceFanOut:
    @pytest.mark.asyncio
    async def test_saves_ai_recipes_for_signed_in_user(self) -> None:
        repository = RecipeRepositoryStub()
        service = _service(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            CountingTransport([httpx.Response(200, json=THREE_RECIPES)]),
            repository,
        )

        drafts = await service.generate("chicken", user_id="user-1")

        assert len(repository.inserted) == 1
        saved, user_id, source = repository.inserted[0]
        assert saved == drafts
        assert user_id == "user-1"
        assert source is RecipeSource.AI

    @pytest.mark.asyncio
    async def test_anonymous_caller_skips_persistence(self) -> None:
        repository = RecipeRepositoryStub()
        service = _service(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            CountingTransport([httpx.Response(200, json=THREE_RECIPES)]),
            repository,
        )

        await service.generate("chicken")

        assert repository.inserted == []

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_change_response(self) -> None:
        repository = FailingRecipeRepository()
        service = _service(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            CountingTransport([httpx.Response(200, json=THREE_RECIPES)]),
            repository,
        )

        drafts = await service.generate("chicken", user_id="user-1")

        assert repository.attempts == 1
        assert [draft.model_dump() for draft in drafts] == THREE_RECIPES

    @pytest.mark.asyncio
    async def test_unavailable_store_does_not_change_response(self) -> None:
        def no_store() -> RecipeRepository:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")

        service = GenerationService(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            fanout=RecipeFanOut(no_store),
            transport=CountingTransport([httpx.Response(200, json=THREE_RECIPES)]),
        )

        drafts = await service.generate("chicken", user_id="user-1")

        assert len(drafts) == 3

    @pytest.mark.asyncio
    async def test_upstream_error_skips_persistence(self) -> None:
        repository = RecipeRepositoryStub()
        service = _service(
            ProviderConfig(recipe_webhook_url=WEBHOOK_URL),
            CountingTransport([httpx.Response(502, text="bad gateway")]),
            repository,
        )

        with pytest.raises(UpstreamTransportError):
            await service.generate("chicken", user_id="user-1")

        assert repository.inserted == []
