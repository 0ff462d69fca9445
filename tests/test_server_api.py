"""Tests for the FastAPI endpoints, exercised in-process through `httpx.ASGITransport`."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from conftest import FakeOpenRouter, make_settings
from src.app import App
from src.llm.models_cache import ModelsCache
from src.semantics.model import Entity, SemanticModel
from src.server.main import create_api


def _container(mock_http: httpx.AsyncClient, **overrides: Any) -> App:
    settings = make_settings(**overrides)
    return App(
        settings=settings,
        http=mock_http,
        semantic_model=SemanticModel(),
        models_cache=ModelsCache(ttl_s=settings.models_cache_ttl_s),
        active_model=settings.openrouter_default_model,
    )


async def _api_client(container: App) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=create_api(container=container))
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def container(mock_http: httpx.AsyncClient) -> App:
    return _container(mock_http)


@pytest_asyncio.fixture
async def client(container: App) -> AsyncIterator[httpx.AsyncClient]:
    async with await _api_client(container) as api:
        yield api


@pytest.mark.asyncio
async def test_health(client: httpx.AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_intent_end_to_end(client: httpx.AsyncClient) -> None:
    resp = await client.post("/api/intent", json={"intent": "create a login function"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["intent"] == "create a login function"
    assert body["generatedCode"].startswith("func Login")
    assert body["ast"] == {"type": "Program", "body": []}
    assert body["semantics"]["entities"] == [{"name": "Login"}]


@pytest.mark.asyncio
async def test_intent_semantics_fall_back_to_raw_string(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    fake_openrouter.codegen_reply = "===CODE===\nfoo()\n===AST===\nnot json\n===SEMANTICS===\nalso not json"

    body = (await client.post("/api/intent", json={"intent": "create foo"})).json()

    assert body["generatedCode"] == "foo()"
    assert body["ast"] == "not json"
    assert body["semantics"] == "also not json"


@pytest.mark.asyncio
async def test_intent_uses_request_model_and_client_key(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    resp = await client.post(
        "/api/intent",
        json={"intent": "create a login function", "model_id": "x/custom", "api_key": "sk-client"},
    )

    assert resp.status_code == 200
    assert {p["model"] for p in fake_openrouter.payloads()} == {"x/custom"}
    assert all(r.headers["Authorization"] == "Bearer sk-client" for r in fake_openrouter.requests)


@pytest.mark.asyncio
async def test_intent_without_any_key_runs_in_keyword_mode(
        mock_http: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    container = _container(mock_http, OPENROUTER_API_KEY=None)
    async with await _api_client(container) as api:
        resp = await api.post("/api/intent", json={"intent": "create a login function"})

    assert resp.status_code == 200
    assert resp.json()["generatedCode"] == "// No code was generated"
    assert fake_openrouter.requests == []


@pytest.mark.asyncio
async def test_intent_errors_map_to_statuses(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    assert (await client.post("/api/intent", json={"intent": "  "})).status_code == 400

    fake_openrouter.parse_reply = "I cannot classify that"
    resp = await client.post("/api/intent", json={"intent": "hello"})
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to execute intent: unknown intent type"

    fake_openrouter.override = lambda _req: httpx.Response(200, json={"choices": []})
    resp = await client.post("/api/intent", json={"intent": "create x"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Failed to parse intent: no response from LLM API"


@pytest.mark.asyncio
async def test_codegen_upstream_failure_is_502(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    def _route(request: httpx.Request) -> httpx.Response:
        if b"code generation" in request.content:
            return httpx.Response(503, text="overloaded")
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": '{"type": "Create"}'}}]},
        )

    fake_openrouter.override = _route
    resp = await client.post("/api/intent", json={"intent": "create x"})

    assert resp.status_code == 502
    assert "503" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_models_listing_is_cached(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    first = await client.get("/api/models")
    second = await client.post("/api/models", json={})
    refreshed = await client.get("/api/models", params={"refresh": "true"})

    assert first.status_code == second.status_code == refreshed.status_code == 200
    assert [m["id"] for m in first.json()["data"]] == [
        "openai/gpt-3.5-turbo",
        "anthropic/claude-3-haiku",
    ]
    assert len(fake_openrouter.requests) == 2


@pytest.mark.asyncio
async def test_models_require_a_key(mock_http: httpx.AsyncClient) -> None:
    container = _container(mock_http, OPENROUTER_API_KEY=None)
    async with await _api_client(container) as api:
        resp = await api.get("/api/models")
        with_key = await api.post("/api/models", json={"api_key": "sk-client"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "API key is required to fetch models"
    assert with_key.status_code == 200


@pytest.mark.asyncio
async def test_models_upstream_failure(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    fake_openrouter.override = lambda _req: httpx.Response(502, text="bad gateway")

    resp = await client.get("/api/models")

    assert resp.status_code == 500
    assert resp.json()["detail"].startswith("Failed to fetch models: API error: 502")


@pytest.mark.asyncio
async def test_model_select_persists_for_server_key(
        client: httpx.AsyncClient,
        container: App,
        fake_openrouter: FakeOpenRouter,
) -> None:
    resp = await client.post("/api/models/select", json={"model_id": "anthropic/claude-3-haiku"})

    assert resp.json() == {
        "success": True,
        "model_id": "anthropic/claude-3-haiku",
        "key_source": "server",
    }
    assert container.active_model == "anthropic/claude-3-haiku"

    await client.post("/api/intent", json={"intent": "create a login function"})
    assert {p["model"] for p in fake_openrouter.payloads()} == {"anthropic/claude-3-haiku"}


@pytest.mark.asyncio
async def test_model_select_with_client_key_does_not_persist(
        client: httpx.AsyncClient,
        container: App,
) -> None:
    resp = await client.post(
        "/api/models/select",
        json={"model_id": "x/other", "api_key": "sk-client"},
    )

    assert resp.json()["key_source"] == "client"
    assert container.active_model == "openai/gpt-3.5-turbo"


@pytest.mark.asyncio
async def test_model_select_validation_and_missing_server_key(mock_http: httpx.AsyncClient) -> None:
    container = _container(mock_http, OPENROUTER_API_KEY=None)
    async with await _api_client(container) as api:
        empty = await api.post("/api/models/select", json={"model_id": ""})
        unavailable = await api.post("/api/models/select", json={"model_id": "x/y"})

    assert empty.status_code == 400
    assert unavailable.status_code == 503
    assert unavailable.json()["success"] is False


@pytest.mark.asyncio
async def test_semantics_query(client: httpx.AsyncClient, container: App) -> None:
    container.semantic_model.add_entity(Entity(id="func-login", type="Function", name="Login"))

    resp = await client.post("/api/semantics", json={"query": "where is login"})

    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["results"]] == ["func-login"]


@pytest.mark.asyncio
async def test_codegen_null_content_returns_placeholders(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    def _route(request: httpx.Request) -> httpx.Response:
        content = None if b"code generation" in request.content else '{"type": "Create"}'
        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": content}}]},
        )

    fake_openrouter.override = _route
    resp = await client.post("/api/intent", json={"intent": "create a login function"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["generatedCode"] == ""
    assert body["ast"] == "// AST representation not available"
    assert body["semantics"] == "// Semantic model not available"


@pytest.mark.asyncio
async def test_non_finite_json_section_is_kept_raw(
        client: httpx.AsyncClient,
        fake_openrouter: FakeOpenRouter,
) -> None:
    fake_openrouter.codegen_reply = "===CODE===\nx := 1\n===AST===\nInfinity\n===SEMANTICS===\nNaN"

    body = (await client.post("/api/intent", json={"intent": "create x"})).json()

    assert body["ast"] == "Infinity"
    assert body["semantics"] == "NaN"


@pytest.mark.asyncio
async def test_shutdown_cancels_models_warmup(caplog: pytest.LogCaptureFixture) -> None:
    started = asyncio.Event()

    async def _slow_models(_request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(3600)
        return httpx.Response(200, json={"data": []})

    http = httpx.AsyncClient(transport=httpx.MockTransport(_slow_models))
    container = _container(http)
    api = create_api(container=container)

    async with api.router.lifespan_context(api):
        await started.wait()

    assert container.models_cache.models == []
    assert http.is_closed
    assert "background models refresh failed" not in caplog.text
