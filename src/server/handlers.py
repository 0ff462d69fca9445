"""FastAPI route handlers for the intent and model-selection API.

Every failure is per-request: handlers map domain errors to HTTP statuses and never let an
exception take the process down.
"""

from __future__ import annotations

import logging
from time import monotonic
from typing import Any

from fastapi import Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.app import App
from src.intent.processor import IntentProcessingError, IntentTimeoutError, bounded
from src.intent.results import to_api_response
from src.llm.errors import LLMError, MissingCredentialError

logger = logging.getLogger(__name__)


def get_container(request: Request) -> App:
    return request.app.state.container


class IntentRequest(BaseModel):
    intent: str
    model_id: str | None = None
    api_key: str | None = None


class ModelsRequest(BaseModel):
    api_key: str | None = None


class ModelSelectRequest(BaseModel):
    model_id: str = ""
    api_key: str | None = None


class SemanticsRequest(BaseModel):
    query: str = ""


async def handle_intent(body: IntentRequest, app: App = Depends(get_container)) -> dict[str, Any]:
    """Parse and execute an intent, returning generated code with its AST and semantics."""

    started = monotonic()
    if not body.intent.strip():
        raise HTTPException(status_code=400, detail="Please enter a development intent")

    processor = app.processor(api_key=body.api_key, model=body.model_id or None)
    settings = app.settings

    try:
        intent = await bounded(
            processor.parse_intent(body.intent),
            stage="parsing",
            timeout_s=settings.parse_timeout_s,
        )
    except IntentTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except IntentProcessingError as exc:
        logger.info("intent parse failed reason=%s", exc)
        raise HTTPException(status_code=400, detail=f"Failed to parse intent: {exc}") from exc

    try:
        result = await bounded(
            processor.execute_intent(intent),
            stage="execution",
            timeout_s=settings.execute_timeout_s,
        )
    except IntentTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except IntentProcessingError as exc:
        logger.info("intent execution failed reason=%s", exc)
        raise HTTPException(status_code=500, detail=f"Failed to execute intent: {exc}") from exc
    except LLMError as exc:
        logger.warning("intent execution failed upstream: %s", exc)
        raise HTTPException(status_code=502, detail=f"Failed to execute intent: {exc}") from exc

    latency_ms = int((monotonic() - started) * 1000)
    logger.info(
        "handled intent type=%s result=%s llm=%s latency_ms=%d",
        intent.type,
        result.kind,
        processor.llm_client is not None,
        latency_ms,
    )
    return to_api_response(result, body.intent)


async def _list_models(app: App, api_key: str | None, refresh: bool) -> dict[str, Any]:
    try:
        client = app.llm_client(api_key=api_key, timeout_s=app.settings.models_fetch_timeout_s)
    except MissingCredentialError as exc:
        raise HTTPException(status_code=401, detail="API key is required to fetch models") from exc

    if refresh:
        app.models_cache.invalidate()

    try:
        models = await app.models_cache.get(client.list_models)
    except LLMError as exc:
        logger.warning("fetching models failed: %s", exc)
        raise HTTPException(status_code=500, detail=f"Failed to fetch models: {exc}") from exc

    return {"data": [model.model_dump(mode="json") for model in models]}


async def list_models(refresh: bool = False, app: App = Depends(get_container)) -> dict[str, Any]:
    """List available models using the server key."""

    return await _list_models(app, None, refresh)


async def list_models_with_key(
        body: ModelsRequest,
        refresh: bool = False,
        app: App = Depends(get_container),
) -> dict[str, Any]:
    """List available models using a client-provided key (falls back to the server key)."""

    return await _list_models(app, body.api_key, refresh)


async def select_model(
        body: ModelSelectRequest,
        app: App = Depends(get_container),
) -> dict[str, Any] | JSONResponse:
    """Select the model used by subsequent intents."""

    model_id = body.model_id.strip()
    if not model_id:
        raise HTTPException(status_code=400, detail="Model ID is required")

    if body.api_key:
        # Client-held keys are never stored server-side, so the selection stays with the client.
        return {
            "success": True,
            "model_id": model_id,
            "key_source": "client",
            "message": "Using client-provided API key",
        }

    if not app.settings.has_api_key:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "error": "LLM client not initialized. Please check your API key.",
                "message": "Model selection will only work locally.",
            },
        )

    app.active_model = model_id
    logger.info("model set to %s", model_id)
    return {"success": True, "model_id": model_id, "key_source": "server"}


async def query_semantics(
        body: SemanticsRequest,
        app: App = Depends(get_container),
) -> dict[str, Any]:
    """Query the semantic model by free text."""

    entities, _relations = app.semantic_model.query_by_intent(body.query)
    return {
        "status": "success",
        "message": "Semantic query processed",
        "results": [entity.model_dump(mode="json") for entity in entities],
    }


async def health() -> dict[str, str]:
    return {"status": "ok"}
