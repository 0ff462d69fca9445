"""HTTP router composition."""

from __future__ import annotations

from fastapi import APIRouter

from src.server.handlers import (
    handle_intent,
    health,
    list_models,
    list_models_with_key,
    query_semantics,
    select_model,
)

router = APIRouter()
router.add_api_route("/api/intent", handle_intent, methods=["POST"])
router.add_api_route("/api/models", list_models, methods=["GET"])
router.add_api_route("/api/models", list_models_with_key, methods=["POST"])
router.add_api_route("/api/models/select", select_model, methods=["POST"], response_model=None)
router.add_api_route("/api/semantics", query_semantics, methods=["POST"])
router.add_api_route("/health", health, methods=["GET"])
