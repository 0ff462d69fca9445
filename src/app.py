"""Application composition root.

This module wires together configuration, the shared HTTP client, the semantic model and the
models cache for the HTTP service and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from src.config.settings import Settings
from src.intent.processor import IntentProcessor
from src.llm.client import OpenRouterClient, client_from_settings
from src.llm.errors import MissingCredentialError
from src.llm.models_cache import ModelsCache
from src.semantics.model import SemanticModel


@dataclass
class App:
    """Shared application dependencies for request handlers and CLI commands.

    `active_model` is the model selected through `/api/models/select`; it outlives single requests.
    """

    settings: Settings
    http: httpx.AsyncClient
    semantic_model: SemanticModel
    models_cache: ModelsCache
    active_model: str = field(default="")

    def llm_client(
            self,
            *,
            api_key: str | None = None,
            model: str | None = None,
            timeout_s: float | None = None,
    ) -> OpenRouterClient:
        """Build a client on the shared connection pool.

        Raises:
            MissingCredentialError: If neither `api_key` nor the server key is set.
        """

        return client_from_settings(
            self.settings,
            api_key=api_key,
            model=model or self.active_model,
            timeout_s=timeout_s,
            http_client=self.http,
        )

    def processor(self, *, api_key: str | None = None, model: str | None = None) -> IntentProcessor:
        """Build an intent processor; without any API key it runs in keyword mode."""

        try:
            client = self.llm_client(api_key=api_key, model=model)
        except MissingCredentialError:
            client = None
        return IntentProcessor(self.semantic_model, client)

    async def aclose(self) -> None:
        await self.http.aclose()


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        The returned container owns an open `httpx.AsyncClient`. Call `await app.aclose()` at
        shutdown.
    """

    return App(
        settings=settings,
        http=httpx.AsyncClient(),
        semantic_model=SemanticModel(),
        models_cache=ModelsCache(ttl_s=settings.models_cache_ttl_s),
        active_model=settings.openrouter_default_model,
    )
