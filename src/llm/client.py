"""Async OpenRouter client (chat completions, legacy completions, model listing).

The client is async on purpose: when a caller stops waiting (for example through
`asyncio.wait_for`), the awaiting task is cancelled and httpx aborts the in-flight request, so an
abandoned call releases its connection immediately instead of running to completion in the
background.

No retries are performed; every failure is raised to the immediate caller.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Sequence, TypeVar

import httpx
from pydantic import BaseModel

from src.config.settings import DEFAULT_API_BASE, DEFAULT_MODEL, Settings
from src.llm.errors import (
    LLMDecodeError,
    LLMProtocolError,
    LLMTransportError,
    MissingCredentialError,
)
from src.llm.schema import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    ModelInfo,
    ModelsResponse,
)

logger = logging.getLogger(__name__)

_ResponseT = TypeVar("_ResponseT", bound=BaseModel)


class OpenRouterClient:
    """Thin wrapper around the OpenRouter REST API.

    Args:
        api_key: Bearer credential. Must be non-empty.
        default_model: Model used when a call does not name one.
        api_base: API root, e.g. `https://openrouter.ai/api/v1`.
        timeout_s: Per-request httpx timeout.
        http_client: Optional shared `httpx.AsyncClient`. When given, the caller owns its
            lifecycle and `aclose()` leaves it open.
    """

    def __init__(
            self,
            api_key: str,
            *,
            default_model: str = DEFAULT_MODEL,
            api_base: str = DEFAULT_API_BASE,
            timeout_s: float = 60.0,
            max_tokens: int = 1000,
            temperature: float = 0.7,
            http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise MissingCredentialError("OPENROUTER_API_KEY is required")
        if not default_model:
            raise ValueError("default_model must not be empty")

        self._api_key = api_key
        self._default_model = default_model
        self._api_base = api_base.rstrip("/")
        self._timeout = httpx.Timeout(timeout_s)
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()

    @property
    def default_model(self) -> str:
        return self._default_model

    def set_model(self, model_id: str) -> None:
        """Change the model used by subsequent calls."""

        if not model_id:
            raise ValueError("model_id must not be empty")
        self._default_model = model_id

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
            self,
            method: str,
            path: str,
            response_model: type[_ResponseT],
            *,
            payload: dict[str, Any] | None = None,
    ) -> _ResponseT:
        url = f"{self._api_base}{path}"
        try:
            resp = await self._http.request(
                method,
                url,
                headers=self._headers(),
                json=payload,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise LLMTransportError(f"request to {url} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMTransportError(f"error sending request to {url}: {exc}") from exc

        if not resp.is_success:
            raise LLMProtocolError(resp.status_code, resp.reason_phrase, resp.text)

        try:
            return response_model.model_validate(resp.json())
        except ValueError as exc:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
            raise LLMDecodeError(f"error unmarshaling response: {exc}") from exc

    async def chat_completion(
            self,
            messages: Sequence[ChatMessage],
            *,
            model: str | None = None,
            max_tokens: int | None = None,
            temperature: float | None = None,
    ) -> ChatCompletionResponse:
        """Call `POST /chat/completions`."""

        request = ChatCompletionRequest(
            model=model or self._default_model,
            messages=list(messages),
            max_tokens=max_tokens if max_tokens is not None else self._max_tokens,
            temperature=temperature if temperature is not None else self._temperature,
        )
        logger.debug("chat completion model=%s messages=%d", request.model, len(messages))
        return await self._request(
            "POST",
            "/chat/completions",
            ChatCompletionResponse,
            payload=request.model_dump(exclude_none=True),
        )

    async def completion(
            self,
            prompt: str,
            *,
            model: str | None = None,
            max_tokens: int | None = None,
            temperature: float | None = None,
    ) -> CompletionResponse:
        """Call the legacy text `POST /completions` endpoint."""

        request = CompletionRequest(
            model=model or self._default_model,
            prompt=prompt,
            max_tokens=max_tokens if max_tokens is not None else self._max_tokens,
            temperature=temperature if temperature is not None else self._temperature,
        )
        return await self._request(
            "POST",
            "/completions",
            CompletionResponse,
            payload=request.model_dump(exclude_none=True),
        )

    async def list_models(self) -> list[ModelInfo]:
        """Call `GET /models` and return its `data` entries."""

        response = await self._request("GET", "/models", ModelsResponse)
        return response.data

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> OpenRouterClient:
        return self

    async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc: BaseException | None,
            tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def client_from_settings(
        settings: Settings,
        *,
        api_key: str | None = None,
        model: str | None = None,
        timeout_s: float | None = None,
        http_client: httpx.AsyncClient | None = None,
) -> OpenRouterClient:
    """Build a client from settings, preferring a caller-supplied key over the server key.

    Raises:
        MissingCredentialError: If neither key is available.
    """

    key = (api_key or "").strip() or settings.openrouter_api_key
    if not key:
        raise MissingCredentialError(
            "An OpenRouter API key is required: set OPENROUTER_API_KEY or pass api_key"
        )
    return OpenRouterClient(
        key,
        default_model=model or settings.openrouter_default_model,
        api_base=settings.openrouter_api_base,
        timeout_s=timeout_s if timeout_s is not None else settings.execute_timeout_s,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
        http_client=http_client,
    )
