"""Pytest configuration.

The repository uses a flat `src/` layout. This conftest ensures tests can import from the `src.*`
namespace when running `pytest` without installing the package, and provides a fake OpenRouter
backend built on `httpx.MockTransport`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

# Ensure `import src...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.config.settings import Settings  # noqa: E402

SECTIONED_REPLY = (
    "===CODE===\n"
    "func Login(user, pass string) bool { return user != \"\" }\n"
    "===AST===\n"
    '{"type": "Program", "body": []}\n'
    "===SEMANTICS===\n"
    '{"entities": [{"name": "Login"}], "relations": []}'
)


def chat_body(content: str) -> dict[str, Any]:
    return {
        "id": "gen-1",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


class FakeOpenRouter:
    """Records requests and answers them from per-path handlers."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.parse_reply = '{"type": "Create", "target": "Function"}'
        self.codegen_reply = SECTIONED_REPLY
        self.models: list[dict[str, Any]] = [
            {"id": "openai/gpt-3.5-turbo", "name": "GPT-3.5 Turbo", "context_length": 16385},
            {"id": "anthropic/claude-3-haiku", "name": "Claude 3 Haiku"},
        ]
        self.override: Callable[[httpx.Request], httpx.Response] | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.override is not None:
            return self.override(request)

        if request.url.path.endswith("/models"):
            return httpx.Response(200, json={"data": self.models})

        if request.url.path.endswith("/chat/completions"):
            payload = json.loads(request.content)
            system = payload["messages"][0]["content"]
            if "intent parsing" in system:
                return httpx.Response(200, json=chat_body(self.parse_reply))
            return httpx.Response(200, json=chat_body(self.codegen_reply))

        return httpx.Response(404, text="not found")

    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.content]


@pytest.fixture
def fake_openrouter() -> FakeOpenRouter:
    return FakeOpenRouter()


@pytest.fixture
def mock_http(fake_openrouter: FakeOpenRouter) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_openrouter))


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "OPENROUTER_API_KEY": "sk-or-test",
        "OPENROUTER_API_BASE": "https://openrouter.test/api/v1",
        "WEB_DIR": str(REPO_ROOT / "does-not-exist"),
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
