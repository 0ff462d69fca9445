"""Errors raised by the OpenRouter transport.

Callers catch `LLMError` to handle every transport failure at once, and `MissingCredentialError`
separately to render "enter an API key" guidance instead of a generic failure.
"""

from __future__ import annotations


class LLMError(RuntimeError):
    """Base class for all completion/model-listing failures."""


class MissingCredentialError(LLMError):
    """Raised when no API key is available for an OpenRouter call."""


class LLMTransportError(LLMError):
    """Raised on DNS/connect/read failures and client-side timeouts."""


class LLMProtocolError(LLMError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str, body: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"API error: {status_code} {reason} - {body}")


class LLMDecodeError(LLMError):
    """Raised when the response body is not the JSON shape we expect."""
