"""Wire models for the OpenRouter (OpenAI-compatible) API.

Response models ignore unknown fields: the provider adds keys over time and we only depend on a
small subset of them.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """A single chat message sent to the model."""

    model_config = ConfigDict(extra="ignore")

    role: Role
    content: str


class ChatReply(BaseModel):
    """Assistant message in a completion response; `content` may be null (e.g. filtered replies)."""

    model_config = ConfigDict(extra="ignore")

    role: str = "assistant"
    content: str | None = None


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    model: str
    messages: list[ChatMessage]
    max_tokens: int | None = None
    temperature: float | None = None


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    message: ChatReply
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    choices: list[ChatChoice] = Field(default_factory=list)

    def first_content(self) -> str | None:
        """Return the content of the first choice, or `None` when the model returned no choices.

        A choice whose content is null yields an empty string.
        """

        if not self.choices:
            return None
        return self.choices[0].message.content or ""


class CompletionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    model: str
    prompt: str
    max_tokens: int | None = None
    temperature: float | None = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str = ""
    index: int = 0
    finish_reason: str | None = None


class CompletionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    choices: list[CompletionChoice] = Field(default_factory=list)


class ModelArchitecture(BaseModel):
    model_config = ConfigDict(extra="ignore")

    input_modalities: list[str] = Field(default_factory=list)
    output_modalities: list[str] = Field(default_factory=list)
    tokenizer: str = ""


class ModelPricing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: str = ""
    completion: str = ""
    image: str = ""
    request: str = ""


class ModelInfo(BaseModel):
    """An entry of the `/models` listing."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    created: int = 0
    description: str = ""
    context_length: int | None = None
    architecture: ModelArchitecture = Field(default_factory=ModelArchitecture)
    pricing: ModelPricing = Field(default_factory=ModelPricing)
    per_request_limits: dict[str, Any] | None = None


class ModelsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[ModelInfo] = Field(default_factory=list)
