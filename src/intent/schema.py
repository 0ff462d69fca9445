"""Intent and intent-result models (Pydantic).

An `Intent` is advisory: its `type`/`target` come from keyword or substring checks and may be
`None` when nothing matched. Results are a tagged union decided once, where the result is built,
so consumers switch on `kind` instead of probing shapes.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class IntentType(StrEnum):
    """Supported intent families."""

    create = "Create"
    modify = "Modify"
    delete = "Delete"
    query = "Query"


class IntentTarget(StrEnum):
    """Code element an intent refers to (only the recognised subset)."""

    function = "Function"
    klass = "Class"
    module = "Module"


class Intent(BaseModel):
    """A development intent expressed in natural language, plus its advisory classification."""

    model_config = ConfigDict(extra="forbid")

    raw: str
    type: IntentType | None = None
    target: IntentTarget | None = None
    constraints: list[str] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)


class SectionedText(BaseModel):
    """Code generated by the model, split into its marker-delimited sections.

    `ast`/`semantics` are `None` when the corresponding marker was absent from the reply.
    """

    model_config = ConfigDict(extra="forbid")

    kind: Literal["sectioned"] = "sectioned"
    code: str | None = None
    ast: str | None = None
    semantics: str | None = None

    @classmethod
    def from_sections(cls, sections: dict[str, str]) -> SectionedText:
        return cls(
            code=sections.get("code"),
            ast=sections.get("ast"),
            semantics=sections.get("semantics"),
        )


class StructuredEntities(BaseModel):
    """Entities/relations answered from the semantic model (no code generated)."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["entities"] = "entities"
    entities: list[dict[str, Any]] = Field(default_factory=list)
    relations: list[dict[str, Any]] = Field(default_factory=list)


IntentResult = Union[SectionedText, StructuredEntities]
