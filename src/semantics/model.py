"""In-memory semantic model of code entities and their relations.

The model is a plain registry: there is no inference or graph reasoning. Queries match entity
names as words of the intent text and return the relations touching the matched entities.
"""

from __future__ import annotations

import re
import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_WORD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class Entity(BaseModel):
    """A semantic entity (function, class, package, ...)."""

    model_config = ConfigDict(extra="forbid")

    id: str
    type: str
    name: str
    description: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)


class Relation(BaseModel):
    """A directed relationship between two entities (Calls, Contains, Uses, ...)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str
    type: str
    from_id: str = Field(alias="fromID")
    to_id: str = Field(alias="toID")
    metadata: dict[str, Any] = Field(default_factory=dict)


class SemanticModel:
    """Thread-safe registry of entities and relations."""

    def __init__(self) -> None:
        self._entities: dict[str, Entity] = {}
        self._relations: list[Relation] = []
        self._lock = threading.RLock()

    def add_entity(self, entity: Entity) -> None:
        with self._lock:
            self._entities[entity.id] = entity

    def get_entity(self, entity_id: str) -> Entity | None:
        with self._lock:
            return self._entities.get(entity_id)

    def add_relation(self, relation: Relation) -> None:
        """Register a relation; both endpoints must already exist.

        Raises:
            KeyError: If either endpoint is unknown.
        """

        with self._lock:
            for entity_id in (relation.from_id, relation.to_id):
                if entity_id not in self._entities:
                    raise KeyError(f"unknown entity: {entity_id}")
            self._relations.append(relation)

    def query_by_intent(self, intent: str) -> tuple[list[Entity], list[Relation]]:
        """Find entities whose name appears as a word of `intent` (case-insensitive)."""

        words = {word.lower() for word in _WORD_RE.findall(intent)}
        with self._lock:
            entities = [e for e in self._entities.values() if e.name.lower() in words]
            ids = {e.id for e in entities}
            relations = [r for r in self._relations if r.from_id in ids or r.to_id in ids]
        return entities, relations

    def generate_entities_from_intent(self, intent: str) -> list[Entity]:
        """Derive new entities from an intent.

        Without an LLM there is nothing to derive from free text, so this returns no entities.
        """

        return []
