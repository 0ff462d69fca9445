"""Result normalization and rendering.

`normalize_result` coerces a result of unknown shape into a flat `dict[str, str]` for display.
`render_panels` implements the code/AST/semantics display with its fallbacks, and
`to_api_response` builds the JSON body of the HTTP intent endpoint.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic_core import PydanticSerializationError, to_jsonable_python

from src.intent.schema import SectionedText, StructuredEntities

logger = logging.getLogger(__name__)

NO_CODE_PANEL = "// No code was generated for this intent"
NO_AST_PANEL = "// No AST representation was generated"
NO_SEMANTICS_PANEL = "// No semantic model was generated"
NO_RESULT_PANEL = "// No result was returned from the model"
RAW_OUTPUT_HEADER = "// Result in unexpected format. Raw output:\n\n"

NO_CODE_RESPONSE = "// No code was generated"


def _coerce_values(mapping: Mapping[Any, Any]) -> dict[str, str] | None:
    result: dict[str, str] = {}
    for key, value in mapping.items():
        if isinstance(value, str):
            result[str(key)] = value
            continue
        try:
            result[str(key)] = json.dumps(to_jsonable_python(value))
        except (PydanticSerializationError, TypeError, ValueError):
            return None
    return result


def normalize_result(value: Any) -> tuple[dict[str, str], bool]:
    """Coerce `value` into a flat string-keyed map of strings.

    Tried in order:
        1) a mapping whose keys and values are all strings is returned as-is (copied);
        2) other mappings: strings pass through, other values are JSON-encoded;
        3) anything else (pydantic model, dataclass, ...) is round-tripped through JSON and, if it
           becomes an object, coerced as in 2.

    Returns:
        `(mapping, True)` on success, `({}, False)` if the value cannot be represented.
    """

    if isinstance(value, Mapping):
        if all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
            return dict(value), True
        coerced = _coerce_values(value)
        if coerced is None:
            return {}, False
        return coerced, True

    try:
        generic = json.loads(json.dumps(to_jsonable_python(value, exclude_none=True)))
    except (PydanticSerializationError, TypeError, ValueError):
        return {}, False

    if not isinstance(generic, dict):
        return {}, False

    coerced = _coerce_values(generic)
    if coerced is None:
        return {}, False
    return coerced, True


def render_raw(value: Any) -> str:
    """Best-effort display: pretty JSON if possible, else `str(value)`."""

    try:
        return json.dumps(to_jsonable_python(value), indent=2)
    except (PydanticSerializationError, TypeError, ValueError):
        return str(value)


@dataclass(frozen=True)
class Panels:
    """Text shown for one processed intent."""

    code: str
    ast: str
    semantics: str
    status: str


def render_panels(result: Any) -> Panels:
    """Turn an intent result into the three display panels."""

    if result is None:
        return Panels(NO_RESULT_PANEL, NO_AST_PANEL, NO_SEMANTICS_PANEL, "No result")

    flat, ok = normalize_result(result)
    if not ok:
        logger.warning("unexpected result format: %s", type(result).__name__)
        return Panels(
            RAW_OUTPUT_HEADER + render_raw(result),
            NO_AST_PANEL,
            NO_SEMANTICS_PANEL,
            "Intent processed, but result format is unexpected",
        )

    return Panels(
        code=flat.get("code") or NO_CODE_PANEL,
        ast=flat.get("ast") or NO_AST_PANEL,
        semantics=flat.get("semantics") or NO_SEMANTICS_PANEL,
        status="Intent processed successfully",
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name}")


def _decode_or_raw(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return text


def _empty_program() -> dict[str, Any]:
    return {"type": "Program", "body": []}


def to_api_response(result: SectionedText | StructuredEntities, intent: str) -> dict[str, Any]:
    """Build the `/api/intent` response body.

    Section text that is valid JSON is embedded as JSON; otherwise the raw string is returned.
    """

    if isinstance(result, StructuredEntities):
        return {
            "intent": intent,
            "generatedCode": NO_CODE_RESPONSE,
            "ast": _empty_program(),
            "semantics": {"entities": result.entities, "relations": result.relations},
        }

    return {
        "intent": intent,
        "generatedCode": result.code if result.code is not None else NO_CODE_RESPONSE,
        "ast": _decode_or_raw(result.ast) if result.ast is not None else _empty_program(),
        "semantics": (
            _decode_or_raw(result.semantics)
            if result.semantics is not None
            else {"entities": [], "relations": []}
        ),
    }
