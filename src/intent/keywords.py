"""Keyword and substring classification of intents.

Two deterministic classifiers live here:
    - `classify_intent`: keyword rules over the raw intent text, used when no LLM is configured or
      the LLM call fails.
    - `classify_llm_reply`: substring checks over the LLM's JSON-ish reply. The reply is not parsed
      as JSON; only exact `"type": "X"` / `"target": "Y"` spellings are recognised.
"""

from __future__ import annotations

from src.intent.schema import IntentTarget, IntentType

# Order matters: the first family whose keyword occurs wins.
TYPE_KEYWORDS: tuple[tuple[IntentType, tuple[str, ...]], ...] = (
    (IntentType.create, ("create", "make")),
    (IntentType.modify, ("modify", "change")),
    (IntentType.delete, ("delete", "remove")),
    (IntentType.query, ("query", "find")),
)

CREATE_TARGET_KEYWORDS: tuple[tuple[IntentTarget, str], ...] = (
    (IntentTarget.function, "function"),
    (IntentTarget.klass, "class"),
)

REPLY_TYPES: tuple[IntentType, ...] = (
    IntentType.create,
    IntentType.modify,
    IntentType.delete,
    IntentType.query,
)

REPLY_TARGETS: tuple[IntentTarget, ...] = (
    IntentTarget.function,
    IntentTarget.klass,
    IntentTarget.module,
)


def classify_intent(raw: str) -> tuple[IntentType | None, IntentTarget | None]:
    """Classify raw intent text by keyword.

    A target is only derived for create intents.
    """

    text = raw.lower()
    for intent_type, keywords in TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            target = None
            if intent_type == IntentType.create:
                target = next(
                    (t for t, keyword in CREATE_TARGET_KEYWORDS if keyword in text),
                    None,
                )
            return intent_type, target
    return None, None


def _has_field(text: str, field: str, value: str) -> bool:
    return f'"{field}": "{value}"' in text or f'"{field}":"{value}"' in text


def classify_llm_reply(text: str) -> tuple[IntentType | None, IntentTarget | None]:
    """Recover type/target from an LLM reply by exact substring match."""

    intent_type = next((t for t in REPLY_TYPES if _has_field(text, "type", t.value)), None)
    target = next((t for t in REPLY_TARGETS if _has_field(text, "target", t.value)), None)
    return intent_type, target
