"""Chat prompts for intent parsing and code generation.

System prompts live in Markdown files next to this module; user messages are built here. The reply
format requested from the model is advisory: nothing enforces it, and `src.intent.sections`
degrades gracefully when the model ignores it.
"""

from __future__ import annotations

from pathlib import Path

from src.intent.sections import AST_MARKER, CODE_MARKER, SEMANTICS_MARKER
from src.llm.schema import ChatMessage

DEFAULT_LANGUAGE = "Go"

_CODEGEN_USER_TEMPLATE = (
    'Generate {language} code based on the following intent:\n'
    'Intent: "{intent}"\n'
    "\n"
    "The code should be well-structured, follow best practices, and include comments.\n"
    "\n"
    "Your response MUST use exactly this format with these exact section markers:\n"
    f"{CODE_MARKER}\n"
    "(generated code here)\n"
    f"{AST_MARKER}\n"
    "(JSON representation of AST)\n"
    f"{SEMANTICS_MARKER}\n"
    "(JSON representation of semantic entities and relationships)"
)

_PARSE_USER_TEMPLATE = """\
Parse this development intent and return a JSON object with type, target, constraints, and parameters:
Intent: "{intent}"

Your response should be a valid JSON object like:
{
  "type": "Create",
  "target": "Function",
  "constraints": ["Must validate input", "Must return error on failure"],
  "parameters": {
    "name": "login",
    "returnType": "bool"
  }
}"""


def _load_prompt(name: str) -> str:
    prompt_path = Path(__file__).resolve().parent / name
    return prompt_path.read_text(encoding="utf-8").strip()


def _fill(template: str, **values: str) -> str:
    # str.format would choke on the literal JSON braces in the templates.
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


def build_codegen_messages(raw_intent: str, *, language: str = DEFAULT_LANGUAGE) -> list[ChatMessage]:
    """Messages asking the model for code plus AST/semantics sections."""

    return [
        ChatMessage(role="system", content=_fill(_load_prompt("prompt_codegen_v1.md"), language=language)),
        ChatMessage(
            role="user",
            content=_fill(_CODEGEN_USER_TEMPLATE, language=language, intent=raw_intent),
        ),
    ]


def build_parse_messages(raw_intent: str) -> list[ChatMessage]:
    """Messages asking the model to classify an intent as JSON."""

    return [
        ChatMessage(role="system", content=_load_prompt("prompt_parse_v1.md")),
        ChatMessage(role="user", content=_fill(_PARSE_USER_TEMPLATE, intent=raw_intent)),
    ]
