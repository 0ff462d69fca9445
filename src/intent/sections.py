"""Split a code-generation reply into its `code` / `ast` / `semantics` sections.

The model is asked (see `src.intent.prompts`) to answer in exactly this layout::

    ===CODE===
    ...
    ===AST===
    ...
    ===SEMANTICS===
    ...

Matching is a literal, case-sensitive substring search with no escaping. A marker literal that
appears inside the generated code itself (for example in a comment) truncates that section early.
This is a known limitation of the reply format and is kept as-is: callers rely on the exact
slicing behavior below.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

CODE_MARKER = "===CODE==="
AST_MARKER = "===AST==="
SEMANTICS_MARKER = "===SEMANTICS==="

AST_PLACEHOLDER = "// AST representation not available"
SEMANTICS_PLACEHOLDER = "// Semantic model not available"


def _slice_after(text: str, marker: str, end_marker: str | None) -> str | None:
    """Return the trimmed text after the first `marker`, up to the next `end_marker` after it.

    Returns `None` if `marker` does not occur. A missing `end_marker` extends the slice to the end
    of the text.
    """

    start = text.find(marker)
    if start == -1:
        return None
    start += len(marker)

    if end_marker is not None:
        end = text.find(end_marker, start)
        if end != -1:
            return text[start:end].strip()
    return text[start:].strip()


def extract_sections(text: str) -> dict[str, str]:
    """Extract the marker-delimited sections of a model reply.

    Each marker is searched from the beginning of the full text, independently of the others, so an
    `===AST===` section is still recovered when `===CODE===` is missing. Keys are present only for
    markers that were found.

    If every extracted section is empty (which includes the case where no marker occurs at all),
    the whole reply becomes `code` and `ast`/`semantics` get fixed placeholder strings.
    """

    sections: dict[str, str] = {}

    code = _slice_after(text, CODE_MARKER, AST_MARKER)
    if code is not None:
        sections["code"] = code

    ast = _slice_after(text, AST_MARKER, SEMANTICS_MARKER)
    if ast is not None:
        sections["ast"] = ast

    semantics = _slice_after(text, SEMANTICS_MARKER, None)
    if semantics is not None:
        sections["semantics"] = semantics

    logger.info(
        "extracted sections code=%d ast=%d semantics=%d",
        len(sections.get("code", "")),
        len(sections.get("ast", "")),
        len(sections.get("semantics", "")),
    )

    if not any(sections.get(key) for key in ("code", "ast", "semantics")):
        logger.info("reply has no section markers, using entire reply as code")
        return {
            "code": text.strip(),
            "ast": AST_PLACEHOLDER,
            "semantics": SEMANTICS_PLACEHOLDER,
        }

    return sections
