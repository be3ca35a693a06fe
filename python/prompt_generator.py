"""Instruction prompt for a single cursor-local completion request."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from context_analyzer import ContextAnalysis, ContextClassification, ContextWindow

SYSTEM_PROMPT = (
    "You are a code completion assistant like GitHub Copilot. "
    "RETURN ONLY THE RAW CODE COMPLETION. NO <THINK> BLOCKS, NO EXPLANATIONS, NO COMMENTS, "
    "NO MARKDOWN, NO PROSE. JUST THE EXACT CODE TO INSERT AT THE CURSOR."
)

RETURN_ONLY_CODE = (
    "RETURN ONLY THE CODE TO INSERT. NO EXPLANATIONS, NO <THINK> BLOCKS, NO COMMENTS, "
    "NO MARKDOWN FENCES. JUST THE RAW CODE."
)
STRING_DIRECTIVE = "Cursor is inside a string literal. Return ONLY the string content, NO quotes."
BRACE_DIRECTIVE = "Cursor is inside an object/block. Return exactly ONE indented property/statement."
EQUALS_DIRECTIVE = "Cursor is after an assignment. Return a value or expression."

_AFTER_EQUALS = re.compile(r"=\s*$")


def context_directive(classification: ContextClassification, line_prefix: str) -> Optional[str]:
    """Pick at most one extra instruction; the first matching rule wins."""
    if classification.inside_string:
        return STRING_DIRECTIVE
    if line_prefix.strip().endswith("{"):
        return BRACE_DIRECTIVE
    if _AFTER_EQUALS.search(line_prefix):
        return EQUALS_DIRECTIVE
    return None


def build(
    window: ContextWindow,
    classification: ContextClassification,
    scope_identifiers: Sequence[str],
    line_prefix: str,
    prev_line: str,
    language_id: str,
    indentation: str,
    hints: Optional[Sequence[str]] = None,
) -> str:
    lines: List[str] = [
        f"Complete this {language_id or 'plaintext'} code:",
        f'Current line: "{line_prefix}"',
        f'Previous line: "{prev_line}"',
        f"Indentation: {len(indentation)} spaces",
        f"Variables in scope: {', '.join(scope_identifiers) or 'none'}",
        "Context:",
        window.render(),
    ]
    if hints:
        lines.append("Hints:")
        lines.extend(f"- {hint}" for hint in hints)
    lines.append(RETURN_ONLY_CODE)

    directive = context_directive(classification, line_prefix)
    if directive:
        lines.append(directive)
    return "\n".join(lines)


def build_from_analysis(analysis: ContextAnalysis, language_id: str, hints: Optional[Sequence[str]] = None) -> str:
    """Convenience wrapper over :func:`build` for a finished analysis."""
    return build(
        window=analysis.window,
        classification=analysis.classification,
        scope_identifiers=analysis.scope_identifiers,
        line_prefix=analysis.line_prefix,
        prev_line=analysis.prev_line,
        language_id=language_id,
        indentation=analysis.indentation,
        hints=hints,
    )
