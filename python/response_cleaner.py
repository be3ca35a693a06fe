"""Turn free-form model output into text that can be inserted at the cursor."""

from __future__ import annotations

import re
from typing import List, Optional

_FENCED_BLOCK = re.compile(r"```(?:\w+)?\n([\s\S]*?)```")
_QUOTES = re.compile(r"['\"`]")
_TRAILING_SEMICOLON = re.compile(r";\s*$")


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def _indent_unit(indentation: str) -> str:
    return "\t" if "\t" in indentation else "    "


def extract_code_block(text: str) -> str:
    """Body of the first fenced code block, or the text itself when there is none."""
    match = _FENCED_BLOCK.search(text)
    return match.group(1) if match else text


def normalize_indentation(text: str, indentation: str) -> str:
    """Re-base the model's own indentation onto the caller's, dropping blank and fence lines."""
    lines = text.split("\n")
    widths = [_indent_width(line) for line in lines if line.strip()]
    baseline = min(widths, default=0)

    kept: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("```"):
            continue
        relative = " " * max(0, _indent_width(line) - baseline)
        kept.append(f"{indentation}{relative}{stripped}")
    return "\n".join(kept)


def clean(raw_text: str, line_prefix: str, indentation: Optional[str] = None) -> str:
    """Strip fences, normalize indentation and apply insertion-point specific fixes.

    The context fix-ups are tried in order and only the first applies: a prefix
    ending in a quote strips quotes, a prefix ending in ``{`` indents the lines
    after the first one level deeper, and a prefix ending in ``=`` drops one
    trailing semicolon.
    """
    if not raw_text.strip():
        return ""

    if indentation is None:
        indentation = line_prefix[: _indent_width(line_prefix)]

    cleaned = normalize_indentation(extract_code_block(raw_text), indentation)

    trimmed_prefix = line_prefix.strip()
    if line_prefix.endswith(("'", '"', "`")):
        cleaned = _QUOTES.sub("", cleaned)
    elif trimmed_prefix.endswith("{"):
        unit = _indent_unit(indentation)
        lines = cleaned.split("\n")
        cleaned = "\n".join(
            [lines[0]] + [f"{indentation}{unit}{line[len(indentation):]}" for line in lines[1:]]
        )
    elif trimmed_prefix.endswith("="):
        cleaned = _TRAILING_SEMICOLON.sub("", cleaned, count=1)

    return cleaned


def get_unique_completion(completion: str, line_prefix: str) -> str:
    """Drop an echoed copy of what the user already typed from the front of the completion."""
    if not completion.strip():
        return ""

    prefix = line_prefix.strip()
    if prefix and completion.startswith(prefix):
        return completion[len(prefix) :].strip()
    return completion
