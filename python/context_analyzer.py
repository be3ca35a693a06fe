"""Line-oriented heuristics describing the code around the cursor.

Nothing here parses source code. Every signal comes from the text before the
cursor on its own line, plus short bounded scans of neighbouring lines, so
escaped quotes, string interpolation and similar constructs can fool the
predicates. That approximation is accepted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from editor_types import Position, TextDocument

MAX_CONTEXT_LINES = 1000
PREFERRED_LINES_BEFORE = 500
PREFERRED_LINES_AFTER = 100
# Share of an over-long window trimmed from the lines after the cursor.
TAIL_REDUCTION_SHARE = 0.7

TRUNCATED_BEFORE_MARKER = "// ... previous code truncated ..."
TRUNCATED_AFTER_MARKER = "// ... remaining code truncated ..."

OBJECT_SCAN_LINES = 5
SCOPE_SCAN_LINES = 30
WELL_KNOWN_NAMES = ("this", "window", "document")

_OPENERS = "{[("
_CLOSERS = "}])"
_BRACKETS = re.compile(r"[{}\[\]()]")
_QUOTE_CHARS = ("'", '"', "`")

_FUNCTION_PATTERNS = [
    re.compile(r"function\s+\w*\s*\(.*$"),  # JS/TS
    re.compile(r"def\s+\w*\s*\(.*$"),  # Python
    re.compile(r"public\s+\w+\s+\w+\s*\(.*$"),  # Java/C#
    re.compile(r"func\s+\w*\s*\(.*$"),  # Go
    re.compile(r"sub\s+\w*\s*\(.*$"),  # Perl/VB
    re.compile(r"fn\s+\w*\s*\(.*$"),  # Rust
]

_CLASS_PATTERNS = [
    re.compile(r"class\s+\w*\s*\{?$"),
    re.compile(r"class\s+\w*\s*\(.*\)\s*:?$"),
    re.compile(r"interface\s+\w*\s*\{?$"),
    re.compile(r"struct\s+\w*\s*\{?$"),
    re.compile(r"enum\s+\w*\s*\{?$"),
]

_IMPORT_PATTERNS = [
    re.compile(r"import\s+.*$"),
    re.compile(r"from\s+.*\s+import\s+.*$"),
    re.compile(r"require\s*\(.*$"),
    re.compile(r"using\s+.*$"),
    re.compile(r"#include\s+.*$"),
]

_COMMENT_PATTERNS = [
    re.compile(r"^\s*//.*$"),
    re.compile(r"^\s*#.*$"),
    re.compile(r"^\s*--.*$"),
    re.compile(r"^\s*/\*(?!\*/).*$"),
    re.compile(r"^\s*\*(?!\*/).*$"),
]

_CONTROL_PATTERNS = [
    re.compile(r"if\s*\(.*\)\s*\{?$"),
    re.compile(r"else\s*\{?$"),
    re.compile(r"else\s+if\s*\(.*\)\s*\{?$"),
    re.compile(r"for\s*\(.*\)\s*\{?$"),
    re.compile(r"while\s*\(.*\)\s*\{?$"),
    re.compile(r"switch\s*\(.*\)\s*\{?$"),
    re.compile(r"case\s+.*:$"),
    re.compile(r"try\s*\{?$"),
    re.compile(r"catch\s*\(.*\)\s*\{?$"),
    re.compile(r"finally\s*\{?$"),
]

_DECLARATION = re.compile(r"\b(?:const|let|var)\s+(\w+)\s*=")
_FUNCTION_PARAMS = re.compile(r"\b(?:function|def)\s+\w+\s*\(([^)]*)\)")


@dataclass(frozen=True)
class ContextWindow:
    """Source lines around the cursor, plus whether either end was cut off."""

    lines: Tuple[str, ...]
    start_line: int
    end_line: int
    truncated_before: bool = False
    truncated_after: bool = False

    def render(self) -> str:
        text = "\n".join(self.lines)
        if self.truncated_before:
            text = f"{TRUNCATED_BEFORE_MARKER}\n{text}"
        if self.truncated_after:
            text = f"{text}\n{TRUNCATED_AFTER_MARKER}"
        return text


@dataclass(frozen=True)
class ContextClassification:
    inside_string: bool = False
    inside_object_literal: bool = False
    inside_comment: bool = False
    inside_import: bool = False
    inside_function_decl: bool = False
    inside_class_decl: bool = False
    inside_control_structure: bool = False
    is_console_log_call: bool = False


@dataclass(frozen=True)
class ContextAnalysis:
    """Everything the prompt builder and cache key need for one request."""

    window: ContextWindow
    classification: ContextClassification
    position: Position
    scope_identifiers: List[str] = field(default_factory=list)
    context_hash: str = ""
    line_prefix: str = ""
    prev_line: str = ""
    indentation: str = ""


def line_prefix(document: TextDocument, position: Position) -> str:
    """Text before the cursor on its own line."""
    return document.line_at(position.line)[: position.character]


def leading_whitespace(text: str) -> str:
    return text[: len(text) - len(text.lstrip())]


def get_context_window(
    document: TextDocument,
    position: Position,
    max_lines: int = MAX_CONTEXT_LINES,
    lines_before: int = PREFERRED_LINES_BEFORE,
    lines_after: int = PREFERRED_LINES_AFTER,
) -> ContextWindow:
    """Select up to ``max_lines`` lines around the cursor, favouring lines above it.

    When the preferred span exceeds the cap, 70% of the excess (rounded up) is
    cut from the tail and the rest from the head.
    """
    total_lines = document.line_count
    start = max(0, position.line - lines_before)
    end = min(total_lines - 1, position.line + lines_after)

    span = end - start + 1
    if span > max_lines:
        excess = span - max_lines
        reduce_from_end = -(-excess * 7 // 10)
        reduce_from_start = excess - reduce_from_end
        start += reduce_from_start
        end -= reduce_from_end

    lines = tuple(document.line_at(index) for index in range(start, end + 1))
    return ContextWindow(
        lines=lines,
        start_line=start,
        end_line=end,
        truncated_before=start > 0,
        truncated_after=end < total_lines - 1,
    )


def _to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, remainder = divmod(value, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def context_hash(text: str) -> str:
    """Polynomial rolling hash (base 31, mod 2**32) rendered in base 36.

    Only used to key the completion cache; collisions are tolerated.
    """
    acc = 0
    for char in text:
        acc = (acc * 31 + ord(char)) & 0xFFFFFFFF
    return _to_base36(acc)


def _bracket_delta(text: str) -> int:
    depth = 0
    for match in _BRACKETS.findall(text):
        if match in _OPENERS:
            depth += 1
        elif match in _CLOSERS:
            depth -= 1
    return depth


def _unescaped_count(text: str, quote: str) -> int:
    count = 0
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == quote:
            count += 1
    return count


def is_inside_string_literal(prefix: str) -> bool:
    """Odd number of unescaped quotes of any one kind before the cursor."""
    return any(_unescaped_count(prefix, quote) % 2 for quote in _QUOTE_CHARS)


def is_inside_object_literal(document: TextDocument, position: Position) -> bool:
    prefix = line_prefix(document, position)
    if "{" in prefix:
        return _bracket_delta(prefix) > 0

    # Walk a few lines upwards looking for an unclosed bracket opened by an assignment.
    depth = _bracket_delta(prefix)
    line_no = position.line - 1
    while line_no >= 0 and line_no >= position.line - OBJECT_SCAN_LINES:
        line = document.line_at(line_no)
        depth += _bracket_delta(line)
        if "=" in line and depth > 0:
            return True
        line_no -= 1
    return False


def is_inside_console_log(prefix: str) -> bool:
    return "console.log(" in prefix and not prefix.endswith(")")


def is_inside_function_declaration(prefix: str) -> bool:
    return any(pattern.search(prefix) for pattern in _FUNCTION_PATTERNS)


def is_inside_class_declaration(prefix: str) -> bool:
    return any(pattern.search(prefix) for pattern in _CLASS_PATTERNS)


def is_inside_import_statement(prefix: str) -> bool:
    return any(pattern.search(prefix) for pattern in _IMPORT_PATTERNS)


def is_inside_comment(prefix: str) -> bool:
    return any(pattern.search(prefix) for pattern in _COMMENT_PATTERNS)


def is_inside_control_structure(prefix: str) -> bool:
    return any(pattern.search(prefix) for pattern in _CONTROL_PATTERNS)


def classify(document: TextDocument, position: Position) -> ContextClassification:
    prefix = line_prefix(document, position)
    return ContextClassification(
        inside_string=is_inside_string_literal(prefix),
        inside_object_literal=is_inside_object_literal(document, position),
        inside_comment=is_inside_comment(prefix),
        inside_import=is_inside_import_statement(prefix),
        inside_function_decl=is_inside_function_declaration(prefix),
        inside_class_decl=is_inside_class_declaration(prefix),
        inside_control_structure=is_inside_control_structure(prefix),
        is_console_log_call=is_inside_console_log(prefix),
    )


def _parameter_names(params: str) -> List[str]:
    names = []
    for param in params.split(","):
        name = param.strip().split(":")[0].split("=")[0].strip().lstrip("*")
        if name:
            names.append(name)
    return names


def find_variables_in_scope(document: TextDocument, position: Position) -> List[str]:
    """Declaration-like names from the lines above the cursor, nearest first."""
    found: List[str] = []
    first = max(0, position.line - SCOPE_SCAN_LINES + 1)
    for line_no in range(position.line, first - 1, -1):
        line = document.line_at(line_no)
        found.extend(_DECLARATION.findall(line))
        for params in _FUNCTION_PARAMS.findall(line):
            found.extend(_parameter_names(params))
    found.extend(WELL_KNOWN_NAMES)
    return list(dict.fromkeys(found))


def previous_line(document: TextDocument, position: Position) -> str:
    if position.line == 0:
        return ""
    return document.line_at(position.line - 1).strip()


def clamp_position(document: TextDocument, position: Position) -> Position:
    """Pull a stale position back inside the document."""
    line = min(position.line, max(0, document.line_count - 1))
    character = min(position.character, len(document.line_at(line)))
    if line == position.line and character == position.character:
        return position
    return Position(line, character)


def analyze(document: TextDocument, position: Position, window: Optional[ContextWindow] = None) -> ContextAnalysis:
    position = clamp_position(document, position)
    window = window or get_context_window(document, position)
    prefix = line_prefix(document, position)
    return ContextAnalysis(
        window=window,
        classification=classify(document, position),
        position=position,
        scope_identifiers=find_variables_in_scope(document, position),
        context_hash=context_hash(window.render()),
        line_prefix=prefix,
        prev_line=previous_line(document, position),
        indentation=leading_whitespace(prefix),
    )


def cache_key(analysis: ContextAnalysis) -> str:
    """Identical keys mark identical completion opportunities."""
    position = analysis.position
    return f"{analysis.context_hash}:{analysis.line_prefix}:{position.line}:{position.character}"
