"""Language, framework and file-type hints that enrich the completion prompt."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Set

from context_analyzer import OBJECT_SCAN_LINES, ContextClassification
from editor_types import Position, TextDocument

MARKDOWN_EXTENSIONS = ("md", "markdown")
HTML_EXTENSIONS = ("html", "htm", "xhtml", "jsx", "tsx", "vue", "svelte")
CSS_EXTENSIONS = ("css", "scss", "sass", "less", "styl")
JSON_EXTENSIONS = ("json", "jsonc", "json5")
SQL_EXTENSIONS = ("sql", "mysql", "pgsql", "sqlite")

# Common value types offered to the model when completing an object/dict/struct.
LANGUAGE_PATTERNS: Dict[str, Dict[str, object]] = {
    "typescript": {"object_props": ["string", "number", "boolean", "Date", "any", "unknown"], "type_annotations": True},
    "javascript": {"object_props": ["string", "number", "boolean", "Date", "Object", "Array"], "type_annotations": False},
    "python": {"object_props": ["str", "int", "float", "bool", "dict", "list"], "type_annotations": False},
    "csharp": {"object_props": ["string", "int", "bool", "DateTime", "List<string>"], "type_annotations": True},
    "java": {"object_props": ["String", "Integer", "Boolean", "Date", "List<String>"], "type_annotations": True},
    "go": {"object_props": ["string", "int", "bool", "time.Time", "[]string"], "type_annotations": True},
    "ruby": {"object_props": ["string", "Integer", "Boolean", "Time", "Array"], "type_annotations": False},
}

_CONTROL_KEYWORDS = ("else if", "if", "else", "for", "while", "switch", "case", "try", "catch", "finally")

_PURPOSE_BY_PREFIX = (
    (("get", "fetch"), "Retrieves data"),
    (("set", "update"), "Updates data"),
    (("create", "add"), "Creates data"),
    (("delete", "remove"), "Removes data"),
    (("is", "has", "can"), "Checks a condition"),
    (("calc", "compute"), "Performs calculation"),
)

MAX_IMPORT_HINTS = 8

_FUNCTION_NAME = re.compile(r"\b(?:function|def|func|fn)\s+(\w+)")


def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def is_markdown_file(extension: str) -> bool:
    return extension in MARKDOWN_EXTENSIONS


def is_html_file(extension: str) -> bool:
    return extension in HTML_EXTENSIONS


def is_css_file(extension: str) -> bool:
    return extension in CSS_EXTENSIONS


def is_json_file(extension: str) -> bool:
    return extension in JSON_EXTENSIONS


def is_sql_file(extension: str) -> bool:
    return extension in SQL_EXTENSIONS


def get_file_type_context(file_name: str) -> str:
    """One-line hint about the file format, or '' for ordinary source files."""
    extension = _extension(file_name)
    if is_markdown_file(extension):
        return "This is a Markdown document; continue the prose or list naturally."
    if is_html_file(extension):
        return "This file contains markup; keep tags balanced."
    if is_css_file(extension):
        return "This is a stylesheet; complete selectors or declarations."
    if is_json_file(extension):
        return "This is JSON; produce valid keys and values only."
    if is_sql_file(extension):
        return "This is SQL; complete the statement."
    return ""


def get_framework_context(text: str, language_id: str, file_name: str = "") -> str:
    """Guess the framework in use from well-known imports and markers."""
    if "import React" in text or 'from "react"' in text or "from 'react'" in text:
        return "Consider React patterns and practices."
    if "import Vue" in text or "<template>" in text or file_name.endswith(".vue"):
        return "Consider Vue.js patterns and practices."
    if "@Component" in text or "@NgModule" in text or 'from "@angular/core"' in text:
        return "Consider Angular patterns and practices."
    if "express()" in text or 'require("express")' in text or "require('express')" in text:
        return "Consider Express.js patterns and practices."
    if (language_id == "python" and "from django" in text) or "django." in text or "@login_required" in text:
        return "Consider Django patterns and practices."
    return ""


def extract_variable_name(line: str) -> Optional[str]:
    """Name being assigned on ``line``, e.g. ``user`` for ``const user = {``."""
    match = re.search(r"(?:const|let|var)\s+(\w+)\s*=", line)
    if match:
        return match.group(1)
    match = re.search(r"(?:this|self)\.(\w+)\s*=", line)
    if match:
        return match.group(1)
    match = re.search(r"(\w+)\s*=", line)
    return match.group(1) if match else None


def get_existing_properties(document: TextDocument, position: Position) -> Set[str]:
    """Property names already written in the object literal enclosing the cursor."""
    open_brace_line = position.line
    while open_brace_line >= 0:
        line = document.line_at(open_brace_line)
        pending_closers = 0
        found_opener = False
        for char in reversed(line):
            if char == "}":
                pending_closers += 1
            elif char == "{":
                if pending_closers:
                    pending_closers -= 1
                else:
                    found_opener = True
                    break
        if found_opener or "{" in line:
            break
        open_brace_line -= 1

    properties: Set[str] = set()
    for line_no in range(max(open_brace_line, 0), position.line + 1):
        properties.update(re.findall(r"\b(\w+)\s*:", document.line_at(line_no)))
    return properties


def identify_control_structure_type(line: str) -> str:
    for keyword in _CONTROL_KEYWORDS:
        if re.search(rf"\b{keyword}\b", line):
            return keyword
    return "control structure"


def extract_comment_content(line: str) -> str:
    """Strip comment markers for the common line and block comment styles."""
    text = re.sub(r"^\s*//\s*", "", line)
    text = re.sub(r"^\s*#\s*", "", text)
    text = re.sub(r"^\s*--\s*", "", text)
    text = re.sub(r"^\s*/\*\s*", "", text)
    text = re.sub(r"\s*\*/\s*$", "", text)
    text = re.sub(r"^\s*\*\s*", "", text)
    return text.strip()


def extract_function_purpose(document: TextDocument, position: Position, function_name: str) -> str:
    """Read the comment block above the cursor, falling back to the function name's verb."""
    purpose = ""
    line_no = position.line - 1
    while line_no >= 0 and line_no >= position.line - 5:
        line = document.line_at(line_no).strip()
        if line.startswith(("//", "#", "*")):
            content = extract_comment_content(line)
            if content:
                purpose = f"{content} {purpose}".strip()
        elif not line.startswith("/*") and line:
            break
        line_no -= 1

    if not purpose and function_name:
        for prefixes, description in _PURPOSE_BY_PREFIX:
            if function_name.startswith(prefixes):
                purpose = description
                break
    return purpose or "Unknown purpose"


def find_potential_imports(text: str, language_id: str) -> List[str]:
    """Capitalised names and React hooks used without a matching import (JS/TS only)."""
    if language_id not in ("typescript", "javascript"):
        return []

    found: Dict[str, None] = {}
    for name in re.findall(r"\b[A-Z]\w+\b", text):
        if f"import {name}" not in text and f"function {name}" not in text:
            found[name] = None

    imports_react = "from 'react'" in text or 'from "react"' in text
    if ("useState" in text or "useEffect" in text) and not imports_react:
        found["react"] = None
    return list(found)


def get_language_context(language_id: str, current_line: str, is_object_literal: bool) -> str:
    pattern = LANGUAGE_PATTERNS.get(language_id, LANGUAGE_PATTERNS["typescript"])
    props = ", ".join(pattern["object_props"])  # type: ignore[arg-type]
    annotations = "Include type annotations where appropriate." if pattern["type_annotations"] else ""

    if not is_object_literal:
        return f"Complete the code with the appropriate values and maintain consistent style with the codebase. {annotations}".strip()

    var_name = extract_variable_name(current_line)
    var_context = f" The variable name '{var_name}' suggests the expected properties." if var_name else ""

    if language_id in ("typescript", "javascript"):
        parts = [
            f"Complete the object properties with appropriate values.{var_context}",
            f"Consider common properties like: {props}.",
            annotations,
            "Use meaningful property names and values based on the context.",
        ]
        return " ".join(part for part in parts if part)
    if language_id == "python":
        return (
            f"Complete the dictionary key-value pairs with appropriate values.{var_context} "
            f"Consider common types like: {props}. Use meaningful keys and values based on the context."
        )
    if language_id in ("java", "csharp"):
        return (
            f"Complete the object properties with appropriate values.{var_context} "
            f"Use common types like: {props}. Include proper type declarations."
        )
    if language_id == "go":
        return f"Complete the struct fields with appropriate values.{var_context} Use common types like: {props}. Include type declarations."
    if language_id == "ruby":
        return f"Complete the hash with appropriate key-value pairs.{var_context} Consider common types like: {props}."
    return f"Complete the object/structure with appropriate values based on the context.{var_context}"


def remove_object_declaration(completion: str, prefix: str) -> str:
    """Drop a re-declared ``name = {`` wrapper the model echoed around object properties."""
    var_name = extract_variable_name(prefix)
    if not var_name:
        return completion

    name = re.escape(var_name)
    cleaned = re.sub(rf"(?:const|let|var)\s+{name}\s*=?\s*{{", "", completion)
    cleaned = re.sub(rf"{name}\s*=\s*{{", "", cleaned)
    cleaned = re.sub(r"^\s*\{", "", cleaned)
    cleaned = re.sub(r"\}\s*$", "", cleaned).strip()
    if not cleaned:
        return cleaned

    indentation = prefix[: len(prefix) - len(prefix.lstrip())]
    lines = [line.strip() for line in cleaned.split("\n") if line.strip()]
    return "\n".join(f"{indentation}  {line}" for line in lines)


def _object_owner_line(document: TextDocument, position: Position) -> str:
    """Nearest line at or above the cursor that opens a brace, e.g. ``const user = {``."""
    current = document.line_at(position.line)[: position.character]
    if "{" in current:
        return current
    for line_no in range(position.line - 1, max(-1, position.line - 1 - OBJECT_SCAN_LINES), -1):
        line = document.line_at(line_no)
        if "{" in line:
            return line
    return current


def describe_context(document: TextDocument, position: Position, classification: ContextClassification) -> List[str]:
    """Collect the hint sentences worth sending with this completion request."""
    hints: List[str] = []
    current_line = document.line_at(position.line)
    prefix = current_line[: position.character]

    file_hint = get_file_type_context(document.file_name)
    if file_hint:
        hints.append(file_hint)

    text = document.get_text()
    framework = get_framework_context(text, document.language_id, document.file_name)
    if framework:
        hints.append(framework)

    missing = find_potential_imports(text, document.language_id)[:MAX_IMPORT_HINTS]
    if missing:
        hints.append(f"These names may still need an import: {', '.join(missing)}.")

    if classification.inside_object_literal:
        owner = _object_owner_line(document, position)
        hints.append(get_language_context(document.language_id, owner, True))
        existing = sorted(get_existing_properties(document, position))
        if existing:
            hints.append(f"Existing properties (do not repeat): {', '.join(existing)}.")
    if classification.inside_control_structure:
        hints.append(f"Cursor is in a {identify_control_structure_type(prefix)} block header.")
    if classification.inside_function_decl:
        match = _FUNCTION_NAME.search(prefix)
        if match:
            purpose = extract_function_purpose(document, position, match.group(1))
            hints.append(f"Function purpose: {purpose}.")
    if classification.inside_comment:
        hints.append("Cursor is inside a comment; continue the comment text.")
    if classification.inside_import:
        hints.append("Cursor is inside an import statement; complete the module or symbol name.")
    if classification.is_console_log_call:
        hints.append("Cursor is inside a console.log call; complete the logged arguments.")
    return hints
