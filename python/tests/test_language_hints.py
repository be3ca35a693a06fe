"""Tests for language, framework and object-literal hints."""

from __future__ import annotations

from context_analyzer import classify
from editor_types import InMemoryDocument, Position
from language_hints import (
    describe_context,
    extract_comment_content,
    extract_function_purpose,
    extract_variable_name,
    find_potential_imports,
    get_existing_properties,
    get_file_type_context,
    get_framework_context,
    get_language_context,
    identify_control_structure_type,
    remove_object_declaration,
)


def test_file_type_context_by_extension() -> None:
    assert "Markdown" in get_file_type_context("README.md")
    assert "JSON" in get_file_type_context("package.json")
    assert "SQL" in get_file_type_context("schema.SQL")
    assert get_file_type_context("main.py") == ""
    assert get_file_type_context("Makefile") == ""


def test_framework_detection() -> None:
    assert "React" in get_framework_context("import React from 'react';", "javascript")
    assert "Vue" in get_framework_context("", "javascript", "App.vue")
    assert "Express" in get_framework_context("const app = express();", "javascript")
    assert "Django" in get_framework_context("from django.db import models", "python")
    assert get_framework_context("print('hi')", "python") == ""


def test_extract_variable_name() -> None:
    assert extract_variable_name("const userDetails = {") == "userDetails"
    assert extract_variable_name("self.data = ") == "data"
    assert extract_variable_name("total = ") == "total"
    assert extract_variable_name("return x") is None


def test_existing_properties_within_enclosing_object() -> None:
    document = InMemoryDocument("const user = {\n  name: 'a',\n  age: 3,\n  ")
    assert get_existing_properties(document, Position(3, 2)) == {"name", "age"}


def test_control_structure_type() -> None:
    assert identify_control_structure_type("} else if (x) {") == "else if"
    assert identify_control_structure_type("for (const x of xs) {") == "for"
    assert identify_control_structure_type("} finally {") == "finally"
    assert identify_control_structure_type("loop {") == "control structure"


def test_comment_content_and_function_purpose() -> None:
    assert extract_comment_content("  // Fetch the user  ") == "Fetch the user"
    assert extract_comment_content("/* block */") == "block"

    document = InMemoryDocument("// Loads the profile\nfunction getProfile(id) {")
    assert extract_function_purpose(document, Position(1, 0), "getProfile") == "Loads the profile"

    bare = InMemoryDocument("x = 1\nfunction isReady() {")
    assert extract_function_purpose(bare, Position(1, 0), "isReady") == "Checks a condition"
    assert extract_function_purpose(bare, Position(1, 0), "frobnicate") == "Unknown purpose"


def test_potential_imports_for_js_only() -> None:
    text = "const [a, setA] = useState(0);\nreturn <Button />;"
    found = find_potential_imports(text, "javascript")
    assert "Button" in found and "react" in found
    assert find_potential_imports(text, "python") == []


def test_language_context_for_object_literals() -> None:
    hint = get_language_context("typescript", "const user = {", True)
    assert "'user'" in hint and "type annotations" in hint
    assert "dictionary" in get_language_context("python", "cfg = {", True)
    assert get_language_context("javascript", "", False).startswith("Complete the code")


def test_remove_object_declaration() -> None:
    completion = "const user = {\n  name: 'a',\n  age: 3\n}"
    assert remove_object_declaration(completion, "const user = {") == "  name: 'a',\n  age: 3"
    assert remove_object_declaration("name: 'a'", "return") == "name: 'a'"


def test_describe_context_for_object_literal() -> None:
    text = "import React from 'react';\nconst user = {\n  name: 'a',\n  "
    document = InMemoryDocument(text, language_id="javascript", file_name="user.jsx")
    position = Position(3, 2)
    hints = describe_context(document, position, classify(document, position))

    assert any("markup" in hint for hint in hints)
    assert "Consider React patterns and practices." in hints
    assert any("'user'" in hint for hint in hints)
    assert "Existing properties (do not repeat): name." in hints


def test_describe_context_lists_names_missing_an_import() -> None:
    document = InMemoryDocument("export default () => <Button />;", language_id="javascript", file_name="app.js")
    position = Position(0, 0)
    hints = describe_context(document, position, classify(document, position))
    assert "These names may still need an import: Button." in hints

    imported = InMemoryDocument("import Button from './Button';\n<Button />", language_id="javascript")
    assert not any("need an import" in hint for hint in describe_context(imported, position, classify(imported, position)))
