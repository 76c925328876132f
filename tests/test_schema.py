import json
from typing import Any

import pytest
from pydantic import BaseModel

from structured_llm.errors import ConfigurationError
from structured_llm.schema import compile_schema, parse_schema


class Report(BaseModel):
    """A short report."""

    title: str
    pages: int
    extra: Any = None


def test_compile_schema_drops_top_level_title():
    compiled = compile_schema(Report)
    assert "title" not in compiled.schema
    assert compiled.schema["properties"]["pages"]["type"] == "integer"
    assert compiled.schema["required"] == ["title", "pages"]


def test_compile_schema_types_untyped_properties_as_objects():
    compiled = compile_schema(Report)
    assert compiled.schema["properties"]["extra"] == {"type": "object"}


def test_compiled_schema_text_forms_are_equivalent():
    compiled = compile_schema(list[int])
    assert json.loads(compiled.text) == json.loads(compiled.compact)
    assert "\n" in compiled.text
    assert " " not in compiled.compact


def test_parse_schema_accepts_string_and_dict():
    schema = {"type": "object", "properties": {"n": {"type": "integer"}}}
    assert parse_schema(schema).schema == schema
    assert parse_schema(json.dumps(schema)).schema == schema


def test_parse_schema_rejects_invalid_json():
    with pytest.raises(ConfigurationError):
        parse_schema("{not json")


def test_parse_schema_rejects_non_object():
    with pytest.raises(ConfigurationError):
        parse_schema("[1, 2]")
