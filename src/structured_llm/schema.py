from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter
from pydantic.errors import PydanticInvalidForJsonSchema, PydanticSchemaGenerationError

from .errors import ConfigurationError

# Keywords that carry no type constraint; a property schema made only of these accepts anything.
_ANNOTATION_KEYWORDS = {"title", "description", "default", "examples"}


@dataclass(frozen=True)
class CompiledSchema:
    schema: dict[str, Any]

    @property
    def text(self) -> str:
        return json.dumps(self.schema, indent=2, ensure_ascii=False)

    @property
    def compact(self) -> str:
        return json.dumps(self.schema, separators=(",", ":"), ensure_ascii=False)


def _fix_untyped_properties(schema: dict[str, Any]) -> None:
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return
    for name, sub in properties.items():
        if sub is True or (isinstance(sub, dict) and not set(sub) - _ANNOTATION_KEYWORDS):
            fixed: dict[str, Any] = {"type": "object"}
            if isinstance(sub, dict) and "description" in sub:
                fixed["description"] = sub["description"]
            properties[name] = fixed


def compile_schema(target: Any) -> CompiledSchema:
    """Derive the JSON schema a model must answer with from a Python type."""
    try:
        schema = TypeAdapter(target).json_schema()
    except (PydanticSchemaGenerationError, PydanticInvalidForJsonSchema) as e:
        raise ConfigurationError(f"Unable to derive a JSON schema for {target!r}") from e

    schema.pop("$schema", None)
    schema.pop("title", None)
    _fix_untyped_properties(schema)
    return CompiledSchema(schema=schema)


def parse_schema(json_schema: str | dict[str, Any]) -> CompiledSchema:
    if isinstance(json_schema, dict):
        return CompiledSchema(schema=json_schema)
    try:
        value = json.loads(json_schema)
    except json.JSONDecodeError as e:
        raise ConfigurationError("Provided JSON schema is not valid JSON.") from e
    if not isinstance(value, dict):
        raise ConfigurationError("Provided JSON schema must be a JSON object.")
    return CompiledSchema(schema=value)
