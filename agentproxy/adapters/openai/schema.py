"""Tool schema normalization for the engine's function-tool form.

The engine rejects JSON schemas without an explicit ``type`` and objects
without ``properties``, which clients routinely omit. ``normalize_tool_schema``
works on a deep copy so the caller's schema is never mutated.
"""

import copy
from typing import Any


_VALID_TYPES = ("object", "array", "string", "number", "integer", "boolean")

_NESTED_SCHEMA_LISTS = ("oneOf", "anyOf", "allOf", "prefixItems")

_NUMBER_KEYWORDS = (
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
)


def normalize_tool_schema(parameters: dict[str, Any] | None) -> dict[str, Any]:
    """Return a sanitized copy of a tool's parameter schema.

    Missing parameters become an empty object schema, and the top level is an
    object unless the caller declared otherwise.
    """
    if not isinstance(parameters, dict):
        return {"type": "object", "properties": {}}
    schema = copy.deepcopy(parameters)
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return sanitize_json_schema(schema)


def sanitize_json_schema(schema: Any) -> Any:
    """Recursively fill in, in place, what the engine requires of a JSON schema.

    Boolean schemas become ``{"type": "string"}``. Dict schemas get an explicit
    ``type`` (inferred from their keywords when absent), objects always carry
    ``properties`` and arrays always carry ``items``.
    """
    if isinstance(schema, bool):
        return {"type": "string"}
    if isinstance(schema, list):
        return [sanitize_json_schema(item) for item in schema]
    if not isinstance(schema, dict):
        return schema

    properties = schema.get("properties")
    if isinstance(properties, dict):
        schema["properties"] = {
            name: sanitize_json_schema(value) for name, value in properties.items()
        }

    if "items" in schema:
        schema["items"] = sanitize_json_schema(schema["items"])

    for key in _NESTED_SCHEMA_LISTS:
        if isinstance(schema.get(key), list):
            schema[key] = [sanitize_json_schema(item) for item in schema[key]]

    schema_type = _infer_type(schema)
    schema["type"] = schema_type

    if schema_type == "object":
        if not isinstance(schema.get("properties"), dict):
            schema["properties"] = {}
        additional = schema.get("additionalProperties")
        if isinstance(additional, dict):
            schema["additionalProperties"] = sanitize_json_schema(additional)
    elif schema_type == "array" and "items" not in schema:
        schema["items"] = {"type": "string"}

    return schema


def _infer_type(schema: dict[str, Any]) -> str:
    declared = schema.get("type")
    if isinstance(declared, str):
        return declared
    if isinstance(declared, list):
        for candidate in declared:
            if isinstance(candidate, str) and candidate in _VALID_TYPES:
                return candidate

    if any(key in schema for key in ("properties", "required", "additionalProperties")):
        return "object"
    if "items" in schema or "prefixItems" in schema:
        return "array"
    if any(key in schema for key in ("enum", "const", "format")):
        return "string"
    if any(key in schema for key in _NUMBER_KEYWORDS):
        return "number"
    return "string"


__all__ = ["normalize_tool_schema", "sanitize_json_schema"]
