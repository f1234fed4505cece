"""
Capability schema export for Quiver.

Renders ToolSpecs into the JSON shapes tool-calling clients expect:
- native: Quiver's own capability schema (parameters as an ordered list)
- openai: {"type": "function", "function": {..., "parameters": <JSON Schema>}}
- anthropic: {"name", "description", "input_schema": <JSON Schema>}

Every rendering is plain JSON data; nested items/properties survive a
json.dumps/json.loads round trip unchanged.
"""

import json
from typing import Any, Iterable, Literal

from quiver.schema import ParameterSpec, ParamType, ToolSpec

ExportFormat = Literal["native", "openai", "anthropic"]
EXPORT_FORMATS: tuple[str, ...] = ("native", "openai", "anthropic")


def to_capability(spec: ToolSpec) -> dict[str, Any]:
    """
    Render a tool's native capability schema.

    Metadata keys are merged at the top level after the fixed keys; they
    never overwrite name, description, category, tags or parameters.
    """
    capability: dict[str, Any] = {
        "name": spec.name,
        "description": spec.description,
        "category": spec.category,
        "tags": list(spec.tags),
        "parameters": [param.to_dict() for param in spec.parameters],
    }
    for key, value in spec.metadata.items():
        capability.setdefault(key, value)
    return capability


def _property_schema(param: ParameterSpec) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": param.type.value}
    if param.description:
        schema["description"] = param.description
    if param.enum is not None:
        schema["enum"] = list(param.enum)
    if param.type == ParamType.ARRAY and param.items is not None:
        schema["items"] = _property_schema(param.items)
    if param.type == ParamType.OBJECT and param.properties is not None:
        schema["properties"] = {
            key: _property_schema(member) for key, member in param.properties.items()
        }
        schema["required"] = list(param.required or ())
    return schema


def to_json_schema(parameters: Iterable[ParameterSpec]) -> dict[str, Any]:
    """Convert an ordered parameter list into a JSON Schema object."""
    params = list(parameters)
    return {
        "type": "object",
        "properties": {param.name: _property_schema(param) for param in params},
        "required": [param.name for param in params if not param.optional],
    }


def to_openai_function(spec: ToolSpec) -> dict[str, Any]:
    """Render a tool as an OpenAI-style function definition."""
    return {
        "type": "function",
        "function": {
            "name": spec.name,
            "description": spec.description,
            "parameters": to_json_schema(spec.parameters),
        },
    }


def to_anthropic_tool(spec: ToolSpec) -> dict[str, Any]:
    """Render a tool as an Anthropic-style tool definition."""
    return {
        "name": spec.name,
        "description": spec.description,
        "input_schema": to_json_schema(spec.parameters),
    }


_RENDERERS = {
    "native": to_capability,
    "openai": to_openai_function,
    "anthropic": to_anthropic_tool,
}


def export_capabilities(
    specs: Iterable[ToolSpec],
    format: ExportFormat = "native",
) -> list[dict[str, Any]]:
    """
    Render several tools in one format.

    Raises:
        ValueError: If the format is unknown
    """
    renderer = _RENDERERS.get(format)
    if renderer is None:
        msg = f"Unknown export format: {format}. Must be one of: {', '.join(EXPORT_FORMATS)}"
        raise ValueError(msg)
    return [renderer(spec) for spec in specs]


def dump_capabilities(
    specs: Iterable[ToolSpec],
    format: ExportFormat = "native",
    indent: int = 2,
) -> str:
    """Render several tools as JSON text."""
    return json.dumps(export_capabilities(specs, format), indent=indent, default=str)
