"""
Tool declaration converters.

Translate the provider-agnostic catalog into each provider's tool-declaration
envelope and back. Only the envelope shape and the primitive type names
differ; names, descriptions, required lists, property descriptions and enums
are carried over unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..models import ToolDefinition, ToolParameters, ToolProperty

GEMINI_TYPE_MAP: Dict[str, str] = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}
_GEMINI_TYPE_REVERSE = {value: key for key, value in GEMINI_TYPE_MAP.items()}

TypeMapper = Callable[[str], str]


def _identity(type_name: str) -> str:
    return type_name


def _gemini_type(type_name: str) -> str:
    return GEMINI_TYPE_MAP[type_name]


def _plain_type(type_name: str) -> str:
    return _GEMINI_TYPE_REVERSE.get(type_name, type_name.lower())


def _encode_property(prop: ToolProperty, map_type: TypeMapper) -> Dict[str, Any]:
    encoded: Dict[str, Any] = {"type": map_type(prop.type)}
    if prop.description is not None:
        encoded["description"] = prop.description
    if prop.enum is not None:
        encoded["enum"] = list(prop.enum)
    if prop.items is not None:
        encoded["items"] = _encode_property(prop.items, map_type)
    return encoded


def _encode_schema(parameters: ToolParameters, map_type: TypeMapper) -> Dict[str, Any]:
    return {
        "type": map_type("object"),
        "properties": {
            name: _encode_property(prop, map_type) for name, prop in parameters.properties.items()
        },
        "required": list(parameters.required),
    }


def _decode_property(raw: Mapping[str, Any]) -> ToolProperty:
    items = raw.get("items")
    return ToolProperty(
        type=_plain_type(raw["type"]),
        description=raw.get("description"),
        enum=list(raw["enum"]) if raw.get("enum") is not None else None,
        items=_decode_property(items) if items is not None else None,
    )


def _decode_schema(raw: Optional[Mapping[str, Any]]) -> ToolParameters:
    if not raw:
        return ToolParameters()
    return ToolParameters(
        properties={name: _decode_property(prop) for name, prop in (raw.get("properties") or {}).items()},
        required=list(raw.get("required") or []),
    )


# ---------------------------------------------------------------------------
# Anthropic: {name, description, input_schema}
# ---------------------------------------------------------------------------

def to_anthropic_tools(tools: Iterable[ToolDefinition]) -> List[Dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": _encode_schema(tool.parameters, _identity),
        }
        for tool in tools
    ]


def from_anthropic_tools(declarations: Iterable[Mapping[str, Any]]) -> List[ToolDefinition]:
    return [
        ToolDefinition(
            name=decl["name"],
            description=decl["description"],
            parameters=_decode_schema(decl.get("input_schema")),
        )
        for decl in declarations
    ]


# ---------------------------------------------------------------------------
# OpenAI-compatible (Groq): {type: function, function: {name, description, parameters}}
# ---------------------------------------------------------------------------

def to_openai_tools(tools: Iterable[ToolDefinition]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": _encode_schema(tool.parameters, _identity),
            },
        }
        for tool in tools
    ]


def from_openai_tools(declarations: Iterable[Mapping[str, Any]]) -> List[ToolDefinition]:
    definitions = []
    for decl in declarations:
        function = decl["function"]
        definitions.append(
            ToolDefinition(
                name=function["name"],
                description=function["description"],
                parameters=_decode_schema(function.get("parameters")),
            )
        )
    return definitions


# ---------------------------------------------------------------------------
# Gemini: [{functionDeclarations: [{name, description, parameters}]}], upper-case types
# ---------------------------------------------------------------------------

def to_gemini_tools(tools: Iterable[ToolDefinition]) -> List[Dict[str, Any]]:
    declarations = []
    for tool in tools:
        declaration: Dict[str, Any] = {"name": tool.name, "description": tool.description}
        # Gemini rejects OBJECT schemas without properties, so parameterless tools omit the schema.
        if tool.parameters.properties:
            declaration["parameters"] = _encode_schema(tool.parameters, _gemini_type)
        declarations.append(declaration)
    return [{"functionDeclarations": declarations}]


def from_gemini_tools(payload: Iterable[Mapping[str, Any]]) -> List[ToolDefinition]:
    return [
        ToolDefinition(
            name=decl["name"],
            description=decl["description"],
            parameters=_decode_schema(decl.get("parameters")),
        )
        for group in payload
        for decl in group.get("functionDeclarations", [])
    ]


_ENCODERS: Dict[str, Callable[[Iterable[ToolDefinition]], List[Dict[str, Any]]]] = {
    "anthropic": to_anthropic_tools,
    "gemini": to_gemini_tools,
    "groq": to_openai_tools,
    "openai": to_openai_tools,
}

_DECODERS: Dict[str, Callable[[Iterable[Mapping[str, Any]]], List[ToolDefinition]]] = {
    "anthropic": from_anthropic_tools,
    "gemini": from_gemini_tools,
    "groq": from_openai_tools,
    "openai": from_openai_tools,
}


def convert_tools(tools: Iterable[ToolDefinition], provider: str) -> List[Dict[str, Any]]:
    """Convert catalog tools into ``provider``'s tool-declaration structure."""
    try:
        encoder = _ENCODERS[provider.lower()]
    except KeyError:
        raise ValueError(f"Unsupported provider for tool conversion: {provider}") from None
    return encoder(tools)


def decode_tools(payload: Iterable[Mapping[str, Any]], provider: str) -> List[ToolDefinition]:
    """Inverse of :func:`convert_tools`."""
    try:
        decoder = _DECODERS[provider.lower()]
    except KeyError:
        raise ValueError(f"Unsupported provider for tool conversion: {provider}") from None
    return decoder(payload)
