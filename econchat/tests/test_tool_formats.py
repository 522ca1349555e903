from __future__ import annotations

import pytest

from econchat.llm.tool_catalog import ECON_TOOLS, catalog_index
from econchat.llm.tool_formats import convert_tools, decode_tools, to_anthropic_tools, to_gemini_tools, to_openai_tools


@pytest.mark.parametrize("provider", ["anthropic", "gemini", "groq"])
def test_catalog_survives_provider_encoding(provider: str) -> None:
    decoded = decode_tools(convert_tools(ECON_TOOLS, provider), provider)

    assert decoded == list(ECON_TOOLS)


def test_anthropic_uses_input_schema() -> None:
    declaration = to_anthropic_tools([catalog_index(ECON_TOOLS)["wb_get_indicator_data"]])[0]

    assert set(declaration) == {"name", "description", "input_schema"}
    schema = declaration["input_schema"]
    assert schema["type"] == "object"
    assert schema["properties"]["countries"] == {
        "type": "array",
        "description": "ISO3 country codes or country names (e.g., ['NGA', 'EGY', 'SAU'])",
        "items": {"type": "string"},
    }
    assert schema["required"] == ["indicator", "countries"]


def test_openai_wraps_functions() -> None:
    declaration = to_openai_tools([catalog_index(ECON_TOOLS)["comtrade_get_top_partners"]])[0]

    assert declaration["type"] == "function"
    assert declaration["function"]["name"] == "comtrade_get_top_partners"
    assert declaration["function"]["parameters"]["properties"]["flow"]["enum"] == ["import", "export"]


def test_gemini_groups_declarations_with_upper_case_types() -> None:
    payload = to_gemini_tools(ECON_TOOLS)

    assert len(payload) == 1
    declarations = {decl["name"]: decl for decl in payload[0]["functionDeclarations"]}
    assert len(declarations) == len(ECON_TOOLS)

    owid = declarations["owid_get_chart_data"]["parameters"]
    assert owid["type"] == "OBJECT"
    assert owid["properties"]["countries"]["type"] == "ARRAY"
    assert owid["properties"]["countries"]["items"]["type"] == "STRING"
    assert owid["properties"]["start_year"]["type"] == "NUMBER"
    assert owid["properties"]["for_map"]["type"] == "BOOLEAN"


def test_gemini_omits_schema_for_parameterless_tools() -> None:
    payload = to_gemini_tools([catalog_index(ECON_TOOLS)["wb_list_countries"]])

    assert "parameters" not in payload[0]["functionDeclarations"][0]


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ValueError):
        convert_tools(ECON_TOOLS, "cohere")
    with pytest.raises(ValueError):
        decode_tools([], "cohere")
