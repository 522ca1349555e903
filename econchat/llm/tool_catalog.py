"""Provider-agnostic catalog of economic data tools offered to every model."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from ..models import ToolDefinition, ToolParameters, ToolProperty

_COUNTRY_LIST = ToolProperty(type="array", items=ToolProperty(type="string"))


def _countries(description: str) -> ToolProperty:
    return _COUNTRY_LIST.model_copy(update={"description": description})


def _year(description: Optional[str] = None) -> ToolProperty:
    return ToolProperty(type="number", description=description)


_FLOW = ToolProperty(type="string", enum=["import", "export"], description="Trade flow direction")


def _tool(name: str, description: str, properties: Optional[Dict[str, ToolProperty]] = None, required: Iterable[str] = ()) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=description,
        parameters=ToolParameters(properties=properties or {}, required=list(required)),
    )


ECON_TOOLS: Tuple[ToolDefinition, ...] = (
    # World Bank
    _tool(
        "wb_list_countries",
        "List all countries available in World Bank data with their ISO codes and regions. "
        "Use this to find country codes.",
    ),
    _tool(
        "wb_search_indicators",
        "Search World Bank indicators by keyword. Returns indicator codes and descriptions. "
        "Use this to find the right indicator code before fetching data. "
        "Common searches: 'gdp', 'population', 'poverty', 'education', 'health'",
        {"query": ToolProperty(type="string", description="Search term (e.g., 'gdp', 'poverty', 'population', 'education')")},
        ["query"],
    ),
    _tool(
        "wb_get_indicator_data",
        "Get World Bank indicator data for specific countries and years. Common indicators: "
        "NY.GDP.MKTP.CD (GDP current USD), NY.GDP.PCAP.CD (GDP per capita), SP.POP.TOTL (population), "
        "SI.POV.DDAY (poverty headcount), SE.ADT.LITR.ZS (literacy rate)",
        {
            "indicator": ToolProperty(type="string", description="Indicator code (e.g., 'NY.GDP.MKTP.CD' for GDP)"),
            "countries": _countries("ISO3 country codes or country names (e.g., ['NGA', 'EGY', 'SAU'])"),
            "start_year": _year("Start year (e.g., 2015)"),
            "end_year": _year("End year (e.g., 2023)"),
        },
        ["indicator", "countries"],
    ),
    # IMF
    _tool(
        "imf_list_datasets",
        "List available IMF datasets. Key datasets: WEO (World Economic Outlook with forecasts), "
        "IFS (International Financial Statistics), DOT (Direction of Trade), BOP (Balance of Payments), "
        "GFS (Government Finance Statistics)",
    ),
    _tool(
        "imf_get_weo_data",
        "Get IMF World Economic Outlook data - includes GDP forecasts, inflation, unemployment, fiscal "
        "indicators. This is THE source for macroeconomic forecasts. Key indicators: NGDP_RPCH (real GDP "
        "growth %), PCPIPCH (inflation %), LUR (unemployment %), GGXWDG_NGDP (govt debt % GDP), "
        "BCA_NGDPD (current account % GDP)",
        {
            "indicator": ToolProperty(
                type="string",
                description="WEO indicator: NGDP_RPCH (real GDP growth), PCPIPCH (inflation), LUR (unemployment), "
                "GGXWDG_NGDP (govt debt % GDP)",
            ),
            "countries": _countries("ISO3 country codes or country names (e.g., ['ARG', 'BRA'])"),
            "start_year": _year("Start year (e.g., 2020)"),
            "end_year": _year("End year - can be future for forecasts (e.g., 2028)"),
        },
        ["indicator", "countries"],
    ),
    _tool(
        "imf_list_countries",
        "List countries available in IMF data with their codes. Returns country codes that can be used "
        "with other IMF tools.",
        {"dataset": ToolProperty(type="string", description="Dataset to get countries for (e.g., 'IFS', 'DOT', 'BOP')")},
        ["dataset"],
    ),
    # FAO
    _tool(
        "fao_list_datasets",
        "List all FAO FAOSTAT datasets. Key domains: QCL (crops/livestock production), FBS (food balances), "
        "TP (trade), PP (producer prices), FS (food security), RL (land use), EM (emissions)",
    ),
    _tool(
        "fao_search_items",
        "Search FAO items (crops, livestock, commodities) by name. Returns item codes for use in data queries.",
        {"query": ToolProperty(type="string", description="Search term (e.g., 'wheat', 'rice', 'cattle', 'maize')")},
        ["query"],
    ),
    _tool(
        "fao_get_production_data",
        "Get agricultural production data from FAO - crop yields, livestock numbers, production quantities. "
        "Use for wheat, rice, maize, cattle, etc.",
        {
            "item": ToolProperty(type="string", description="Crop or livestock item (e.g., 'Wheat', 'Rice', 'Maize', 'Cattle')"),
            "countries": _countries("Country names (e.g., ['Egypt', 'Morocco'])"),
            "element": ToolProperty(
                type="string",
                enum=["Production", "Area harvested", "Yield"],
                description="What to measure: Production (tonnes), Area harvested (ha), Yield (kg/ha)",
            ),
            "start_year": _year(),
            "end_year": _year(),
        },
        ["item", "countries", "element"],
    ),
    # UN Comtrade
    _tool(
        "comtrade_get_trade_data",
        "Get bilateral trade data - imports/exports between countries by commodity. Use for trade flow "
        "analysis. Commodity codes: TOTAL (all), 27 (mineral fuels/oil), 84 (machinery), 85 (electronics), "
        "87 (vehicles)",
        {
            "reporter": ToolProperty(type="string", description="Reporting country name or code (e.g., 'Saudi Arabia', 'USA')"),
            "partner": ToolProperty(type="string", description="Partner country name, or 'World' for all partners"),
            "flow": _FLOW,
            "commodity": ToolProperty(
                type="string",
                description="HS commodity code or 'TOTAL'. Examples: '27' (mineral fuels), '84' (machinery), "
                "'85' (electronics)",
            ),
            "year": _year(),
        },
        ["reporter", "flow", "year"],
    ),
    _tool(
        "comtrade_get_top_partners",
        "Get top trading partners for a country - ranked by trade value. Great for answering "
        "'who does X trade with most?'",
        {
            "country": ToolProperty(type="string", description="Country name (e.g., 'Saudi Arabia', 'Nigeria')"),
            "flow": _FLOW,
            "year": _year(),
            "limit": ToolProperty(type="number", description="Number of top partners to return (default 10)"),
        },
        ["country", "flow", "year"],
    ),
    _tool(
        "comtrade_get_reference_data",
        "Get reference data - country codes, commodity codes for UN Comtrade queries",
        {
            "type": ToolProperty(type="string", enum=["countries", "commodities"], description="Type of reference data"),
            "search": ToolProperty(type="string", description="Optional search term to filter results"),
        },
        ["type"],
    ),
    # Our World in Data
    _tool(
        "owid_search_charts",
        "Search Our World in Data charts by topic. Returns chart slugs that can be used to fetch data. "
        "Good for finding cross-domain indicators on topics like health, poverty, energy, climate.",
        {
            "query": ToolProperty(
                type="string",
                description="Search term (e.g., 'life expectancy', 'poverty', 'co2 emissions', 'education')",
            )
        },
        ["query"],
    ),
    _tool(
        "owid_get_chart_data",
        "Get data from an Our World in Data chart. Common charts: life-expectancy, gdp-per-capita-worldbank, "
        "share-of-population-in-extreme-poverty, human-development-index, co2-emissions-per-capita, "
        "literacy-rate-adult-total",
        {
            "chart_slug": ToolProperty(
                type="string",
                description="Chart identifier (e.g., 'life-expectancy', 'gdp-per-capita-worldbank')",
            ),
            "countries": _countries(
                "Country names, continents or income groups (e.g., ['Japan', 'United States', 'Africa'])"
            ),
            "start_year": _year(),
            "end_year": _year(),
            "for_map": ToolProperty(
                type="boolean",
                description="Return a single year for every country (map view) when no countries are given",
            ),
        },
        ["chart_slug"],
    ),
)


def validate_catalog(tools: Iterable[ToolDefinition]) -> Tuple[ToolDefinition, ...]:
    """Return ``tools`` as an immutable tuple, rejecting duplicate names."""
    catalog = tuple(tools)
    seen = set()
    duplicates = []
    for tool in catalog:
        if tool.name in seen:
            duplicates.append(tool.name)
        seen.add(tool.name)
    if duplicates:
        raise ValueError(f"Duplicate tool names in catalog: {sorted(set(duplicates))}")
    return catalog


def catalog_index(tools: Iterable[ToolDefinition]) -> Dict[str, ToolDefinition]:
    return {tool.name: tool for tool in tools}


validate_catalog(ECON_TOOLS)
