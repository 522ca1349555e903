"""
Tool execution bridge.

Maps a model-issued tool call onto one of the statistical data sources and
returns plain JSON-serializable results. Expected failures (unknown names,
upstream outages) come back as ``{"error", "suggestion"}`` payloads so the
model can recover in its next turn.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx

from ..config import Settings, get_settings
from ..exceptions import ToolError, UnknownToolError
from ..llm.tool_catalog import ECON_TOOLS, catalog_index
from ..models import ToolCall, ToolDefinition, ToolResult
from ..providers.comtrade import ComtradeSource
from ..providers.fao import FAOSource
from ..providers.imf import IMFSource
from ..providers.owid import OWIDSource
from ..providers.reference_data import ReferenceData, default_reference_data
from ..providers.worldbank import WorldBankSource
from .time_range_defaults import apply_default_year_range, coerce_year

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[Any]]


class ToolExecutor:
    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
        tools: Iterable[ToolDefinition] = ECON_TOOLS,
    ) -> None:
        settings = settings or get_settings()
        reference = reference or default_reference_data()

        self.worldbank = WorldBankSource(iso3=reference.iso3, base_url=settings.worldbank_base_url, client=client)
        self.imf = IMFSource(iso3=reference.iso3, base_url=settings.imf_base_url, client=client)
        self.fao = FAOSource(
            areas=reference.fao_area,
            elements=reference.fao_element,
            base_url=settings.fao_base_url,
            client=client,
        )
        self.comtrade = ComtradeSource(
            countries=reference.comtrade,
            api_key=settings.comtrade_api_key,
            base_url=settings.comtrade_base_url,
            client=client,
        )
        self.owid = OWIDSource(charts=reference.owid_chart, base_url=settings.owid_base_url, client=client)

        self.catalog = catalog_index(tools)
        self._handlers: Dict[str, Handler] = {
            "wb_list_countries": self._wb_list_countries,
            "wb_search_indicators": self._wb_search_indicators,
            "wb_get_indicator_data": self._wb_get_indicator_data,
            "imf_list_datasets": self._imf_list_datasets,
            "imf_get_weo_data": self._imf_get_weo_data,
            "imf_list_countries": self._imf_list_countries,
            "fao_list_datasets": self._fao_list_datasets,
            "fao_search_items": self._fao_search_items,
            "fao_get_production_data": self._fao_get_production_data,
            "comtrade_get_trade_data": self._comtrade_get_trade_data,
            "comtrade_get_top_partners": self._comtrade_get_top_partners,
            "comtrade_get_reference_data": self._comtrade_get_reference_data,
            "owid_search_charts": self._owid_search_charts,
            "owid_get_chart_data": self._owid_get_chart_data,
        }

    def has_handler(self, tool_name: str) -> bool:
        return tool_name in self._handlers

    async def execute(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run one tool and return its result or a structured error payload.

        Raises:
            UnknownToolError: no handler is registered for ``tool_name``.
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            raise UnknownToolError(tool_name)

        started = time.perf_counter()
        try:
            result = await handler(dict(params or {}))
        except ToolError as exc:
            logger.warning("Tool %s failed: %s", tool_name, exc.message)
            return exc.to_payload()

        elapsed_ms = (time.perf_counter() - started) * 1000
        size = len(result) if isinstance(result, list) else 1
        logger.info(f"Tool {tool_name} returned {size} result(s) in {elapsed_ms:.0f}ms")
        return result

    async def execute_calls(self, tool_calls: Iterable[ToolCall]) -> List[ToolResult]:
        """Execute model tool calls sequentially; names outside the catalog get an error payload."""
        results: List[ToolResult] = []
        for call in tool_calls:
            if call.name not in self.catalog:
                logger.warning("Model requested unknown tool %s", call.name)
                payload: Any = {
                    "error": f"Unknown tool: {call.name}",
                    "suggestion": "Use one of: " + ", ".join(sorted(self.catalog)),
                }
            else:
                payload = await self.execute(call.name, call.arguments)
            results.append(ToolResult(toolCallId=call.id, result=payload))
        return results

    # World Bank

    async def _wb_list_countries(self, params: Dict[str, Any]) -> Any:
        return await self.worldbank.list_countries()

    async def _wb_search_indicators(self, params: Dict[str, Any]) -> Any:
        return await self.worldbank.search_indicators(str(params.get("query") or ""))

    async def _wb_get_indicator_data(self, params: Dict[str, Any]) -> Any:
        params = apply_default_year_range("WORLDBANK", params)
        return await self.worldbank.get_indicator_data(
            params.get("indicator"),
            params.get("countries"),
            params["start_year"],
            params["end_year"],
        )

    # IMF

    async def _imf_list_datasets(self, params: Dict[str, Any]) -> Any:
        return self.imf.list_datasets()

    async def _imf_get_weo_data(self, params: Dict[str, Any]) -> Any:
        params = apply_default_year_range("IMF", params)
        return await self.imf.get_weo_data(
            params.get("indicator"),
            params.get("countries"),
            params["start_year"],
            params["end_year"],
        )

    async def _imf_list_countries(self, params: Dict[str, Any]) -> Any:
        return self.imf.list_countries()

    # FAO

    async def _fao_list_datasets(self, params: Dict[str, Any]) -> Any:
        return self.fao.list_datasets()

    async def _fao_search_items(self, params: Dict[str, Any]) -> Any:
        return self.fao.search_items(str(params.get("query") or ""))

    async def _fao_get_production_data(self, params: Dict[str, Any]) -> Any:
        params = apply_default_year_range("FAO", params)
        return await self.fao.get_production_data(
            params.get("item"),
            params.get("countries"),
            params["start_year"],
            params["end_year"],
            element=params.get("element"),
        )

    # UN Comtrade

    async def _comtrade_get_trade_data(self, params: Dict[str, Any]) -> Any:
        return await self.comtrade.get_trade_data(
            params.get("reporter"),
            params.get("flow"),
            params.get("year"),
            commodity=params.get("commodity"),
            partner=params.get("partner"),
        )

    async def _comtrade_get_top_partners(self, params: Dict[str, Any]) -> Any:
        return await self.comtrade.get_top_partners(
            params.get("country"),
            params.get("flow"),
            params.get("year"),
            limit=params.get("limit"),
        )

    async def _comtrade_get_reference_data(self, params: Dict[str, Any]) -> Any:
        return self.comtrade.get_reference_data(params.get("type"), search=params.get("search"))

    # Our World in Data

    async def _owid_search_charts(self, params: Dict[str, Any]) -> Any:
        return self.owid.search_charts(str(params.get("query") or ""))

    async def _owid_get_chart_data(self, params: Dict[str, Any]) -> Any:
        return await self.owid.get_chart_data(
            params.get("chart_slug"),
            countries=params.get("countries"),
            start_year=coerce_year(params.get("start_year"), "start_year"),
            end_year=coerce_year(params.get("end_year"), "end_year"),
            for_map=bool(params.get("for_map")),
        )
