from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import get_settings
from ..exceptions import ToolLookupError, ToolTransportError
from .base import BaseDataSource
from .reference_data import (
    FAO_DEFAULT_ELEMENT,
    FAO_ITEM_CODES,
    ReferenceDataProvider,
    StaticReferenceTable,
    default_reference_data,
)
from .utils import as_list

logger = logging.getLogger(__name__)

FAO_UNAVAILABLE_MESSAGE = "FAO API is currently unavailable. The FAO FAOSTAT API experiences intermittent downtime."
FAO_SUGGESTION = "Try using World Bank or Our World in Data for agricultural indicators."

FAO_DATASETS: List[Dict[str, str]] = [
    {"code": "QCL", "name": "Crops and livestock products", "description": "Production, area, yield data"},
    {"code": "FBS", "name": "Food Balances", "description": "Food supply and utilization"},
    {"code": "TP", "name": "Trade", "description": "Agricultural trade data"},
    {"code": "PP", "name": "Producer Prices", "description": "Agricultural producer prices"},
    {"code": "FS", "name": "Food Security", "description": "Food security indicators"},
    {"code": "RL", "name": "Land Use", "description": "Agricultural land data"},
    {"code": "EM", "name": "Emissions", "description": "Agricultural emissions data"},
]


class FAOSource(BaseDataSource):
    """FAOSTAT crops and livestock (QCL) production data."""

    source_name = "FAO"
    transport_suggestion = FAO_SUGGESTION

    def __init__(
        self,
        areas: Optional[ReferenceDataProvider[int]] = None,
        items: Optional[StaticReferenceTable[int]] = None,
        elements: Optional[ReferenceDataProvider[int]] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url or get_settings().fao_base_url, timeout=timeout, client=client)
        reference = default_reference_data()
        self.areas = areas or reference.fao_area
        self.items = items or StaticReferenceTable("fao_item", FAO_ITEM_CODES)
        self.elements = elements or reference.fao_element

    @staticmethod
    def list_datasets() -> List[Dict[str, str]]:
        return [dict(dataset) for dataset in FAO_DATASETS]

    def search_items(self, query: str) -> List[Dict[str, Any]]:
        return [{"name": name, "code": code} for name, code in self.items.search(query)]

    async def get_production_data(
        self,
        item: str,
        countries: Sequence[str],
        start_year: int,
        end_year: int,
        element: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        item_name = str(item or "").lower()
        item_code = self.items.resolve(item_name)
        if item_code is None:
            raise ToolLookupError(f"Item '{item_name}' not found. Try: wheat, rice, maize, cattle, etc.")

        element_code = self.elements.resolve(element) if element else None
        if element_code is None:
            element_code = FAO_DEFAULT_ELEMENT

        area_codes = []
        for country in as_list(countries):
            code = self.areas.resolve(country)
            if code is None:
                logger.info("Skipping unknown FAO area %r", country)
                continue
            area_codes.append(code)
        if not area_codes:
            raise ToolLookupError(
                "Countries not found in FAO database. Available: Egypt, Morocco, Nigeria, Brazil, USA, China, India, etc."
            )

        try:
            payload = await self._get_json(
                f"{self.base_url}/data/QCL",
                params={
                    "area": ",".join(str(code) for code in area_codes),
                    "item": item_code,
                    "element": element_code,
                    "year": f"{start_year}:{end_year}",
                },
            )
        except ToolTransportError as exc:
            # FAOSTAT has frequent outages; every failure gets the same guidance.
            raise ToolTransportError(FAO_UNAVAILABLE_MESSAGE, self.transport_suggestion) from exc

        records = payload.get("data") or [] if isinstance(payload, dict) else []
        rows = [
            {
                "country": record.get("Area"),
                "year": int(record["Year"]),
                "item": record.get("Item"),
                "element": record.get("Element"),
                "value": record.get("Value"),
                "unit": record.get("Unit"),
            }
            for record in records
            if str(record.get("Year", "")).isdigit()
        ]
        rows.sort(key=lambda row: row["year"])
        return rows
