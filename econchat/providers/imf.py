from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import get_settings
from ..exceptions import ToolLookupError
from .base import BaseDataSource
from .reference_data import ReferenceDataProvider, default_reference_data
from .utils import as_list, resolve_all

logger = logging.getLogger(__name__)

IMF_DATASETS: List[Dict[str, str]] = [
    {"id": "WEO", "name": "World Economic Outlook", "description": "GDP forecasts, inflation, unemployment, fiscal data"},
    {"id": "IFS", "name": "International Financial Statistics", "description": "Exchange rates, interest rates, monetary data"},
    {"id": "DOT", "name": "Direction of Trade Statistics", "description": "Bilateral trade flows"},
    {"id": "BOP", "name": "Balance of Payments", "description": "Current account, capital flows"},
    {"id": "GFS", "name": "Government Finance Statistics", "description": "Fiscal accounts, government debt"},
    {"id": "FSI", "name": "Financial Soundness Indicators", "description": "Banking sector health"},
]

IMF_COUNTRIES: List[Dict[str, str]] = [
    {"code": "USA", "name": "United States"},
    {"code": "CHN", "name": "China"},
    {"code": "JPN", "name": "Japan"},
    {"code": "DEU", "name": "Germany"},
    {"code": "GBR", "name": "United Kingdom"},
    {"code": "FRA", "name": "France"},
    {"code": "IND", "name": "India"},
    {"code": "BRA", "name": "Brazil"},
    {"code": "ARG", "name": "Argentina"},
    {"code": "NGA", "name": "Nigeria"},
    {"code": "EGY", "name": "Egypt"},
    {"code": "SAU", "name": "Saudi Arabia"},
    {"code": "ZAF", "name": "South Africa"},
    {"code": "MEX", "name": "Mexico"},
    {"code": "IDN", "name": "Indonesia"},
    {"code": "TUR", "name": "Turkey"},
    {"code": "RUS", "name": "Russia"},
    {"code": "KOR", "name": "South Korea"},
    {"code": "PAK", "name": "Pakistan"},
    {"code": "BGD", "name": "Bangladesh"},
]


class IMFSource(BaseDataSource):
    """IMF DataMapper API (World Economic Outlook series)."""

    source_name = "IMF"

    def __init__(
        self,
        iso3: Optional[ReferenceDataProvider[str]] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
    ) -> None:
        super().__init__(base_url or get_settings().imf_base_url, timeout=timeout, client=client)
        self.iso3 = iso3 or default_reference_data().iso3

    @staticmethod
    def list_datasets() -> List[Dict[str, str]]:
        return [dict(dataset) for dataset in IMF_DATASETS]

    @staticmethod
    def list_countries() -> List[Dict[str, str]]:
        return [dict(country) for country in IMF_COUNTRIES]

    async def get_weo_data(
        self,
        indicator: str,
        countries: Sequence[str],
        start_year: int,
        end_year: int,
    ) -> List[Dict[str, Any]]:
        if not indicator:
            raise ToolLookupError("Indicator code is required (e.g., 'NGDP_RPCH' for real GDP growth).")
        if end_year < start_year:
            raise ToolLookupError(f"end_year {end_year} is before start_year {start_year}.")
        codes = resolve_all(
            self.iso3,
            as_list(countries),
            hint="Use ISO3 codes such as NGA, EGY or USA (imf_list_countries lists them).",
        )
        periods = ",".join(str(year) for year in range(start_year, end_year + 1))
        payload = await self._get_json(
            f"{self.base_url}/{indicator}/{'/'.join(codes)}",
            params={"periods": periods},
        )

        series = ((payload or {}).get("values") or {}).get(indicator) or {}
        if not series:
            logger.info("IMF returned no values for %s (%s)", indicator, ", ".join(codes))

        rows: List[Dict[str, Any]] = []
        for country, values in series.items():
            for year, value in (values or {}).items():
                if value is None or not str(year).isdigit():
                    continue
                rows.append({"country": country, "year": int(year), "value": value, "indicator": indicator})
        rows.sort(key=lambda row: row["year"])
        return rows
