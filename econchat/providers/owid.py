from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import get_settings
from ..exceptions import ToolLookupError
from .base import BaseDataSource
from .csv_rows import Cell, parse_csv_rows
from .reference_data import OWID_CHARTS, ReferenceDataProvider, default_reference_data
from .utils import as_list

logger = logging.getLogger(__name__)

CONTINENTS = ("Africa", "Asia", "Europe", "North America", "South America", "Oceania")
INCOME_GROUPS = (
    "World",
    "High-income countries",
    "Low-income countries",
    "Middle-income countries",
    "European Union",
)
ROW_LIMIT = 500

_KEY_COLUMNS = {"entity", "code", "year"}


def _year_then_entity(row: Dict[str, Cell]) -> Tuple[int, str]:
    year = row.get("Year")
    return (year if isinstance(year, int) else 0, str(row.get("Entity") or ""))


def _matches_any(name: str, candidates: Sequence[str]) -> bool:
    return any(name.lower() == candidate.lower() for candidate in candidates)


def _region_column(headers: Sequence[str]) -> Optional[str]:
    for header in headers:
        lowered = header.lower()
        if "world region" in lowered or "region" in lowered:
            return header
    return None


def _value_column(headers: Sequence[str], region_column: Optional[str]) -> Optional[str]:
    for header in headers:
        if header.lower() not in _KEY_COLUMNS and header != region_column:
            return header
    return None


class OWIDSource(BaseDataSource):
    """Our World in Data grapher CSV exports."""

    source_name = "Our World in Data"

    def __init__(
        self,
        charts: Optional[ReferenceDataProvider[str]] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url or get_settings().owid_base_url, timeout=timeout, client=client)
        self.charts = charts or default_reference_data().owid_chart

    @staticmethod
    def search_charts(query: str) -> List[Dict[str, object]]:
        return [chart.to_dict() for chart in OWID_CHARTS if chart.matches(str(query or "").strip())]

    async def get_chart_data(
        self,
        chart_slug: str,
        countries: Optional[Sequence[str]] = None,
        start_year: Optional[int] = None,
        end_year: Optional[int] = None,
        for_map: bool = False,
    ) -> List[Dict[str, Any]]:
        slug = self.charts.resolve(chart_slug)
        if slug is None:
            raise ToolLookupError(
                f"Chart '{chart_slug}' not found.",
                "Call owid_search_charts to find a chart slug such as 'life-expectancy'.",
            )

        names = as_list(countries)
        continents = [name for name in names if _matches_any(name, CONTINENTS)]
        income_groups = [name for name in names if _matches_any(name, INCOME_GROUPS)]
        plain_countries = [name for name in names if name not in continents and name not in income_groups]

        params: Dict[str, Any] = {}
        # Server-side filtering only understands entity names, not aggregates
        if plain_countries and not continents and not income_groups:
            params = {"csvType": "filtered", "country": "".join(f"~{name}" for name in plain_countries)}
        logger.info(
            "Fetching OWID chart %s (countries: %s, continents: %s)",
            slug,
            ", ".join(plain_countries) or "none",
            ", ".join(continents) or "none",
        )

        text = await self._get_text(f"{self.base_url}/{slug}.csv", params=params or None)
        rows = parse_csv_rows(text)
        headers = list(rows[0].keys()) if rows else []
        region_column = _region_column(headers)
        value_column = _value_column(headers, region_column)

        if continents:
            if region_column:
                wanted = [continent.lower() for continent in continents]
                rows = [
                    row for row in rows
                    if any(continent in str(row.get(region_column, "")).lower() for continent in wanted)
                ]
            else:
                logger.info("Chart %s has no region column; continent filter skipped", slug)

        if income_groups:
            wanted = [group.lower() for group in income_groups]
            rows = [
                row for row in rows
                if any(
                    group in str(row.get("Entity", "")).lower() or str(row.get("Entity", "")).lower() in group
                    for group in wanted
                )
            ]

        if for_map and not names:
            years = [row.get("Year") for row in rows if isinstance(row.get("Year"), int)]
            target_year = end_year or start_year or (max(years) if years else None)
            logger.info("OWID map mode for %s: year %s", slug, target_year)
            rows = sorted((row for row in rows if row.get("Year") == target_year), key=_year_then_entity)
            return [self._normalize(row, value_column, region_column) for row in rows]

        if start_year is not None or end_year is not None:
            min_year = start_year if start_year is not None else 0
            max_year = end_year if end_year is not None else 9999
            rows = [
                row for row in rows
                if isinstance(row.get("Year"), int) and min_year <= row["Year"] <= max_year
            ]

        rows.sort(key=_year_then_entity)
        logger.info("Parsed %s OWID records for %s, returning %s", len(rows), slug, min(len(rows), ROW_LIMIT))
        return [self._normalize(row, value_column, region_column) for row in rows[:ROW_LIMIT]]

    @staticmethod
    def _normalize(row: Dict[str, Cell], value_column: Optional[str], region_column: Optional[str]) -> Dict[str, Any]:
        value = row.get(value_column) if value_column else None
        normalized: Dict[str, Any] = {
            "country": row.get("Entity"),
            "countryCode": row.get("Code") or None,
            "year": row.get("Year"),
            "value": None if isinstance(value, str) and not value.strip() else value,
            "indicator": value_column,
        }
        if region_column and row.get(region_column):
            normalized["region"] = row[region_column]
        return normalized
