from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import get_settings
from ..exceptions import ToolLookupError, ToolTransportError
from .base import BaseDataSource
from .reference_data import ReferenceDataProvider, default_reference_data
from .utils import as_list, resolve_all

logger = logging.getLogger(__name__)

# Curated indicator catalog; the World Bank search endpoint is unreliable on its own.
WB_INDICATORS_CATALOG: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    # Logistics & infrastructure
    ("LP.LPI.OVRL.XQ", "Logistics Performance Index: Overall", ("logistics", "infrastructure", "transport", "trade")),
    ("LP.LPI.INFR.XQ", "LPI: Quality of trade and transport infrastructure", ("logistics", "infrastructure", "transport", "road", "port")),
    ("LP.LPI.CUST.XQ", "LPI: Customs clearance efficiency", ("logistics", "customs", "trade")),
    ("LP.EXP.DURS.MD", "Lead time to export (median days)", ("export", "trade", "logistics")),
    ("LP.IMP.DURS.MD", "Lead time to import (median days)", ("import", "trade", "logistics")),
    ("IS.RRS.TOTL.KM", "Rail lines (total route-km)", ("rail", "railway", "transport", "infrastructure")),
    ("IS.AIR.PSGR", "Air transport passengers carried", ("air", "aviation", "transport", "passengers")),
    ("IS.SHP.GOOD.TU", "Container port traffic (TEU)", ("port", "shipping", "container", "maritime", "trade")),
    # GDP
    ("NY.GDP.MKTP.CD", "GDP (current US$)", ("gdp", "economy", "output")),
    ("NY.GDP.MKTP.KD.ZG", "GDP growth (annual %)", ("gdp", "growth", "economy")),
    ("NY.GDP.PCAP.CD", "GDP per capita (current US$)", ("gdp", "per capita", "income")),
    ("NY.GDP.PCAP.PP.CD", "GDP per capita, PPP (current international $)", ("gdp", "per capita", "ppp")),
    # Trade
    ("NE.EXP.GNFS.ZS", "Exports of goods and services (% of GDP)", ("exports", "trade")),
    ("NE.IMP.GNFS.ZS", "Imports of goods and services (% of GDP)", ("imports", "trade")),
    ("TG.VAL.TOTL.GD.ZS", "Merchandise trade (% of GDP)", ("trade", "merchandise")),
    # Population
    ("SP.POP.TOTL", "Population, total", ("population", "demographic")),
    ("SP.POP.GROW", "Population growth (annual %)", ("population", "growth")),
    ("SP.URB.TOTL.IN.ZS", "Urban population (% of total)", ("urban", "population", "city")),
    ("SP.DYN.LE00.IN", "Life expectancy at birth", ("life expectancy", "health", "mortality")),
    # Labor
    ("SL.UEM.TOTL.ZS", "Unemployment (% of total labor force)", ("unemployment", "labor", "jobs")),
    ("SL.TLF.TOTL.IN", "Labor force, total", ("labor", "workforce", "employment")),
    # Poverty & inequality
    ("SI.POV.DDAY", "Poverty headcount ratio at $2.15/day", ("poverty", "poor")),
    ("SI.POV.GINI", "Gini index", ("inequality", "gini", "income distribution")),
    # Education
    ("SE.ADT.LITR.ZS", "Literacy rate, adult total (%)", ("literacy", "education")),
    ("SE.XPD.TOTL.GD.ZS", "Government expenditure on education (% of GDP)", ("education", "spending", "government")),
    ("SE.PRM.ENRR", "School enrollment, primary (% gross)", ("education", "school", "primary")),
    # Health
    ("SH.XPD.CHEX.GD.ZS", "Current health expenditure (% of GDP)", ("health", "spending", "healthcare")),
    ("SH.DYN.MORT", "Mortality rate, under-5 (per 1,000)", ("mortality", "child", "health")),
    # Energy & environment
    ("EG.USE.ELEC.KH.PC", "Electric power consumption (kWh per capita)", ("electricity", "energy", "power")),
    ("EG.ELC.ACCS.ZS", "Access to electricity (% of population)", ("electricity", "energy", "access")),
    ("EN.ATM.CO2E.PC", "CO2 emissions (metric tons per capita)", ("co2", "emissions", "climate", "environment")),
    # Technology
    ("IT.NET.USER.ZS", "Individuals using the Internet (% of population)", ("internet", "digital", "technology")),
    ("IT.CEL.SETS.P2", "Mobile cellular subscriptions (per 100 people)", ("mobile", "phone", "telecom")),
    # Finance
    ("FP.CPI.TOTL.ZG", "Inflation, consumer prices (annual %)", ("inflation", "prices", "cpi")),
    ("FR.INR.RINR", "Real interest rate (%)", ("interest rate", "finance")),
    ("PA.NUS.FCRF", "Official exchange rate (LCU per US$)", ("exchange rate", "currency", "forex")),
    ("GC.DOD.TOTL.GD.ZS", "Central government debt, total (% of GDP)", ("debt", "government", "fiscal")),
    # Agriculture
    ("AG.LND.AGRI.ZS", "Agricultural land (% of land area)", ("agriculture", "land", "farming")),
    ("NV.AGR.TOTL.ZS", "Agriculture value added (% of GDP)", ("agriculture", "gdp", "farming")),
    # Business environment
    ("IC.REG.DURS", "Time required to start a business (days)", ("business", "startup", "registration")),
)

CATALOG_SUFFICIENT_MATCHES = 3
CATALOG_RESULT_LIMIT = 15
SEARCH_RESULT_LIMIT = 20
API_SEARCH_LIMIT = 10
COUNTRY_LIST_LIMIT = 100
LIST_TIMEOUT = 15.0


class WorldBankSource(BaseDataSource):
    source_name = "World Bank"

    def __init__(
        self,
        iso3: Optional[ReferenceDataProvider[str]] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
    ) -> None:
        super().__init__(base_url or get_settings().worldbank_base_url, timeout=timeout, client=client)
        self.iso3 = iso3 or default_reference_data().iso3

    async def list_countries(self) -> List[Dict[str, Any]]:
        payload = await self._get_json(
            f"{self.base_url}/country",
            params={"format": "json", "per_page": 300},
            timeout=LIST_TIMEOUT,
        )
        countries = payload[1] if isinstance(payload, list) and len(payload) > 1 and payload[1] else []
        return [
            {
                "code": country.get("id"),
                "iso2": country.get("iso2Code"),
                "name": country.get("name"),
                "region": (country.get("region") or {}).get("value"),
                "incomeLevel": (country.get("incomeLevel") or {}).get("value"),
            }
            for country in countries[:COUNTRY_LIST_LIMIT]
        ]

    @staticmethod
    def search_catalog(query: str) -> List[Dict[str, str]]:
        query_lower = query.lower().strip()
        terms = query_lower.split()
        matches = []
        for code, name, topics in WB_INDICATORS_CATALOG:
            name_match = query_lower in name.lower()
            topic_match = any(term in topic or topic in term for topic in topics for term in terms)
            if name_match or topic_match:
                matches.append({"code": code, "name": name, "description": f"Topics: {', '.join(topics)}"})
        return matches

    async def search_indicators(self, query: str) -> List[Dict[str, str]]:
        if not query or not str(query).strip():
            raise ToolLookupError("Search query is empty. Try terms like 'gdp', 'poverty' or 'education'.")
        catalog_matches = self.search_catalog(query)
        if len(catalog_matches) >= CATALOG_SUFFICIENT_MATCHES:
            logger.info("Found %s World Bank indicators in curated catalog for %r", len(catalog_matches), query)
            return catalog_matches[:CATALOG_RESULT_LIMIT]

        try:
            payload = await self._get_json(
                f"{self.base_url}/indicator",
                params={"format": "json", "per_page": 100, "source": 2, "search": query.lower()},
                timeout=LIST_TIMEOUT,
            )
        except ToolTransportError as exc:
            logger.info("World Bank indicator search failed (%s); returning catalog matches", exc.message)
            return catalog_matches

        api_rows = payload[1] if isinstance(payload, list) and len(payload) > 1 and payload[1] else []
        combined = list(catalog_matches)
        known = {row["code"] for row in combined}
        for indicator in api_rows[:API_SEARCH_LIMIT]:
            code = indicator.get("id")
            if code and code not in known:
                known.add(code)
                combined.append(
                    {
                        "code": code,
                        "name": indicator.get("name", ""),
                        "description": (indicator.get("sourceNote") or "")[:200],
                    }
                )
        return combined[:SEARCH_RESULT_LIMIT]

    async def get_indicator_data(
        self,
        indicator: str,
        countries: Sequence[str],
        start_year: int,
        end_year: int,
    ) -> List[Dict[str, Any]]:
        if not indicator:
            raise ToolLookupError("Indicator code is required (e.g., 'NY.GDP.MKTP.CD').")
        codes = resolve_all(
            self.iso3,
            as_list(countries),
            hint="Use ISO3 codes such as NGA, EGY or USA (wb_list_countries lists them).",
        )
        payload = await self._get_json(
            f"{self.base_url}/country/{';'.join(codes)}/indicator/{indicator}",
            params={"format": "json", "per_page": 1000, "date": f"{start_year}:{end_year}"},
        )
        if isinstance(payload, list) and payload and isinstance(payload[0], dict) and payload[0].get("message"):
            messages = payload[0]["message"]
            detail = messages[0].get("value") if isinstance(messages, list) and messages else str(messages)
            raise ToolLookupError(f"World Bank rejected the request: {detail}")

        records = payload[1] if isinstance(payload, list) and len(payload) > 1 and payload[1] else []
        rows = [
            {
                "country": (record.get("country") or {}).get("value"),
                "countryCode": record.get("countryiso3code"),
                "year": int(record["date"]),
                "value": record["value"],
                "indicator": (record.get("indicator") or {}).get("value"),
            }
            for record in records
            if record.get("value") is not None and str(record.get("date", "")).isdigit()
        ]
        rows.sort(key=lambda row: row["year"])
        return rows
