from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..config import get_settings
from ..exceptions import ToolLookupError
from ..services.time_range_defaults import coerce_year
from .base import BaseDataSource
from .reference_data import (
    COMTRADE_CODES,
    COMTRADE_COMMODITY_GROUPS,
    ReferenceDataProvider,
    comtrade_country_name,
    default_reference_data,
)

logger = logging.getLogger(__name__)

# Retry configuration for rate limiting
MAX_RETRIES = 3
RETRY_DELAY_BASE = 2.0
RATE_LIMIT_STATUS = 429

TRADE_ROW_LIMIT = 50
DEFAULT_PARTNER_LIMIT = 10
WORLD_PARTNER_CODE = 0

_COMMODITY_RANGE = re.compile(r"^\d{2}(?:-\d{2})?$")


class ComtradeSource(BaseDataSource):
    """UN Comtrade public preview API (annual HS commodity trade)."""

    source_name = "UN Comtrade"

    COMMODITY_MAPPINGS: Dict[str, str] = {
        "ALL": "TOTAL",
        "TOTAL": "TOTAL",
        # Mineral fuels (HS Chapter 27)
        "OIL": "27",
        "PETROLEUM": "27",
        "MINERAL_FUELS": "27",
        "CRUDE_OIL": "2709",
        "NATURAL_GAS": "2711",
        "COAL": "2701",
        "PHARMACEUTICALS": "30",
        "MEDICINES": "30",
        "CLOTHING": "62",
        "APPAREL": "62",
        "FOOTWEAR": "64",
        "MACHINERY": "84",
        "COMPUTERS": "8471",
        "ELECTRONICS": "85",
        "SMARTPHONES": "851712",
        "SEMICONDUCTORS": "8542",
        "VEHICLES": "87",
        "CARS": "8703",
        "AIRCRAFT": "88",
        "WHEAT": "1001",
        "RICE": "1006",
        "CORN": "1005",
        "MAIZE": "1005",
        "SOYBEANS": "1201",
        "COFFEE": "0901",
        "COCOA": "1801",
        "TEA": "0902",
        "COTTON": "52",
        "IRON_AND_STEEL": "72",
        "STEEL": "72",
        "ALUMINUM": "76",
        "COPPER": "74",
        "GOLD": "7108",
        "PLASTICS": "39",
        "CHEMICALS": "28",
    }

    FLOW_MAPPINGS: Dict[str, str] = {
        "EXPORT": "X",
        "EXPORTS": "X",
        "IMPORT": "M",
        "IMPORTS": "M",
    }

    def __init__(
        self,
        countries: Optional[ReferenceDataProvider[int]] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        retry_delay: float = RETRY_DELAY_BASE,
    ) -> None:
        settings = get_settings()
        super().__init__(base_url or settings.comtrade_base_url, timeout=timeout, client=client)
        self.countries = countries or default_reference_data().comtrade
        self.api_key = api_key if api_key is not None else settings.comtrade_api_key
        self.retry_delay = retry_delay

    @classmethod
    def _flow_code(cls, flow: Optional[str]) -> str:
        code = cls.FLOW_MAPPINGS.get(str(flow or "").strip().upper())
        if code is None:
            raise ToolLookupError(f"Flow must be 'export' or 'import', got {flow!r}.")
        return code

    @classmethod
    def _commodity_code(cls, commodity: Optional[str]) -> str:
        """Convert a commodity name or HS code ("8703", "HS 30", "chapter 84") to a Comtrade code."""
        if not commodity or not str(commodity).strip():
            return "TOTAL"
        commodity = str(commodity).strip()

        if commodity.isdigit() and 2 <= len(commodity) <= 6:
            return commodity
        if _COMMODITY_RANGE.match(commodity):
            return commodity

        upper_commodity = commodity.upper()
        for prefix in ("HS", "CHAPTER"):
            if upper_commodity.startswith(prefix):
                numeric_part = "".join(c for c in commodity[len(prefix):] if c.isdigit())
                if 2 <= len(numeric_part) <= 6:
                    return numeric_part

        key = re.sub(r"[\s_]+", "_", upper_commodity)
        code = cls.COMMODITY_MAPPINGS.get(key)
        if code:
            return code
        raise ToolLookupError(
            f"Commodity '{commodity}' not recognized.",
            "Use an HS code (e.g., '27', '8703') or call comtrade_get_reference_data with type 'commodities'.",
        )

    def _country_code(self, country: str) -> int:
        code = self.countries.resolve(country)
        if code is None:
            raise ToolLookupError(f"Country '{country}' not found. Try: USA, China, Saudi Arabia, Nigeria, etc.")
        return code

    async def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        # Exponential backoff on rate limiting
        for attempt in range(MAX_RETRIES):
            try:
                response = await self.client.get(url, params=params, timeout=timeout or self.timeout)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == RATE_LIMIT_STATUS and attempt < MAX_RETRIES - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Rate limited (429) by Comtrade, attempt {attempt + 1}/{MAX_RETRIES}. "
                        f"Waiting {delay}s before retry..."
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.warning("%s request failed (%s): %s", self.source_name, url, exc)
                raise self._transport_error(exc) from exc
            except httpx.HTTPError as exc:
                logger.warning("%s request failed (%s): %s", self.source_name, url, exc)
                raise self._transport_error(exc) from exc
        raise AssertionError("unreachable")

    async def _fetch_records(
        self,
        reporter_code: int,
        flow_code: str,
        commodity_code: str,
        year: int,
        partner_code: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "reporterCode": reporter_code,
            "flowCode": flow_code,
            "cmdCode": commodity_code,
            "period": year,
        }
        if partner_code is not None:
            params["partnerCode"] = partner_code
        if self.api_key:
            params["subscription-key"] = self.api_key

        payload = await self._get_json(f"{self.base_url}/C/A/HS", params=params)
        records = payload.get("data") or [] if isinstance(payload, dict) else []
        logger.info(
            "Comtrade returned %s records (reporter=%s, flow=%s, cmd=%s, period=%s)",
            len(records), reporter_code, flow_code, commodity_code, year,
        )
        return records

    async def get_trade_data(
        self,
        reporter: str,
        flow: str,
        year: Any,
        commodity: Optional[str] = None,
        partner: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        reporter_code = self._country_code(reporter)
        partner_code = self._country_code(partner) if partner else None
        period = coerce_year(year, "year")
        if period is None:
            raise ToolLookupError("A year is required for trade data (e.g., 2022).")

        records = await self._fetch_records(
            reporter_code,
            self._flow_code(flow),
            self._commodity_code(commodity),
            period,
            partner_code=partner_code,
        )
        return [
            {
                "reporter": record.get("reporterDesc"),
                "partner": record.get("partnerDesc"),
                "flow": record.get("flowDesc"),
                "commodity": record.get("cmdDesc"),
                "commodityCode": record.get("cmdCode"),
                "year": record.get("period"),
                "tradeValue": record.get("primaryValue"),
                "quantity": record.get("qty"),
                "unit": record.get("qtyUnitAbbr"),
            }
            for record in records[:TRADE_ROW_LIMIT]
        ]

    async def get_top_partners(
        self,
        country: str,
        flow: str,
        year: Any,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        reporter_code = self._country_code(country)
        period = coerce_year(year, "year")
        if period is None:
            raise ToolLookupError("A year is required for trade partners (e.g., 2022).")
        try:
            limit = int(limit) if limit else DEFAULT_PARTNER_LIMIT
        except (TypeError, ValueError, OverflowError):
            raise ToolLookupError(f"Invalid limit: {limit!r}. Use a whole number such as 10.") from None

        records = await self._fetch_records(reporter_code, self._flow_code(flow), "TOTAL", period)
        partners = [record for record in records if record.get("partnerCode") != WORLD_PARTNER_CODE]
        partners.sort(key=lambda record: record.get("primaryValue") or 0, reverse=True)
        return [
            {
                "rank": rank,
                "partner": record.get("partnerDesc") or comtrade_country_name(record.get("partnerCode")),
                "partnerCode": record.get("partnerCode"),
                "tradeValue": record.get("primaryValue"),
                "year": record.get("period"),
            }
            for rank, record in enumerate(partners[:limit], start=1)
        ]

    @staticmethod
    def get_reference_data(type: str, search: Optional[str] = None) -> List[Dict[str, Any]]:
        kind = str(type or "").strip().lower()
        if kind == "countries":
            countries = [
                {"name": name, "code": code}
                for name, code in COMTRADE_CODES.items()
                # Three-letter keys are alpha-code aliases
                if len(name) > 3
            ]
            if search:
                search_lower = search.lower()
                countries = [country for country in countries if search_lower in country["name"]]
            return countries
        if kind == "commodities":
            return [dict(group) for group in COMTRADE_COMMODITY_GROUPS]
        raise ToolLookupError('Type must be "countries" or "commodities"')
