"""
Name -> code reference tables for the statistical data sources.

Four disjoint code spaces are kept apart:

- ISO3 alpha codes (World Bank, IMF)
- UN Comtrade numeric country codes
- FAO numeric area / item / element codes
- Our World in Data chart slugs

Each source receives an object implementing :class:`ReferenceDataProvider`,
so tables can be replaced or refreshed without touching fetch logic.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Mapping, Optional, Protocol, Tuple, TypeVar, Union

Code = Union[str, int]
C = TypeVar("C", str, int)


class ReferenceDataProvider(Protocol[C]):
    def resolve(self, name: str) -> Optional[C]:
        ...


def normalize_key(name: str) -> str:
    return re.sub(r"[\s_]+", "_", str(name).strip().upper())


class StaticReferenceTable(Generic[C]):
    """Case-insensitive dict-backed resolver with an optional pass-through rule for raw codes."""

    def __init__(
        self,
        name: str,
        mapping: Mapping[str, C],
        passthrough: Optional[Callable[[str], Optional[C]]] = None,
    ) -> None:
        self.name = name
        self._entries: Dict[str, C] = dict(mapping)
        self._index: Dict[str, C] = {normalize_key(key): code for key, code in mapping.items()}
        self._passthrough = passthrough

    def resolve(self, name: str) -> Optional[C]:
        if name is None or not str(name).strip():
            return None
        code = self._index.get(normalize_key(name))
        if code is not None:
            return code
        if self._passthrough is not None:
            return self._passthrough(str(name).strip())
        return None

    def search(self, term: Optional[str] = None) -> List[Tuple[str, C]]:
        term_lower = (term or "").strip().lower()
        return [(key, code) for key, code in self._entries.items() if term_lower in key.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"StaticReferenceTable({self.name!r}, entries={len(self._entries)})"


# ---------------------------------------------------------------------------
# ISO3 (World Bank / IMF)
# ---------------------------------------------------------------------------

ISO3_CODES: Dict[str, str] = {
    "afghanistan": "AFG", "algeria": "DZA", "angola": "AGO", "argentina": "ARG",
    "australia": "AUS", "austria": "AUT", "bangladesh": "BGD", "belgium": "BEL",
    "benin": "BEN", "bolivia": "BOL", "botswana": "BWA", "brazil": "BRA",
    "burkina faso": "BFA", "burundi": "BDI", "cambodia": "KHM", "cameroon": "CMR",
    "canada": "CAN", "chad": "TCD", "chile": "CHL", "china": "CHN",
    "colombia": "COL", "congo, dem. rep.": "COD", "democratic republic of the congo": "COD", "drc": "COD",
    "cote d'ivoire": "CIV", "ivory coast": "CIV", "czech republic": "CZE", "czechia": "CZE",
    "denmark": "DNK", "ecuador": "ECU", "egypt": "EGY", "ethiopia": "ETH",
    "finland": "FIN", "france": "FRA", "germany": "DEU", "ghana": "GHA",
    "greece": "GRC", "guinea": "GIN", "hungary": "HUN", "india": "IND",
    "indonesia": "IDN", "iran": "IRN", "iraq": "IRQ", "ireland": "IRL",
    "israel": "ISR", "italy": "ITA", "japan": "JPN", "jordan": "JOR",
    "kazakhstan": "KAZ", "kenya": "KEN", "south korea": "KOR", "korea": "KOR",
    "kuwait": "KWT", "lebanon": "LBN", "madagascar": "MDG", "malawi": "MWI",
    "malaysia": "MYS", "mali": "MLI", "mexico": "MEX", "morocco": "MAR",
    "mozambique": "MOZ", "myanmar": "MMR", "nepal": "NPL", "netherlands": "NLD",
    "new zealand": "NZL", "niger": "NER", "nigeria": "NGA", "norway": "NOR",
    "pakistan": "PAK", "peru": "PER", "philippines": "PHL", "poland": "POL",
    "portugal": "PRT", "qatar": "QAT", "romania": "ROU", "russia": "RUS",
    "russian federation": "RUS", "rwanda": "RWA", "saudi arabia": "SAU", "senegal": "SEN",
    "sierra leone": "SLE", "singapore": "SGP", "somalia": "SOM", "south africa": "ZAF",
    "spain": "ESP", "sri lanka": "LKA", "sudan": "SDN", "sweden": "SWE",
    "switzerland": "CHE", "tanzania": "TZA", "thailand": "THA", "togo": "TGO",
    "tunisia": "TUN", "turkey": "TUR", "turkiye": "TUR", "uganda": "UGA",
    "ukraine": "UKR", "united arab emirates": "ARE", "uae": "ARE",
    "united kingdom": "GBR", "uk": "GBR", "united states": "USA", "usa": "USA", "us": "USA",
    "uzbekistan": "UZB", "venezuela": "VEN", "vietnam": "VNM", "viet nam": "VNM",
    "yemen": "YEM", "zambia": "ZMB", "zimbabwe": "ZWE",
    # World Bank aggregates
    "world": "WLD", "sub-saharan africa": "SSF", "east asia & pacific": "EAS",
    "europe & central asia": "ECS", "latin america & caribbean": "LCN",
    "middle east & north africa": "MEA", "north america": "NAC", "south asia": "SAS",
    "european union": "EUU", "high income": "HIC", "low income": "LIC",
    "lower middle income": "LMC", "upper middle income": "UMC", "middle income": "MIC",
}

_ISO3_VALUES = frozenset(ISO3_CODES.values())


def _iso3_passthrough(raw: str) -> Optional[str]:
    candidate = raw.upper()
    return candidate if candidate in _ISO3_VALUES else None


# ---------------------------------------------------------------------------
# UN Comtrade numeric country codes
# ---------------------------------------------------------------------------

COMTRADE_CODES: Dict[str, int] = {
    "usa": 842, "united states": 842, "us": 842,
    "china": 156, "chn": 156,
    "germany": 276, "deu": 276,
    "japan": 392, "jpn": 392,
    "united kingdom": 826, "uk": 826, "gbr": 826,
    "france": 251, "fra": 251,
    "india": 356, "ind": 356,
    "italy": 380, "ita": 380,
    "brazil": 76, "bra": 76,
    "canada": 124, "can": 124,
    "south korea": 410, "korea": 410, "kor": 410,
    "russia": 643, "rus": 643,
    "australia": 36, "aus": 36,
    "spain": 724, "esp": 724,
    "mexico": 484, "mex": 484,
    "indonesia": 360, "idn": 360,
    "netherlands": 528, "nld": 528,
    "saudi arabia": 682, "sau": 682,
    "turkey": 792, "tur": 792,
    "switzerland": 756, "che": 756,
    "nigeria": 566, "nga": 566,
    "niger": 562, "ner": 562,
    "south africa": 710, "zaf": 710,
    "egypt": 818, "egy": 818,
    "morocco": 504, "mar": 504,
    "argentina": 32, "arg": 32,
    "pakistan": 586, "pak": 586,
    "bangladesh": 50, "bgd": 50,
    "vietnam": 704, "vnm": 704,
    "thailand": 764, "tha": 764,
    "malaysia": 458, "mys": 458,
    "singapore": 702, "sgp": 702,
    "uae": 784, "united arab emirates": 784, "are": 784,
    "world": 0,
    "belgium": 56, "bel": 56,
    "jordan": 400, "jor": 400,
    "austria": 40, "aut": 40,
    "poland": 616, "pol": 616,
    "sweden": 752, "swe": 752,
    "norway": 578, "nor": 578,
    "denmark": 208, "dnk": 208,
    "finland": 246, "fin": 246,
    "ireland": 372, "irl": 372,
    "portugal": 620, "prt": 620,
    "greece": 300, "grc": 300,
    "czech republic": 203, "czechia": 203, "cze": 203,
    "hungary": 348, "hun": 348,
    "romania": 642, "rou": 642,
    "ukraine": 804, "ukr": 804,
    "israel": 376, "isr": 376,
    "kuwait": 414, "kwt": 414,
    "qatar": 634, "qat": 634,
    "bahrain": 48, "bhr": 48,
    "oman": 512, "omn": 512,
    "iraq": 368, "irq": 368,
    "iran": 364, "irn": 364,
    "new zealand": 554, "nzl": 554,
    "chile": 152, "chl": 152,
    "colombia": 170, "col": 170,
    "peru": 604, "per": 604,
    "venezuela": 862, "ven": 862,
    "ecuador": 218, "ecu": 218,
    "philippines": 608, "phl": 608,
    "hong kong": 344, "hkg": 344,
    "taiwan": 158, "twn": 158,
    "kenya": 404, "ken": 404,
    "ethiopia": 231, "eth": 231,
    "ghana": 288, "gha": 288,
    "tanzania": 834, "tza": 834,
    "algeria": 12, "dza": 12,
    "tunisia": 788, "tun": 788,
    "libya": 434, "lby": 434,
    "sudan": 736, "sdn": 736,
    "angola": 24, "ago": 24,
    "kazakhstan": 398, "kaz": 398,
    "uzbekistan": 860, "uzb": 860,
    "sri lanka": 144, "lka": 144,
    "myanmar": 104, "mmr": 104, "burma": 104,
    "cambodia": 116, "khm": 116,
    "laos": 418, "lao": 418,
    "nepal": 524, "npl": 524,
    "luxembourg": 442, "lux": 442,
    "slovakia": 703, "svk": 703,
    "slovenia": 705, "svn": 705,
    "croatia": 191, "hrv": 191,
    "serbia": 688, "srb": 688,
    "bulgaria": 100, "bgr": 100,
    "lithuania": 440, "ltu": 440,
    "latvia": 428, "lva": 428,
    "estonia": 233, "est": 233,
    "cyprus": 196, "cyp": 196,
    "malta": 470, "mlt": 470,
    "iceland": 352, "isl": 352,
}

# Reverse lookup for partner descriptions missing from API payloads
COMTRADE_CODE_NAMES: Dict[int, str] = {
    0: "World", 12: "Algeria", 24: "Angola", 32: "Argentina", 36: "Australia",
    40: "Austria", 48: "Bahrain", 50: "Bangladesh", 56: "Belgium", 76: "Brazil",
    100: "Bulgaria", 104: "Myanmar", 116: "Cambodia", 124: "Canada", 144: "Sri Lanka",
    152: "Chile", 156: "China", 158: "Taiwan", 170: "Colombia", 191: "Croatia",
    196: "Cyprus", 203: "Czech Republic", 208: "Denmark", 218: "Ecuador", 231: "Ethiopia",
    233: "Estonia", 246: "Finland", 251: "France", 276: "Germany", 288: "Ghana",
    300: "Greece", 344: "Hong Kong", 348: "Hungary", 352: "Iceland", 356: "India",
    360: "Indonesia", 364: "Iran", 368: "Iraq", 372: "Ireland", 376: "Israel",
    380: "Italy", 392: "Japan", 398: "Kazakhstan", 400: "Jordan", 404: "Kenya",
    410: "South Korea", 414: "Kuwait", 418: "Laos", 428: "Latvia", 434: "Libya",
    440: "Lithuania", 442: "Luxembourg", 458: "Malaysia", 470: "Malta", 484: "Mexico",
    504: "Morocco", 512: "Oman", 524: "Nepal", 528: "Netherlands", 554: "New Zealand",
    562: "Niger", 566: "Nigeria", 578: "Norway", 586: "Pakistan", 604: "Peru",
    608: "Philippines", 616: "Poland", 620: "Portugal", 634: "Qatar", 642: "Romania",
    643: "Russia", 682: "Saudi Arabia", 688: "Serbia", 702: "Singapore", 703: "Slovakia",
    704: "Vietnam", 705: "Slovenia", 710: "South Africa", 724: "Spain", 736: "Sudan",
    752: "Sweden", 756: "Switzerland", 764: "Thailand", 784: "United Arab Emirates",
    788: "Tunisia", 792: "Turkey", 804: "Ukraine", 818: "Egypt", 826: "United Kingdom",
    834: "Tanzania", 842: "United States", 860: "Uzbekistan", 862: "Venezuela",
    490: "Other Asia N.E.S.", 697: "Other Europe N.E.S.", 699: "Other Africa N.E.S.",
    837: "Bunkers", 838: "Free Zones", 899: "Areas N.E.S.",
}

COMTRADE_COMMODITY_GROUPS: Tuple[Dict[str, str], ...] = (
    {"code": "TOTAL", "name": "All commodities"},
    {"code": "01-05", "name": "Live animals, animal products"},
    {"code": "06-15", "name": "Vegetable products, fats"},
    {"code": "16-24", "name": "Foodstuffs, beverages, tobacco"},
    {"code": "25-27", "name": "Mineral products"},
    {"code": "27", "name": "Mineral fuels, oils"},
    {"code": "28-38", "name": "Chemical products"},
    {"code": "39-40", "name": "Plastics, rubber"},
    {"code": "72-83", "name": "Base metals"},
    {"code": "84", "name": "Machinery, mechanical appliances"},
    {"code": "85", "name": "Electrical machinery, electronics"},
    {"code": "87", "name": "Vehicles"},
    {"code": "88-89", "name": "Aircraft, ships"},
)


def _numeric_passthrough(raw: str) -> Optional[int]:
    return int(raw) if raw.isdigit() else None


def comtrade_country_name(code: int) -> str:
    return COMTRADE_CODE_NAMES.get(code, f"Country ({code})")


# ---------------------------------------------------------------------------
# FAO numeric codes
# ---------------------------------------------------------------------------

FAO_AREA_CODES: Dict[str, int] = {
    "egypt": 59, "morocco": 143, "nigeria": 159, "niger": 158, "south africa": 202,
    "brazil": 21, "argentina": 9, "usa": 231, "united states": 231,
    "china": 351, "india": 100, "indonesia": 101, "pakistan": 165,
    "russia": 185, "ukraine": 230, "france": 68, "germany": 79,
    "australia": 10, "canada": 33, "mexico": 138, "japan": 110,
    "turkey": 223, "iran": 102, "thailand": 216, "vietnam": 237,
    "bangladesh": 16, "philippines": 171, "ethiopia": 62, "kenya": 114,
}

FAO_ITEM_CODES: Dict[str, int] = {
    "wheat": 15, "rice": 27, "rice, paddy": 27, "maize": 56, "corn": 56,
    "barley": 44, "sorghum": 83, "millet": 79, "oats": 75,
    "soybeans": 236, "sugar cane": 156, "cotton": 328, "coffee": 656,
    "cocoa": 661, "tea": 667, "tobacco": 826, "potatoes": 116,
    "tomatoes": 388, "onions": 403, "bananas": 486, "oranges": 490,
    "apples": 515, "grapes": 560,
    "cattle": 866, "buffalo": 946, "sheep": 976, "goats": 1016,
    "pigs": 1034, "chickens": 1057, "ducks": 1068,
}

FAO_ELEMENT_CODES: Dict[str, int] = {
    "production": 5510, "area harvested": 5312, "yield": 5419,
    "stocks": 5071, "import quantity": 5610, "export quantity": 5910,
}

FAO_DEFAULT_ELEMENT = 5510


# ---------------------------------------------------------------------------
# Our World in Data chart slugs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChartInfo:
    slug: str
    name: str
    topics: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, query: str) -> bool:
        query_lower = query.lower()
        return query_lower in self.name.lower() or any(query_lower in topic for topic in self.topics)

    def to_dict(self) -> Dict[str, object]:
        return {"slug": self.slug, "name": self.name, "topics": list(self.topics)}


OWID_CHARTS: Tuple[ChartInfo, ...] = (
    # Health & demographics
    ChartInfo("life-expectancy", "Life expectancy at birth", ("health", "life", "mortality", "death", "lifespan", "longevity")),
    ChartInfo("population", "Population", ("population", "people", "demographic", "inhabitants")),
    ChartInfo("fertility-rate", "Total fertility rate", ("fertility", "birth", "children", "births")),
    ChartInfo("infant-mortality", "Infant mortality rate", ("infant", "mortality", "child", "death", "baby")),
    ChartInfo("maternal-mortality", "Maternal mortality ratio", ("maternal", "mortality", "pregnancy", "mother")),
    ChartInfo("share-of-children-who-are-stunted", "Child stunting", ("stunting", "nutrition", "children", "malnutrition", "growth")),
    # Economy
    ChartInfo("gdp-per-capita-worldbank", "GDP per capita", ("gdp", "economy", "income", "wealth")),
    ChartInfo("share-of-population-in-extreme-poverty", "Extreme poverty rate", ("poverty", "poor", "income")),
    ChartInfo("human-development-index", "Human Development Index", ("hdi", "development", "living standards")),
    ChartInfo("gini-coefficient", "Gini coefficient (inequality)", ("gini", "inequality", "income distribution")),
    ChartInfo("unemployment-rate", "Unemployment rate", ("unemployment", "jobs", "labor", "work", "employment")),
    ChartInfo("inflation-of-consumer-prices", "Consumer price inflation", ("inflation", "prices", "cpi")),
    ChartInfo("trade-as-share-of-gdp", "Trade openness (% GDP)", ("trade", "exports", "imports", "openness")),
    # Democracy & governance
    ChartInfo("democracy-index-eiu", "Democracy Index (EIU)", ("democracy", "democratic", "governance", "political", "freedom", "elections", "voting", "autocracy", "eiu")),
    ChartInfo("electoral-democracy-index", "Electoral Democracy Index (V-Dem)", ("democracy", "electoral", "elections", "voting", "democratic", "vdem")),
    ChartInfo("liberal-democracy-index", "Liberal Democracy Index (V-Dem)", ("democracy", "liberal", "freedom", "rights", "vdem")),
    ChartInfo("political-regime", "Political Regime Type", ("regime", "political", "autocracy", "democracy", "government")),
    ChartInfo("human-rights-index-vdem", "Human Rights Index", ("human rights", "rights", "civil liberties", "freedom")),
    ChartInfo("civil-liberties-index", "Civil Liberties Index", ("civil liberties", "freedom", "rights")),
    ChartInfo("freedom-of-expression", "Freedom of Expression Index", ("freedom", "expression", "speech", "press", "media")),
    ChartInfo("rule-of-law-index", "Rule of Law Index", ("rule of law", "law", "justice", "legal", "governance")),
    ChartInfo("corruption-perception-index", "Corruption Perception Index", ("corruption", "transparency", "governance", "bribery")),
    ChartInfo("press-freedom-index", "Press Freedom Index", ("press", "media", "freedom", "journalism", "news")),
    # Education
    ChartInfo("literacy-rate-adult-total", "Literacy rate", ("literacy", "education", "reading", "writing")),
    ChartInfo("government-expenditure-education-gdp", "Education spending (% GDP)", ("education", "spending", "government", "schools")),
    ChartInfo("mean-years-of-schooling", "Mean years of schooling", ("education", "schooling", "years", "attainment")),
    ChartInfo("primary-school-enrollment", "Primary school enrollment", ("education", "primary", "school", "enrollment", "children")),
    ChartInfo("secondary-school-enrollment", "Secondary school enrollment", ("education", "secondary", "school", "enrollment")),
    ChartInfo("tertiary-school-enrollment", "Tertiary school enrollment", ("education", "tertiary", "university", "higher education", "college")),
    # Energy & environment
    ChartInfo("co2-emissions-per-capita", "CO2 emissions per capita", ("co2", "emissions", "climate", "carbon", "environment")),
    ChartInfo("primary-energy-cons", "Primary energy consumption", ("energy", "power", "consumption")),
    ChartInfo("share-with-access-to-electricity", "Access to electricity", ("electricity", "power", "energy", "electrification")),
    ChartInfo("share-electricity-renewables", "Renewable electricity share", ("renewable", "electricity", "solar", "wind", "clean")),
    ChartInfo("forest-area-share", "Forest area (% of land)", ("forest", "deforestation", "trees", "land", "environment")),
    # Military, technology
    ChartInfo("military-expenditure-share-gdp", "Military spending (% GDP)", ("military", "defense", "spending", "army", "armed forces")),
    ChartInfo("share-of-individuals-using-the-internet", "Internet users (% population)", ("internet", "digital", "technology", "online", "connectivity")),
    ChartInfo("mobile-cellular-subscriptions-per-100-people", "Mobile subscriptions per 100", ("mobile", "phone", "cellular", "telecom")),
)

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _slug_passthrough(raw: str) -> Optional[str]:
    # Any well-formed grapher slug is accepted; the catalog only covers common charts.
    return raw if _SLUG_PATTERN.match(raw) else None


def _chart_mapping() -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for chart in OWID_CHARTS:
        mapping[chart.name.lower()] = chart.slug
        mapping[chart.slug] = chart.slug
    return mapping


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------

@dataclass
class ReferenceData:
    iso3: ReferenceDataProvider[str]
    comtrade: ReferenceDataProvider[int]
    fao_area: ReferenceDataProvider[int]
    fao_item: ReferenceDataProvider[int]
    fao_element: ReferenceDataProvider[int]
    owid_chart: ReferenceDataProvider[str]


def default_reference_data() -> ReferenceData:
    return ReferenceData(
        iso3=StaticReferenceTable("iso3", ISO3_CODES, passthrough=_iso3_passthrough),
        comtrade=StaticReferenceTable("comtrade", COMTRADE_CODES, passthrough=_numeric_passthrough),
        fao_area=StaticReferenceTable("fao_area", FAO_AREA_CODES, passthrough=_numeric_passthrough),
        fao_item=StaticReferenceTable("fao_item", FAO_ITEM_CODES, passthrough=_numeric_passthrough),
        fao_element=StaticReferenceTable("fao_element", FAO_ELEMENT_CODES),
        owid_chart=StaticReferenceTable("owid_chart", _chart_mapping(), passthrough=_slug_passthrough),
    )
