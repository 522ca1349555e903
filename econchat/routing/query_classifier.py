"""
Static query classifier.

Maps a natural-language query to a routing tier with ordered keyword and
heuristic rules (first match wins):

1. Premium vocabulary (analysis, diagnostics, sustainability, briefs) -> Premium
2. Standard vocabulary (comparisons, trends, synthesis) -> Standard
3. Two or more regional/bloc indicators, or two or more entity separators -> Standard
4. More than 30 words -> Premium
5. Otherwise the default tier (Standard)

Classification is case-insensitive, performs no I/O and ignores conversation
history.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple, Union

from ..models import Tier

logger = logging.getLogger(__name__)

PREMIUM_PATTERNS: Tuple[str, ...] = (
    # Deep analysis
    "analysis",
    "analyze",
    "diagnostic",
    "diagnostics",
    "sustainability",
    "sustainable",
    "report",
    "brief",
    "assessment",
    "framework",
    "binding constraints",
    "growth diagnostic",
    "dsa",
    "debt sustainability",
    "explain why",
    "implications",
    "recommend",
    "recommendations",
    "scenario",
    "projection analysis",
    "forecast implications",
    # Document generation
    "generate a",
    "create a report",
    "write a brief",
    "draft a",
    "country economic brief",
    "economic outlook",
    # Methodologies
    "hausmann",
    "rodrik",
    "velasco",
    "hrv",
    "macroeconomic framework",
    "fiscal framework",
    "policy implications",
    "structural reform",
    # Open-ended reasoning
    "what are the main",
    "evaluate",
    "assess the impact",
    "long-term",
    "medium-term outlook",
)

# Patterns containing ".*" are matched as regular expressions.
STANDARD_PATTERNS: Tuple[str, ...] = (
    # Comparison
    "compare",
    "comparison",
    "versus",
    " vs ",
    " vs.",
    "relative to",
    "compared to",
    "against",
    # Trends
    "trend",
    "trends",
    "over time",
    "historical",
    "trajectory",
    "evolution",
    "changed",
    # Multi-entity
    "across countries",
    "regional",
    "multiple countries",
    "across regions",
    "different countries",
    # Synthesis
    "summarize",
    "synthesis",
    "overview",
    "summary",
    "how has",
    "how have",
    "evolution of",
    # Time ranges
    "since",
    "from.*to",
    "between.*and",
    # Aggregations
    "average",
    "total",
    "aggregate",
    "combined",
)

COMPLEXITY_INDICATORS: Tuple[str, ...] = (
    "countries",
    "nations",
    "economies",
    "africa",
    "asia",
    "europe",
    "americas",
    "ecowas",
    "sadc",
    "eac",
    "comesa",
    "g20",
    "g7",
    "brics",
    "oecd",
    "developing",
    "emerging",
    "frontier",
)

WILDCARD_MARKER = ".*"
MIN_COMPLEXITY_INDICATORS = 2
MIN_ENTITY_SEPARATORS = 2
LONG_QUERY_WORDS = 30


def _compile(pattern: str) -> Union[str, Pattern[str]]:
    return re.compile(pattern) if WILDCARD_MARKER in pattern else pattern


_STANDARD_MATCHERS = tuple((pattern, _compile(pattern)) for pattern in STANDARD_PATTERNS)


@dataclass(frozen=True)
class Classification:
    tier: Tier
    rule: str
    detail: Optional[str] = None


def count_complexity_indicators(query_lower: str) -> int:
    return sum(1 for indicator in COMPLEXITY_INDICATORS if indicator in query_lower)


def count_entity_separators(query_lower: str) -> int:
    return query_lower.count(",") + query_lower.count(" and ")


def explain_classification(query: str, default_tier: Tier = Tier.STANDARD) -> Classification:
    """Classify ``query`` and report which rule decided the tier."""
    query_lower = query.lower()

    for pattern in PREMIUM_PATTERNS:
        if pattern in query_lower:
            return Classification(Tier.PREMIUM, "premium_keyword", pattern)

    for pattern, matcher in _STANDARD_MATCHERS:
        if isinstance(matcher, str):
            matched = matcher in query_lower
        else:
            matched = matcher.search(query_lower) is not None
        if matched:
            return Classification(Tier.STANDARD, "standard_keyword", pattern)

    indicators = count_complexity_indicators(query_lower)
    separators = count_entity_separators(query_lower)
    if indicators >= MIN_COMPLEXITY_INDICATORS or separators >= MIN_ENTITY_SEPARATORS:
        return Classification(
            Tier.STANDARD,
            "complexity",
            f"indicators={indicators}, separators={separators}",
        )

    word_count = len(query.split())
    if word_count > LONG_QUERY_WORDS:
        return Classification(Tier.PREMIUM, "length", f"{word_count} words")

    return Classification(default_tier, "default")


def classify(query: str, default_tier: Tier = Tier.STANDARD) -> Tier:
    classification = explain_classification(query, default_tier=default_tier)
    logger.debug(
        "Classified query as tier %s via %s (%s)",
        int(classification.tier),
        classification.rule,
        classification.detail or "-",
    )
    return classification.tier
