#!/usr/bin/env python3
"""
Routing sweep for EconChat.

Goals:
- Show how the query classifier spreads a realistic query suite across tiers
- Optionally send every query through the live router and record tier, cost and latency

Usage:
  python scripts/route_sweep.py
  python scripts/route_sweep.py --live --output reports/route_sweep.json
  python scripts/route_sweep.py --query "Compare GDP growth in Nigeria, Kenya and Ghana"
"""

from __future__ import annotations

import argparse
import asyncio
import json
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from econchat.config import get_settings
from econchat.logging_config import configure_logging
from econchat.models import Tier
from econchat.routing.query_classifier import explain_classification
from econchat.routing.router import LLMRouter
from econchat.services.http_pool import close_http_pool

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_REPORT = ROOT / "reports" / "route_sweep_latest.json"


@dataclass
class SweepCase:
    category: str
    query: str
    expected_tier: Optional[int] = None


@dataclass
class SweepResult:
    query: str
    category: str
    classified_tier: int
    rule: str
    expected_tier: Optional[int]
    tier_used: Optional[int] = None
    fallback_used: bool = False
    cost: float = 0.0
    latency_ms: float = 0.0
    error: Optional[str] = None


def build_query_suite() -> List[SweepCase]:
    raw: List[Dict[str, Any]] = [
        # Analytical (premium keywords)
        {"category": "analysis", "query": "Analyze the impact of oil price shocks on Nigeria's fiscal balance", "expected_tier": 1},
        {"category": "analysis", "query": "Explain why inflation in Argentina accelerated after 2018", "expected_tier": 1},
        {"category": "analysis", "query": "What are the main drivers of remittances to Egypt?", "expected_tier": 1},
        {"category": "analysis", "query": "What are the policy implications of rising debt in Ghana?", "expected_tier": 1},
        {"category": "analysis", "query": "Recommend a strategy for diversifying Saudi Arabia's exports", "expected_tier": 1},
        # Single-entity lookups
        {"category": "lookup", "query": "What is the GDP of Kenya in 2022?", "expected_tier": 2},
        {"category": "lookup", "query": "Show me inflation in Turkey", "expected_tier": 2},
        {"category": "lookup", "query": "List the top trading partners of Vietnam", "expected_tier": 2},
        {"category": "lookup", "query": "What's Nigeria's GDP growth forecast for 2024-2026?", "expected_tier": 2},
        # Multi-entity comparisons
        {"category": "multi_entity", "query": "GDP growth in Nigeria, Kenya, Ghana and Ethiopia", "expected_tier": 2},
        {"category": "multi_entity", "query": "Trade between ASEAN and the European Union", "expected_tier": 2},
        {"category": "multi_entity", "query": "Wheat production across Sub-Saharan Africa and South Asia", "expected_tier": 2},
        # Long-form prompts
        {
            "category": "long_form",
            "query": (
                "I am preparing a briefing note on food security in North Africa and would like to understand "
                "how cereal production, import dependence, population growth and household consumption have "
                "evolved in Egypt, Morocco and Tunisia over the last fifteen years"
            ),
            "expected_tier": 1,
        },
    ]
    return [SweepCase(**item) for item in raw]


def classify_suite(cases: List[SweepCase], default_tier: Tier) -> List[SweepResult]:
    results = []
    for case in cases:
        classification = explain_classification(case.query, default_tier=default_tier)
        results.append(
            SweepResult(
                query=case.query,
                category=case.category,
                classified_tier=int(classification.tier),
                rule=classification.rule,
                expected_tier=case.expected_tier,
            )
        )
    return results


async def run_live(results: List[SweepResult], router: LLMRouter) -> None:
    items = await router.batch_generate([result.query for result in results])
    for result, item in zip(results, items):
        if item.response is None:
            result.error = item.error
            continue
        result.tier_used = int(item.response.tierUsed)
        result.fallback_used = item.response.fallbackUsed
        result.cost = item.response.usage.estimatedCost
        result.latency_ms = item.response.latencyMs


def summarize(results: List[SweepResult], live: bool) -> Dict[str, Any]:
    by_tier = Counter(Tier(result.classified_tier).display_name for result in results)
    by_rule = Counter(result.rule for result in results)
    mismatches = [
        result.query
        for result in results
        if result.expected_tier is not None and result.expected_tier != result.classified_tier
    ]
    summary: Dict[str, Any] = {
        "total": len(results),
        "by_tier": dict(by_tier),
        "by_rule": dict(by_rule),
        "expectation_mismatches": mismatches,
    }
    if live:
        completed = [result for result in results if result.error is None]
        summary.update(
            {
                "errors": len(results) - len(completed),
                "fallbacks": sum(1 for result in completed if result.fallback_used),
                "total_cost": round(sum(result.cost for result in completed), 6),
                "avg_latency_ms": (
                    sum(result.latency_ms for result in completed) / len(completed) if completed else 0.0
                ),
            }
        )
    return summary


def save_report(path: Path, results: List[SweepResult], summary: Dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "run_timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "summary": summary,
        "results": [asdict(result) for result in results],
    }
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


async def main() -> None:
    parser = argparse.ArgumentParser(description="Classify (and optionally route) a query suite")
    parser.add_argument("--live", action="store_true", help="Send every query through the live router")
    parser.add_argument("--query", action="append", default=None, help="Custom query (repeatable)")
    parser.add_argument("--output", type=Path, default=DEFAULT_REPORT, help="JSON report path for --live runs")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)

    cases = [SweepCase("custom", query) for query in args.query] if args.query else build_query_suite()
    results = classify_suite(cases, Tier(settings.router_default_tier))

    for result in results:
        print(f"[tier {result.classified_tier} | {result.rule:<16}] {result.query}")
    print("-" * 100)

    if args.live:
        router = LLMRouter.from_settings(settings)
        try:
            await run_live(results, router)
        finally:
            await close_http_pool()

    summary = summarize(results, args.live)
    print(json.dumps(summary, indent=2))
    if args.live:
        report_path = save_report(args.output, results, summary)
        print(f"\nReport: {report_path}")


if __name__ == "__main__":
    asyncio.run(main())
