from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from econchat.exceptions import FatalRoutingError, ProviderResponseError, ProviderTransportError
from econchat.llm.adapters.anthropic import ANTHROPIC_PROFILE
from econchat.llm.adapters.base import ProviderProfile
from econchat.llm.adapters.gemini import GEMINI_PROFILE
from econchat.llm.tool_catalog import ECON_TOOLS
from econchat.models import (
    HistoryMessage,
    LLMResponse,
    RouterConfig,
    Tier,
    TokenUsage,
    ToolCall,
    ToolResult,
    ToolRound,
)
from econchat.routing.router import LLMRouter

Outcome = Union[LLMResponse, Exception]


class _FakeAdapter:
    def __init__(self, profile: ProviderProfile, outcomes: Sequence[Outcome] = ()) -> None:
        self.profile = profile
        self.outcomes: List[Outcome] = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    @property
    def provider(self) -> str:
        return self.profile.provider

    @property
    def tier(self) -> Tier:
        return self.profile.tier

    @property
    def model(self) -> str:
        return self.profile.model

    def _next(self, **call: Any) -> LLMResponse:
        self.calls.append(call)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def generate(self, query, tools=None, history=None) -> LLMResponse:
        return self._next(kind="generate", query=query, tools=tools, history=list(history or []))

    async def continue_with_tool_results(
        self,
        original_query,
        tool_calls,
        tool_results,
        history=None,
        tools=None,
        earlier_rounds=None,
        allow_more_tools=False,
    ):
        return self._next(
            kind="continue",
            query=original_query,
            tool_calls=list(tool_calls),
            tool_results=list(tool_results),
            tools=tools,
            earlier_rounds=list(earlier_rounds or []),
            allow_more_tools=allow_more_tools,
        )


def _response(profile: ProviderProfile, content: str = "ok", cost: float = 0.0, tool_calls=None) -> LLMResponse:
    return LLMResponse(
        tierUsed=profile.tier,
        provider=profile.provider,
        model=profile.model,
        content=content,
        toolCalls=tool_calls,
        usage=TokenUsage(inputTokens=10, outputTokens=5, estimatedCost=cost),
        latencyMs=12.0,
    )


def _transport_error(profile: ProviderProfile) -> ProviderTransportError:
    return ProviderTransportError("boom", provider=profile.provider, tier=profile.tier, status_code=503)


def _router(
    premium: Sequence[Outcome] = (),
    standard: Sequence[Outcome] = (),
    config: Optional[RouterConfig] = None,
    history_limit: int = 20,
) -> LLMRouter:
    adapters = {
        Tier.PREMIUM: _FakeAdapter(ANTHROPIC_PROFILE, premium),
        Tier.STANDARD: _FakeAdapter(GEMINI_PROFILE, standard),
    }
    return LLMRouter(adapters, config=config, history_limit=history_limit)


@pytest.mark.asyncio
async def test_standard_query_is_served_by_standard_tier():
    router = _router(standard=[_response(GEMINI_PROFILE, cost=0.002)])

    response = await router.generate("What is the GDP of Kenya?")

    assert response.tierUsed == Tier.STANDARD
    assert response.fallbackUsed is False
    stats = router.get_usage_stats()
    assert stats.standardCalls == 1
    assert stats.premiumCalls == 0
    assert stats.totalCost == pytest.approx(0.002)


@pytest.mark.asyncio
async def test_premium_query_is_served_by_premium_tier():
    router = _router(premium=[_response(ANTHROPIC_PROFILE, cost=0.5)])

    response = await router.generate("Analyze Ghana's debt dynamics")

    assert response.tierUsed == Tier.PREMIUM
    assert router.get_usage_stats().premiumCalls == 1


@pytest.mark.asyncio
async def test_standard_failure_falls_back_to_premium_once():
    router = _router(
        premium=[_response(ANTHROPIC_PROFILE, content="from premium", cost=0.3)],
        standard=[_transport_error(GEMINI_PROFILE)],
    )

    response = await router.generate("What is the GDP of Kenya?")

    assert response.content == "from premium"
    assert response.tierUsed == Tier.PREMIUM
    assert response.fallbackUsed is True
    assert response.originalTier == Tier.STANDARD
    stats = router.get_usage_stats()
    assert stats.standardFailures == 1
    assert stats.premiumCalls == 1
    assert stats.standardCalls == 0
    assert stats.fallbackCount == 1
    assert stats.totalCost == pytest.approx(0.3)


@pytest.mark.asyncio
async def test_both_tiers_failing_raises_fatal_error_with_every_attempt():
    standard_error = _transport_error(GEMINI_PROFILE)
    premium_error = ProviderResponseError("bad payload", provider="anthropic", tier=Tier.PREMIUM)
    router = _router(premium=[premium_error], standard=[standard_error])

    with pytest.raises(FatalRoutingError) as exc_info:
        await router.generate("What is the GDP of Kenya?")

    error = exc_info.value
    assert str(error).startswith("All LLM tiers failed")
    assert [tier for tier, _ in error.attempts] == [Tier.STANDARD, Tier.PREMIUM]
    assert error.original_error is standard_error
    stats = router.get_usage_stats()
    assert stats.standardFailures == 1
    assert stats.premiumFailures == 1
    assert stats.fallbackCount == 1
    assert stats.totalCost == 0


@pytest.mark.asyncio
async def test_premium_failure_has_no_fallback_target():
    router = _router(premium=[_transport_error(ANTHROPIC_PROFILE)])

    with pytest.raises(FatalRoutingError) as exc_info:
        await router.generate("Analyze Ghana's debt dynamics")

    assert len(exc_info.value.attempts) == 1
    assert router.get_usage_stats().fallbackCount == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config",
    [RouterConfig(enableFallback=False), RouterConfig(maxRetries=0)],
)
async def test_disabled_fallback_surfaces_first_failure(config):
    router = _router(
        premium=[_response(ANTHROPIC_PROFILE)],
        standard=[_transport_error(GEMINI_PROFILE)],
        config=config,
    )

    with pytest.raises(FatalRoutingError):
        await router.generate("What is the GDP of Kenya?")

    assert router.adapter_for(Tier.PREMIUM).calls == []
    assert router.get_usage_stats().fallbackCount == 0


@pytest.mark.asyncio
async def test_non_provider_errors_propagate_without_fallback():
    router = _router(premium=[_response(ANTHROPIC_PROFILE)], standard=[RuntimeError("bug")])

    with pytest.raises(RuntimeError):
        await router.generate("What is the GDP of Kenya?")

    assert router.get_usage_stats().fallbackCount == 0


@pytest.mark.asyncio
async def test_forced_tier_overrides_classifier_and_accepts_legacy_tier():
    router = _router(
        premium=[_response(ANTHROPIC_PROFILE)],
        standard=[_response(GEMINI_PROFILE)],
    )

    forced_premium = await router.generate_with_tier(Tier.PREMIUM, "What is the GDP of Kenya?")
    legacy = await router.generate("Analyze Ghana's debt dynamics", forced_tier=3)

    assert forced_premium.tierUsed == Tier.PREMIUM
    assert legacy.tierUsed == Tier.STANDARD


@pytest.mark.asyncio
async def test_tools_are_offered_unless_disabled():
    router = _router(standard=[_response(GEMINI_PROFILE), _response(GEMINI_PROFILE)])
    adapter = router.adapter_for(Tier.STANDARD)

    await router.generate("What is the GDP of Kenya?")
    await router.generate("What is the GDP of Kenya?", include_tools=False)

    assert [tool.name for tool in adapter.calls[0]["tools"]] == [tool.name for tool in ECON_TOOLS]
    assert adapter.calls[1]["tools"] is None


@pytest.mark.asyncio
async def test_batch_records_failures_and_continues():
    router = _router(
        premium=[_transport_error(ANTHROPIC_PROFILE)],
        standard=[
            _response(GEMINI_PROFILE, content="first"),
            _transport_error(GEMINI_PROFILE),
            _response(GEMINI_PROFILE, content="third"),
        ],
    )

    items = await router.batch_generate(["GDP of Kenya", "GDP of Ghana", "GDP of Chad"])

    assert [item.ok for item in items] == [True, False, True]
    assert items[0].response.content == "first"
    assert items[1].error.startswith("All LLM tiers failed")
    assert items[2].response.content == "third"


@pytest.mark.asyncio
async def test_continuation_goes_back_to_the_tier_that_asked_for_tools():
    call = ToolCall(id="call-1", name="wb_list_countries", arguments={})
    first = _response(ANTHROPIC_PROFILE, tool_calls=[call])
    router = _router(premium=[_response(ANTHROPIC_PROFILE, content="final", cost=0.1)])

    response = await router.continue_with_tool_results(
        first,
        "Analyze Kenya",
        [ToolResult(toolCallId="call-1", result=[{"code": "KEN"}])],
    )

    assert response.content == "final"
    recorded = router.adapter_for(Tier.PREMIUM).calls[0]
    assert recorded["kind"] == "continue"
    assert recorded["tool_calls"][0].id == "call-1"
    assert recorded["allow_more_tools"] is False


@pytest.mark.asyncio
async def test_continuation_passes_earlier_rounds_through():
    earlier = ToolRound(
        toolCalls=[ToolCall(id="call-1", name="wb_search_indicators", arguments={"query": "gdp"})],
        toolResults=[ToolResult(toolCallId="call-1", result=[{"id": "NY.GDP.MKTP.CD"}])],
    )
    call = ToolCall(id="call-2", name="wb_get_indicator_data", arguments={"indicator": "NY.GDP.MKTP.CD"})
    first = _response(GEMINI_PROFILE, tool_calls=[call])
    router = _router(standard=[_response(GEMINI_PROFILE, content="final")])

    await router.continue_with_tool_results(
        first,
        "GDP of Kenya",
        [ToolResult(toolCallId="call-2", result=[])],
        earlier_rounds=[earlier],
        allow_more_tools=True,
    )

    recorded = router.adapter_for(Tier.STANDARD).calls[0]
    assert recorded["earlier_rounds"] == [earlier]
    assert recorded["allow_more_tools"] is True


@pytest.mark.asyncio
async def test_continuation_requires_tool_calls():
    router = _router()

    with pytest.raises(ValueError):
        await router.continue_with_tool_results(_response(GEMINI_PROFILE), "GDP of Kenya", [])


@pytest.mark.asyncio
async def test_session_history_is_passed_to_adapters():
    router = _router(standard=[_response(GEMINI_PROFILE)])
    router.record_exchange("session-1", "GDP of Kenya?", "About $110bn.")

    await router.generate("And Ghana?", session_id="session-1")

    history = router.adapter_for(Tier.STANDARD).calls[0]["history"]
    assert [message.role for message in history] == ["user", "assistant"]
    assert history[0].content == "GDP of Kenya?"


def test_record_exchange_keeps_newest_messages():
    router = _router(history_limit=4)

    for index in range(3):
        history = router.record_exchange("s", f"question {index}", f"answer {index}")

    assert len(history) == 4
    assert history[0] == HistoryMessage(role="user", content="question 1")
    assert router.history_for("s")[-1].content == "answer 2"


def test_set_tools_rejects_duplicate_names():
    router = _router()

    with pytest.raises(ValueError):
        router.set_tools([ECON_TOOLS[0], ECON_TOOLS[0]])


def test_router_requires_an_adapter_per_tier():
    with pytest.raises(ValueError):
        LLMRouter({Tier.PREMIUM: _FakeAdapter(ANTHROPIC_PROFILE)})


def test_tier_info_and_stats_reset():
    router = _router()

    info = router.get_tier_info()
    router.reset_usage_stats()

    assert [entry.tier for entry in info] == [Tier.PREMIUM, Tier.STANDARD]
    assert info[0].model == "claude-opus-4-5-20251101"
    assert info[1].model == "gemini-2.5-flash"
    assert router.get_usage_stats().totalCost == 0
