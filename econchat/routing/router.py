"""
Multi-provider LLM router.

Per request: classify the query (unless a tier is forced), dispatch to that
tier's adapter and, when the adapter fails, escalate exactly once to the top
tier. Usage counters and running cost are updated after each awaited call.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

import httpx

from ..config import Settings, get_settings
from ..exceptions import FatalRoutingError, ProviderError
from ..llm.adapters import ProviderAdapter, build_default_adapters
from ..llm.tool_catalog import ECON_TOOLS, validate_catalog
from ..models import (
    BatchItem,
    HistoryMessage,
    LLMResponse,
    RouterConfig,
    Tier,
    TierInfo,
    ToolDefinition,
    ToolResult,
    ToolRound,
    UsageStats,
)
from ..services.session_store import DEFAULT_MAX_MESSAGES, InMemorySessionStore, SessionStore
from .query_classifier import classify

logger = logging.getLogger(__name__)

AdapterCall = Callable[[ProviderAdapter], Awaitable[LLMResponse]]
TierLike = Union[Tier, int, str]


def _preview(query: str, limit: int = 100) -> str:
    return query if len(query) <= limit else f"{query[:limit]}..."


class LLMRouter:
    def __init__(
        self,
        adapters: Mapping[Tier, ProviderAdapter],
        config: Optional[RouterConfig] = None,
        session_store: Optional[SessionStore] = None,
        tools: Optional[Sequence[ToolDefinition]] = None,
        history_limit: int = DEFAULT_MAX_MESSAGES,
    ) -> None:
        missing = [tier for tier in Tier if tier not in adapters]
        if missing:
            raise ValueError(f"No adapter configured for tier(s): {[int(t) for t in missing]}")
        self._adapters: Dict[Tier, ProviderAdapter] = dict(adapters)
        self.config = config or RouterConfig()
        self.session_store: SessionStore = session_store or InMemorySessionStore(max_messages=history_limit)
        self.history_limit = history_limit
        self._tools = validate_catalog(ECON_TOOLS if tools is None else tools)
        self._usage = UsageStats()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        session_store: Optional[SessionStore] = None,
    ) -> "LLMRouter":
        settings = settings or get_settings()
        config = RouterConfig.from_settings(settings)
        return cls(
            build_default_adapters(settings, config, client=client),
            config=config,
            session_store=session_store or InMemorySessionStore.from_settings(settings),
            history_limit=settings.history_max_messages,
        )

    # ------------------------------------------------------------------
    # Catalog and bookkeeping
    # ------------------------------------------------------------------

    @property
    def tools(self) -> List[ToolDefinition]:
        return list(self._tools)

    def set_tools(self, tools: Sequence[ToolDefinition]) -> None:
        self._tools = validate_catalog(tools)
        logger.info("Router tool catalog replaced (%s tools)", len(self._tools))

    def adapter_for(self, tier: TierLike) -> ProviderAdapter:
        return self._adapters[Tier(tier)]

    @property
    def fallback_enabled(self) -> bool:
        return self.config.enableFallback and self.config.maxRetries > 0

    def get_usage_stats(self) -> UsageStats:
        return self._usage.model_copy()

    def reset_usage_stats(self) -> None:
        self._usage = UsageStats()

    def get_tier_info(self) -> List[TierInfo]:
        info = []
        for tier in sorted(self._adapters):
            profile = self._adapters[tier].profile
            info.append(
                TierInfo(
                    tier=tier,
                    name=f"{tier.display_name} ({profile.display_name})",
                    provider=profile.provider,
                    model=profile.model,
                    inputPricePerMillion=profile.input_price_per_million,
                    outputPricePerMillion=profile.output_price_per_million,
                    contextWindow=profile.context_window,
                    maxOutputTokens=profile.max_output_tokens,
                )
            )
        return info

    def _record_success(self, tier: Tier, response: LLMResponse) -> None:
        if tier is Tier.PREMIUM:
            self._usage.premiumCalls += 1
        else:
            self._usage.standardCalls += 1
        self._usage.totalCost += response.usage.estimatedCost

    def _record_failure(self, tier: Tier) -> None:
        if tier is Tier.PREMIUM:
            self._usage.premiumFailures += 1
        else:
            self._usage.standardFailures += 1

    # ------------------------------------------------------------------
    # Session history
    # ------------------------------------------------------------------

    def history_for(self, session_id: Optional[str]) -> List[HistoryMessage]:
        if not session_id:
            return []
        return self.session_store.get(session_id)

    def record_exchange(self, session_id: str, query: str, answer: str) -> List[HistoryMessage]:
        """Append a user/assistant pair to the session, keeping the newest ``history_limit`` messages."""
        history = self.session_store.get(session_id)
        history.append(HistoryMessage(role="user", content=query))
        history.append(HistoryMessage(role="assistant", content=answer))
        history = history[-self.history_limit:]
        self.session_store.put(session_id, history)
        return history

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def select_tier(self, query: str, forced_tier: Optional[TierLike] = None) -> Tier:
        if forced_tier is not None:
            tier = Tier(forced_tier)
            logger.info("Query forced to tier %s (%s)", int(tier), tier.display_name)
            return tier
        tier = classify(query, default_tier=self.config.defaultTier)
        logger.info("Query routed to tier %s (%s): %r", int(tier), tier.display_name, _preview(query))
        return tier

    async def generate(
        self,
        query: str,
        forced_tier: Optional[TierLike] = None,
        include_tools: bool = True,
        history: Optional[Sequence[HistoryMessage]] = None,
        session_id: Optional[str] = None,
    ) -> LLMResponse:
        tier = self.select_tier(query, forced_tier)
        tools = self.tools if include_tools else None
        if history is None:
            history = self.history_for(session_id)

        async def call(adapter: ProviderAdapter) -> LLMResponse:
            return await adapter.generate(query, tools=tools, history=history)

        return await self._dispatch(tier, call)

    async def generate_with_tier(
        self,
        tier: TierLike,
        query: str,
        include_tools: bool = True,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> LLMResponse:
        return await self.generate(query, forced_tier=tier, include_tools=include_tools, history=history)

    async def continue_with_tool_results(
        self,
        response: LLMResponse,
        original_query: str,
        tool_results: Sequence[ToolResult],
        history: Optional[Sequence[HistoryMessage]] = None,
        session_id: Optional[str] = None,
        include_tools: bool = True,
        earlier_rounds: Optional[Sequence[ToolRound]] = None,
        allow_more_tools: bool = False,
    ) -> LLMResponse:
        """
        Send tool results back to the tier that requested them.

        ``earlier_rounds`` are the tool exchanges that preceded ``response``
        for the same query. Unless ``allow_more_tools`` is set the reply is
        forced to prose.
        """
        tool_calls = list(response.toolCalls or [])
        if not tool_calls:
            raise ValueError("response did not request any tool calls")
        tools = self.tools if include_tools else None
        if history is None:
            history = self.history_for(session_id)

        async def call(adapter: ProviderAdapter) -> LLMResponse:
            return await adapter.continue_with_tool_results(
                original_query,
                tool_calls,
                tool_results,
                history=history,
                tools=tools,
                earlier_rounds=earlier_rounds,
                allow_more_tools=allow_more_tools,
            )

        return await self._dispatch(response.tierUsed, call)

    async def batch_generate(
        self,
        queries: Sequence[str],
        forced_tier: Optional[TierLike] = None,
        include_tools: bool = True,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> List[BatchItem]:
        """Route queries one after another; a failed query does not stop the batch."""
        items: List[BatchItem] = []
        for query in queries:
            try:
                response = await self.generate(
                    query,
                    forced_tier=forced_tier,
                    include_tools=include_tools,
                    history=list(history or []),
                )
            except FatalRoutingError as exc:
                items.append(BatchItem(query=query, error=str(exc)))
                continue
            items.append(BatchItem(query=query, response=response))

        failed = sum(1 for item in items if not item.ok)
        if failed:
            logger.warning("Batch finished with %s/%s failed queries", failed, len(items))
        return items

    async def _dispatch(self, tier: Tier, call: AdapterCall) -> LLMResponse:
        try:
            response = await call(self._adapters[tier])
        except ProviderError as exc:
            self._record_failure(tier)
            logger.warning("Tier %s (%s) failed: %s", int(tier), self._adapters[tier].provider, exc)
            return await self._fallback(tier, call, exc)

        self._record_success(tier, response)
        if response.tierUsed is not tier:
            response = response.model_copy(update={"tierUsed": tier})
        return response

    async def _fallback(self, failed_tier: Tier, call: AdapterCall, error: ProviderError) -> LLMResponse:
        attempts = [(failed_tier, error)]
        top = Tier.top()
        if not self.fallback_enabled or failed_tier is top:
            logger.error("Routing failed on tier %s with no fallback available", int(failed_tier))
            raise FatalRoutingError(attempts) from error

        self._usage.fallbackCount += 1
        logger.warning("Falling back from tier %s to tier %s", int(failed_tier), int(top))
        try:
            response = await call(self._adapters[top])
        except ProviderError as fallback_error:
            self._record_failure(top)
            attempts.append((top, fallback_error))
            logger.error("All LLM tiers failed (original tier %s)", int(failed_tier))
            raise FatalRoutingError(attempts) from fallback_error

        self._record_success(top, response)
        return response.model_copy(update={"tierUsed": top, "fallbackUsed": True, "originalTier": failed_tier})
