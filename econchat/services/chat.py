from __future__ import annotations

import logging
from typing import List, Optional, Union

from ..models import ChatReply, Tier, ToolCall, ToolResult, ToolRound
from ..routing.router import LLMRouter
from .tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

# Tool rounds per exchange; the last one is answered without tools.
MAX_TOOL_ROUNDS = 10


class ChatService:
    """One full exchange: route, run requested tools, feed results back, remember the turn."""

    def __init__(
        self,
        router: LLMRouter,
        executor: Optional[ToolExecutor] = None,
        max_tool_rounds: int = MAX_TOOL_ROUNDS,
    ) -> None:
        if max_tool_rounds < 1:
            raise ValueError("max_tool_rounds must be at least 1")
        self.router = router
        self.executor = executor or ToolExecutor()
        self.max_tool_rounds = max_tool_rounds

    async def ask(
        self,
        query: str,
        session_id: Optional[str] = None,
        forced_tier: Optional[Union[Tier, int, str]] = None,
        include_tools: bool = True,
    ) -> ChatReply:
        history = self.router.history_for(session_id)
        response = await self.router.generate(
            query,
            forced_tier=forced_tier,
            include_tools=include_tools,
            history=history,
        )
        usage = response.usage
        latency_ms = response.latencyMs
        fallback_used = response.fallbackUsed
        rounds: List[ToolRound] = []
        tool_calls: List[ToolCall] = []
        tool_results: List[ToolResult] = []

        while response.toolCalls and len(rounds) < self.max_tool_rounds:
            calls = list(response.toolCalls)
            logger.info(
                "Tier %s requested %s tool call(s) (round %s)",
                int(response.tierUsed),
                len(calls),
                len(rounds) + 1,
            )
            results = await self.executor.execute_calls(calls)
            rounds.append(ToolRound(toolCalls=calls, toolResults=results))
            tool_calls.extend(calls)
            tool_results.extend(results)

            response = await self.router.continue_with_tool_results(
                response,
                query,
                results,
                history=history,
                include_tools=include_tools,
                earlier_rounds=rounds[:-1],
                allow_more_tools=len(rounds) < self.max_tool_rounds,
            )
            usage = usage.combined(response.usage)
            latency_ms += response.latencyMs
            fallback_used = fallback_used or response.fallbackUsed

        if response.toolCalls:
            logger.warning("Tool round limit (%s) reached; returning the reply as is", self.max_tool_rounds)

        if session_id:
            self.router.record_exchange(session_id, query, response.content)

        return ChatReply(
            text=response.content,
            tierUsed=response.tierUsed,
            provider=response.provider,
            model=response.model,
            usage=usage,
            toolCalls=tool_calls or None,
            toolResults=tool_results or None,
            latencyMs=latency_ms,
            fallbackUsed=fallback_used,
            sessionId=session_id,
        )
