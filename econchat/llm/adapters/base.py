"""
Parametrized provider driver.

A single :class:`ProviderAdapter` implements the ``generate`` /
``continue_with_tool_results`` contract for every model provider. Providers
differ only in their :class:`ProviderProfile` (model id, prices, system
prompt) and their :class:`ProviderCodec` (request and response marshalling).

Adapters never retry. Transport failures surface as
:class:`ProviderTransportError` and unreadable replies as
:class:`ProviderResponseError`; the router decides what happens next.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ...exceptions import ProviderResponseError, ProviderTransportError
from ...models import HistoryMessage, LLMResponse, Tier, TokenUsage, ToolCall, ToolDefinition, ToolResult, ToolRound
from ...services.http_pool import get_http_client
from .payloads import ProviderPayload, parse_provider_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ProviderProfile:
    provider: str
    display_name: str
    tier: Tier
    model: str
    input_price_per_million: float
    output_price_per_million: float
    max_output_tokens: int
    context_window: int
    system_prompt: str
    temperature: Optional[float] = None

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        cost = (
            input_tokens * self.input_price_per_million
            + output_tokens * self.output_price_per_million
        ) / 1_000_000
        return max(cost, 0.0)


@dataclass
class ConversationTurn:
    """Everything a codec needs to build one request."""

    query: str
    history: List[HistoryMessage] = field(default_factory=list)
    tools: List[ToolDefinition] = field(default_factory=list)
    # Completed tool rounds, oldest first
    rounds: List[ToolRound] = field(default_factory=list)
    allow_more_tools: bool = True

    @property
    def is_continuation(self) -> bool:
        return bool(self.rounds)

    @property
    def tools_disabled(self) -> bool:
        """A continuation that must be answered in prose."""
        return self.is_continuation and not self.allow_more_tools


@dataclass
class ProviderRequest:
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]


@dataclass
class ParsedCompletion:
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0


def serialize_tool_result(result: Any) -> str:
    return json.dumps(result, default=str, ensure_ascii=False)


class ProviderCodec(ABC):
    """Request/response marshalling strategy for one provider's wire format."""

    provider: str

    @abstractmethod
    def build_request(
        self,
        profile: ProviderProfile,
        base_url: str,
        api_key: str,
        turn: ConversationTurn,
    ) -> ProviderRequest:
        """Translate ``turn`` into the provider's HTTP request."""

    @abstractmethod
    def to_completion(self, payload: ProviderPayload) -> ParsedCompletion:
        """Map a validated provider payload to the provider-neutral completion."""

    def parse(self, raw: Any) -> ParsedCompletion:
        return self.to_completion(parse_provider_payload(self.provider, raw))


class ProviderAdapter:
    def __init__(
        self,
        profile: ProviderProfile,
        codec: ProviderCodec,
        api_key: Optional[str],
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.profile = profile
        self.codec = codec
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def provider(self) -> str:
        return self.profile.provider

    @property
    def tier(self) -> Tier:
        return self.profile.tier

    @property
    def model(self) -> str:
        return self.profile.model

    def __repr__(self) -> str:
        return f"ProviderAdapter(provider={self.provider!r}, model={self.model!r}, tier={int(self.tier)})"

    async def generate(
        self,
        query: str,
        tools: Optional[Sequence[ToolDefinition]] = None,
        history: Optional[Sequence[HistoryMessage]] = None,
    ) -> LLMResponse:
        turn = ConversationTurn(
            query=query,
            history=list(history or []),
            tools=list(tools or []),
        )
        return await self._complete(turn)

    async def continue_with_tool_results(
        self,
        original_query: str,
        tool_calls: Sequence[ToolCall],
        tool_results: Sequence[ToolResult],
        history: Optional[Sequence[HistoryMessage]] = None,
        tools: Optional[Sequence[ToolDefinition]] = None,
        earlier_rounds: Optional[Sequence[ToolRound]] = None,
        allow_more_tools: bool = False,
    ) -> LLMResponse:
        """
        Send tool results back to the model.

        ``earlier_rounds`` replays previous tool exchanges of the same query.
        With ``allow_more_tools`` the model may request another round;
        otherwise it is told to answer without tools.
        """
        rounds = list(earlier_rounds or [])
        rounds.append(ToolRound(toolCalls=list(tool_calls), toolResults=list(tool_results)))
        turn = ConversationTurn(
            query=original_query,
            history=list(history or []),
            tools=list(tools or []),
            rounds=rounds,
            allow_more_tools=allow_more_tools,
        )
        return await self._complete(turn)

    def _transport_error(self, message: str, status_code: Optional[int] = None) -> ProviderTransportError:
        return ProviderTransportError(message, provider=self.provider, tier=self.tier, status_code=status_code)

    def _response_error(self, message: str) -> ProviderResponseError:
        return ProviderResponseError(message, provider=self.provider, tier=self.tier)

    async def _complete(self, turn: ConversationTurn) -> LLMResponse:
        if not self.api_key:
            raise self._transport_error("API key not configured")

        request = self.codec.build_request(self.profile, self.base_url, self.api_key, turn)
        client = self._client or get_http_client()

        started = time.perf_counter()
        try:
            response = await client.post(
                request.url,
                json=request.body,
                headers=request.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise self._transport_error(_error_detail(exc.response), status_code=status) from exc
        except httpx.TimeoutException as exc:
            raise self._transport_error(f"Request timed out after {self.timeout:.0f}s") from exc
        except httpx.HTTPError as exc:
            raise self._transport_error(f"{type(exc).__name__}: {exc}") from exc

        try:
            raw = response.json()
        except ValueError as exc:
            raise self._response_error("Response body is not valid JSON") from exc

        try:
            completion = self.codec.parse(raw)
        except ValueError as exc:
            raise self._response_error(f"Unexpected response payload: {exc}") from exc

        latency_ms = (time.perf_counter() - started) * 1000
        usage = TokenUsage(
            inputTokens=completion.input_tokens,
            outputTokens=completion.output_tokens,
            estimatedCost=self.profile.estimate_cost(completion.input_tokens, completion.output_tokens),
        )
        logger.debug(
            "%s %s completed in %.0fms (in=%s, out=%s, tool_calls=%s)",
            self.provider,
            self.model,
            latency_ms,
            usage.inputTokens,
            usage.outputTokens,
            len(completion.tool_calls),
        )
        return LLMResponse(
            tierUsed=self.tier,
            provider=self.provider,
            model=self.model,
            content=completion.text,
            toolCalls=completion.tool_calls or None,
            usage=usage,
            latencyMs=latency_ms,
        )


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of a provider's error message."""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if payload.get("message"):
            return str(payload["message"])
    return str(payload)[:200]
