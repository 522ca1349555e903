"""Anthropic Messages API codec (Premium tier)."""

from __future__ import annotations

from typing import Any, Dict, List

from ...models import Tier, ToolCall
from ..tool_formats import to_anthropic_tools
from .base import ConversationTurn, ParsedCompletion, ProviderCodec, ProviderProfile, ProviderRequest, serialize_tool_result
from .payloads import AnthropicResponse

ANTHROPIC_VERSION = "2023-06-01"

ANTHROPIC_SYSTEM_PROMPT = """You are EconChat, an AI assistant specialized in helping economists and researchers at Multilateral Development Banks (MDBs) with complex economic analysis.

You have expertise in:
- Debt Sustainability Analysis (DSA)
- Hausmann-Rodrik-Velasco Growth Diagnostics
- Macroeconomic frameworks and projections
- Country economic briefs and assessments
- Binding constraints analysis
- Policy recommendations

When analyzing data, be thorough and nuanced. Consider multiple perspectives and provide actionable insights. Use proper economic terminology and cite relevant frameworks when applicable."""

ANTHROPIC_PROFILE = ProviderProfile(
    provider="anthropic",
    display_name="Claude Opus 4.5",
    tier=Tier.PREMIUM,
    model="claude-opus-4-5-20251101",
    input_price_per_million=15.0,
    output_price_per_million=75.0,
    max_output_tokens=4096,
    context_window=200_000,
    system_prompt=ANTHROPIC_SYSTEM_PROMPT,
)


class AnthropicCodec(ProviderCodec):
    provider = "anthropic"

    def build_request(
        self,
        profile: ProviderProfile,
        base_url: str,
        api_key: str,
        turn: ConversationTurn,
    ) -> ProviderRequest:
        messages: List[Dict[str, Any]] = [
            {"role": message.role, "content": message.content} for message in turn.history
        ]
        messages.append({"role": "user", "content": turn.query})

        for tool_round in turn.rounds:
            messages.append(
                {
                    "role": "assistant",
                    "content": [
                        {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
                        for call in tool_round.toolCalls
                    ],
                }
            )
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": call.id,
                            "content": serialize_tool_result(tool_round.result_for(call.id)),
                        }
                        for call in tool_round.toolCalls
                    ],
                }
            )

        body: Dict[str, Any] = {
            "model": profile.model,
            "max_tokens": profile.max_output_tokens,
            "system": profile.system_prompt,
            "messages": messages,
        }
        if turn.tools:
            body["tools"] = to_anthropic_tools(turn.tools)
            # Tool blocks in the transcript require the tools to be declared; the
            # last allowed follow-up must answer in prose.
            if turn.tools_disabled:
                body["tool_choice"] = {"type": "none"}

        return ProviderRequest(
            url=f"{base_url}/messages",
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            body=body,
        )

    def to_completion(self, payload: AnthropicResponse) -> ParsedCompletion:
        texts = []
        tool_calls = []
        for block in payload.content:
            if block.type == "text" and block.text:
                texts.append(block.text)
            elif block.type == "tool_use":
                if not block.id or not block.name:
                    raise ValueError("tool_use block without id or name")
                tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=block.input or {}))
        return ParsedCompletion(
            text="\n".join(texts),
            tool_calls=tool_calls,
            input_tokens=payload.usage.input_tokens,
            output_tokens=payload.usage.output_tokens,
        )
