"""Groq (OpenAI-compatible chat/completions) codec. Legacy free tier, served as Standard."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from ...models import Tier, ToolCall
from ..tool_formats import to_openai_tools
from .base import ConversationTurn, ParsedCompletion, ProviderCodec, ProviderProfile, ProviderRequest, serialize_tool_result
from .payloads import OpenAIChatResponse

GROQ_SYSTEM_PROMPT = """You are EconChat, an economic data assistant. Provide concise, accurate answers to economic data queries.

Focus on:
- Direct answers to data questions
- Clear explanations of economic indicators
- Brief context when helpful

Keep responses focused and to the point."""

GROQ_PROFILE = ProviderProfile(
    provider="groq",
    display_name="Llama 3.3 70B",
    tier=Tier.STANDARD,
    model="llama-3.3-70b-versatile",
    input_price_per_million=0.0,
    output_price_per_million=0.0,
    max_output_tokens=1024,
    context_window=128_000,
    system_prompt=GROQ_SYSTEM_PROMPT,
    temperature=0.7,
)


class OpenAICompatibleCodec(ProviderCodec):
    provider = "groq"

    def build_request(
        self,
        profile: ProviderProfile,
        base_url: str,
        api_key: str,
        turn: ConversationTurn,
    ) -> ProviderRequest:
        messages: List[Dict[str, Any]] = [{"role": "system", "content": profile.system_prompt}]
        messages.extend({"role": message.role, "content": message.content} for message in turn.history)
        messages.append({"role": "user", "content": turn.query})

        for tool_round in turn.rounds:
            messages.append(
                {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                        }
                        for call in tool_round.toolCalls
                    ],
                }
            )
            messages.extend(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": serialize_tool_result(tool_round.result_for(call.id)),
                }
                for call in tool_round.toolCalls
            )

        body: Dict[str, Any] = {
            "model": profile.model,
            "messages": messages,
            "max_tokens": profile.max_output_tokens,
        }
        if profile.temperature is not None:
            body["temperature"] = profile.temperature
        if turn.tools:
            body["tools"] = to_openai_tools(turn.tools)
            body["tool_choice"] = "none" if turn.tools_disabled else "auto"

        return ProviderRequest(
            url=f"{base_url}/chat/completions",
            headers={"Authorization": f"Bearer {api_key}", "content-type": "application/json"},
            body=body,
        )

    def to_completion(self, payload: OpenAIChatResponse) -> ParsedCompletion:
        if not payload.choices:
            raise ValueError("response contained no choices")

        message = payload.choices[0].message
        tool_calls = []
        for call in message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError as exc:
                raise ValueError(f"tool call {call.id} has malformed arguments") from exc
            if not isinstance(arguments, dict):
                raise ValueError(f"tool call {call.id} arguments are not an object")
            tool_calls.append(ToolCall(id=call.id, name=call.function.name, arguments=arguments))

        return ParsedCompletion(
            text=message.content or "",
            tool_calls=tool_calls,
            input_tokens=payload.usage.prompt_tokens,
            output_tokens=payload.usage.completion_tokens,
        )
