"""Gemini generateContent codec (Standard tier)."""

from __future__ import annotations

import time
import uuid
from typing import Any, Dict, List

from ...models import Tier, ToolCall
from ..tool_formats import to_gemini_tools
from .base import ConversationTurn, ParsedCompletion, ProviderCodec, ProviderProfile, ProviderRequest
from .payloads import GeminiResponse

GEMINI_SYSTEM_PROMPT = """You are EconChat, an AI assistant specialized in economic data analysis for development economists.

You excel at:
- Multi-country comparisons and regional analysis
- Trend analysis and historical data synthesis
- Data visualization recommendations
- Synthesizing information from multiple sources
- Providing clear overviews of economic indicators

Be concise but thorough. Use tables and structured formats when comparing data across countries or time periods."""

GEMINI_PROFILE = ProviderProfile(
    provider="gemini",
    display_name="Gemini 2.5 Flash",
    tier=Tier.STANDARD,
    model="gemini-2.5-flash",
    input_price_per_million=0.30,
    output_price_per_million=2.50,
    max_output_tokens=8192,
    context_window=1_000_000,
    system_prompt=GEMINI_SYSTEM_PROMPT,
)

_ROLE_MAP = {"user": "user", "assistant": "model"}


def generate_call_id() -> str:
    # Gemini does not assign ids to function calls.
    return f"gemini-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class GeminiCodec(ProviderCodec):
    provider = "gemini"

    def build_request(
        self,
        profile: ProviderProfile,
        base_url: str,
        api_key: str,
        turn: ConversationTurn,
    ) -> ProviderRequest:
        contents: List[Dict[str, Any]] = [
            {"role": _ROLE_MAP[message.role], "parts": [{"text": message.content}]}
            for message in turn.history
        ]
        contents.append({"role": "user", "parts": [{"text": turn.query}]})

        for tool_round in turn.rounds:
            contents.append(
                {
                    "role": "model",
                    "parts": [
                        {"functionCall": {"name": call.name, "args": call.arguments}}
                        for call in tool_round.toolCalls
                    ],
                }
            )
            contents.append(
                {
                    "role": "user",
                    "parts": [
                        {
                            "functionResponse": {
                                "name": call.name,
                                "response": {"result": tool_round.result_for(call.id)},
                            }
                        }
                        for call in tool_round.toolCalls
                    ],
                }
            )

        body: Dict[str, Any] = {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": profile.system_prompt}]},
            "generationConfig": {"maxOutputTokens": profile.max_output_tokens},
        }
        if turn.tools:
            body["tools"] = to_gemini_tools(turn.tools)
            if turn.tools_disabled:
                body["toolConfig"] = {"functionCallingConfig": {"mode": "NONE"}}

        return ProviderRequest(
            url=f"{base_url}/models/{profile.model}:generateContent",
            headers={"x-goog-api-key": api_key, "content-type": "application/json"},
            body=body,
        )

    def to_completion(self, payload: GeminiResponse) -> ParsedCompletion:
        if not payload.candidates:
            raise ValueError("response contained no candidates")

        texts = []
        tool_calls = []
        content = payload.candidates[0].content
        for part in content.parts if content else []:
            if part.text:
                texts.append(part.text)
            if part.functionCall is not None:
                tool_calls.append(
                    ToolCall(
                        id=generate_call_id(),
                        name=part.functionCall.name,
                        arguments=dict(part.functionCall.args),
                    )
                )
        return ParsedCompletion(
            text="".join(texts),
            tool_calls=tool_calls,
            input_tokens=payload.usageMetadata.promptTokenCount,
            output_tokens=payload.usageMetadata.candidatesTokenCount,
        )
