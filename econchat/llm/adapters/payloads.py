"""
Typed response payloads for each model provider.

Raw JSON from a provider is tagged with its provider name and validated into
one member of :data:`ProviderPayload` before any field is read, so untyped
dictionaries never cross the adapter boundary.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


# --- Anthropic Messages API ---

class AnthropicContentBlock(BaseModel):
    type: str
    text: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    input: Optional[Dict[str, Any]] = None


class AnthropicUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class AnthropicResponse(BaseModel):
    provider: Literal["anthropic"] = "anthropic"
    model: Optional[str] = None
    content: List[AnthropicContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: AnthropicUsage = Field(default_factory=AnthropicUsage)


# --- Gemini generateContent ---

class GeminiFunctionCall(BaseModel):
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class GeminiPart(BaseModel):
    text: Optional[str] = None
    functionCall: Optional[GeminiFunctionCall] = None


class GeminiContent(BaseModel):
    role: Optional[str] = None
    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    content: Optional[GeminiContent] = None
    finishReason: Optional[str] = None


class GeminiUsageMetadata(BaseModel):
    promptTokenCount: int = 0
    candidatesTokenCount: int = 0


class GeminiResponse(BaseModel):
    provider: Literal["gemini"] = "gemini"
    candidates: List[GeminiCandidate] = Field(default_factory=list)
    usageMetadata: GeminiUsageMetadata = Field(default_factory=GeminiUsageMetadata)


# --- OpenAI-compatible chat/completions (Groq) ---

class OpenAIFunctionCall(BaseModel):
    name: str
    arguments: str = "{}"


class OpenAIToolCall(BaseModel):
    id: str
    type: str = "function"
    function: OpenAIFunctionCall


class OpenAIMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None
    tool_calls: Optional[List[OpenAIToolCall]] = None


class OpenAIChoice(BaseModel):
    index: int = 0
    message: OpenAIMessage
    finish_reason: Optional[str] = None


class OpenAIUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0


class OpenAIChatResponse(BaseModel):
    provider: Literal["groq"] = "groq"
    choices: List[OpenAIChoice] = Field(default_factory=list)
    usage: OpenAIUsage = Field(default_factory=OpenAIUsage)


ProviderPayload = Annotated[
    Union[AnthropicResponse, GeminiResponse, OpenAIChatResponse],
    Field(discriminator="provider"),
]

_PAYLOAD_ADAPTER: TypeAdapter[ProviderPayload] = TypeAdapter(ProviderPayload)


def parse_provider_payload(provider: str, raw: Mapping[str, Any]) -> ProviderPayload:
    """Tag ``raw`` with ``provider`` and validate it into the matching payload model."""
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected a JSON object from {provider}, got {type(raw).__name__}")
    return _PAYLOAD_ADAPTER.validate_python({**raw, "provider": provider})
