from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import Settings


class Tier(IntEnum):
    """Routing destination. Lower value means more capable (and more expensive)."""

    PREMIUM = 1
    STANDARD = 2

    @classmethod
    def _missing_(cls, value: object) -> Optional["Tier"]:
        # Legacy third tier (free model) is served by the Standard tier.
        if value == 3:
            return cls.STANDARD
        if isinstance(value, str):
            key = value.strip().upper()
            if key.isdigit():
                return cls(int(key))
            if key in cls.__members__:
                return cls.__members__[key]
            if key == "BASIC":
                return cls.STANDARD
        return None

    @classmethod
    def top(cls) -> "Tier":
        return min(cls)

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


ParameterType = Literal["string", "number", "integer", "boolean", "array", "object"]


class ToolProperty(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ParameterType
    description: Optional[str] = None
    enum: Optional[List[str]] = None
    items: Optional["ToolProperty"] = None


class ToolParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["object"] = "object"
    properties: Dict[str, ToolProperty] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _required_fields_exist(self) -> "ToolParameters":
        missing = [name for name in self.required if name not in self.properties]
        if missing:
            raise ValueError(f"required fields not declared as properties: {missing}")
        return self


class ToolDefinition(BaseModel):
    """Provider-agnostic description of a callable data tool."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[a-zA-Z0-9_-]{1,64}$")
    description: str
    parameters: ToolParameters = Field(default_factory=ToolParameters)


class ToolCall(BaseModel):
    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    toolCallId: str
    result: Any = None


class ToolRound(BaseModel):
    """Tool calls requested in one model reply, with the results sent back."""

    toolCalls: List[ToolCall]
    toolResults: List[ToolResult] = Field(default_factory=list)

    def result_for(self, tool_call_id: str) -> Any:
        for result in self.toolResults:
            if result.toolCallId == tool_call_id:
                return result.result
        return {"error": "No result was produced for this tool call."}


class TokenUsage(BaseModel):
    inputTokens: int = Field(default=0, ge=0)
    outputTokens: int = Field(default=0, ge=0)
    estimatedCost: float = Field(default=0.0, ge=0)

    def combined(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            inputTokens=self.inputTokens + other.inputTokens,
            outputTokens=self.outputTokens + other.outputTokens,
            estimatedCost=self.estimatedCost + other.estimatedCost,
        )


class LLMResponse(BaseModel):
    tierUsed: Tier
    provider: str
    model: str
    content: str = ""
    toolCalls: Optional[List[ToolCall]] = None
    usage: TokenUsage = Field(default_factory=TokenUsage)
    latencyMs: float = 0.0
    fallbackUsed: bool = False
    originalTier: Optional[Tier] = None

    @model_validator(mode="after")
    def _original_tier_only_on_fallback(self) -> "LLMResponse":
        if self.originalTier is not None and not self.fallbackUsed:
            raise ValueError("originalTier is only set when fallbackUsed is true")
        return self

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.toolCalls)


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class RouterConfig(BaseModel):
    enableFallback: bool = True
    defaultTier: Tier = Tier.STANDARD
    maxRetries: int = Field(default=2, ge=0)
    timeoutMs: int = Field(default=30000, ge=1000, le=30000)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouterConfig":
        return cls(
            enableFallback=settings.router_enable_fallback,
            defaultTier=Tier(settings.router_default_tier),
            maxRetries=settings.router_max_retries,
            timeoutMs=settings.router_timeout_ms,
        )

    @property
    def timeout_seconds(self) -> float:
        return self.timeoutMs / 1000.0


class UsageStats(BaseModel):
    premiumCalls: int = 0
    standardCalls: int = 0
    premiumFailures: int = 0
    standardFailures: int = 0
    fallbackCount: int = 0
    totalCost: float = Field(default=0.0, ge=0)


class TierInfo(BaseModel):
    tier: Tier
    name: str
    provider: str
    model: str
    inputPricePerMillion: float
    outputPricePerMillion: float
    contextWindow: int
    maxOutputTokens: int


class BatchItem(BaseModel):
    query: str
    response: Optional[LLMResponse] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.response is not None


class ChatReply(BaseModel):
    """Result of a complete exchange: routing, tool execution and continuation."""

    text: str
    tierUsed: Tier
    provider: str
    model: str
    usage: TokenUsage
    toolCalls: Optional[List[ToolCall]] = None
    toolResults: Optional[List[ToolResult]] = None
    latencyMs: float
    fallbackUsed: bool = False
    sessionId: Optional[str] = None
