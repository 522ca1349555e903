"""
Error taxonomy for routing and tool execution.

Provider errors abort a single tier attempt and may trigger the one-hop
fallback. Tool errors are data: the executor turns them into structured
payloads that go back into the model's context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .models import Tier


class EconChatError(Exception):
    """Base class for all EconChat errors."""


class ProviderError(EconChatError):
    """Failure while calling an upstream model provider."""

    def __init__(
        self,
        message: str,
        provider: str,
        tier: Optional["Tier"] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.tier = tier
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.provider}: HTTP {self.status_code}: {self.message}"
        return f"{self.provider}: {self.message}"


class ProviderTransportError(ProviderError):
    """Timeout, connection failure or non-2xx status from a model endpoint."""


class ProviderResponseError(ProviderError):
    """Model endpoint replied, but the payload could not be parsed."""


class FatalRoutingError(EconChatError):
    """The selected tier and its single fallback (if any) both failed."""

    def __init__(self, attempts: List[Tuple["Tier", ProviderError]]) -> None:
        self.attempts = list(attempts)
        details = "; ".join(f"tier {int(tier)} ({error})" for tier, error in self.attempts)
        super().__init__(f"All LLM tiers failed. Attempts: {details}")

    @property
    def original_error(self) -> Optional[ProviderError]:
        return self.attempts[0][1] if self.attempts else None


class ToolError(EconChatError):
    """Expected tool failure, reported to the model as a structured payload."""

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


class ToolLookupError(ToolError):
    """A caller-supplied name has no entry in the relevant reference table."""


class ToolTransportError(ToolError):
    """Upstream data API timed out, returned not-found or a server error."""


class UnknownToolError(EconChatError, KeyError):
    """No handler is registered for the requested tool name."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name

    def __str__(self) -> str:
        return f"Unknown tool: {self.tool_name}"
