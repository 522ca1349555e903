from .base import ConversationTurn, ParsedCompletion, ProviderAdapter, ProviderCodec, ProviderProfile, ProviderRequest
from .factory import build_default_adapters

__all__ = [
    "ConversationTurn",
    "ParsedCompletion",
    "ProviderAdapter",
    "ProviderCodec",
    "ProviderProfile",
    "ProviderRequest",
    "build_default_adapters",
]
