from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """EconChat settings loaded from environment variables (and `.env`)."""

    # --- Model providers ---
    anthropic_api_key: Optional[str] = None
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    groq_api_key: Optional[str] = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    # Adapter serving the Standard tier ("groq" is the legacy free tier)
    standard_provider: Literal["gemini", "groq"] = "gemini"

    # --- Router ---
    router_enable_fallback: bool = True
    router_default_tier: int = 2
    router_max_retries: int = 2
    router_timeout_ms: int = 30000

    # --- Conversation history ---
    history_max_messages: int = 20
    session_max_age_minutes: int = 60

    # --- Statistical data sources ---
    worldbank_base_url: str = "https://api.worldbank.org/v2"
    imf_base_url: str = "https://www.imf.org/external/datamapper/api/v1"
    fao_base_url: str = "https://fenixservices.fao.org/faostat/api/v1/en"
    comtrade_base_url: str = "https://comtradeapi.un.org/public/v1/preview"
    comtrade_api_key: Optional[str] = None
    owid_base_url: str = "https://ourworldindata.org/grapher"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
