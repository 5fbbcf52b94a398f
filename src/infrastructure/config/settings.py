"""Application configuration with Pydantic validation.

All settings are loaded from a .env file or environment variables and validated
when Settings() is constructed, so a misconfigured deployment fails at startup.

Usage:
    settings = get_settings()
    settings.llm_timeout_seconds  # 30.0
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Validated settings for the price assistant."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Price store (Supabase / PostgREST)
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_key: Optional[str] = Field(default=None)
    price_table: str = Field(default="metal_prices")

    # Generative backend
    generative_provider: Literal["bedrock", "chat_completions", "none"] = Field(default="bedrock")
    bedrock_model_id: str = Field(default="us.amazon.nova-pro-v1:0")
    aws_default_region: str = Field(default="us-east-1")
    llm_api_url: Optional[str] = Field(default=None)
    llm_api_key: Optional[str] = Field(default=None)
    llm_model: str = Field(default="auric-ai")
    llm_max_tokens: int = Field(default=512, gt=0)
    llm_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    llm_timeout_seconds: float = Field(default=30.0, gt=0)

    # Caching
    metal_catalog_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)

    # Logging / tracing
    log_level: str = Field(default="INFO")
    environment: str = Field(default="development")
    langfuse_enabled: bool = Field(default=False)

    # CORS
    allowed_origins: str = Field(default="http://localhost:5173")

    @model_validator(mode="after")
    def check_provider_settings(self) -> "Settings":
        if self.generative_provider == "chat_completions" and not self.llm_api_url:
            raise ValueError("LLM_API_URL is required when GENERATIVE_PROVIDER=chat_completions")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
