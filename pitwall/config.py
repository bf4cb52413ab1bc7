"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Generative responder
    llm_model: str = Field(default="gpt-4o")
    llm_synthesis_model: str = Field(default="gpt-4o")
    llm_temperature: float = Field(default=0.1)
    llm_max_tokens: int = Field(default=2000)
    llm_timeout_seconds: float = Field(default=60.0)
    llm_circuit_failure_threshold: int = Field(default=5)
    llm_circuit_recovery_seconds: float = Field(default=60.0)
    openai_api_key: str | None = Field(default=None)

    # Knowledge provider (Ergast-compatible API)
    knowledge_api_base_url: str = Field(default="https://api.jolpi.ca/ergast/f1")
    knowledge_cache_ttl_seconds: int = Field(default=300)
    knowledge_request_timeout_seconds: float = Field(default=10.0)

    # Routing policy
    keyword_weight: float = Field(default=1.0)
    specialization_weight: float = Field(default=0.5)
    id_mention_bonus: float = Field(default=3.0)
    name_mention_bonus: float = Field(default=2.0)
    normalization_divisor: float = Field(default=5.0)
    entity_boost_factor: float = Field(default=0.1)
    multi_capability_gap: float = Field(default=0.2)
    multi_capability_entity_count: int = Field(default=3)
    default_capability: str = Field(default="driver")
    fallback_confidence: float = Field(default=0.3)

    # Orchestration
    min_alternative_confidence: float = Field(default=0.3)
    max_parallel_capabilities: int = Field(default=3)
    multi_capability_timeout_seconds: float = Field(default=60.0)
    max_query_length: int = Field(default=2000)
    capability_timeouts: dict[str, float] = Field(default_factory=dict)

    # Confirmation policy
    auto_accept_threshold: float = Field(default=0.95)
    complex_query_threshold: float = Field(default=0.7)
    historical_gap_periods: int = Field(default=10)
    confirmation_ttl_seconds: int = Field(default=300)
    confirmation_grace_seconds: int = Field(default=60)

    # Conversation memory
    max_messages_per_session: int = Field(default=50)
    max_active_topics: int = Field(default=5)
    max_recent_queries: int = Field(default=10)
    session_max_age_hours: int = Field(default=24)
    maintenance_interval_seconds: int = Field(default=60)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
