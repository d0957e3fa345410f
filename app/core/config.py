"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here — no scattered magic strings.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRADES_FILE = Path(__file__).resolve().parents[2] / "data" / "sample_trades.json"


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for endpoints that start workflow runs.

    Gateway settings cover the Gemini embedding and generation APIs and the
    Qdrant similarity store. Retry budgets are per gateway; delays double
    from ``retry_base_delay_seconds``.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    project_name: str = "TradeCoach"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"

    # Gemini (embeddings + coaching text)
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = 768
    coaching_model: str = "gemini-2.5-flash-lite"
    coaching_temperature: float = 0.4
    coaching_max_tokens: int = 1024
    http_timeout_seconds: float = 30.0

    # Similarity store
    vector_store_backend: Literal["qdrant", "memory"] = "qdrant"
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: Optional[str] = None
    qdrant_collection: str = "trades"

    # Trade source
    trades_file: Path = DEFAULT_TRADES_FILE

    # Workflow
    recent_trades_limit: int = 10
    similar_trades_limit: int = 5
    embedding_max_attempts: int = 3
    store_max_attempts: int = 3
    advice_max_attempts: int = 2
    retry_base_delay_seconds: float = 1.0


settings = Settings()
