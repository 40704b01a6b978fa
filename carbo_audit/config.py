"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Carbo Audit"
    debug: bool = False
    mock_mode: bool = True  # When True, reports are kept in memory and tokens are not verified

    # ── Reasoning service (OpenAI-compatible gateway) ────
    llm_api_key: str = ""
    llm_base_url: str = "https://ai.gateway.lovable.dev/v1"
    llm_model: str = "google/gemini-2.5-flash"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 8000
    llm_timeout_seconds: float = 120.0
    llm_max_network_retries: int = 1

    # ── Context budget ───────────────────────────────────
    max_pdd_chars: int = 25_000
    max_calculation_chars: int = 10_000

    # ── Rule corpus ──────────────────────────────────────
    rule_corpus_path: str = ""  # empty = bundled JCM_PH_AM004 corpus

    # ── MongoDB ──────────────────────────────────────────
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "carbo_audit"
    mongodb_timeout_seconds: float = 5.0

    # ── Identity ─────────────────────────────────────────
    auth_user_url: str = ""  # e.g. https://<project>.supabase.co/auth/v1/user
    auth_api_key: str = ""
    auth_timeout_seconds: float = 10.0

    # ── HTTP ─────────────────────────────────────────────
    cors_allow_origins: list[str] = ["*"]

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
