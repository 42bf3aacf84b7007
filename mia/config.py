"""MIA — Central Configuration via Pydantic Settings."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Meta API ──
    meta_access_token: str = ""
    meta_ad_account_id: str = ""
    meta_api_version: str = "v21.0"
    meta_base_url: str = "https://graph.facebook.com"
    meta_date_preset: str = "last_7d"

    # ── AI Provider ──
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    sync_interval_minutes: int = 60

    # ── Analysis ──
    analysis_schema_version: str = "1.0.0"
    account_currency: str = "USD"
    # Industry benchmarks used when the caller supplies none
    industry_cpa_benchmark: float = 40.0
    industry_ctr_benchmark: float = 1.5
    industry_roas_benchmark: float = 3.8
    industry_conversion_rate_benchmark: float = 6.7

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
