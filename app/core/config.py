"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service-wide configuration options."""

    github_app_id: str | None = None
    github_app_private_key: str | None = None
    github_app_private_key_path: str | None = None
    github_app_installation_id: int | None = None
    github_webhook_secret: str | None = None
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 30.0
    installation_cache_ttl_seconds: int = 600
    token_expiry_buffer_seconds: int = 300
    api_base_url: str = "http://localhost:3000"
    analysis_timeout_seconds: float = 30.0
    app_name: str = "pr-analysis-bot"
    status_context: str = "pr-analysis-bot/analysis"
    stub_analysis_enabled: bool = True
    stub_analysis_delay_seconds: float = 0.0
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_exporter: str = "console"
    otel_otlp_endpoint: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
