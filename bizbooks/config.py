"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Backend
    api_base_url: str = "http://localhost:5000/api"
    api_token: str | None = None

    # Service
    service_name: str = "bizbooks-client"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 30.0
    read_max_retries: int = 2
    retry_backoff_seconds: float = 1.0  # Linear backoff unit in seconds
    critical_max_attempts: int = 3
    critical_backoff_cap_seconds: float = 10.0
    read_cache_ttl_seconds: float = 30.0

    # Documents
    default_credit_days: int = 30


settings = Settings()
