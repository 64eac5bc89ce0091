"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Logging
    log_level: str = "info"
    json_logs: bool = True

    # Redis queue transport
    redis_url: str = "redis://localhost:6379/0"
    queue_prefix: str = "alertbridge"
    worker_max_retries: int = 3

    # Tenant configuration documents (one <tenant>.json per tenant)
    config_dir: str = "config/tenants"

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: str = ""

    # Outbound HTTP
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 3
    http_backoff_seconds: float = 0.5

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ALERTBRIDGE_",
    }


settings = Settings()
