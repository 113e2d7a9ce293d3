from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    environment: str = "production"
    plugin_dev_mode: bool = False

    # Licensing
    license_secret: str = "default-secret"
    license_server_url: str | None = None  # unset: keys are checked for format only
    license_cache_ttl_ms: int = 24 * 3600 * 1000

    # Outbound HTTP
    sdk_version: str = "1.0.0"
    user_agent: str = "MyBitcoinFuture-Plugin/1.0.0"
    http_timeout_seconds: float = 10.0
    http_max_retries: int = 3
    http_backoff_base_ms: int = 1000

    # Guardrail defaults
    rate_limit_max_requests: int = 100
    rate_limit_window_ms: int = 60_000
    cache_default_ttl_ms: int = 5 * 60 * 1000

    @property
    def dev_mode(self) -> bool:
        return self.environment == "development" or self.plugin_dev_mode

settings = Settings()
