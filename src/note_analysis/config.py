import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str | None = None):
    return lambda: os.getenv(name, default)


def _env_int(name: str, default: str):
    return lambda: int(os.getenv(name, default))


def _env_bool(name: str, default: str = "true"):
    return lambda: os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Anthropic
    anthropic_api_key: str | None = field(default_factory=_env("ANTHROPIC_API_KEY"))
    anthropic_model: str = field(
        default_factory=_env("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    )
    provider_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "60"))
    )
    provider_max_retries: int = field(default_factory=_env_int("PROVIDER_MAX_RETRIES", "2"))

    # Article limits
    max_article_length: int = field(default_factory=_env_int("MAX_ARTICLE_LENGTH", "30000"))
    min_article_length: int = field(default_factory=_env_int("MIN_ARTICLE_LENGTH", "100"))

    # Token budget
    max_tokens_per_request: int = field(
        default_factory=_env_int("MAX_TOKENS_PER_REQUEST", "4000")
    )
    min_tokens_per_request: int = field(
        default_factory=_env_int("MIN_TOKENS_PER_REQUEST", "300")
    )

    # Rate limiting
    rate_limit_max_requests: int = field(
        default_factory=_env_int("API_RATE_LIMIT_MAX_REQUESTS", "5")
    )
    rate_limit_window_ms: int = field(
        default_factory=_env_int("API_RATE_LIMIT_WINDOW_MS", "60000")
    )
    rate_limit_strategy: str = field(default_factory=_env("RATE_LIMIT_STRATEGY", "fixed"))

    # Request de-duplication
    enable_request_deduplication: bool = field(
        default_factory=_env_bool("ENABLE_REQUEST_DEDUPLICATION")
    )
    deduplication_window_ms: int = field(
        default_factory=_env_int("DEDUPLICATION_WINDOW_MS", "30000")
    )

    # Response cache
    enable_response_cache: bool = field(default_factory=_env_bool("ENABLE_API_RESPONSE_CACHE"))
    cache_ttl: int = field(default_factory=_env_int("API_CACHE_TTL", "86400"))  # 24 hours
    cache_max_size: int = field(default_factory=_env_int("API_CACHE_MAX_SIZE", "5000"))
    cache_backend: str = field(default_factory=_env("CACHE_BACKEND", "memory"))
    cache_key_prefix: str = field(default_factory=_env("CACHE_KEY_PREFIX", "api-response"))

    # Redis
    redis_url: str = field(default_factory=_env("REDIS_URL", "redis://localhost:6379"))
    redis_password: str | None = field(default_factory=_env("REDIS_PASSWORD"))

    # Usage analytics
    enable_usage_analytics: bool = field(default_factory=_env_bool("ENABLE_USAGE_ANALYTICS"))
    usage_max_records: int = field(default_factory=_env_int("USAGE_MAX_RECORDS", "10000"))

    # Output handling: "lenient" repairs malformed sections, "strict" rejects them
    output_validation_mode: str = field(
        default_factory=_env("OUTPUT_VALIDATION_MODE", "lenient")
    )

    # Selects the prompt registry profile
    app_env: str = field(
        default_factory=lambda: os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development"
    )

    # Optional shared secret for the analysis and admin routes
    api_access_token: str | None = field(default_factory=_env("API_ACCESS_TOKEN"))

    log_level: str = field(default_factory=_env("LOG_LEVEL", "INFO"))

    # API
    api_host: str = field(default_factory=_env("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=_env_int("API_PORT", "8000"))
    api_reload: bool = field(default_factory=_env_bool("API_RELOAD"))

    @property
    def provider_configured(self) -> bool:
        """Check whether an Anthropic API key is available."""
        return bool(self.anthropic_api_key)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.max_article_length <= 0:
            raise ValueError("MAX_ARTICLE_LENGTH must be positive")

        if not 0 <= self.min_article_length <= self.max_article_length:
            raise ValueError(
                f"MIN_ARTICLE_LENGTH must be between 0 and {self.max_article_length}, "
                f"got {self.min_article_length}"
            )

        if self.max_tokens_per_request <= 0 or self.min_tokens_per_request <= 0:
            raise ValueError("MAX_TOKENS_PER_REQUEST and MIN_TOKENS_PER_REQUEST must be positive")

        if self.rate_limit_max_requests <= 0 or self.rate_limit_window_ms <= 0:
            raise ValueError("API_RATE_LIMIT_MAX_REQUESTS and API_RATE_LIMIT_WINDOW_MS must be positive")

        if self.rate_limit_strategy not in ["fixed", "sliding"]:
            raise ValueError(
                f"RATE_LIMIT_STRATEGY must be one of ['fixed', 'sliding'], "
                f"got {self.rate_limit_strategy}"
            )

        if self.cache_backend not in ["memory", "redis"]:
            raise ValueError(
                f"CACHE_BACKEND must be one of ['memory', 'redis'], got {self.cache_backend}"
            )

        if self.output_validation_mode not in ["lenient", "strict"]:
            raise ValueError(
                f"OUTPUT_VALIDATION_MODE must be one of ['lenient', 'strict'], "
                f"got {self.output_validation_mode}"
            )

        if self.cache_ttl <= 0 or self.cache_max_size <= 0:
            raise ValueError("API_CACHE_TTL and API_CACHE_MAX_SIZE must be positive")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client(config: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    config = config or settings
    return redis.from_url(
        config.redis_url,
        password=config.redis_password,
        decode_responses=True,
    )
