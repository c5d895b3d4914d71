"""Settings for the HotGist feed service."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    service_name: str = _env_field("hotgist-api", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")
    host: str = _env_field("0.0.0.0", "HOST")
    port: int = _env_field(5000, "PORT")

    # Persistence: "redis" keeps documents in Redis, "json" keeps one JSON file per campus.
    storage_backend: str = _env_field("redis", "STORAGE_BACKEND")
    redis_url: str = _env_field("redis://localhost:6379/0", "REDIS_URL")
    data_dir: str = _env_field("./data", "HOTGIST_DATA_DIR", "DATA_DIR")

    feed_default_limit: int = _env_field(20, "FEED_DEFAULT_LIMIT")
    feed_max_limit: int = _env_field(100, "FEED_MAX_LIMIT")
    trending_default_limit: int = _env_field(10, "TRENDING_DEFAULT_LIMIT")
    trending_max_limit: int = _env_field(50, "TRENDING_MAX_LIMIT")
    # Upper bound on concurrent per-post aggregations during one feed request
    feed_fanout_concurrency: int = _env_field(8, "FEED_FANOUT_CONCURRENCY")
    feed_deadline_seconds: float = _env_field(10.0, "FEED_DEADLINE_SECONDS")

    engagement_cache_enabled: bool = _env_field(False, "ENGAGEMENT_CACHE_ENABLED")
    engagement_cache_ttl_seconds: int = _env_field(30, "ENGAGEMENT_CACHE_TTL_SECONDS")

    obs_enabled: bool = _env_field(True, "OBS_ENABLED")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")
    obs_metrics_public: bool = _env_field(True, "OBS_METRICS_PUBLIC")

    cors_allow_origins: Any = _env_field((), "CORS_ALLOW_ORIGINS")
    client_url: Optional[str] = _env_field(None, "CLIENT_URL")

    def is_prod(self) -> bool:
        return self.environment.lower() in ("prod", "production", "live")

    def is_dev(self) -> bool:
        return self.environment.lower() in ("dev", "development")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_allow_origins", mode="before")
    def _split_origins(cls, value):  # type: ignore[override]
        """Accept comma separated strings as well as JSON lists."""
        if value is None or value == "":
            return ()
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return tuple(value)

    @field_validator("storage_backend", mode="before")
    def _normalise_backend(cls, value):  # type: ignore[override]
        return str(value or "redis").strip().lower()


settings = Settings()
