from typing import Any, List, Optional, Union

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_PORT,
    DEFAULT_QPS_LIMIT,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    UPSTREAM_BASE_URL,
    UPSTREAM_USER_AGENT,
)
from .domain.exceptions import ConfigurationError
from .enums import RateLimitScope

__all__ = ["Settings", "ConfigurationError"]


def _positive_number_or_default(value: Any, default: Union[int, float]) -> Any:
    """Coerce ``value`` to a positive number, falling back to *default*.

    Missing, non-numeric and non-positive values all select the default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number <= 0:
        return default
    return type(default)(number)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
        populate_by_name=True,
    )

    app_name: str = "WCProxy"
    app_version: str = "1.0.0"
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST"))
    port: int = Field(default=DEFAULT_PORT, validation_alias=AliasChoices("PORT"))

    # Page cache
    cache_ttl_ms: int = Field(
        default=DEFAULT_CACHE_TTL_MS, validation_alias=AliasChoices("CACHE_TTL")
    )
    cache_max_entries: int = Field(
        default=DEFAULT_CACHE_MAX_ENTRIES,
        validation_alias=AliasChoices("CACHE_MAX_ENTRIES"),
    )

    # Request-rate limiting
    rate_limit_enabled: bool = Field(
        default=True, validation_alias=AliasChoices("RATE_LIMIT_ENABLED")
    )
    qps_limit: int = Field(
        default=DEFAULT_QPS_LIMIT, validation_alias=AliasChoices("QPS_LIMIT")
    )
    rate_limit_window_seconds: float = Field(
        default=DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        validation_alias=AliasChoices("RATE_LIMIT_WINDOW_SECONDS"),
    )
    rate_limit_scope: str = Field(
        default=RateLimitScope.Global.value,
        validation_alias=AliasChoices("RATE_LIMIT_SCOPE"),
    )

    # Upstream webcache service
    upstream_base_url: str = Field(
        default=UPSTREAM_BASE_URL, validation_alias=AliasChoices("UPSTREAM_BASE_URL")
    )
    upstream_user_agent: str = Field(
        default=UPSTREAM_USER_AGENT,
        validation_alias=AliasChoices("UPSTREAM_USER_AGENT"),
    )
    upstream_timeout_seconds: float = Field(
        default=DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
        validation_alias=AliasChoices("UPSTREAM_TIMEOUT_SECONDS"),
    )
    pool_max_connections: int = Field(
        default=100, validation_alias=AliasChoices("POOL_MAX_CONNECTIONS")
    )
    pool_max_keepalive_connections: int = Field(
        default=20, validation_alias=AliasChoices("POOL_MAX_KEEPALIVE_CONNECTIONS")
    )

    # Logging
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))
    log_dir: Optional[str] = Field(default="logs", validation_alias=AliasChoices("LOG_DIR"))
    log_file_path: Optional[str] = Field(
        default="logs/all.log", validation_alias=AliasChoices("LOG_FILE_PATH")
    )
    error_log_file_path: Optional[str] = Field(
        default="logs/error.log", validation_alias=AliasChoices("ERROR_LOG_FILE_PATH")
    )
    log_pretty_console: bool = Field(
        default=False, validation_alias=AliasChoices("LOG_PRETTY_CONSOLE")
    )
    redact_log_fields: Union[List[str], str] = Field(
        default_factory=lambda: ["authorization", "cookie"],
        validation_alias=AliasChoices("REDACT_LOG_FIELDS"),
    )

    @field_validator("port", mode="before")
    @classmethod
    def default_port(cls, v: Any) -> Any:
        return _positive_number_or_default(v, DEFAULT_PORT)

    @field_validator("cache_ttl_ms", mode="before")
    @classmethod
    def default_cache_ttl(cls, v: Any) -> Any:
        return _positive_number_or_default(v, DEFAULT_CACHE_TTL_MS)

    @field_validator("qps_limit", mode="before")
    @classmethod
    def default_qps_limit(cls, v: Any) -> Any:
        return _positive_number_or_default(v, DEFAULT_QPS_LIMIT)

    @field_validator("rate_limit_scope", mode="before")
    @classmethod
    def lowercase_scope(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("redact_log_fields")
    @classmethod
    def parse_comma_separated(cls, v: Union[List[str], str]) -> List[str]:
        """Parse a comma-separated string into a list of stripped, non-empty items."""
        if isinstance(v, str):
            if v.strip() == "":
                return []
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings and validate values that have no safe default.

        Raises:
            ConfigurationError: If a rate limit, cache or upstream setting is invalid
        """
        super().__init__(**kwargs)
        self._validate_limits()

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_ms / 1000

    def _validate_limits(self) -> None:
        errors = []

        if self.rate_limit_scope not in {s.value for s in RateLimitScope}:
            errors.append(
                "RATE_LIMIT_SCOPE must be one of: "
                + ", ".join(s.value for s in RateLimitScope)
            )
        if self.rate_limit_window_seconds <= 0:
            errors.append("RATE_LIMIT_WINDOW_SECONDS must be positive.")
        if self.cache_max_entries < 1:
            errors.append("CACHE_MAX_ENTRIES must be at least 1.")
        if self.upstream_timeout_seconds <= 0:
            errors.append("UPSTREAM_TIMEOUT_SECONDS must be positive.")
        if not self.upstream_base_url.startswith(("http://", "https://")):
            errors.append("UPSTREAM_BASE_URL must be an http(s) URL.")

        if errors:
            raise ConfigurationError("\n".join(errors))
