"""Configuration for the OIDC provider cache.

Uses Pydantic v2 frozen models for provider definitions and cache
settings, with loaders for raw mappings and environment variables.
"""

from __future__ import annotations

import os
import random
from collections.abc import Mapping
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    ValidationError,
    field_validator,
)

from .errors import InvalidConfigError

DEFAULT_REFRESH_SECONDS = 60 * 60


class RetryConfig(BaseModel):
    """Retry configuration with exponential backoff for a single fetch."""

    model_config = ConfigDict(frozen=True)

    max_retries: Annotated[int, Field(ge=0, le=10)] = 2
    initial_delay: Annotated[float, Field(gt=0, le=60)] = 0.5
    max_delay: Annotated[float, Field(gt=0, le=300)] = 10.0
    exponential_base: Annotated[float, Field(ge=1.5, le=3.0)] = 2.0
    jitter: Annotated[float, Field(ge=0, le=1.0)] = 0.1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt with exponential backoff."""
        delay = min(
            self.initial_delay * (self.exponential_base**attempt),
            self.max_delay,
        )
        jitter_range = delay * self.jitter
        return delay + random.uniform(-jitter_range, jitter_range)  # noqa: S311


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "oidc-provider-cache"
    log_level: str = "INFO"


class ProviderConfig(BaseModel):
    """Static configuration for one OpenID Connect provider."""

    model_config = ConfigDict(frozen=True)

    discovery_document_uri: HttpUrl
    client_id: str | None = None
    client_secret: SecretStr | None = None
    redirect_uri: str | None = None
    response_type: str = "code"
    scope: list[str] = Field(default_factory=lambda: ["openid"])

    # Overrides the jwks_uri advertised by the discovery document
    jwks_uri: HttpUrl | None = None

    request_timeout: Annotated[float, Field(gt=0, le=300)] | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("scope", mode="before")
    @classmethod
    def split_scope(cls, v: Any) -> Any:
        """Accept scopes as a space-separated string."""
        if isinstance(v, str):
            return v.split()
        return v

    @property
    def scope_string(self) -> str | None:
        """Get scopes as space-separated string."""
        return " ".join(self.scope) if self.scope else None


class CacheSettings(BaseModel):
    """Behaviour of the refresh scheduler."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    fallback_refresh_seconds: Annotated[float, Field(gt=0)] = DEFAULT_REFRESH_SECONDS
    # Floor for refreshes after a successful fetch; 0 refreshes expired
    # documents on the next loop iteration.
    min_refresh_seconds: Annotated[float, Field(ge=0)] = 0.0
    http_timeout: Annotated[float, Field(gt=0, le=300)] = 10.0

    retry: RetryConfig = Field(default_factory=RetryConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @classmethod
    def from_env(cls, prefix: str = "OIDC_CACHE_") -> Self:
        """Create settings from environment variables."""

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        enabled = get_env("ENABLED", "true").strip().lower() not in {"0", "false", "no", "off"}

        try:
            return cls(
                enabled=enabled,
                fallback_refresh_seconds=float(
                    get_env("FALLBACK_REFRESH_SECONDS", DEFAULT_REFRESH_SECONDS)
                ),
                min_refresh_seconds=float(get_env("MIN_REFRESH_SECONDS", "0")),
                http_timeout=float(get_env("HTTP_TIMEOUT", "10.0")),
                telemetry=TelemetryConfig(log_level=get_env("LOG_LEVEL", "INFO")),
            )
        except (ValueError, ValidationError) as e:
            msg = f"Invalid cache settings in environment: {e}"
            raise InvalidConfigError(msg) from e


def load_provider_configs(
    providers: Mapping[str, ProviderConfig | Mapping[str, Any]],
) -> dict[str, ProviderConfig]:
    """Validate a provider mapping into ProviderConfig objects.

    Args:
        providers: Mapping of provider id to a ProviderConfig or a raw mapping.

    Returns:
        Mapping of provider id to validated ProviderConfig.

    Raises:
        InvalidConfigError: If any provider entry fails validation.
    """
    configs: dict[str, ProviderConfig] = {}
    for provider_id, raw in providers.items():
        if isinstance(raw, ProviderConfig):
            configs[provider_id] = raw
            continue
        try:
            configs[provider_id] = ProviderConfig.model_validate(raw)
        except ValidationError as e:
            msg = f"Invalid configuration for provider {provider_id}: {e}"
            raise InvalidConfigError(msg, field=provider_id) from e
    return configs
