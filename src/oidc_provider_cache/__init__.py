"""OIDC provider metadata cache."""

from .authorization import authorization_uri, end_session_uri
from .config import CacheSettings, ProviderConfig, RetryConfig, TelemetryConfig
from .documents import DocumentFetcher, FetchDocuments
from .errors import (
    ErrorCode,
    FetchError,
    FetchErrorKind,
    InvalidConfigError,
    ProviderCacheError,
    describe_failure,
)
from .models import JWK, JWKS, DiscoveryDocument, DocumentSet, FetchResult
from .scheduler import IGNORE, ProviderCache, compute_refresh_delay
from .telemetry import configure_telemetry

__all__ = [
    "IGNORE",
    "CacheSettings",
    "DiscoveryDocument",
    "DocumentFetcher",
    "DocumentSet",
    "ErrorCode",
    "FetchDocuments",
    "FetchError",
    "FetchErrorKind",
    "FetchResult",
    "InvalidConfigError",
    "JWK",
    "JWKS",
    "ProviderCache",
    "ProviderCacheError",
    "ProviderConfig",
    "RetryConfig",
    "TelemetryConfig",
    "authorization_uri",
    "compute_refresh_delay",
    "configure_telemetry",
    "describe_failure",
    "end_session_uri",
]

__version__ = "0.1.0"
