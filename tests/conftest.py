"""
Shared test fixtures for provider cache tests.

Provides provider configuration, settings and sample documents.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from helpers import DISCOVERY_URI, SAMPLE_DISCOVERY, SAMPLE_JWKS

from oidc_provider_cache.config import CacheSettings, ProviderConfig, RetryConfig
from oidc_provider_cache.errors import FetchError


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Provide a single provider configuration."""
    return ProviderConfig(
        discovery_document_uri=DISCOVERY_URI,
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="https://app.example.com/callback",
        scope=["openid", "email"],
    )


@pytest.fixture
def settings() -> CacheSettings:
    """Provide cache settings without retries."""
    return CacheSettings(retry=RetryConfig(max_retries=0))


@pytest.fixture
def sample_discovery() -> dict[str, Any]:
    """Provide a raw discovery document."""
    return dict(SAMPLE_DISCOVERY)


@pytest.fixture
def sample_jwks() -> dict[str, Any]:
    """Provide a raw JWKS response."""
    return dict(SAMPLE_JWKS)


@pytest.fixture
def dns_failure() -> FetchError:
    """Provide the error a fetcher raises when the host does not resolve."""
    request = httpx.Request("GET", DISCOVERY_URI)
    return FetchError.transport(
        DISCOVERY_URI,
        httpx.ConnectError("[Errno -2] Name or service not known", request=request),
    )
