"""Shared helpers: sample documents, fake fetchers and mock transports."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx

from oidc_provider_cache.config import ProviderConfig
from oidc_provider_cache.models import DiscoveryDocument, DocumentSet, FetchResult, JWKS

DISCOVERY_URI = "https://idp.example.com/.well-known/openid-configuration"
JWKS_URI = "https://idp.example.com/oauth2/v3/certs"

SAMPLE_DISCOVERY = {
    "issuer": "https://idp.example.com",
    "authorization_endpoint": "https://idp.example.com/o/oauth2/v2/auth",
    "token_endpoint": "https://idp.example.com/token",
    "userinfo_endpoint": "https://idp.example.com/v1/userinfo",
    "end_session_endpoint": "https://idp.example.com/logout",
    "jwks_uri": JWKS_URI,
    "response_types_supported": ["code", "token id_token", "none"],
    "subject_types_supported": ["public"],
    "id_token_signing_alg_values_supported": ["RS256"],
    "claims_supported": ["sub", "aud", "email", "iss"],
}

SAMPLE_JWKS = {
    "keys": [
        {
            "kty": "RSA",
            "kid": "test-key-1",
            "use": "sig",
            "alg": "RS256",
            "n": "0vx7agoebGcQSuuPiLJXZptN9nndrQmbXEps2aiAFbWhM78LhWx4cbbfAAtVT86zwu1RK7aPFFxuhDR1L6tSoc_BJECPebWKRXjBZCiFV4n3oknjhMstn64tZ_2W-5JsGY4Hc5n9yBXArwl93lqt7_RN5w6Cf0h4QyQ5v-65YGjQR0_FDW2QvzqY368QQMicAtaSqzs8KJZgnYb9c7d0zgdAZHzu6qMQvRL5hajrn1n91CbOpbISD08qNLyrdkt-bFTWhAI4vMQFh6WeZu0fM4lFd2NcRwr3XPksINHaQ-G_xBniIqbw0Ls1jF44-csFCur-kEgU8awapJzKnqDKgw",
            "e": "AQAB",
        }
    ]
}


def make_result(remaining_lifetime: int | None = None, issuer: str = "https://idp.example.com") -> FetchResult:
    """Build a FetchResult from the sample documents."""
    document = DiscoveryDocument.from_raw({**SAMPLE_DISCOVERY, "issuer": issuer})
    return FetchResult(
        documents=DocumentSet(
            discovery_document=document,
            jwks=JWKS.model_validate(SAMPLE_JWKS),
        ),
        remaining_lifetime=remaining_lifetime,
    )


class FakeFetcher:
    """Async fetcher returning queued outcomes and recording calls."""

    def __init__(self, *outcomes: FetchResult | BaseException | object) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[ProviderConfig] = []

    async def __call__(self, config: ProviderConfig) -> FetchResult:
        self.calls.append(config)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome  # type: ignore[return-value]


def mock_transport(
    routes: dict[str, httpx.Response | Callable[[httpx.Request], httpx.Response]],
) -> httpx.MockTransport:
    """MockTransport answering by URL; unknown URLs fail to resolve."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)
        if callable(route):
            return route(request)
        return route

    return httpx.MockTransport(handler)


async def settle(iterations: int = 50) -> None:
    """Let timers at delay 0, fetch tasks and the owner task run."""
    for _ in range(iterations):
        await asyncio.sleep(0)


