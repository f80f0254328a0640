"""Fetching and parsing of provider documents.

The refresh scheduler only depends on the FetchDocuments protocol;
DocumentFetcher is the httpx-backed implementation used by default.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, Self

import httpx
import jwt
from pydantic import ValidationError

from .config import CacheSettings
from .errors import FetchError, FetchErrorKind
from .http import create_async_http_client, get_with_retry
from .models import JWKS, DiscoveryDocument, DocumentSet, FetchResult
from .telemetry import get_logger, get_tracer, trace_operation

if TYPE_CHECKING:
    from .config import ProviderConfig

_MAX_AGE_RE = re.compile(r"max-age=(\d+)", re.IGNORECASE)

# Lifetimes beyond a year are treated as a year
MAX_LIFETIME_SECONDS = 365 * 24 * 3600


class FetchDocuments(Protocol):
    """Retrieves and parses the documents of one provider."""

    async def __call__(self, config: ProviderConfig) -> FetchResult:
        """Fetch documents, raising FetchError on any failure."""
        ...


def remaining_lifetime(headers: Mapping[str, str]) -> int | None:
    """Seconds until a response goes stale, from its caching headers.

    Computed as Cache-Control max-age minus Age (Age defaults to 0).
    Both values are capped at MAX_LIFETIME_SECONDS. Returns None when
    max-age is absent or either value is malformed.
    """
    match = _MAX_AGE_RE.search(headers.get("cache-control", ""))
    if match is None:
        return None

    try:
        max_age = int(match.group(1))
        age = int(headers.get("age", "0").strip())
    except ValueError:
        return None

    return min(max_age, MAX_LIFETIME_SECONDS) - min(age, MAX_LIFETIME_SECONDS)


class DocumentFetcher:
    """Fetches discovery documents and key sets over HTTP."""

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize fetcher.

        Args:
            settings: Cache settings (timeouts and retry policy).
            client: Optional HTTP client; one is created and owned otherwise.
        """
        self.settings = settings or CacheSettings()
        self._owns_client = client is None
        self._http = client or create_async_http_client(self.settings)
        self._tracer = get_tracer(self.settings.telemetry)
        self._logger = get_logger(self.settings.telemetry)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._http.aclose()

    async def __call__(self, config: ProviderConfig) -> FetchResult:
        """Fetch and parse the documents of one provider.

        Args:
            config: Provider configuration.

        Returns:
            Parsed documents with the key set's remaining lifetime.

        Raises:
            FetchError: On transport, status, or parse failure.
        """
        discovery_uri = str(config.discovery_document_uri)

        with trace_operation(
            "oidc.fetch_documents",
            tracer=self._tracer,
            attributes={"oidc.discovery_uri": discovery_uri},
        ):
            raw_document, _ = await self._fetch_json(discovery_uri, config)

            jwks_uri = str(config.jwks_uri) if config.jwks_uri else raw_document.get("jwks_uri")
            if not isinstance(jwks_uri, str) or not jwks_uri:
                raise FetchError(
                    f"Discovery document at {discovery_uri} has no jwks_uri",
                    FetchErrorKind.INVALID_DOCUMENT,
                    url=discovery_uri,
                )

            raw_jwks, headers = await self._fetch_json(jwks_uri, config)

            discovery_document = self._parse_discovery_document(discovery_uri, raw_document)
            jwks = self._parse_jwks(jwks_uri, raw_jwks)

        return FetchResult(
            documents=DocumentSet(discovery_document=discovery_document, jwks=jwks),
            remaining_lifetime=remaining_lifetime(headers),
        )

    async def _fetch_json(
        self,
        url: str,
        config: ProviderConfig,
    ) -> tuple[dict[str, Any], httpx.Headers]:
        """GET a JSON object, returning it with the response headers."""
        kwargs: dict[str, Any] = {}
        if config.request_timeout is not None:
            kwargs["timeout"] = config.request_timeout

        response = await get_with_retry(
            self._http,
            url,
            self.settings.retry,
            logger=self._logger,
            tracer=self._tracer,
            **kwargs,
        )

        if response.status_code != 200:
            raise FetchError.http_status(url, response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise FetchError(
                f"Response from {url} is not valid JSON",
                FetchErrorKind.INVALID_JSON,
                url=url,
                cause=e,
            ) from e

        if not isinstance(body, dict):
            raise FetchError(
                f"Response from {url} is not a JSON object",
                FetchErrorKind.INVALID_JSON,
                url=url,
            )

        return body, response.headers

    @staticmethod
    def _parse_discovery_document(url: str, raw: dict[str, Any]) -> DiscoveryDocument:
        try:
            return DiscoveryDocument.from_raw(raw)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise FetchError(
                f"Invalid discovery document at {url}: {e}",
                FetchErrorKind.INVALID_DOCUMENT,
                url=url,
                cause=e,
            ) from e

    @staticmethod
    def _parse_jwks(url: str, raw: dict[str, Any]) -> JWKS:
        try:
            jwks = JWKS.model_validate(raw)
            # Reject sets whose key material cannot be decoded
            jwks.to_key_set()
        except (ValidationError, jwt.exceptions.PyJWTError) as e:
            raise FetchError(
                f"Invalid key set at {url}: {e}",
                FetchErrorKind.INVALID_JWKS,
                url=url,
                cause=e,
            ) from e
        return jwks
