"""Pydantic models for cached provider documents.

Frozen models so a committed DocumentSet can be shared with readers
without copying.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Self

import jwt
from pydantic import BaseModel, ConfigDict, Field


class JWK(BaseModel):
    """JSON Web Key representation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    kty: str = Field(..., description="Key type")
    kid: str | None = Field(default=None, description="Key ID")
    use: str | None = Field(default=None, description="Key use")
    alg: str | None = Field(default=None, description="Algorithm")

    # RSA keys
    n: str | None = None
    e: str | None = None

    # EC keys
    crv: str | None = None
    x: str | None = None
    y: str | None = None


class JWKS(BaseModel):
    """JSON Web Key Set."""

    model_config = ConfigDict(frozen=True)

    keys: list[JWK]

    def to_key_set(self) -> jwt.PyJWKSet:
        """Decode the key material into PyJWT key objects.

        Raises:
            jwt.exceptions.PyJWKSetError: If no key in the set is usable.
        """
        return jwt.PyJWKSet.from_dict(self.model_dump(exclude_none=True))


class DiscoveryDocument(BaseModel):
    """Normalized OpenID Connect discovery document.

    Well-known endpoints are typed; every other advertised field is kept
    as an extra attribute.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    issuer: str | None = None
    authorization_endpoint: str | None = None
    token_endpoint: str | None = None
    userinfo_endpoint: str | None = None
    end_session_endpoint: str | None = None
    jwks_uri: str | None = None
    response_types_supported: list[str]
    claims_supported: list[str] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, document: Mapping[str, Any]) -> Self:
        """Validate a raw discovery document after normalizing it."""
        return cls.model_validate(normalize_discovery_document(document))

    def get(self, name: str, default: Any = None) -> Any:
        """Look up any advertised field by name."""
        return self.to_dict().get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Return the document as a plain mapping."""
        return self.model_dump(exclude_none=True)


class DocumentSet(BaseModel):
    """Discovery document and key set produced by one fetch."""

    model_config = ConfigDict(frozen=True)

    discovery_document: DiscoveryDocument
    jwks: JWKS


class FetchResult(BaseModel):
    """Outcome of a successful fetch, with the lifetime of the documents."""

    model_config = ConfigDict(frozen=True)

    documents: DocumentSet
    remaining_lifetime: int | None = None


def normalize_discovery_document(document: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize list-valued fields so documents compare deterministically.

    claims_supported is RECOMMENDED and defaults to an empty list.
    response_types_supported is REQUIRED; each entry has its
    space-separated values sorted.

    Raises:
        KeyError: If response_types_supported is missing.
        TypeError: If either field is not a list.
    """
    claims = document.get("claims_supported") or []
    response_types = document["response_types_supported"]
    for name, value in (("claims_supported", claims), ("response_types_supported", response_types)):
        if not isinstance(value, list):
            raise TypeError(f"{name} must be a list, got {type(value).__name__}")

    claims_supported = sorted(claims)
    response_types_supported = [
        " ".join(sorted(response_type.split())) for response_type in response_types
    ]

    return {
        **document,
        "claims_supported": claims_supported,
        "response_types_supported": response_types_supported,
    }
