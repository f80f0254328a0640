"""Error classes for the OIDC provider cache.

Implements a structured error hierarchy with error codes, plus a tagged
FetchError variant describing why a refresh cycle failed.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the provider cache."""

    # Configuration errors (2xxx)
    INVALID_CONFIG = "VAL_2002"

    # Fetch errors (3xxx)
    FETCH_TRANSPORT = "NET_3001"
    FETCH_HTTP_STATUS = "NET_3004"

    # Document errors (8xxx)
    INVALID_JSON = "DOC_8001"
    INVALID_DOCUMENT = "DOC_8002"
    INVALID_JWKS = "DOC_8003"


class FetchErrorKind(StrEnum):
    """What part of a refresh cycle failed."""

    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    INVALID_JSON = "invalid_json"
    INVALID_DOCUMENT = "invalid_document"
    INVALID_JWKS = "invalid_jwks"


_KIND_CODES: dict[FetchErrorKind, ErrorCode] = {
    FetchErrorKind.TRANSPORT: ErrorCode.FETCH_TRANSPORT,
    FetchErrorKind.HTTP_STATUS: ErrorCode.FETCH_HTTP_STATUS,
    FetchErrorKind.INVALID_JSON: ErrorCode.INVALID_JSON,
    FetchErrorKind.INVALID_DOCUMENT: ErrorCode.INVALID_DOCUMENT,
    FetchErrorKind.INVALID_JWKS: ErrorCode.INVALID_JWKS,
}


class ProviderCacheError(Exception):
    """Base error for the provider cache with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if isinstance(code, str) else code.value
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class FetchError(ProviderCacheError):
    """Fetching or parsing a provider's documents failed."""

    def __init__(
        self,
        message: str,
        kind: FetchErrorKind,
        *,
        url: str | None = None,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        details: dict[str, Any] = {"kind": kind.value}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        if cause is not None:
            details["cause"] = str(cause)

        super().__init__(message, _KIND_CODES[kind], details=details)
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.__cause__ = cause

    @classmethod
    def transport(cls, url: str, cause: BaseException) -> FetchError:
        """Network-level failure (DNS, connect, timeout)."""
        reason = str(cause) or cause.__class__.__name__
        return cls(
            f"Request to {url} failed: {reason}",
            FetchErrorKind.TRANSPORT,
            url=url,
            cause=cause,
        )

    @classmethod
    def http_status(cls, url: str, status_code: int) -> FetchError:
        """Non-200 response."""
        return cls(
            f"Unexpected status {status_code} from {url}",
            FetchErrorKind.HTTP_STATUS,
            url=url,
            status_code=status_code,
        )


class InvalidConfigError(ProviderCacheError):
    """Invalid provider or cache configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )


def describe_failure(reason: object) -> str:
    """Render a failure reason as a readable message.

    Exceptions expose their message; any other value is rendered with
    repr(). Values that fail to render are described by their type.
    """
    try:
        if isinstance(reason, ProviderCacheError):
            return reason.message
        if isinstance(reason, BaseException):
            return str(reason) or reason.__class__.__name__
        return repr(reason)
    except Exception:
        return f"<unprintable {type(reason).__name__}>"
