"""Authorization and logout URLs built from cached discovery documents."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

from .errors import InvalidConfigError

if TYPE_CHECKING:
    from .scheduler import ProviderCache


def _with_query(endpoint: str, params: dict[str, str]) -> str:
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode(params)}"


def authorization_uri(
    cache: ProviderCache,
    provider: str,
    params: dict[str, str] | None = None,
) -> str | None:
    """Build the authorization URL for a provider.

    Query parameters come from the provider config (client_id,
    redirect_uri, response_type, scope); params override them.

    Args:
        cache: Running provider cache.
        provider: Provider id.
        params: Additional query parameters such as state or nonce.

    Returns:
        The URL, or None while the provider has no discovery document.

    Raises:
        InvalidConfigError: If the provider advertises no authorization_endpoint.
    """
    config = cache.get_config(provider)
    document = cache.get_discovery_document(provider)
    if config is None or document is None:
        return None

    if not document.authorization_endpoint:
        msg = f"Provider {provider} has no authorization_endpoint"
        raise InvalidConfigError(msg, field="authorization_endpoint")

    query: dict[str, str] = {}
    if config.client_id:
        query["client_id"] = config.client_id
    if config.redirect_uri:
        query["redirect_uri"] = config.redirect_uri
    query["response_type"] = config.response_type
    if config.scope_string:
        query["scope"] = config.scope_string
    if params:
        query.update(params)

    return _with_query(document.authorization_endpoint, query)


def end_session_uri(
    cache: ProviderCache,
    provider: str,
    params: dict[str, str] | None = None,
) -> str | None:
    """Build the RP-initiated logout URL for a provider.

    Returns:
        The URL, or None while the provider has no discovery document.

    Raises:
        InvalidConfigError: If the provider advertises no end_session_endpoint.
    """
    config = cache.get_config(provider)
    document = cache.get_discovery_document(provider)
    if config is None or document is None:
        return None

    if not document.end_session_endpoint:
        msg = f"Provider {provider} has no end_session_endpoint"
        raise InvalidConfigError(msg, field="end_session_endpoint")

    query: dict[str, str] = {}
    if config.client_id:
        query["client_id"] = config.client_id
    if params:
        query.update(params)

    return _with_query(document.end_session_endpoint, query)
