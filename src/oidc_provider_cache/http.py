"""HTTP client utilities for the provider cache.

Provides the shared async client and a GET helper that retries
transport failures with exponential backoff.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from .errors import FetchError
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from opentelemetry import trace
    from structlog.typing import FilteringBoundLogger

    from .config import CacheSettings, RetryConfig

USER_AGENT = "oidc-provider-cache/0.1.0 Python"


def create_async_http_client(settings: CacheSettings) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        settings: Cache settings.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout),
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
        follow_redirects=True,
    )


async def get_with_retry(
    client: httpx.AsyncClient,
    url: str,
    retry_config: RetryConfig,
    *,
    logger: FilteringBoundLogger | None = None,
    tracer: trace.Tracer | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Make an async GET request, retrying transport failures.

    Args:
        client: Async HTTP client.
        url: Request URL.
        retry_config: Retry configuration.
        logger: Logger for retry warnings; the cache logger by default.
        tracer: Tracer for per-attempt spans.
        **kwargs: Additional request arguments.

    Returns:
        HTTP response, whatever its status code.

    Raises:
        FetchError: On transport failure after retries.
    """
    if logger is None:
        logger = get_logger()
    last_error: httpx.HTTPError | None = None

    for attempt in range(retry_config.max_retries + 1):
        try:
            with trace_operation(
                "http_request",
                tracer=tracer,
                attributes={"http.method": "GET", "http.url": url, "attempt": attempt},
            ):
                return await client.get(url, **kwargs)

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            last_error = e
            if attempt < retry_config.max_retries:
                delay = retry_config.get_delay(attempt)
                logger.warning(
                    "Request failed, retrying",
                    url=url,
                    attempt=attempt,
                    delay=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

        except httpx.HTTPError as e:
            raise FetchError.transport(url, e) from e

    if last_error is None:
        last_error = httpx.TransportError("Request failed after retries")
    raise FetchError.transport(url, last_error)
