"""Refresh scheduler and in-memory cache of provider documents.

A ProviderCache keeps one entry per configured provider and refreshes
each provider's discovery document and key set on its own timer. A
single owner task applies every state change; fetches run as separate
tasks and report back through the owner's inbox, so no lock is held
across network I/O and readers always see a committed DocumentSet.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final, Self

from .config import CacheSettings, ProviderConfig, load_provider_configs
from .documents import DocumentFetcher, FetchDocuments
from .errors import describe_failure
from .models import JWKS, DiscoveryDocument, DocumentSet, FetchResult
from .telemetry import get_logger


class _Ignore:
    def __repr__(self) -> str:
        return "IGNORE"


IGNORE: Final = _Ignore()
"""Pass to ProviderCache.start to get no cache at all."""


def compute_refresh_delay(
    remaining_lifetime: float | None,
    *,
    fallback: float,
    minimum: float = 0.0,
) -> float:
    """Seconds to wait before the next refresh of a provider.

    Args:
        remaining_lifetime: Seconds until the fetched documents go stale.
        fallback: Delay used when no lifetime is known.
        minimum: Floor applied when a lifetime is known.

    Returns:
        The lifetime when positive, 0 when already expired, else fallback.
    """
    if remaining_lifetime is None:
        return fallback
    if remaining_lifetime > 0:
        return max(float(remaining_lifetime), minimum)
    return minimum


@dataclass(slots=True)
class CacheEntry:
    """Per-provider state: static config plus the last fetched documents."""

    config: ProviderConfig
    documents: DocumentSet | None = None
    next_refresh_delay: float | None = None


@dataclass(frozen=True, slots=True)
class _Refresh:
    provider: str


@dataclass(frozen=True, slots=True)
class _RefreshSucceeded:
    provider: str
    result: FetchResult


@dataclass(frozen=True, slots=True)
class _RefreshFailed:
    provider: str
    reason: object


_Command = _Refresh | _RefreshSucceeded | _RefreshFailed


class ProviderCache:
    """Self-refreshing cache of OpenID Connect provider documents."""

    def __init__(
        self,
        providers: Mapping[str, ProviderConfig],
        fetcher: FetchDocuments,
        settings: CacheSettings,
        *,
        owns_fetcher: bool = False,
    ) -> None:
        """Initialize cache state. Use ProviderCache.start to run it.

        Args:
            providers: Validated provider configurations.
            fetcher: Collaborator that fetches one provider's documents.
            settings: Cache settings.
            owns_fetcher: Close the fetcher when the cache is closed.
        """
        self.settings = settings
        self._fetcher = fetcher
        self._owns_fetcher = owns_fetcher
        self._entries: dict[str, CacheEntry] = {
            provider: CacheEntry(config=config) for provider, config in providers.items()
        }
        self._inbox: asyncio.Queue[_Command] = asyncio.Queue()
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._fetches: set[asyncio.Task[None]] = set()
        self._owner: asyncio.Task[None] | None = None
        self._ready = asyncio.Event()
        self._logger = get_logger(settings.telemetry)

    @classmethod
    def start(
        cls,
        providers: Mapping[str, ProviderConfig | Mapping[str, Any]] | _Ignore,
        *,
        notify: asyncio.Event | Callable[[], Any] | None = None,
        fetcher: FetchDocuments | None = None,
        settings: CacheSettings | None = None,
    ) -> ProviderCache | None:
        """Create a cache and schedule an immediate fetch for every provider.

        Must be called from a running event loop.

        Args:
            providers: Provider id to configuration, or IGNORE.
            notify: Signalled once when every initial fetch is scheduled.
            fetcher: Document fetcher; an HTTP DocumentFetcher by default.
            settings: Cache settings.

        Returns:
            The running cache, or None for IGNORE or a disabled cache.

        Raises:
            InvalidConfigError: If a provider configuration is invalid.
        """
        settings = settings or CacheSettings()
        if providers is IGNORE or not settings.enabled:
            return None

        configs = load_provider_configs(providers)
        owns_fetcher = fetcher is None
        if fetcher is None:
            fetcher = DocumentFetcher(settings)

        cache = cls(configs, fetcher, settings, owns_fetcher=owns_fetcher)
        cache._run(notify)
        return cache

    def _run(self, notify: asyncio.Event | Callable[[], Any] | None) -> None:
        loop = asyncio.get_running_loop()
        for provider in self._entries:
            self._schedule(provider, 0, loop=loop)

        self._owner = loop.create_task(self._process_inbox(), name="oidc-provider-cache")
        self._ready.set()
        self._logger.debug("provider cache ready", providers=list(self._entries))
        if notify is None:
            return
        try:
            if isinstance(notify, asyncio.Event):
                notify.set()
            else:
                notify()
        except Exception:
            self._logger.exception("ready notification failed")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def wait_ready(self) -> None:
        """Wait until the initial fetch of every provider is scheduled."""
        await self._ready.wait()

    # Read API

    @property
    def providers(self) -> list[str]:
        """Configured provider ids."""
        return list(self._entries)

    def get_config(self, provider: str) -> ProviderConfig | None:
        """Static configuration of a provider, or None if unknown."""
        entry = self._entries.get(provider)
        return entry.config if entry else None

    def get_documents(self, provider: str) -> DocumentSet | None:
        """Discovery document and key set from the same fetch, or None."""
        entry = self._entries.get(provider)
        return entry.documents if entry else None

    def get_discovery_document(self, provider: str) -> DiscoveryDocument | None:
        """Current normalized discovery document, or None."""
        documents = self.get_documents(provider)
        return documents.discovery_document if documents else None

    def get_jwks(self, provider: str) -> JWKS | None:
        """Current key set, or None."""
        documents = self.get_documents(provider)
        return documents.jwks if documents else None

    def next_refresh_delay(self, provider: str) -> float | None:
        """Delay in seconds used for the provider's latest scheduled refresh."""
        entry = self._entries.get(provider)
        return entry.next_refresh_delay if entry else None

    # Lifecycle

    async def close(self) -> None:
        """Abandon pending timers and in-flight fetches, then stop the owner."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        tasks = list(self._fetches)
        if self._owner is not None:
            tasks.append(self._owner)
            self._owner = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._fetches.clear()

        if self._owns_fetcher and isinstance(self._fetcher, DocumentFetcher):
            await self._fetcher.close()

    # Owner task

    async def _process_inbox(self) -> None:
        while True:
            command = await self._inbox.get()
            try:
                self._handle(command)
            except Exception:
                self._recover(command.provider)

    def _handle(self, command: _Command) -> None:
        match command:
            case _Refresh(provider):
                self._start_refresh(provider)
            case _RefreshSucceeded(provider, result):
                self._commit(provider, result)
            case _RefreshFailed(provider, reason):
                self._record_failure(provider, reason)

    def _recover(self, provider: str) -> None:
        """Keep a provider on the fallback schedule after its command crashed."""
        self._logger.exception("provider refresh cycle crashed", provider=provider)
        if provider in self._entries:
            self._schedule(provider, self.settings.fallback_refresh_seconds)

    def _schedule(
        self,
        provider: str,
        delay: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        loop = loop or asyncio.get_running_loop()
        entry = self._entries.get(provider)
        if entry is not None:
            entry.next_refresh_delay = delay
        # At most one pending refresh per provider
        previous = self._timers.pop(provider, None)
        if previous is not None:
            previous.cancel()
        self._timers[provider] = loop.call_later(
            delay, self._inbox.put_nowait, _Refresh(provider)
        )

    def _start_refresh(self, provider: str) -> None:
        self._timers.pop(provider, None)
        entry = self._entries.get(provider)
        if entry is None:
            self._logger.debug("refresh for unknown provider skipped", provider=provider)
            return

        task = asyncio.create_task(
            self._fetch(provider, entry.config),
            name=f"oidc-fetch-{provider}",
        )
        self._fetches.add(task)
        task.add_done_callback(self._fetches.discard)

    async def _fetch(self, provider: str, config: ProviderConfig) -> None:
        try:
            result = await self._fetcher(config)
        except Exception as e:
            self._inbox.put_nowait(_RefreshFailed(provider, e))
        else:
            self._inbox.put_nowait(_RefreshSucceeded(provider, result))

    def _commit(self, provider: str, result: FetchResult) -> None:
        entry = self._entries.get(provider)
        if entry is None:
            return

        entry.documents = result.documents
        delay = compute_refresh_delay(
            result.remaining_lifetime,
            fallback=self.settings.fallback_refresh_seconds,
            minimum=self.settings.min_refresh_seconds,
        )
        self._schedule(provider, delay)
        self._logger.bind(provider=provider).info(
            "provider documents refreshed",
            delay=delay,
            remaining_lifetime=result.remaining_lifetime,
        )

    def _record_failure(self, provider: str, reason: object) -> None:
        if provider not in self._entries:
            return

        retry_in = self.settings.fallback_refresh_seconds
        self._logger.bind(provider=provider).warning(
            "failed to update provider documents",
            reason=describe_failure(reason),
            retry_in=retry_in,
        )
        self._schedule(provider, retry_in)
