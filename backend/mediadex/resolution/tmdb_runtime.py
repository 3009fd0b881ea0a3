"""Explicit in-process cache for TMDB lookups with TTL, capacity, and single-flight."""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from threading import Event, Lock
from typing import Any, Generic, TypeVar

from mediadex.resolution.logger import logger
from mediadex.resolution.tmdb_config import (
    TMDB_LOOKUP_CACHE_MAX_ENTRIES,
    TMDB_LOOKUP_CACHE_TTL_SECONDS,
    TMDB_SINGLEFLIGHT_WAIT_TIMEOUT_SECONDS,
    WHITESPACE_RE,
)
from mediadex.resolution.tmdb_normalization import (
    normalize_logo_language,
    normalize_media_type,
    normalize_year,
)

V = TypeVar("V")


def _normalize_title_key(title: str) -> str:
    return WHITESPACE_RE.sub(" ", title.strip().lower())


def lookup_cache_key(media_type: str | None, title: str, year: str | None) -> str:
    """Cache key of a title lookup: media type, whitespace-folded title, and year."""
    normalized_year = normalize_year(year) or "unknown"
    return (
        f"title:{normalize_media_type(media_type)}:"
        f"{_normalize_title_key(title)}:{normalized_year}"
    )


def detail_cache_key(
    media_type: str | None,
    tmdb_id: int,
    logo_language: str | None = None,
) -> str:
    """Cache key of a detail fetch for a known TMDB ID."""
    return (
        f"id:{normalize_media_type(media_type)}:"
        f"{normalize_logo_language(logo_language)}:{tmdb_id}"
    )


@dataclass
class _CacheEntry(Generic[V]):
    value: V
    expires_at: float


class TmdbLookupCache(Generic[V]):
    """Thread-safe TTL cache with insertion-order eviction and single-flight slots.

    Negative results (``None``) are cached like any other value; use ``get``'s
    hit flag to tell them apart from misses.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = TMDB_LOOKUP_CACHE_TTL_SECONDS,
        max_entries: int = TMDB_LOOKUP_CACHE_MAX_ENTRIES,
        singleflight_wait_timeout: float = TMDB_SINGLEFLIGHT_WAIT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.singleflight_wait_timeout = singleflight_wait_timeout
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry[V]] = OrderedDict()
        self._entries_lock = Lock()
        self._inflight_events: dict[str, Event] = {}
        self._inflight_lock = Lock()
        self._inflight_futures: dict[str, asyncio.Future[Any]] = {}

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    def get(self, key: str) -> tuple[bool, V | None]:
        """Return ``(hit, value)``; expired entries are evicted on read."""
        with self._entries_lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return False, None
            return True, entry.value

    def set(self, key: str, value: V) -> None:
        with self._entries_lock:
            self._entries.pop(key, None)
            self._entries[key] = _CacheEntry(
                value=value,
                expires_at=self._clock() + self.ttl_seconds,
            )
            self._prune_locked()

    def _prune_locked(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def begin_inflight(self, key: str) -> tuple[bool, Event]:
        """Register or join a single-flight slot; the first caller becomes the owner."""
        with self._inflight_lock:
            existing = self._inflight_events.get(key)
            if existing is not None:
                return False, existing
            event = Event()
            self._inflight_events[key] = event
            return True, event

    def finish_inflight(self, key: str, event: Event) -> None:
        """Complete a single-flight slot and wake any waiting threads."""
        with self._inflight_lock:
            current = self._inflight_events.get(key)
            if current is event:
                del self._inflight_events[key]
        event.set()

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], V],
        *,
        should_cache: Callable[[V], bool] | None = None,
    ) -> V:
        """Return a cached value or compute it once, sharing the result with concurrent callers.

        Values rejected by ``should_cache`` are returned but not stored; waiters
        then retry ownership and compute their own.
        """
        while True:
            hit, cached = self.get(key)
            if hit:
                logger.debug("TMDB cache hit (memory) for key=%s", key)
                return cached  # type: ignore[return-value]

            is_owner, event = self.begin_inflight(key)
            if is_owner:
                break

            logger.debug("TMDB single-flight wait for key=%s", key)
            if not event.wait(timeout=self.singleflight_wait_timeout):
                logger.warning(
                    "TMDB single-flight wait timed out for key=%s after %.1fs; "
                    "retrying lookup ownership.",
                    key,
                    self.singleflight_wait_timeout,
                )
                self.finish_inflight(key, event)
                continue
            hit, cached = self.get(key)
            if hit:
                logger.debug("TMDB cache hit (singleflight) for key=%s", key)
                return cached  # type: ignore[return-value]

        try:
            value = compute()
            if should_cache is None or should_cache(value):
                self.set(key, value)
        finally:
            self.finish_inflight(key, event)
        logger.debug("TMDB cache miss (network lookup) for key=%s", key)
        return value

    async def get_or_compute_async(
        self,
        key: str,
        compute: Callable[[], Awaitable[V]],
        *,
        should_cache: Callable[[V], bool] | None = None,
    ) -> V:
        """Async single-flight: concurrent callers on one event loop await one shared task."""
        hit, cached = self.get(key)
        if hit:
            logger.debug("TMDB cache hit (memory) for key=%s", key)
            return cached  # type: ignore[return-value]

        pending = self._inflight_futures.get(key)
        if pending is not None and not pending.done():
            logger.debug("TMDB single-flight wait for key=%s", key)
            return await asyncio.shield(pending)

        async def _run() -> V:
            try:
                value = await compute()
                if should_cache is None or should_cache(value):
                    self.set(key, value)
                return value
            finally:
                if self._inflight_futures.get(key) is task:
                    del self._inflight_futures[key]

        task = asyncio.ensure_future(_run())
        self._inflight_futures[key] = task
        logger.debug("TMDB cache miss (network lookup) for key=%s", key)
        return await asyncio.shield(task)

    def reset(self) -> None:
        """Clear cached entries and wake all single-flight waiters."""
        with self._entries_lock:
            self._entries.clear()
        with self._inflight_lock:
            waiting_events = list(self._inflight_events.values())
            self._inflight_events.clear()
        self._inflight_futures.clear()
        for waiting_event in waiting_events:
            waiting_event.set()
