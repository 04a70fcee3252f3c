"""
Keyed query cache with request coalescing and stale-while-revalidate.

Every backend read the portal makes goes through one QueryCache instance,
created by create_app() and living as long as the application.

KEYS:
    A key (descriptor) is a tuple: operation name first, then parameters.
        ("allCourses",)
        ("studentsByCourse", "BATCH-101")
        ("studentDeliveryOrders", "stu001")
    Invalidation matches on a key prefix, so ("studentDeliveryOrders",)
    covers every student's order list.

READ POLICY:
    - Absent or invalidated entry: the caller blocks until the fetch resolves
    - Fresh entry: cached value returned, no fetch
    - Stale entry: cached value returned immediately, refresh runs on a
      background worker ("QueryCache_N" thread)
    - stale_time=None means never stale (reference data such as courses)

Thread Safety:
    - One lock guards the entry table and the in-flight table
    - Fetchers run outside the lock
    - Concurrent reads of the same key share one fetch via a Future: the
      first caller runs the fetcher, the rest wait on its result

Usage:
    cache = QueryCache(default_stale_time=0)

    courses = cache.fetch(("allCourses",), api_client.get_courses, stale_time=None)

    # After a mutation
    cache.invalidate(("studentDeliveryOrders", "stu001"))

    # At app shutdown
    cache.shutdown()
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

QueryKey = Tuple[Hashable, ...]

_DEFAULT = object()


@dataclass
class CacheEntry:
    """One cached query result."""

    data: Any
    """Last successfully fetched value."""

    updated_at: float
    """Clock reading when data was stored."""

    invalidated: bool = False
    """Set by invalidate(); the next read blocks on a fresh fetch."""

    def age(self, now: float) -> float:
        """Seconds since the value was stored."""
        return now - self.updated_at

    def is_stale(self, stale_time: Optional[float], now: float) -> bool:
        """Whether the entry is past its staleness window."""
        if self.invalidated:
            return True
        if stale_time is None:
            return False
        return self.age(now) >= stale_time


class _InFlight:
    """A running fetch that later callers can join."""

    __slots__ = ("future", "invalidated", "background")

    def __init__(self, background: bool):
        self.future: Future = Future()
        self.invalidated = False
        self.background = background


class QueryCache:
    """
    In-memory query cache shared by all request threads.

    Attributes:
        default_stale_time: Staleness window for reads that do not pass one
    """

    def __init__(
        self,
        default_stale_time: Optional[float] = 0.0,
        max_workers: int = 4,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize an empty cache.

        Args:
            default_stale_time: Seconds before an entry is stale (None = never)
            max_workers: Background refresh threads
            clock: Monotonic time source (tests pass a fake)
        """
        self._default_stale_time = default_stale_time
        self._clock = clock

        self._entries: Dict[QueryKey, CacheEntry] = {}
        self._in_flight: Dict[QueryKey, _InFlight] = {}
        self._lock = threading.Lock()

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="QueryCache"
        )
        self._is_shutdown = False

        self._hits = 0
        self._misses = 0
        self._fetches = 0
        self._fetch_failures = 0

        logger.info(
            f"QueryCache initialized (default stale time: {default_stale_time}s, "
            f"{max_workers} refresh workers)"
        )

    @property
    def default_stale_time(self) -> Optional[float]:
        """Staleness window for reads that do not pass one."""
        return self._default_stale_time

    # =========================================================================
    # READS
    # =========================================================================

    def fetch(
        self,
        key: QueryKey,
        fetcher: Callable[[], Any],
        stale_time: Any = _DEFAULT
    ) -> Any:
        """
        Read a query, fetching it if needed.

        Args:
            key: Query descriptor tuple
            fetcher: Zero-argument callable performing the backend call
            stale_time: Seconds before the value is stale; None = never stale;
                omitted = default_stale_time

        Returns:
            Cached or freshly fetched value

        Raises:
            Whatever the fetcher raises, when the caller had to wait for it
        """
        key = tuple(key)
        if stale_time is _DEFAULT:
            stale_time = self._default_stale_time

        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is not None and not entry.invalidated:
                self._hits += 1
                if entry.is_stale(stale_time, now):
                    self._start_background_refresh(key, fetcher)
                return entry.data

            self._misses += 1
            in_flight = self._in_flight.get(key)
            if in_flight is not None and not in_flight.invalidated:
                owner = False
            else:
                in_flight = _InFlight(background=False)
                self._in_flight[key] = in_flight
                self._fetches += 1
                owner = True

        if owner:
            logger.debug(f"Fetching {key}")
            return self._run_fetch(key, fetcher, in_flight, reraise=True)

        logger.debug(f"Joining in-flight fetch for {key}")
        return in_flight.future.result()

    def get_query_data(self, key: QueryKey) -> Optional[Any]:
        """
        Peek at a cached value without fetching.

        Returns the value even when stale or invalidated, None when absent.
        """
        with self._lock:
            entry = self._entries.get(tuple(key))
            return entry.data if entry is not None else None

    def get_entry(self, key: QueryKey) -> Optional[CacheEntry]:
        """Return a copy of the entry for ``key`` (None when absent)."""
        with self._lock:
            entry = self._entries.get(tuple(key))
            if entry is None:
                return None
            return CacheEntry(entry.data, entry.updated_at, entry.invalidated)

    def is_fetching(self, key: QueryKey) -> bool:
        """Whether a fetch for ``key`` is currently running."""
        with self._lock:
            return tuple(key) in self._in_flight

    # =========================================================================
    # WRITES
    # =========================================================================

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        """Store a value as freshly fetched."""
        with self._lock:
            self._entries[tuple(key)] = CacheEntry(data, self._clock())

    def invalidate(self, key: QueryKey, exact: bool = False) -> int:
        """
        Mark entries as invalidated.

        The next read of an invalidated entry blocks on a fresh fetch. Fetches
        already running for a matching key are flagged too, so their results
        are stored as invalidated and not served as fresh.

        Args:
            key: Exact key, or prefix of key components
            exact: Match only ``key`` itself

        Returns:
            Number of cached entries marked
        """
        prefix = tuple(key)
        count = 0

        with self._lock:
            for entry_key, entry in self._entries.items():
                if self._matches(entry_key, prefix, exact):
                    entry.invalidated = True
                    count += 1

            for flight_key, in_flight in self._in_flight.items():
                if self._matches(flight_key, prefix, exact):
                    in_flight.invalidated = True

        logger.debug(f"Invalidated {count} entries for {prefix} (exact={exact})")
        return count

    def remove(self, key: QueryKey) -> bool:
        """Drop one entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(tuple(key), None) is not None

    def clear(self) -> int:
        """
        Drop every entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} entries from query cache")
        return count

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def stats(self) -> Dict[str, int]:
        """Counters for the health endpoint."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "in_flight": len(self._in_flight),
                "hits": self._hits,
                "misses": self._misses,
                "fetches": self._fetches,
                "fetch_failures": self._fetch_failures,
            }

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop the background refresh workers.

        Reads keep working afterwards; stale entries are simply served
        without a refresh. Safe to call multiple times.
        """
        with self._lock:
            if self._is_shutdown:
                return
            self._is_shutdown = True

        logger.info("Shutting down query cache refresh workers...")
        self._executor.shutdown(wait=wait)
        logger.info("Query cache shut down")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _matches(candidate: QueryKey, prefix: QueryKey, exact: bool) -> bool:
        if exact:
            return candidate == prefix
        return candidate[:len(prefix)] == prefix

    def _start_background_refresh(self, key: QueryKey, fetcher: Callable[[], Any]) -> None:
        """Schedule a refresh for a stale entry. Caller holds the lock."""
        if key in self._in_flight or self._is_shutdown:
            return

        in_flight = _InFlight(background=True)
        self._in_flight[key] = in_flight
        self._fetches += 1

        logger.debug(f"Scheduling background refresh for {key}")
        self._executor.submit(self._run_fetch, key, fetcher, in_flight, False)

    def _run_fetch(
        self,
        key: QueryKey,
        fetcher: Callable[[], Any],
        in_flight: _InFlight,
        reraise: bool
    ) -> Any:
        """
        Run a fetcher and publish its outcome.

        On success the value is stored and handed to every joined caller.
        On failure nothing is stored; a background failure keeps the stale
        value and is only logged.
        """
        try:
            data = fetcher()
        except Exception as e:
            with self._lock:
                self._fetch_failures += 1
                if self._in_flight.get(key) is in_flight:
                    del self._in_flight[key]
            in_flight.future.set_exception(e)

            if in_flight.background:
                logger.warning(f"Background refresh for {key} failed, keeping stale data: {e}")
            else:
                logger.debug(f"Fetch for {key} failed: {e}")

            if reraise:
                raise
            return None

        with self._lock:
            self._entries[key] = CacheEntry(
                data,
                self._clock(),
                invalidated=in_flight.invalidated,
            )
            if self._in_flight.get(key) is in_flight:
                del self._in_flight[key]

        in_flight.future.set_result(data)
        return data
