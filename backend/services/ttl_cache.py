"""
TTL Cache - in-memory key/value store with expiry and bounded size.

Used for filter option lists on the server (one instance per Flask app) and
for API responses in the dashboard client.

Semantics:
- TTLs are milliseconds; an entry is visible while now_ms < expires_at_ms
- Expired entries are removed lazily on access and by sweep()
- Capacity eviction is FIFO by insertion order (not LRU)
- get() records a hit or a miss; has() does not touch the counters

Usage:
    from services.ttl_cache import TTLCache

    cache = TTLCache(max_size=1000, default_ttl_ms=300_000)
    cache.set(key, rows, ttl_ms=600_000)
    rows = cache.get(key)           # None when absent or expired
    cache.start_sweeper(60)         # background cleanup
"""

import time
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Iterator, List, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_MS = 5 * 60 * 1000
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


@dataclass
class CacheEntry(Generic[V]):
    value: V
    created_at_ms: int
    expires_at_ms: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms >= self.expires_at_ms


class TTLCache(Generic[K, V]):
    """TTL cache with max size limit and hit/miss accounting."""

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        clock: Callable[[], float] = time.time,
        name: str = 'cache',
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if default_ttl_ms <= 0:
            raise ValueError("default_ttl_ms must be positive")

        self._entries: Dict[K, CacheEntry[V]] = {}
        self._max_size = max_size
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock
        self._name = name
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()

        self._sweeper: Optional[threading.Thread] = None
        self._sweeper_stop = threading.Event()

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def default_ttl_ms(self) -> int:
        return self._default_ttl_ms

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: K) -> bool:
        return self.has(key)

    def keys(self) -> List[K]:
        """Keys currently stored (expired entries not yet swept included)."""
        with self._lock:
            return list(self._entries.keys())

    def items(self) -> Iterator:
        """Live (unexpired) key/value pairs, oldest insertion first."""
        now_ms = self._now_ms()
        with self._lock:
            snapshot = [(k, e) for k, e in self._entries.items() if not e.is_expired(now_ms)]
        return iter([(k, e.value) for k, e in snapshot])

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def set(self, key: K, value: V, ttl_ms: Optional[int] = None) -> None:
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError("ttl_ms must be positive")

        now_ms = self._now_ms()
        with self._lock:
            if key in self._entries:
                # Re-insert so the key moves to the newest position
                del self._entries[key]
            elif len(self._entries) >= self._max_size:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]
                logger.debug("cache_evict name=%s key=%s", self._name, oldest_key)

            self._entries[key] = CacheEntry(
                value=value,
                created_at_ms=now_ms,
                expires_at_ms=now_ms + ttl,
            )

    def get(self, key: K) -> Optional[V]:
        now_ms = self._now_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(now_ms):
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def has(self, key: K) -> bool:
        now_ms = self._now_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(now_ms):
                del self._entries[key]
                return False
            return True

    def delete(self, key: K) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def sweep(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        now_ms = self._now_ms()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now_ms)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_sweep name=%s removed=%d", self._name, len(expired))
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            hit_rate = round(self._hits / total * 100, 2) if total > 0 else 0
            return {
                'size': len(self._entries),
                'maxSize': self._max_size,
                'hits': self._hits,
                'misses': self._misses,
                'hitRate': hit_rate,
            }

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start_sweeper(self, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.sweeper_running:
            return

        self._sweeper_stop.clear()

        def _run():
            while not self._sweeper_stop.wait(interval_seconds):
                try:
                    self.sweep()
                except Exception:
                    logger.exception("cache_sweep_failed name=%s", self._name)

        self._sweeper = threading.Thread(
            target=_run, name=f"{self._name}-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.info("cache_sweeper_started name=%s interval_s=%s", self._name, interval_seconds)

    def stop_sweeper(self) -> None:
        self._sweeper_stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def close(self) -> None:
        """Stop the sweeper and drop all entries."""
        self.stop_sweeper()
        self.clear()
        logger.info("cache_closed name=%s", self._name)
