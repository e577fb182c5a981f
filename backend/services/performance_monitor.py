"""
Performance Monitor - in-process counters for the /metrics endpoint.

Tracks API calls, cache hits/misses, errors and a rolling window of query
durations (last 100).
"""

import threading
from collections import deque
from typing import Any, Dict

QUERY_TIME_WINDOW = 100


class PerformanceMonitor:

    def __init__(self, window: int = QUERY_TIME_WINDOW):
        self._lock = threading.Lock()
        self._window = window
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.api_calls = 0
            self.cache_hits = 0
            self.cache_misses = 0
            self.errors = 0
            self.query_times = deque(maxlen=self._window)

    def record_api_call(self) -> None:
        with self._lock:
            self.api_calls += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self.cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self.cache_misses += 1

    def record_query_time(self, elapsed_ms: float) -> None:
        with self._lock:
            self.query_times.append(elapsed_ms)

    def record_error(self) -> None:
        with self._lock:
            self.errors += 1

    @property
    def average_query_time_ms(self) -> int:
        with self._lock:
            if not self.query_times:
                return 0
            return round(sum(self.query_times) / len(self.query_times))

    @property
    def cache_hit_rate(self) -> int:
        with self._lock:
            total = self.cache_hits + self.cache_misses
            return round(self.cache_hits / total * 100) if total > 0 else 0

    def stats(self) -> Dict[str, Any]:
        average = self.average_query_time_ms
        hit_rate = self.cache_hit_rate
        with self._lock:
            return {
                'apiCalls': self.api_calls,
                'cacheHits': self.cache_hits,
                'cacheMisses': self.cache_misses,
                'errors': self.errors,
                'queryCount': len(self.query_times),
                'averageQueryTime': average,
                'cacheHitRate': hit_rate,
            }
