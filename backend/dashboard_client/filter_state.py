"""
Filter State Coordinator - cascading dashboard filters.

Hierarchies:
    vertical -> business -> site
    year -> month -> date

Each option level (vertical, business, site, years, months) moves through
    unset -> loading -> ready | error
and re-enters loading whenever its parent filter changes.

Rules:
- Every filter change is debounced (300ms). After the quiet window the
  cascade fires once with the last value
- Changing a parent clears every descendant value and option list, then
  fetches the direct child's options (even for the "All" sentinel)
- Option lists are cached in the client cache under FilterCacheKey, so a
  new parent value simply misses and old lists stay cached under their
  old keys
- Each fetch takes a per-level sequence number; a result is applied only
  if its number is still the latest for that level (latest intent wins)
- refresh() clears both cache layers and re-fetches all relevant levels
  concurrently; one level failing never blocks the others

Usage:
    coordinator = FilterStateCoordinator(api, ClientCache(), bucket_id=1, user_id=7)
    coordinator.load_initial()
    coordinator.update_filter("vertical", "Energy")
    ...
    coordinator.snapshot()["data"]["business"]
"""

import copy
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from dashboard_client.api import ApiError, ApiResponse
from dashboard_client.cache import ClientCache
from utils.cache_key import (
    ALL_LEVELS,
    LEVEL_BUSINESS,
    LEVEL_MONTHS,
    LEVEL_SITE,
    LEVEL_VERTICAL,
    LEVEL_YEARS,
    FilterCacheKey,
    business_key,
    months_key,
    site_key,
    vertical_key,
    years_key,
)
from utils.debounce import Debounced, TimerFactory, debounce

logger = logging.getLogger(__name__)

ALL_SENTINEL = 'All'
DEFAULT_DEBOUNCE_MS = 300

FILTER_KEYS = ('vertical', 'business', 'site', 'year', 'month', 'date')

PARENT = {
    'business': 'vertical',
    'site': 'business',
    'month': 'year',
    'date': 'month',
}

DESCENDANTS = {
    'vertical': ('business', 'site'),
    'business': ('site',),
    'site': (),
    'year': ('month', 'date'),
    'month': ('date',),
    'date': (),
}

# Option level fetched when a filter gets a value
CHILD_LEVEL = {
    'vertical': LEVEL_BUSINESS,
    'business': LEVEL_SITE,
    'year': LEVEL_MONTHS,
}

# Option level whose list belongs to a filter value
LEVEL_FOR_FILTER = {
    'business': LEVEL_BUSINESS,
    'site': LEVEL_SITE,
    'month': LEVEL_MONTHS,
}

# Client-side freshness per level (milliseconds)
LEVEL_TTL_MS = {
    LEVEL_VERTICAL: 10 * 60 * 1000,
    LEVEL_BUSINESS: 5 * 60 * 1000,
    LEVEL_SITE: 5 * 60 * 1000,
    LEVEL_YEARS: 60 * 60 * 1000,
    LEVEL_MONTHS: 60 * 60 * 1000,
}


class LevelStatus(str, Enum):
    UNSET = 'unset'
    LOADING = 'loading'
    READY = 'ready'
    ERROR = 'error'


@dataclass
class FilterState:
    vertical: str = ''
    business: str = ''
    site: str = ''
    year: str = ''
    month: str = ''
    date: str = ''

    def to_dict(self) -> Dict[str, str]:
        return {k: getattr(self, k) for k in FILTER_KEYS}


@dataclass
class FilterOptionSet:
    status: LevelStatus = LevelStatus.UNSET
    options: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[Exception] = None
    cached: bool = False
    seq: int = 0

    @property
    def loading(self) -> bool:
        return self.status == LevelStatus.LOADING


class FilterStateCoordinator:

    def __init__(
        self,
        api,
        cache: Optional[ClientCache] = None,
        bucket_id: int = 1,
        user_id: int = 1,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        max_workers: int = len(ALL_LEVELS),
        timer_factory: Optional[TimerFactory] = None,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self.api = api
        self.cache = cache if cache is not None else ClientCache()
        self.bucket_id = bucket_id
        self.user_id = user_id
        self.on_change = on_change

        self._lock = threading.RLock()
        self._state = FilterState()
        self._levels: Dict[str, FilterOptionSet] = {lvl: FilterOptionSet() for lvl in ALL_LEVELS}
        self._seq: Dict[str, int] = {lvl: 0 for lvl in ALL_LEVELS}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='filter-fetch')
        self._debouncers: Dict[str, Debounced] = {
            key: debounce(
                lambda value, _key=key: self._apply(_key, value),
                debounce_ms,
                timer_factory=timer_factory,
            )
            for key in FILTER_KEYS
        }

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def filters(self) -> FilterState:
        with self._lock:
            return copy.copy(self._state)

    def level(self, name: str) -> FilterOptionSet:
        with self._lock:
            return copy.deepcopy(self._levels[name])

    def is_enabled(self, key: str) -> bool:
        """A filter is selectable once its parent has a value."""
        parent = PARENT.get(key)
        if parent is None:
            return True
        with self._lock:
            return getattr(self._state, parent) != ''

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            levels = self._levels
            return {
                'filters': self._state.to_dict(),
                'bucketId': self.bucket_id,
                'userId': self.user_id,
                'data': {lvl: list(levels[lvl].options) for lvl in ALL_LEVELS},
                'loading': {lvl: levels[lvl].loading for lvl in ALL_LEVELS},
                'errors': {lvl: levels[lvl].error for lvl in ALL_LEVELS},
                'cached': {lvl: levels[lvl].cached for lvl in ALL_LEVELS},
            }

    # ------------------------------------------------------------------
    # Filter changes
    # ------------------------------------------------------------------

    def update_filter(self, key: str, value: Optional[str]) -> None:
        """Debounced filter change; the cascade fires after the quiet window."""
        if key not in FILTER_KEYS:
            raise ValueError(f"Unknown filter: {key!r}")
        self._debouncers[key]('' if value is None else str(value))

    def set_filter(self, key: str, value: Optional[str]) -> bool:
        """Apply a filter change immediately (no debounce)."""
        if key not in FILTER_KEYS:
            raise ValueError(f"Unknown filter: {key!r}")
        self._debouncers[key].cancel()
        return self._apply(key, '' if value is None else str(value))

    def flush_pending(self) -> int:
        """Fire pending debounced changes now. Returns how many ran."""
        return sum(1 for key in FILTER_KEYS if self._debouncers[key].flush())

    def _apply(self, key: str, value: str) -> bool:
        with self._lock:
            if getattr(self._state, key) == value:
                return False
            setattr(self._state, key, value)
            for descendant in DESCENDANTS[key]:
                setattr(self._state, descendant, '')
                level = LEVEL_FOR_FILTER.get(descendant)
                if level is not None:
                    self._reset_level(level)
            child = CHILD_LEVEL.get(key)

        logger.info("filter_changed key=%s value=%r", key, value)
        self._notify(key)

        if child is not None and value:
            self._fetch(child)
        return True

    def _reset_level(self, level: str) -> None:
        # Bumping seq makes any in-flight fetch for this level stale
        self._seq[level] += 1
        self._levels[level] = FilterOptionSet(seq=self._seq[level])

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _request_for(self, level: str) -> Optional[Tuple[FilterCacheKey, Callable[[], ApiResponse]]]:
        state = self._state
        b, u = self.bucket_id, self.user_id
        if level == LEVEL_VERTICAL:
            return vertical_key(b, u), lambda: self.api.get_vertical(b, u)
        if level == LEVEL_YEARS:
            return years_key(), self.api.get_years
        if level == LEVEL_BUSINESS and state.vertical:
            vertical = state.vertical
            return business_key(b, u, vertical), lambda: self.api.get_business(b, u, vertical)
        if level == LEVEL_SITE and state.business:
            business = state.business
            return site_key(b, u, business), lambda: self.api.get_site(b, u, business)
        if level == LEVEL_MONTHS and state.year:
            year = state.year
            return months_key(year), lambda: self.api.get_months(year)
        return None

    def _fetch(self, level: str) -> bool:
        """Fetch one level's options. Returns True if the result was applied."""
        with self._lock:
            request = self._request_for(level)
            if request is None:
                self._reset_level(level)
                return False
            key, loader = request
            self._seq[level] += 1
            seq = self._seq[level]
            current = self._levels[level]
            self._levels[level] = FilterOptionSet(
                status=LevelStatus.LOADING,
                options=current.options,
                seq=seq,
            )
        self._notify(level)

        rows = self.cache.get(key)
        if rows is not None:
            return self._complete(level, seq, rows, cached=True)

        try:
            response = loader()
        except Exception as e:
            logger.warning("filter_fetch_failed level=%s key=%s err=%s", level, key, e)
            return self._fail(level, seq, e)

        self.cache.set(key, response.data, LEVEL_TTL_MS[level])
        return self._complete(level, seq, response.data, cached=response.cached)

    def _complete(self, level: str, seq: int, rows: List[Dict[str, Any]], cached: bool) -> bool:
        with self._lock:
            if seq != self._seq[level]:
                logger.debug("filter_fetch_stale level=%s seq=%d latest=%d", level, seq, self._seq[level])
                return False
            self._levels[level] = FilterOptionSet(
                status=LevelStatus.READY,
                options=list(rows),
                cached=cached,
                seq=seq,
            )
        self._notify(level)
        return True

    def _fail(self, level: str, seq: int, error: Exception) -> bool:
        with self._lock:
            if seq != self._seq[level]:
                return False
            self._levels[level] = FilterOptionSet(status=LevelStatus.ERROR, error=error, seq=seq)
        self._notify(level)
        return True

    def _fetch_many(self, levels: Iterable[str]) -> Dict[str, bool]:
        futures = {level: self._executor.submit(self._fetch, level) for level in levels}
        wait(list(futures.values()))
        return {level: future.result() for level, future in futures.items()}

    def load_initial(self) -> Dict[str, bool]:
        """Fetch the root levels (vertical, years) concurrently."""
        return self._fetch_many([LEVEL_VERTICAL, LEVEL_YEARS])

    def relevant_levels(self) -> List[str]:
        with self._lock:
            state = self._state
            levels = [LEVEL_VERTICAL, LEVEL_YEARS]
            if state.vertical:
                levels.append(LEVEL_BUSINESS)
            if state.business:
                levels.append(LEVEL_SITE)
            if state.year:
                levels.append(LEVEL_MONTHS)
            return levels

    def refresh(self) -> Dict[str, bool]:
        """Clear both cache layers and re-fetch every relevant level concurrently."""
        self.cache.clear()
        try:
            self.api.clear_server_cache()
        except ApiError as e:
            logger.warning("server_cache_clear_failed err=%s", e)

        levels = self.relevant_levels()
        logger.info("filter_refresh levels=%s", levels)
        return self._fetch_many(levels)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _notify(self, name: str) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(name)
        except Exception:
            logger.exception("filter_on_change_failed name=%s", name)

    def close(self) -> None:
        for debounced in self._debouncers.values():
            debounced.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
