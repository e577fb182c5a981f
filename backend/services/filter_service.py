"""
Filter Service - option lists for the cascading dashboard filters.

Each level (vertical, business, site, years, months) is a parameterized
SQL query. Organization levels have two shapes:

- GROUP SECURITY buckets: every ACTIVE row under the selected ancestor
- Per-user buckets: restricted to the ids listed for the user in
  usergroups; no ids at all is a NotFoundError (HTTP 404), not an
  empty list

The ancestor value "All" means no restriction at that level.

Results are cached per FilterCacheKey in the app's TTLCache. The group
lookup runs once per request, and only on a cache miss.

Usage:
    from services.filter_service import FilterService

    service = FilterService(db, cache, monitor)
    rows, cached = service.businesses(bucket_id=1, user_id=7, vertical="Energy")
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from db.sql import qualified_table, run_sql_dicts, run_sql_scalar
from models.organization import STATUS_ACTIVE
from services.ttl_cache import TTLCache
from utils.cache_key import (
    FilterCacheKey,
    business_key,
    months_key,
    site_key,
    vertical_key,
    years_key,
)

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]

ALL_SENTINEL = 'All'
GROUP_SECURITY = 'GROUP SECURITY'

# TTLs per level (milliseconds)
VERTICAL_TTL_MS = 10 * 60 * 1000
BUSINESS_TTL_MS = 5 * 60 * 1000
SITE_TTL_MS = 5 * 60 * 1000
YEARS_TTL_MS = 60 * 60 * 1000
MONTHS_TTL_MS = 60 * 60 * 1000


class NotFoundError(Exception):
    """Per-user scoping produced no matching identifiers."""

    def __init__(self, id_column: str):
        self.id_column = id_column
        super().__init__(f"No matching {id_column} found")


# ============================================================================
# QUERIES
# ============================================================================

def resolve_group_security(db, bucket_id: int, level_name: str = GROUP_SECURITY) -> bool:
    """True when the bucket's analytics level grants group-wide visibility."""
    name = run_sql_scalar(
        db,
        f"""
        SELECT analytics_group_level_name
        FROM {qualified_table('analytics_groups')}
        WHERE analytics_group_id = :bucket_id
        """,
        bucket_id=bucket_id,
    )
    return name is not None and name.strip().upper() == level_name.upper()


def user_scope_ids(db, user_id: int, id_column: str) -> List[int]:
    """
    Distinct ids of one kind (VID, BUID or SIID) associated with the user.

    Raises:
        NotFoundError: if the user has no such ids
    """
    column = id_column.lower()
    if column not in ('vid', 'buid', 'siid'):
        raise ValueError(f"Unsupported scope column: {id_column!r}")

    rows = run_sql_dicts(
        db,
        f"""
        SELECT DISTINCT {column} AS scope_id
        FROM {qualified_table('usergroups')}
        WHERE userid = :user_id
          AND {column} IS NOT NULL
        """,
        user_id=user_id,
    )
    ids = sorted(r['scope_id'] for r in rows)
    if not ids:
        raise NotFoundError(id_column.upper())
    return ids


def query_verticals(db, user_id: int, group_security: bool) -> Rows:
    scope_clause = ''
    params: Dict[str, Any] = {'status': STATUS_ACTIVE}
    expanding: Tuple[str, ...] = ()
    if not group_security:
        params['vids'] = user_scope_ids(db, user_id, 'VID')
        scope_clause = 'AND v.vid IN :vids'
        expanding = ('vids',)

    return run_sql_dicts(
        db,
        f"""
        SELECT DISTINCT v.vname AS "VNAME"
        FROM {qualified_table('vertical')} v
        WHERE v.vstatus = :status
          {scope_clause}
        ORDER BY v.vname ASC
        """,
        expanding=expanding,
        **params,
    )


def query_businesses(db, user_id: int, vertical: str, group_security: bool) -> Rows:
    scope_clause = ''
    params: Dict[str, Any] = {
        'status': STATUS_ACTIVE,
        'vertical': vertical,
        'all_sentinel': ALL_SENTINEL,
    }
    expanding: Tuple[str, ...] = ()
    if not group_security:
        params['buids'] = user_scope_ids(db, user_id, 'BUID')
        scope_clause = 'AND b.buid IN :buids'
        expanding = ('buids',)

    return run_sql_dicts(
        db,
        f"""
        SELECT DISTINCT b.buname AS "BUNAME"
        FROM {qualified_table('business')} b
        JOIN {qualified_table('vertical')} v ON b.vid = v.vid
        WHERE (:vertical = :all_sentinel OR v.vname = :vertical)
          AND b.bustatus = :status
          {scope_clause}
        ORDER BY b.buname ASC
        """,
        expanding=expanding,
        **params,
    )


def query_sites(db, user_id: int, business: str, group_security: bool) -> Rows:
    scope_clause = ''
    params: Dict[str, Any] = {
        'status': STATUS_ACTIVE,
        'business': business,
        'all_sentinel': ALL_SENTINEL,
    }
    expanding: Tuple[str, ...] = ()
    if not group_security:
        params['siids'] = user_scope_ids(db, user_id, 'SIID')
        scope_clause = 'AND s.siid IN :siids'
        expanding = ('siids',)

    return run_sql_dicts(
        db,
        f"""
        SELECT DISTINCT s.siname AS "SINAME"
        FROM {qualified_table('site')} s
        JOIN {qualified_table('business')} b ON s.buid = b.buid
        WHERE (:business = :all_sentinel OR b.buname = :business)
          AND s.sistatus = :status
          {scope_clause}
        ORDER BY s.siname ASC
        """,
        expanding=expanding,
        **params,
    )


def query_years(db) -> Rows:
    return run_sql_dicts(
        db,
        f"""
        SELECT DISTINCT year AS "YEAR"
        FROM {qualified_table('ol_dsrsecauto')}
        ORDER BY year DESC
        """,
    )


def query_months(db, year: int) -> Rows:
    return run_sql_dicts(
        db,
        f"""
        SELECT DISTINCT month AS "MONTH", monthname AS "MONTHNAME"
        FROM {qualified_table('ol_dsrsecauto')}
        WHERE year = :year
        ORDER BY month DESC
        """,
        year=year,
    )


# ============================================================================
# CACHED SERVICE
# ============================================================================

class FilterService:
    """
    Cache-first access to the filter queries.

    Every public method returns (rows, cached).
    """

    def __init__(
        self,
        db,
        cache: TTLCache,
        monitor=None,
        group_security_level: str = GROUP_SECURITY,
    ):
        self.db = db
        self.cache = cache
        self.monitor = monitor
        self.group_security_level = group_security_level

    def _cached(self, key: FilterCacheKey, ttl_ms: int, loader: Callable[[], Rows]) -> Tuple[Rows, bool]:
        cached = self.cache.get(key)
        if cached is not None:
            if self.monitor is not None:
                self.monitor.record_cache_hit()
            logger.info("filter_cache_hit key=%s", key)
            return cached, True

        if self.monitor is not None:
            self.monitor.record_cache_miss()

        start = time.perf_counter()
        rows = loader()
        elapsed_ms = (time.perf_counter() - start) * 1000
        if self.monitor is not None:
            self.monitor.record_query_time(elapsed_ms)

        self.cache.set(key, rows, ttl_ms)
        logger.info("filter_cache_store key=%s rows=%d elapsed_ms=%.1f", key, len(rows), elapsed_ms)
        return rows, False

    def _group_security(self, bucket_id: int) -> bool:
        return resolve_group_security(self.db, bucket_id, self.group_security_level)

    def verticals(self, bucket_id: int, user_id: int) -> Tuple[Rows, bool]:
        return self._cached(
            vertical_key(bucket_id, user_id),
            VERTICAL_TTL_MS,
            lambda: query_verticals(self.db, user_id, self._group_security(bucket_id)),
        )

    def businesses(self, bucket_id: int, user_id: int, vertical: str) -> Tuple[Rows, bool]:
        return self._cached(
            business_key(bucket_id, user_id, vertical),
            BUSINESS_TTL_MS,
            lambda: query_businesses(self.db, user_id, vertical, self._group_security(bucket_id)),
        )

    def sites(self, bucket_id: int, user_id: int, business: str) -> Tuple[Rows, bool]:
        return self._cached(
            site_key(bucket_id, user_id, business),
            SITE_TTL_MS,
            lambda: query_sites(self.db, user_id, business, self._group_security(bucket_id)),
        )

    def years(self) -> Tuple[Rows, bool]:
        return self._cached(years_key(), YEARS_TTL_MS, lambda: query_years(self.db))

    def months(self, year: int) -> Tuple[Rows, bool]:
        return self._cached(months_key(str(year)), MONTHS_TTL_MS, lambda: query_months(self.db, year))
