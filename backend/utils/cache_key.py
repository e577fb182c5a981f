"""
Cache key helpers.

Provides a typed composite key shared by the server cache and the dashboard
client cache, so both layers agree on what identifies an option list.
"""

from dataclasses import dataclass
from typing import Optional

# Filter levels that have their own option list
LEVEL_VERTICAL = 'vertical'
LEVEL_BUSINESS = 'business'
LEVEL_SITE = 'site'
LEVEL_YEARS = 'years'
LEVEL_MONTHS = 'months'

ALL_LEVELS = (LEVEL_VERTICAL, LEVEL_BUSINESS, LEVEL_SITE, LEVEL_YEARS, LEVEL_MONTHS)

_SEPARATOR = ':'
_NONE_TOKEN = '-'
# Present parents carry this prefix so a literal '-' parent never reads as None
_VALUE_PREFIX = '='


@dataclass(frozen=True)
class FilterCacheKey:
    """
    Identity of one option list.

    bucket_id/user_id are None for levels that do not depend on identity
    (years, months). parent is the ancestor filter value the list was
    fetched for (vertical for business, business for site, year for months).
    """
    level: str
    bucket_id: Optional[int] = None
    user_id: Optional[int] = None
    parent: Optional[str] = None

    def __post_init__(self):
        if self.level not in ALL_LEVELS:
            raise ValueError(f"Unknown filter level: {self.level!r}")

    def __str__(self) -> str:
        return self.to_storage_key()

    def to_storage_key(self) -> str:
        parts = [
            self.level,
            _NONE_TOKEN if self.bucket_id is None else str(self.bucket_id),
            _NONE_TOKEN if self.user_id is None else str(self.user_id),
            _NONE_TOKEN if self.parent is None else _VALUE_PREFIX + self.parent,
        ]
        return _SEPARATOR.join(parts)

    @classmethod
    def from_storage_key(cls, raw: str) -> 'FilterCacheKey':
        # parent may itself contain the separator, so split at most 3 times
        parts = raw.split(_SEPARATOR, 3)
        if len(parts) != 4:
            raise ValueError(f"Malformed cache key: {raw!r}")
        level, bucket, user, parent = parts
        return cls(
            level=level,
            bucket_id=None if bucket == _NONE_TOKEN else int(bucket),
            user_id=None if user == _NONE_TOKEN else int(user),
            parent=_parse_parent(parent, raw),
        )


def _parse_parent(token: str, raw: str) -> Optional[str]:
    if token == _NONE_TOKEN:
        return None
    if not token.startswith(_VALUE_PREFIX):
        raise ValueError(f"Malformed cache key: {raw!r}")
    return token[len(_VALUE_PREFIX):]


def vertical_key(bucket_id: int, user_id: int) -> FilterCacheKey:
    return FilterCacheKey(LEVEL_VERTICAL, bucket_id, user_id)


def business_key(bucket_id: int, user_id: int, vertical: str) -> FilterCacheKey:
    return FilterCacheKey(LEVEL_BUSINESS, bucket_id, user_id, vertical)


def site_key(bucket_id: int, user_id: int, business: str) -> FilterCacheKey:
    return FilterCacheKey(LEVEL_SITE, bucket_id, user_id, business)


def years_key() -> FilterCacheKey:
    return FilterCacheKey(LEVEL_YEARS)


def months_key(year: str) -> FilterCacheKey:
    return FilterCacheKey(LEVEL_MONTHS, parent=str(year))
