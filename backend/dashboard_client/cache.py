"""
Client-side option cache with optional persistent storage.

Memory is the source of truth; when a storage file is configured every
write is mirrored to it and live entries are restored from it on startup,
so a new dashboard session starts warm.

Storage problems (unwritable path, corrupt JSON) are logged as warnings
and the cache carries on memory-only. They are never raised to callers.
"""

import contextlib
import json
import os
import time
import logging
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from services.ttl_cache import CacheEntry, DEFAULT_MAX_SIZE, DEFAULT_TTL_MS, TTLCache
from utils.cache_key import FilterCacheKey

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


class ClientCache(TTLCache[FilterCacheKey, Rows]):

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        storage_path: Optional[Union[str, Path]] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(max_size=max_size, default_ttl_ms=default_ttl_ms, clock=clock, name='client-cache')
        self.storage_path = Path(storage_path) if storage_path else None
        self.storage_available = self.storage_path is not None
        self._persist_lock = threading.Lock()
        if self.storage_available:
            self._restore_from_storage()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _storage_failed(self, action: str, err: Exception) -> None:
        logger.warning(
            "client_cache_storage_unavailable action=%s path=%s err=%s",
            action, self.storage_path, err,
        )
        self.storage_available = False

    def _restore_from_storage(self) -> None:
        if not self.storage_path.exists():
            return
        try:
            raw = json.loads(self.storage_path.read_text(encoding='utf-8'))
            if not isinstance(raw, dict):
                raise ValueError("storage root is not an object")
        except (OSError, ValueError) as e:
            self._storage_failed('restore', e)
            return

        now_ms = self._now_ms()
        restored = []
        for storage_key, item in raw.items():
            try:
                key = FilterCacheKey.from_storage_key(storage_key)
                expires_at_ms = int(item['expiry'])
                created_at_ms = int(item.get('created', now_ms))
                value = item['value']
            except (KeyError, TypeError, ValueError):
                logger.warning("client_cache_skip_bad_entry key=%s", storage_key)
                continue
            if now_ms < expires_at_ms:
                restored.append((created_at_ms, key, CacheEntry(value, created_at_ms, expires_at_ms)))

        # Oldest first so FIFO eviction order survives a restart
        restored.sort(key=lambda r: r[0])
        with self._lock:
            for _, key, entry in restored[-self.max_size:]:
                self._entries[key] = entry
        logger.info("client_cache_restored entries=%d path=%s", len(self._entries), self.storage_path)

    def _persist(self) -> None:
        if not self.storage_available:
            return
        # Snapshot and replace under one lock so an older snapshot can never
        # land on disk after a newer one
        with self._persist_lock:
            with self._lock:
                payload = {
                    key.to_storage_key(): {
                        'value': entry.value,
                        'created': entry.created_at_ms,
                        'expiry': entry.expires_at_ms,
                    }
                    for key, entry in self._entries.items()
                }
            self._write_storage(payload)

    def _write_storage(self, payload: Dict[str, Any]) -> None:
        tmp_path = None
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.storage_path.parent), suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(payload, f)
            os.replace(tmp_path, self.storage_path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)
            self._storage_failed('write', e)

    # ------------------------------------------------------------------
    # Write-through overrides
    # ------------------------------------------------------------------

    def set(self, key: FilterCacheKey, value: Rows, ttl_ms: Optional[int] = None) -> None:
        super().set(key, value, ttl_ms)
        self._persist()

    def delete(self, key: FilterCacheKey) -> bool:
        removed = super().delete(key)
        if removed:
            self._persist()
        return removed

    def clear(self) -> None:
        super().clear()
        self._persist()

    def sweep(self) -> int:
        removed = super().sweep()
        if removed:
            self._persist()
        return removed

    def close(self) -> None:
        """Stop the sweeper but keep stored entries for the next session."""
        self.stop_sweeper()
