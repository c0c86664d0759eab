"""
SurveyLens Backend — Result Cache

Analysis results keyed by test id. Route handlers receive the cache through
the `get_result_cache` dependency; tests override it with a fresh instance.
"""

import time
from typing import Optional, Protocol

from surveylens.config import log, settings
from surveylens.models import AnalysisResult


class ResultCache(Protocol):
    def get(self, key: str) -> Optional[AnalysisResult]: ...

    def set(self, key: str, value: AnalysisResult, ttl: Optional[int] = None) -> None: ...

    def invalidate(self, key: str) -> bool: ...


class InMemoryResultCache:
    """
    Per-process TTL store.

    Expired entries are evicted when read and swept on every write. When the
    store is full, the entry closest to expiry makes room for the new one.
    """

    def __init__(self, default_ttl: int | None = None, max_entries: int | None = None):
        self.default_ttl = default_ttl if default_ttl is not None else settings.result_cache_ttl_seconds
        self.max_entries = max_entries if max_entries is not None else settings.result_cache_max_entries
        self._entries: dict[str, tuple[float, AnalysisResult]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[AnalysisResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        deadline, value = entry
        if time.monotonic() >= deadline:
            del self._entries[key]
            log("INFO", "cache entry expired", key=key)
            return None
        return value

    def set(self, key: str, value: AnalysisResult, ttl: Optional[int] = None) -> None:
        now = time.monotonic()
        self._evict_expired(now)
        if self._entries and key not in self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
            log("INFO", "cache full, evicted entry", key=oldest, max_entries=self.max_entries)

        seconds = self.default_ttl if ttl is None else ttl
        self._entries[key] = (now + seconds, value)

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (deadline, _) in self._entries.items() if now >= deadline]
        for k in expired:
            del self._entries[k]
        if expired:
            log("INFO", "expired cache entries evicted", count=len(expired))


_default_cache = InMemoryResultCache()


def get_result_cache() -> ResultCache:
    """FastAPI dependency."""
    return _default_cache
