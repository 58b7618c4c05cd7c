"""
Analysis result cache with a freshness window
"""
import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from config.settings import CACHE_MAX_AGE_SECONDS, CACHE_PURGE_AGE_SECONDS

logger = logging.getLogger(__name__)


def site_cache_id(site_url: str) -> str:
    """Stable, storage-safe identifier for a property URL"""
    return base64.urlsafe_b64encode(site_url.encode('utf-8')).decode('ascii')


@dataclass(frozen=True)
class CacheEntry:
    timestamp: float
    payload: Any


@dataclass(frozen=True)
class CachedResult:
    payload: Any
    age_minutes: int


class AnalysisCache:
    """
    Maps (site id, time bucket) to {timestamp, payload}

    Entries older than max_age_seconds are treated as missing. The clock is
    injectable so expiry can be tested without waiting.
    """

    def __init__(
        self,
        max_age_seconds: float = CACHE_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}

    @staticmethod
    def make_key(site_url: str, bucket: str) -> Tuple[str, str]:
        return site_cache_id(site_url), bucket

    def get(self, site_url: str, bucket: str) -> Optional[CachedResult]:
        """Fresh cached payload, or None"""
        entry = self._entries.get(self.make_key(site_url, bucket))
        if entry is None:
            return None

        age = self._clock() - entry.timestamp
        if age >= self.max_age_seconds:
            logger.debug("Cache expired for %s [%s] (age: %.0fs)", site_url, bucket, age)
            return None

        return CachedResult(payload=entry.payload, age_minutes=int(round(age / 60)))

    def set(self, site_url: str, bucket: str, payload: Any) -> None:
        self._entries[self.make_key(site_url, bucket)] = CacheEntry(
            timestamp=self._clock(),
            payload=payload
        )
        logger.debug("Cached analysis for %s [%s]", site_url, bucket)

    def clear(self, site_url: Optional[str] = None) -> int:
        """Remove one site's entries, or everything; returns the count removed"""
        if site_url is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed

        site_id = site_cache_id(site_url)
        keys = [key for key in self._entries if key[0] == site_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def purge_older_than(self, max_age_seconds: float = CACHE_PURGE_AGE_SECONDS) -> int:
        now = self._clock()
        stale = [
            key for key, entry in self._entries.items()
            if now - entry.timestamp > max_age_seconds
        ]
        for key in stale:
            del self._entries[key]

        if stale:
            logger.info("Cleared %d old cache entries", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
