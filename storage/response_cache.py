"""In-memory cache of fetched event result sets."""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from processor.models import CacheEntry, EventRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseCache:
    """TTL cache keyed by query type and parameters."""

    DEFAULT_TTL = timedelta(minutes=30)

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow
    ):
        """
        Initialize an empty cache.

        Args:
            ttl: Maximum age of an entry (default: 30 minutes)
            clock: Callable returning the current instant
        """
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[EventRecord]]:
        """
        Look up a cached result set.

        Expired entries are reported as missing but left in place until
        overwritten or purged.

        Args:
            key: Cache key built by the caller

        Returns:
            Copy of the cached records, or None on a miss
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry):
                logger.debug(f"Cache entry expired: {key}")
                return None
            return list(entry.records)

    def put(self, key: str, records: Sequence[EventRecord]) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                records=list(records),
                fetched_at=self.clock()
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Response cache cleared")

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if self._is_expired(entry)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at > self.ttl
