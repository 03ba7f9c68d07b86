"""In-memory cache of generated thumbnails keyed by caller-chosen ids.

Entries expire after ``cache_ttl`` seconds (0 disables expiry) and the oldest
entry is evicted once ``cache_max_entries`` is reached.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from thumbnailer.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedThumbnail:
    """A cached thumbnail data URL."""

    id: str
    data_url: str
    created_at: float


class ThumbnailCache:
    """Thread-safe TTL/LRU cache of thumbnail data URLs."""

    def __init__(self, settings: Settings) -> None:
        self._ttl = settings.cache_ttl
        self._max_entries = settings.cache_max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CachedThumbnail] = OrderedDict()

    def put(self, thumbnail_id: str, data_url: str) -> CachedThumbnail:
        self.evict_expired()
        entry = CachedThumbnail(id=thumbnail_id, data_url=data_url, created_at=time.time())
        with self._lock:
            self._entries.pop(thumbnail_id, None)
            self._entries[thumbnail_id] = entry
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached thumbnail %s (capacity)", evicted)
        return entry

    def get(self, thumbnail_id: str) -> CachedThumbnail | None:
        """Return the cached entry, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(thumbnail_id)
            if entry is None:
                return None
            if self._is_expired(entry, time.time()):
                del self._entries[thumbnail_id]
                return None
            self._entries.move_to_end(thumbnail_id)
            return entry

    def remove(self, thumbnail_id: str) -> bool:
        with self._lock:
            return self._entries.pop(thumbnail_id, None) is not None

    def evict_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        if self._ttl == 0:
            return 0

        now = time.time()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Evicted %d expired thumbnails", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CachedThumbnail, now: float) -> bool:
        return self._ttl > 0 and (now - entry.created_at) > self._ttl
