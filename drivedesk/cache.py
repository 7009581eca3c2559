from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable

from drivedesk.config import settings
from drivedesk.metrics import record_cache_event


logger = logging.getLogger(__name__)


def cache_key(prefix: str, *parts: str | int | None) -> str:
    identifiers = [str(part) for part in parts if part is not None and part != '']
    if not identifiers:
        return prefix
    return ':'.join([prefix, *identifiers])


class SummaryCache:
    """Bounded in-process cache for values derived from a store snapshot.

    Keys embed the snapshot source and version, so an entry can never be
    served for different data; expiry and the size bound only limit memory.
    Least recently used entries are evicted first.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        ttl: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_entries = max_entries or settings.cache_max_entries
        self._ttl = ttl if ttl is not None else settings.default_cache_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._entries.get(key)
            if item is not None and self._clock() >= item[0]:
                del self._entries[key]
                item = None
            if item is None:
                record_cache_event('cache_miss')
                return None
            self._entries.move_to_end(key)
        record_cache_event('cache_hit')
        return item[1]

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = self._clock() + max(1, int(ttl if ttl is not None else self._ttl))
        with self._lock:
            self._entries[key] = (expires_at, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug('cache evict: %s', evicted)

    def get_or_compute(self, key: str, compute: Callable[[], Any], ttl: int | None = None) -> Any:
        value = self.get(key)
        if value is None:
            value = compute()
            self.put(key, value, ttl)
        return value

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        record_cache_event('cache_invalidate')
        logger.debug('cache invalidate prefix=%s removed=%s', prefix, len(stale))
        return len(stale)


cache = SummaryCache()
