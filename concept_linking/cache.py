"""
Candidate cache for read-only knowledge bases.

Results are cached per knowledge base and keyed by the shape of the query.
Population of a key is serialized, so concurrent identical lookups issue a
single backend query and the others reuse its result. Failed loads are never
stored. Handles are copied on the way in and out, so ranking a result never
changes what other requests see.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Hashable, List, Optional, Tuple

from concept_linking.types import Handle

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Hashable]


class CandidateCache:
    def __init__(self, max_entries: int = 1000, ttl_seconds: Optional[float] = None):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[CacheKey, Tuple[float, Tuple[Handle, ...]]]" = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: Dict[CacheKey, threading.Lock] = {}
        self.hits = 0
        self.misses = 0

    def get_or_load(
        self, kb_id: str, key: Hashable, loader: Callable[[], List[Handle]]
    ) -> List[Handle]:
        """Return the cached handles for ``key``, calling ``loader`` on a miss.

        Exceptions raised by ``loader`` propagate and leave the cache untouched.
        """
        cache_key = (kb_id, key)
        cached = self._lookup(cache_key)
        if cached is not None:
            return cached

        with self._key_lock(cache_key):
            # Another thread may have populated the entry while we waited
            cached = self._lookup(cache_key)
            if cached is not None:
                return cached

            with self._lock:
                self.misses += 1
            try:
                handles = loader()
            except Exception:
                # Nothing was stored, so the key lock has no entry to guard
                with self._lock:
                    if cache_key not in self._entries:
                        self._key_locks.pop(cache_key, None)
                raise
            self._store(cache_key, handles)
            return [h.copy() for h in handles]

    def _key_lock(self, cache_key: CacheKey) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(cache_key)
            if lock is None:
                lock = self._key_locks[cache_key] = threading.Lock()
            return lock

    def _lookup(self, cache_key: CacheKey) -> Optional[List[Handle]]:
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                return None
            stored_at, handles = entry
            if self.ttl_seconds is not None and time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[cache_key]
                return None
            self._entries.move_to_end(cache_key)
            self.hits += 1
        return [h.copy() for h in handles]

    def _store(self, cache_key: CacheKey, handles: List[Handle]) -> None:
        frozen = tuple(h.copy() for h in handles)
        with self._lock:
            self._entries[cache_key] = (time.monotonic(), frozen)
            self._entries.move_to_end(cache_key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._key_locks.pop(evicted, None)

    def invalidate(self, kb_id: str) -> int:
        """Drop every entry of one knowledge base."""
        with self._lock:
            keys = [k for k in self._entries if k[0] == kb_id]
            for k in keys:
                del self._entries[k]
                self._key_locks.pop(k, None)
        if keys:
            logger.debug(f"Invalidated {len(keys)} cached queries for KB [{kb_id}]")
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
