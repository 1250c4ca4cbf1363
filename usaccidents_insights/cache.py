#!/usr/bin/env python3
#
###################################################################
# Project: USAccidents Insights
# File: usaccidents_insights/cache.py
# Purpose: In-process TTL cache for aggregate query results.
#
# Description of code and how it works:
# - Entries are (value, timestamp, ttl); an entry is valid while
#   now - timestamp <= ttl and is dropped lazily on the next read of its key.
# - Bounded: least recently used entries are evicted past max_entries.
# - One lock guards the map; get_or_set() adds a per-key lock so concurrent
#   misses on the same key compute once.
# - Single-instance only: each process owns its own cache.
#
# Author: Tim Canady
# Created: 2025-11-03
#
# Version: 1.1.0
# Last Modified: 2025-11-17 by Tim Canady
#
# Revision History:
# - 1.1.0 (2025-11-17): LRU bound + single-flight get_or_set.
# - 1.0.0 (2025-11-03): Initial TTL map with injectable clock.
###################################################################
#
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, NamedTuple, Optional

DEFAULT_TTL = 5 * 60.0


class CacheEntry(NamedTuple):
    value: Any
    timestamp: float
    ttl: float


class TTLCache:
    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max(1, max_entries)
        self.clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or expired.

        Values are returned as stored, not copied; callers must not mutate them.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.clock() - entry.timestamp > entry.ttl:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        entry = CacheEntry(value, self.clock(), self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        value = self.get(key)
        if value is not None:
            return value

        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        try:
            with key_lock:
                value = self.get(key)
                if value is None:
                    value = factory()
                    self.set(key, value, ttl)
                return value
        finally:
            with self._lock:
                if self._key_locks.get(key) is key_lock and not key_lock.locked():
                    del self._key_locks[key]

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # raw membership, expiry is only checked by get()
        with self._lock:
            return key in self._entries
