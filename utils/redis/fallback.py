"""
In-memory key-value storage with a Redis-like interface.

Backs the ``memory`` connection mode and the test suite. Values keep their
Redis type so the lazy loader sees the same shapes a server would return.
"""

import fnmatch
import random
import time
from typing import Any, Dict, List, Optional, Set, Tuple

import redis


class MemoryKV:
    """In-memory key-value store with Redis-like interface."""

    VERSION = '7.2.0-memory'

    def __init__(self):
        self._store: Dict[str, Tuple[str, Any]] = {}
        self._expires: Dict[str, float] = {}
        self._started = time.time()
        self._commands = 0
        self._expired = 0

    # ==================== Internals ====================

    def _purge_expired(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= time.time():
            self._store.pop(key, None)
            self._expires.pop(key, None)
            self._expired += 1

    def _live_keys(self) -> List[str]:
        for key in list(self._expires):
            self._purge_expired(key)
        return sorted(self._store)

    def _entry(self, key: str, expected_type: str) -> Optional[Any]:
        self._commands += 1
        self._purge_expired(key)
        entry = self._store.get(key)
        if entry is None:
            return None
        kind, value = entry
        if kind != expected_type:
            raise redis.ResponseError('WRONGTYPE Operation against a key holding the wrong kind of value')
        return value

    def _container(self, key: str, kind: str, factory):
        value = self._entry(key, kind)
        if value is None:
            value = factory()
            self._store[key] = (kind, value)
        return value

    # ==================== Generic Operations ====================

    def ping(self) -> bool:
        """Health check - always returns True for in-memory store."""
        return True

    def close(self) -> None:
        """Nothing to release; present for interface parity."""

    def exists(self, key: str) -> int:
        """Check if key exists."""
        self._purge_expired(key)
        return 1 if key in self._store else 0

    def type(self, key: str) -> str:
        """Return the Redis type name of a key, 'none' when missing."""
        self._commands += 1
        self._purge_expired(key)
        entry = self._store.get(key)
        return entry[0] if entry else 'none'

    def delete(self, *keys: str) -> int:
        """Delete keys, return number of keys deleted."""
        self._commands += 1
        deleted = 0
        for key in keys:
            self._purge_expired(key)
            if key in self._store:
                del self._store[key]
                self._expires.pop(key, None)
                deleted += 1
        return deleted

    def ttl(self, key: str) -> int:
        """Remaining seconds, -1 without expiry, -2 when the key is missing."""
        self._commands += 1
        self._purge_expired(key)
        if key not in self._store:
            return -2
        deadline = self._expires.get(key)
        if deadline is None:
            return -1
        return max(0, int(round(deadline - time.time())))

    def expire(self, key: str, seconds: int) -> bool:
        """Set a timeout on key."""
        self._commands += 1
        self._purge_expired(key)
        if key not in self._store:
            return False
        if seconds <= 0:
            self.delete(key)
            return True
        self._expires[key] = time.time() + seconds
        return True

    def persist(self, key: str) -> bool:
        """Remove the timeout on key."""
        self._commands += 1
        self._purge_expired(key)
        return self._expires.pop(key, None) is not None

    def scan(self, cursor: int = 0, match: Optional[str] = None, count: Optional[int] = None) -> Tuple[int, List[str]]:
        """
        Scan keys with pattern matching.

        The cursor is an offset into the sorted keyspace; like Redis, the
        pattern is applied after a page is selected, so a page may come back
        empty while the cursor is still non-zero.
        """
        self._commands += 1
        keys = self._live_keys()
        page_size = count or 10
        page = keys[cursor:cursor + page_size]
        next_cursor = cursor + page_size
        if next_cursor >= len(keys):
            next_cursor = 0
        if match:
            page = [k for k in page if fnmatch.fnmatchcase(k, match)]
        return next_cursor, page

    def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        """Iterate over all keys matching the pattern."""
        cursor = 0
        while True:
            cursor, keys = self.scan(cursor=cursor, match=match, count=count)
            for key in keys:
                yield key
            if cursor == 0:
                break

    def randomkey(self) -> Optional[str]:
        """Return a random key, None on an empty database."""
        keys = self._live_keys()
        return random.choice(keys) if keys else None

    def dbsize(self) -> int:
        """Number of live keys."""
        return len(self._live_keys())

    def flushdb(self) -> None:
        """Clear all keys."""
        self._commands += 1
        self._store.clear()
        self._expires.clear()

    def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        """A parsed INFO reply with the fields the statistics view reads."""
        used = sum(len(k) + len(repr(v)) for k, v in self._store.items())
        return {
            'redis_version': self.VERSION,
            'uptime_in_seconds': int(time.time() - self._started),
            'used_memory': used,
            'used_memory_peak': used,
            'mem_fragmentation_ratio': 1.0,
            'connected_clients': 1,
            'total_commands_processed': self._commands,
            'instantaneous_ops_per_sec': 0,
            'evicted_keys': 0,
            'expired_keys': self._expired,
        }

    # ==================== String Operations ====================

    def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        return self._entry(key, 'string')

    def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        """Set key-value pair, dropping any previous expiry."""
        self._commands += 1
        self._store[key] = ('string', str(value))
        self._expires.pop(key, None)
        if ex:
            self._expires[key] = time.time() + ex
        return True

    # ==================== Composite Operations ====================

    def rpush(self, key: str, *values: str) -> int:
        items = self._container(key, 'list', list)
        items.extend(values)
        return len(items)

    def lrange(self, key: str, start: int, end: int) -> List[str]:
        items = self._entry(key, 'list') or []
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    def sadd(self, key: str, *members: str) -> int:
        members_set: Set[str] = self._container(key, 'set', set)
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    def smembers(self, key: str) -> Set[str]:
        return set(self._entry(key, 'set') or set())

    def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        scores: Dict[str, float] = self._container(key, 'zset', dict)
        added = len([m for m in mapping if m not in scores])
        scores.update(mapping)
        return added

    def zrange(self, key: str, start: int, end: int) -> List[str]:
        scores = self._entry(key, 'zset') or {}
        ordered = [m for m, _ in sorted(scores.items(), key=lambda item: (item[1], item[0]))]
        stop = None if end == -1 else end + 1
        return ordered[start:stop]

    def hset(self, key: str, field: Optional[str] = None, value: Optional[str] = None,
             mapping: Optional[Dict[str, str]] = None) -> int:
        fields: Dict[str, str] = self._container(key, 'hash', dict)
        updates = dict(mapping or {})
        if field is not None:
            updates[field] = value
        added = len([f for f in updates if f not in fields])
        fields.update(updates)
        return added

    def hgetall(self, key: str) -> Dict[str, str]:
        return dict(self._entry(key, 'hash') or {})
