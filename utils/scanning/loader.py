"""
On-demand loading of type, TTL and value for a single key.
"""

import json
import logging
from typing import Any, List, Optional

import redis

from utils.redis.client import StoreTopology
from .records import NO_EXPIRY, TTL_NOT_FETCHED, KeyRecord, ValueType

logger = logging.getLogger(__name__)

# Undecodable payloads surface as ValueError (UnicodeDecodeError) rather than RedisError
_FETCH_ERRORS = (redis.RedisError, ValueError)


def _fetch_ttl(store: StoreTopology, key: str) -> int:
    # A failed or non-positive TTL lookup means "no expiry" for display purposes
    try:
        ttl = store.ttl(key)
    except _FETCH_ERRORS as e:
        logger.debug(f"TTL lookup for {key!r} failed: {e}")
        return NO_EXPIRY
    if ttl is None or ttl <= 0:
        return NO_EXPIRY
    return int(ttl)


def _fetch_value(store: StoreTopology, key: str, value_type: ValueType) -> Any:
    if value_type is ValueType.STRING:
        return store.get(key)
    if value_type is ValueType.LIST:
        return store.lrange(key, 0, -1)
    if value_type is ValueType.SET:
        return sorted(store.smembers(key))
    if value_type is ValueType.SORTED_SET:
        return store.zrange(key, 0, -1)
    if value_type is ValueType.HASH:
        return store.hgetall(key)
    raise TypeError(f"unsupported type: {value_type.value}")


def render_value(value_type: ValueType, value: Any) -> str:
    """Strings are shown verbatim; composite values as indented JSON."""
    if value_type is ValueType.STRING:
        return '' if value is None else str(value)
    return json.dumps(value, indent=2, ensure_ascii=False)


def load_value(store: StoreTopology, key: str, known_type: ValueType = ValueType.UNKNOWN,
               known_ttl: int = TTL_NOT_FETCHED) -> KeyRecord:
    """
    Resolve a key's type, TTL and value.

    Lookup failures and unsupported types never raise: they produce a loaded
    record with ``fetch_error`` set and the error text as its value.
    """
    record = KeyRecord.unloaded(key)
    value_type = known_type
    raw_type = value_type.value

    if value_type is ValueType.UNKNOWN:
        try:
            raw_type = store.type(key)
        except _FETCH_ERRORS as e:
            logger.warning(f"TYPE lookup for {key!r} failed: {e}")
            return record.resolved(ValueType.UNKNOWN, NO_EXPIRY, str(e), fetch_error=True)
        value_type = ValueType.from_redis(raw_type)

    ttl = _fetch_ttl(store, key) if known_ttl == TTL_NOT_FETCHED else known_ttl

    if value_type is ValueType.UNKNOWN:
        return record.resolved(value_type, ttl, f"unsupported type: {raw_type}", fetch_error=True)

    try:
        value = _fetch_value(store, key, value_type)
    except _FETCH_ERRORS as e:
        logger.warning(f"Value lookup for {key!r} ({value_type.value}) failed: {e}")
        return record.resolved(value_type, ttl, str(e), fetch_error=True)

    return record.resolved(value_type, ttl, render_value(value_type, value))


def apply_loaded(records: List[KeyRecord], loaded: KeyRecord) -> Optional[int]:
    """
    Replace the record with the same key in place.

    Returns the index that changed, or None when the key is no longer listed
    (the list was superseded by a newer scan) and the update was dropped.
    """
    for index, record in enumerate(records):
        if record.key == loaded.key:
            records[index] = loaded
            return index
    return None
