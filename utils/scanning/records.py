"""
Data model shared by the scan pipeline and the UI.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List

TTL_NOT_FETCHED = -1
NO_EXPIRY = 0


class ValueType(Enum):
    UNKNOWN = 'unknown'
    STRING = 'string'
    LIST = 'list'
    SET = 'set'
    SORTED_SET = 'sortedset'
    HASH = 'hash'

    @classmethod
    def from_redis(cls, name: str) -> 'ValueType':
        """Map a TYPE reply ('zset', 'string', ...) to a ValueType, UNKNOWN otherwise."""
        if name == 'zset':
            return cls.SORTED_SET
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


class FilterMode(Enum):
    OFF = 'off'
    STRICT = 'strict'
    FUZZY = 'fuzzy'


@dataclass(frozen=True)
class KeyRecord:
    """
    One key surfaced to the UI.

    An unloaded record always carries an empty value, an unfetched TTL and an
    unknown type; ``loaded()`` builds the resolved version.
    """

    key: str
    value_type: ValueType = ValueType.UNKNOWN
    ttl_seconds: int = TTL_NOT_FETCHED
    value: str = ''
    loaded: bool = False
    fetch_error: bool = False

    @classmethod
    def unloaded(cls, key: str) -> 'KeyRecord':
        return cls(key=key)

    def resolved(self, value_type: ValueType, ttl_seconds: int, value: str, fetch_error: bool = False) -> 'KeyRecord':
        return replace(
            self,
            value_type=value_type,
            ttl_seconds=ttl_seconds,
            value=value,
            loaded=True,
            fetch_error=fetch_error,
        )


@dataclass(frozen=True)
class ScanRequest:
    """
    Parameters of one scan pass.

    ``pattern`` is a store glob (empty matches everything); ``limit`` caps the
    keys fetched per cursor iteration, not the total.
    """

    pattern: str = ''
    limit: int = 50
    cursor_offset: int = 0


@dataclass(frozen=True)
class FilterSpec:
    query: str = ''
    mode: FilterMode = FilterMode.OFF

    @property
    def active(self) -> bool:
        return self.mode is not FilterMode.OFF and bool(self.query)


@dataclass
class ScanResult:
    records: List[KeyRecord] = field(default_factory=list)
    total_scanned: int = 0
    complete: bool = True

    @property
    def keys(self) -> List[str]:
        return [record.key for record in self.records]
