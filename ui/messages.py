"""
Messages delivered to the update function.

The set is closed: ``update`` dispatches on the concrete class and rejects
anything else.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from utils.scanning.records import KeyRecord


@dataclass(frozen=True)
class KeyPressed:
    key: str
    character: Optional[str] = None


@dataclass(frozen=True)
class Started:
    pass


@dataclass(frozen=True)
class Tick:
    now: str


@dataclass(frozen=True)
class ScanCompleted:
    generation: int
    records: List[KeyRecord]
    total_scanned: int


@dataclass(frozen=True)
class ScanFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class BatchRequested:
    generation: int


@dataclass(frozen=True)
class CountCompleted:
    generation: int
    count: int


@dataclass(frozen=True)
class CountFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class ValueLoaded:
    generation: int
    record: KeyRecord


@dataclass(frozen=True)
class KeyDeleted:
    key: str
    error: Optional[str] = None


@dataclass(frozen=True)
class TTLSet:
    key: str
    ttl: int
    error: Optional[str] = None


@dataclass(frozen=True)
class DatabasePurged:
    db: int
    error: Optional[str] = None


@dataclass(frozen=True)
class DatabaseSwitched:
    db: int
    store: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class StatsLoaded:
    server_stats: Any = None
    db_stats: List[Any] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class EditFilePrepared:
    key: str
    tmp_file: str = ''
    is_create: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class EditorFinished:
    tmp_file: str
    error: Optional[str] = None


@dataclass(frozen=True)
class EditSaved:
    key: str
    is_create: bool = False
    error: Optional[str] = None


Message = Union[
    KeyPressed,
    Started,
    Tick,
    ScanCompleted,
    ScanFailed,
    BatchRequested,
    CountCompleted,
    CountFailed,
    ValueLoaded,
    KeyDeleted,
    TTLSet,
    DatabasePurged,
    DatabaseSwitched,
    StatsLoaded,
    EditFilePrepared,
    EditorFinished,
    EditSaved,
]
