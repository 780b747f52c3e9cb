"""
Effects returned by the update function.

Worker effects perform store or file I/O and run on the worker pool; each
produces exactly one message. Loop effects touch only the UI and are
interpreted by the app on the event loop.
"""

from dataclasses import dataclass
from typing import Any, List

from utils.scanning.records import FilterSpec, KeyRecord, ScanRequest, ValueType


# ==================== Worker Effects ====================

@dataclass(frozen=True)
class Scan:
    store: Any
    generation: int
    request: ScanRequest
    spec: FilterSpec


@dataclass(frozen=True)
class Count:
    store: Any
    generation: int
    pattern: str
    cap: int


@dataclass(frozen=True)
class LoadValue:
    store: Any
    generation: int
    key: str
    value_type: ValueType
    ttl_seconds: int


@dataclass(frozen=True)
class DeleteKey:
    store: Any
    key: str


@dataclass(frozen=True)
class SetTTL:
    store: Any
    key: str
    ttl: int


@dataclass(frozen=True)
class Purge:
    store: Any
    db: int


@dataclass(frozen=True)
class SwitchDB:
    db: int


@dataclass(frozen=True)
class LoadStats:
    store: Any


@dataclass(frozen=True)
class PrepareEdit:
    key: str
    value: str


@dataclass(frozen=True)
class PrepareCreate:
    key: str


@dataclass(frozen=True)
class SaveEdit:
    store: Any
    key: str
    tmp_file: str
    is_create: bool


@dataclass(frozen=True)
class DiscardFile:
    tmp_file: str


WORKER_EFFECTS = (Scan, Count, LoadValue, DeleteKey, SetTTL, Purge, SwitchDB, LoadStats,
                  PrepareEdit, PrepareCreate, SaveEdit, DiscardFile)


# ==================== Loop Effects ====================

@dataclass(frozen=True)
class ScheduleBatch:
    generation: int


@dataclass(frozen=True)
class ResetList:
    pass


@dataclass(frozen=True)
class AppendRows:
    start: int
    records: List[KeyRecord]


@dataclass(frozen=True)
class RefreshRow:
    index: int


@dataclass(frozen=True)
class ScrollDetail:
    delta: int


@dataclass(frozen=True)
class OpenEditor:
    tmp_file: str


@dataclass(frozen=True)
class CloseStore:
    store: Any


@dataclass(frozen=True)
class Quit:
    pass
