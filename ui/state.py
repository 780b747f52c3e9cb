"""
Session state owned by the UI event loop.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from config import SCAN_BATCH_SIZE, SCAN_COUNT_CAP, SCAN_LIMIT
from utils.scanning.batches import BatchDispatcher
from utils.scanning.records import FilterMode, FilterSpec, KeyRecord, ScanRequest


class Mode(Enum):
    DEFAULT = 'default'
    SEARCH = 'search'
    FUZZY_SEARCH = 'fuzzy_search'
    SWITCH_DB = 'switch_db'
    SET_TTL = 'set_ttl'
    CONFIRM_DELETE = 'confirm_delete'
    CONFIRM_PURGE = 'confirm_purge'
    HELP = 'help'
    STATS = 'stats'
    CREATE_KEY_INPUT = 'create_key_input'
    EDITING_KEY = 'editing_key'


# Modes in which printable characters are typed into the input buffer
TEXT_INPUT_MODES = frozenset({Mode.SEARCH, Mode.FUZZY_SEARCH, Mode.SWITCH_DB, Mode.SET_TTL, Mode.CREATE_KEY_INPUT})

INPUT_LIMITS = {
    Mode.SWITCH_DB: 4,
    Mode.SET_TTL: 10,
}


class Focus(Enum):
    LIST = 'list'
    DETAIL = 'detail'


@dataclass
class StatsData:
    server_stats: Any = None
    db_stats: List[Any] = field(default_factory=list)
    loading: bool = True
    error: Optional[str] = None


@dataclass
class SessionState:
    """
    Everything the update function reads and writes.

    ``items`` is the displayed list; ``batches`` holds the part of the last
    scan not yet revealed. ``scan_generation`` identifies the newest scan so
    results of superseded scans and loads can be recognised and dropped.
    """

    store: Any
    db: int = 0
    mode: Mode = Mode.DEFAULT
    focus: Focus = Focus.LIST

    search_value: str = ''
    filter_value: str = ''
    filter_strict: bool = False
    input_buffer: str = ''

    items: List[KeyRecord] = field(default_factory=list)
    cursor: int = 0
    batches: BatchDispatcher = field(default_factory=lambda: BatchDispatcher(SCAN_BATCH_SIZE))
    scan_generation: int = 0
    total_scanned: int = 0
    key_count: int = -1
    scan_failed: bool = False
    ready: bool = False

    key_to_delete: str = ''
    key_to_set_ttl: str = ''
    editing_key: str = ''
    editing_tmp_file: str = ''
    editing_is_create: bool = False

    word_wrap: bool = False
    status_message: str = ''
    now: str = ''
    stats: Optional[StatsData] = None

    scan_limit: int = SCAN_LIMIT
    count_cap: int = SCAN_COUNT_CAP

    @property
    def filter_spec(self) -> FilterSpec:
        if not self.filter_value:
            return FilterSpec()
        mode = FilterMode.STRICT if self.filter_strict else FilterMode.FUZZY
        return FilterSpec(query=self.filter_value, mode=mode)

    @property
    def scan_request(self) -> ScanRequest:
        return ScanRequest(pattern=self.search_value, limit=self.scan_limit)

    def selected(self) -> Optional[KeyRecord]:
        if 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None
