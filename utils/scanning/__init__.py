# Scan pipeline: enumerate, filter, batch and lazily load keys

from .batches import Batch, BatchDispatcher
from .filters import filter_keys, fuzzy_find
from .loader import apply_loaded, load_value
from .records import FilterMode, FilterSpec, KeyRecord, ScanRequest, ScanResult, ValueType
from .scanner import ScanError, count_keys, run_scan, scan_keys, stream_keys

__all__ = [
    'Batch',
    'BatchDispatcher',
    'filter_keys',
    'fuzzy_find',
    'apply_loaded',
    'load_value',
    'FilterMode',
    'FilterSpec',
    'KeyRecord',
    'ScanRequest',
    'ScanResult',
    'ValueType',
    'ScanError',
    'count_keys',
    'run_scan',
    'scan_keys',
    'stream_keys',
]
