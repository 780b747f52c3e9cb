"""
Cursor-based key enumeration.

Key names are produced by a dedicated thread and handed to the caller through
a bounded queue that is closed with a sentinel once the scan finishes. Only
names are fetched here; type, TTL and value are loaded lazily per key.
"""

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from utils.redis.client import StoreError, StoreTopology
from .filters import filter_keys
from .records import FilterSpec, KeyRecord, ScanRequest, ScanResult

logger = logging.getLogger(__name__)

_CLOSED = object()
_PUT_TIMEOUT = 0.1


class ScanError(StoreError):
    """Raised when a scan iteration fails; carries the failing partition."""

    def __init__(self, message: str, partition: Optional[str] = None):
        super().__init__(message)
        self.partition = partition


@dataclass(frozen=True)
class KeyMessage:
    key: str = ''
    error: Optional[ScanError] = None


class _KeyCollector:
    """Thread-safe, order-preserving, de-duplicating key accumulator."""

    def __init__(self):
        self._lock = threading.Lock()
        self._seen = set()
        self.keys: List[str] = []
        self.scanned = 0

    def add(self, keys: List[str]) -> None:
        with self._lock:
            self.scanned += len(keys)
            for key in keys:
                # SCAN may return an element more than once
                if key not in self._seen:
                    self._seen.add(key)
                    self.keys.append(key)


def _scan_partition(client: Any, request: ScanRequest, collector: _KeyCollector) -> None:
    cursor = request.cursor_offset
    match = request.pattern or None
    while True:
        cursor, keys = client.scan(cursor=cursor, match=match, count=request.limit)
        if keys:
            collector.add(keys)
        if int(cursor) == 0:
            break


def _send(channel: queue.Queue, item: Any, cancelled: threading.Event) -> bool:
    while not cancelled.is_set():
        try:
            channel.put(item, timeout=_PUT_TIMEOUT)
            return True
        except queue.Full:
            continue
    return False


def _produce(store: StoreTopology, request: ScanRequest, channel: queue.Queue, cancelled: threading.Event) -> None:
    collector = _KeyCollector()
    error: Optional[ScanError] = None

    partitions = store.partitions()
    if len(partitions) == 1:
        try:
            _scan_partition(partitions[0], request, collector)
        except Exception as e:
            error = ScanError(f"scan failed: {e}", partition=repr(store))
    else:
        # Every primary is scanned concurrently; any failure aborts the whole scan
        with ThreadPoolExecutor(max_workers=len(partitions), thread_name_prefix='scan-partition') as executor:
            futures = {
                executor.submit(_scan_partition, partition, request, collector): partition
                for partition in partitions
            }
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    partition = repr(futures[future])
                    error = ScanError(f"scan failed on {partition}: {e}", partition=partition)
                    break

    if error is not None:
        logger.error(f"Key scan aborted: {error}")
        _send(channel, KeyMessage(error=error), cancelled)
    else:
        logger.debug(f"Key scan finished: {len(collector.keys)} keys from {collector.scanned} scanned")
        for key in collector.keys:
            if not _send(channel, KeyMessage(key=key), cancelled):
                break
    _send(channel, _CLOSED, cancelled)


def stream_keys(store: StoreTopology, request: ScanRequest, channel_size: int = 1) -> Iterator[KeyMessage]:
    """
    Lazily yield key names matching ``request.pattern``.

    The sequence is finite and non-restartable. A failed scan yields a single
    message carrying the error and then ends.
    """
    channel: queue.Queue = queue.Queue(maxsize=channel_size)
    cancelled = threading.Event()
    producer = threading.Thread(
        target=_produce,
        args=(store, request, channel, cancelled),
        name='key-scan',
        daemon=True,
    )
    producer.start()
    try:
        while True:
            message = channel.get()
            if message is _CLOSED:
                break
            yield message
    finally:
        cancelled.set()


def scan_keys(store: StoreTopology, request: ScanRequest) -> List[str]:
    """
    Drain a scan into a list of unique key names.

    Raises:
        ScanError: If any cursor iteration fails; no partial result is returned
    """
    keys = []
    for message in stream_keys(store, request):
        if message.error is not None:
            raise message.error
        keys.append(message.key)
    return keys


def run_scan(store: StoreTopology, request: ScanRequest, spec: FilterSpec) -> ScanResult:
    """
    Scan, filter and wrap the surviving keys as unloaded records.

    Raises:
        ScanError: If the scan fails
    """
    keys = scan_keys(store, request)
    filtered = filter_keys(keys, spec)
    return ScanResult(
        records=[KeyRecord.unloaded(key) for key in filtered],
        total_scanned=len(keys),
        complete=True,
    )


def count_keys(store: StoreTopology, pattern: str, cap: int) -> int:
    """
    Count keys matching ``pattern``, stopping once the count exceeds ``cap``.

    A result greater than ``cap`` means "at least cap + 1"; the exact figure is
    not computed.

    Raises:
        ScanError: If any partition fails to iterate
    """
    lock = threading.Lock()
    exceeded = threading.Event()
    total = [0]
    match = pattern or None

    def count_partition(client: Any) -> None:
        for _ in client.scan_iter(match=match):
            with lock:
                total[0] += 1
                if total[0] > cap:
                    exceeded.set()
            if exceeded.is_set():
                break

    partitions = store.partitions()
    try:
        if len(partitions) == 1:
            count_partition(partitions[0])
        else:
            with ThreadPoolExecutor(max_workers=len(partitions), thread_name_prefix='count-partition') as executor:
                for future in as_completed([executor.submit(count_partition, p) for p in partitions]):
                    future.result()
    except Exception as e:
        logger.error(f"Key count failed: {e}")
        raise ScanError(f"count failed: {e}", partition=repr(store)) from e

    return total[0]
