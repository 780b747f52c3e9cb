"""
Incremental reveal of a completed scan.

The dispatcher holds the pending records and a cursor into them; each call
to ``next_batch`` hands out the next fixed-size slice. Callers re-schedule
themselves until a batch reports ``complete``.
"""

from dataclasses import dataclass
from typing import List, Sequence

from config import SCAN_BATCH_SIZE
from .records import KeyRecord


@dataclass(frozen=True)
class Batch:
    records: List[KeyRecord]
    complete: bool
    start: int = 0


class BatchDispatcher:

    def __init__(self, batch_size: int = SCAN_BATCH_SIZE):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.pending_items: List[KeyRecord] = []
        self.pending_index = 0

    def reset(self, items: Sequence[KeyRecord]) -> None:
        """Replace the pending queue with a fresh scan result."""
        self.pending_items = list(items)
        self.pending_index = 0

    def clear(self) -> None:
        self.pending_items = []
        self.pending_index = 0

    @property
    def remaining(self) -> int:
        return max(0, len(self.pending_items) - self.pending_index)

    @property
    def complete(self) -> bool:
        return self.pending_index >= len(self.pending_items)

    def next_batch(self) -> Batch:
        start = self.pending_index
        end = min(start + self.batch_size, len(self.pending_items))
        records = self.pending_items[start:end]
        self.pending_index = end
        return Batch(records=records, complete=end >= len(self.pending_items), start=start)
