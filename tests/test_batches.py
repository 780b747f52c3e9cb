import pytest

from utils.scanning.batches import BatchDispatcher
from utils.scanning.records import KeyRecord


def records(n):
    return [KeyRecord.unloaded(f"key:{i}") for i in range(n)]


def drain(dispatcher):
    batches = []
    while True:
        batch = dispatcher.next_batch()
        batches.append(batch)
        if batch.complete:
            return batches


@pytest.mark.parametrize('total', [1, 49, 50, 51, 120, 500])
def test_batches_concatenate_to_input(total):
    items = records(total)
    dispatcher = BatchDispatcher(50)
    dispatcher.reset(items)

    batches = drain(dispatcher)

    assert [r for b in batches for r in b.records] == items
    assert [b.complete for b in batches] == [False] * (len(batches) - 1) + [True]
    assert all(len(b.records) == 50 for b in batches[:-1])
    assert 0 < len(batches[-1].records) <= 50


def test_batch_start_tracks_offset():
    dispatcher = BatchDispatcher(50)
    dispatcher.reset(records(120))
    assert [b.start for b in drain(dispatcher)] == [0, 50, 100]


def test_empty_scan_is_one_complete_batch():
    dispatcher = BatchDispatcher(50)
    dispatcher.reset([])
    batch = dispatcher.next_batch()
    assert batch.records == []
    assert batch.complete


def test_reset_discards_previous_scan():
    dispatcher = BatchDispatcher(2)
    dispatcher.reset(records(5))
    dispatcher.next_batch()
    dispatcher.reset(records(3))
    assert dispatcher.pending_index == 0
    assert dispatcher.remaining == 3


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BatchDispatcher(0)
