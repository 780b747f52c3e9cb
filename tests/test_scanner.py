import pytest

from utils.redis.client import MemoryTopology
from utils.redis.fallback import MemoryKV
from utils.scanning.records import FilterMode, FilterSpec, ScanRequest, TTL_NOT_FETCHED
from utils.scanning.scanner import ScanError, count_keys, run_scan, scan_keys, stream_keys

from conftest import FailingPageKV, PartitionedTopology


def populate(kv, keys):
    for key in keys:
        kv.set(key, f"value of {key}")


@pytest.mark.parametrize('page_size', [1, 2, 3, 7, 50, 1000])
def test_scan_enumerates_every_key_once(store, kv, page_size):
    keys = [f"key:{i:03d}" for i in range(37)]
    populate(kv, keys)

    found = scan_keys(store, ScanRequest(limit=page_size))

    assert sorted(found) == keys
    assert len(found) == len(set(found))


def test_scan_applies_pattern(store, kv):
    populate(kv, ['a', 'ab', 'b'])
    assert sorted(scan_keys(store, ScanRequest(pattern='a*', limit=1))) == ['a', 'ab']


def test_scan_of_empty_store(store):
    assert scan_keys(store, ScanRequest()) == []


def test_run_scan_returns_unloaded_records(store, kv):
    populate(kv, ['a', 'ab', 'b'])

    result = run_scan(store, ScanRequest(pattern='a*'), FilterSpec())

    assert sorted(result.keys) == ['a', 'ab']
    assert result.total_scanned == 2
    for record in result.records:
        assert not record.loaded
        assert record.value == ''
        assert record.ttl_seconds == TTL_NOT_FETCHED


def test_run_scan_filters_after_scanning(store, kv):
    populate(kv, ['user:1', 'other', 'users'])

    result = run_scan(store, ScanRequest(), FilterSpec(query='usr', mode=FilterMode.FUZZY))

    assert result.keys == ['users', 'user:1']
    assert result.total_scanned == 3


def test_error_on_second_page_discards_first_page():
    kv = FailingPageKV()
    populate(kv, [f"key:{i}" for i in range(5)])
    store = MemoryTopology(kv, 0)

    with pytest.raises(ScanError) as exc_info:
        run_scan(store, ScanRequest(limit=2), FilterSpec())
    assert 'connection reset' in str(exc_info.value)


def test_stream_reports_error_as_single_terminal_message():
    kv = FailingPageKV()
    populate(kv, [f"key:{i}" for i in range(5)])

    messages = list(stream_keys(MemoryTopology(kv, 0), ScanRequest(limit=2)))

    assert len(messages) == 1
    assert isinstance(messages[0].error, ScanError)


def test_stream_can_be_abandoned_early(store, kv):
    populate(kv, [f"key:{i}" for i in range(20)])
    stream = stream_keys(store, ScanRequest(limit=3))
    first = next(stream)
    stream.close()
    assert first.key.startswith('key:')


def test_partitions_are_merged():
    shards = [MemoryKV(), MemoryKV(), MemoryKV()]
    for index, shard in enumerate(shards):
        populate(shard, [f"shard{index}:{i}" for i in range(10)])
    store = PartitionedTopology(shards)

    found = scan_keys(store, ScanRequest(limit=4))

    assert len(found) == 30
    assert len(set(found)) == 30


def test_failing_partition_aborts_the_scan():
    healthy, broken = MemoryKV(), FailingPageKV()
    populate(healthy, ['a', 'b'])
    populate(broken, [f"k{i}" for i in range(5)])
    store = PartitionedTopology([healthy, broken])

    with pytest.raises(ScanError):
        scan_keys(store, ScanRequest(limit=2))


def test_count_keys_is_exact_below_cap(store, kv):
    populate(kv, [f"key:{i}" for i in range(25)] + ['other'])
    assert count_keys(store, 'key:*', cap=100) == 25
    assert count_keys(store, '', cap=100) == 26


def test_count_keys_stops_past_cap(store, kv):
    populate(kv, [f"key:{i}" for i in range(25)])
    assert count_keys(store, '', cap=10) == 11


def test_count_keys_sums_partitions():
    shards = [MemoryKV(), MemoryKV()]
    populate(shards[0], ['a', 'b'])
    populate(shards[1], ['c'])
    assert count_keys(PartitionedTopology(shards), '', cap=100) == 3


def test_count_keys_wraps_failures():
    kv = FailingPageKV()
    populate(kv, [f"key:{i}" for i in range(30)])
    with pytest.raises(ScanError):
        count_keys(MemoryTopology(kv, 0), '', cap=100)
