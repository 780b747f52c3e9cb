from utils.redis.client import connect
from utils.redis.stats import (
    calculate_average_ttl,
    collect_stats,
    format_bytes,
    format_number,
    format_seconds,
    format_uptime,
    get_database_stats,
    get_server_stats,
)
from utils.redis.fallback import MemoryKV

from conftest import PartitionedTopology


def test_format_seconds():
    assert format_seconds(0) == '0s'
    assert format_seconds(59) == '59s'
    assert format_seconds(3600) == '1h'
    assert format_seconds(93784) == '1d 2h 3m 4s'


def test_format_bytes():
    assert format_bytes(512) == '512B'
    assert format_bytes(1536) == '1.50K'
    assert format_bytes(5 * 1024 * 1024) == '5.00M'


def test_format_uptime():
    assert format_uptime(59) == '0m'
    assert format_uptime(3660) == '1h 1m'
    assert format_uptime(90061) == '1d 1h 1m'


def test_format_number():
    assert format_number(999) == '999'
    assert format_number(1234567) == '1,234,567'


def test_server_stats_from_info(store):
    stats = get_server_stats(store)
    assert stats.version == '7.2.0-memory'
    assert stats.used_memory.endswith('B')
    assert stats.connected_clients == 1


def test_average_ttl_without_expiring_keys(store, kv):
    kv.set('a', '1')
    assert calculate_average_ttl(store, 5) == 'No TTL'


def test_average_ttl_of_expiring_keys(store, kv):
    kv.set('a', '1', ex=120)
    assert calculate_average_ttl(store, 5) in ('2m', '1m 59s')


def test_database_stats_sum_partitions():
    shards = [MemoryKV(), MemoryKV()]
    shards[0].set('a', '1')
    shards[1].set('b', '2')
    shards[1].set('c', '3')

    stats = get_database_stats(PartitionedTopology(shards), 0, sample_size=3)

    assert stats.keys == 3
    assert stats.avg_ttl == 'No TTL'


def test_collect_stats_skips_empty_databases(memory_config):
    store = connect(memory_config)
    store.set('a', '1')
    other = connect(memory_config, db=4)
    other.set('b', '2')
    other.set('c', '3')

    server, databases = collect_stats(memory_config, store)

    assert server.version == '7.2.0-memory'
    assert [(db.db, db.keys) for db in databases] == [(0, 1), (4, 2)]
