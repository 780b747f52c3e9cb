import pytest

from utils.redis.client import (
    ClusterTopology,
    MemoryTopology,
    StoreConnectionError,
    StoreTopology,
    _parse_addr,
    connect,
    get_redis_client,
    resolve_mode,
)
from utils.redis.fallback import MemoryKV

from conftest import PartitionedTopology


@pytest.mark.parametrize('redis_config, expected', [
    ({'addrs': ['localhost:6379']}, 'single'),
    ({'addrs': ['a:7000', 'b:7001']}, 'cluster'),
    ({'addrs': ['a:26379'], 'master_name': 'mymaster'}, 'sentinel'),
    ({'addrs': ['a:7000', 'b:7001'], 'master_name': 'mymaster'}, 'sentinel'),
    ({'addrs': ['a:7000', 'b:7001'], 'mode': 'single'}, 'single'),
    ({'mode': 'memory'}, 'memory'),
])
def test_resolve_mode(redis_config, expected):
    assert resolve_mode(redis_config) == expected


def test_parse_addr():
    assert _parse_addr('redis.local:6380') == ('redis.local', 6380)
    assert _parse_addr('redis.local') == ('redis.local', 6379)


def test_single_client_is_lazy():
    store = get_redis_client({'addrs': ['localhost:6379'], 'db': 2})
    assert type(store) is StoreTopology
    assert store.db == 2
    store.close()


def test_cluster_rejects_non_zero_database():
    with pytest.raises(StoreConnectionError):
        get_redis_client({'addrs': ['a:7000', 'b:7001']}, db=1)


def test_memory_databases_are_shared_per_index(memory_config):
    first = connect(memory_config)
    first.set('k', 'v')

    again = connect(memory_config, db=0)
    other = connect(memory_config, db=1)

    assert isinstance(first, MemoryTopology)
    assert again.get('k') == 'v'
    assert other.get('k') is None


def test_unreachable_server_fails_to_connect():
    with pytest.raises(StoreConnectionError, match='connect to redis failed'):
        connect({'addrs': ['127.0.0.1:1'], 'mode': 'single'})


def test_partitioned_flush_and_size():
    shards = [MemoryKV(), MemoryKV()]
    shards[0].set('a', '1')
    shards[1].set('b', '2')
    store = PartitionedTopology(shards)

    assert store.database_size() == 2
    store.flush_database()
    assert store.database_size() == 0
    assert all(shard.dbsize() == 0 for shard in shards)


def test_cluster_partitions_are_primaries():
    class FakeCluster:
        def get_primaries(self):
            return ['node-a', 'node-b']

        def get_redis_connection(self, node):
            return f"conn:{node}"

    assert ClusterTopology(FakeCluster()).partitions() == ['conn:node-a', 'conn:node-b']


def test_random_key_reads_the_requested_partition():
    shards = [MemoryKV(), MemoryKV()]
    shards[1].set('only-here', '1')
    store = PartitionedTopology(shards)

    assert store.random_key() is None
    assert store.random_key(shards[1]) == 'only-here'
