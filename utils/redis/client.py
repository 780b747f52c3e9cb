"""
Redis client with connection management and topology selection.

Every deployment shape is wrapped in a topology object exposing the same
capability set, so callers never branch on single vs. clustered stores.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import redis
from redis.cluster import ClusterNode, RedisCluster
from redis.sentinel import Sentinel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import (
    REDIS_MAX_REDIRECTS,
    REDIS_MAX_RETRIES,
    REDIS_SOCKET_CONNECT_TIMEOUT,
    REDIS_SOCKET_TIMEOUT,
)
from .fallback import MemoryKV

logger = logging.getLogger(__name__)

# One in-memory database per index so switching databases behaves like a server.
_MEMORY_DATABASES: Dict[int, MemoryKV] = {}


class StoreError(Exception):
    """Base exception for store operations."""
    pass


class StoreConnectionError(StoreError):
    """Raised when a connection cannot be established or validated."""
    pass


class StoreTopology:
    """
    Capability set over a single, non-partitioned store.

    Key-level commands are delegated to the underlying client; partition-aware
    operations (flush, size, sampling) iterate over ``partitions()``.
    """

    mode = 'single'

    def __init__(self, client: Any, db: int = 0):
        self.client = client
        self.db = db

    def partitions(self) -> List[Any]:
        """Clients that each own a shard of the keyspace."""
        return [self.client]

    # ==================== Key Operations ====================

    def type(self, key: str) -> str:
        return self.client.type(key)

    def ttl(self, key: str) -> int:
        return self.client.ttl(key)

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str) -> Any:
        return self.client.set(key, value)

    def lrange(self, key: str, start: int, end: int) -> List[str]:
        return self.client.lrange(key, start, end)

    def smembers(self, key: str) -> Any:
        return self.client.smembers(key)

    def zrange(self, key: str, start: int, end: int) -> List[str]:
        return self.client.zrange(key, start, end)

    def hgetall(self, key: str) -> Dict[str, str]:
        return self.client.hgetall(key)

    def delete(self, key: str) -> int:
        return self.client.delete(key)

    def expire(self, key: str, seconds: int) -> Any:
        return self.client.expire(key, seconds)

    def persist(self, key: str) -> Any:
        return self.client.persist(key)

    # ==================== Server Operations ====================

    def ping(self) -> Any:
        return self.client.ping()

    def info(self) -> Dict[str, Any]:
        return self.client.info()

    def flush_database(self) -> None:
        for partition in self.partitions():
            partition.flushdb()

    def database_size(self) -> int:
        return sum(partition.dbsize() for partition in self.partitions())

    def random_key(self, partition: Any = None) -> Optional[str]:
        """A random key from ``partition``, or from the first partition when none is given."""
        source = self.partitions()[0] if partition is None else partition
        return source.randomkey()

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} mode={self.mode} db={self.db}>"


class SentinelTopology(StoreTopology):
    """Master resolved through sentinels; behaves like a single store."""

    mode = 'sentinel'


class MemoryTopology(StoreTopology):
    """In-memory store, one ``MemoryKV`` per database index."""

    mode = 'memory'


class ClusterTopology(StoreTopology):
    """
    Redis Cluster: scan, flush and sizing are applied to every primary.
    """

    mode = 'cluster'

    def partitions(self) -> List[Any]:
        return [self.client.get_redis_connection(node) for node in self.client.get_primaries()]

    def info(self) -> Dict[str, Any]:
        # RedisCluster.info() fans out to every node; report the first primary.
        return self.partitions()[0].info()


def _parse_addr(addr: str) -> Tuple[str, int]:
    host, _, port = addr.rpartition(':')
    if not host:
        return addr, 6379
    return host, int(port)


def resolve_mode(redis_config: Dict[str, Any]) -> str:
    """Pick the topology for a configuration; 'auto' mirrors redis UniversalClient rules."""
    mode = redis_config.get('mode') or 'auto'
    if mode != 'auto':
        return mode
    if redis_config.get('master_name'):
        return 'sentinel'
    if len(redis_config.get('addrs') or []) > 1:
        return 'cluster'
    return 'single'


def get_redis_client(redis_config: Dict[str, Any], db: Optional[int] = None) -> StoreTopology:
    """
    Build a store topology without contacting the server.

    Args:
        redis_config: Connection settings (addrs, db, username, password, master_name, mode)
        db: Database index overriding the configured one

    Returns:
        Topology wrapping a redis-py client or the in-memory store
    """
    db = redis_config.get('db', 0) if db is None else db
    mode = resolve_mode(redis_config)
    addrs = redis_config.get('addrs') or ['localhost:6379']
    credentials = {
        'username': redis_config.get('username') or None,
        'password': redis_config.get('password') or None,
    }

    if mode == 'memory':
        store = _MEMORY_DATABASES.setdefault(db, MemoryKV())
        return MemoryTopology(store, db)

    if mode == 'cluster':
        if db != 0:
            raise StoreConnectionError("Redis Cluster only supports database 0")
        client = RedisCluster(
            startup_nodes=[ClusterNode(*_parse_addr(addr)) for addr in addrs],
            decode_responses=True,
            encoding_errors='backslashreplace',
            socket_connect_timeout=REDIS_SOCKET_CONNECT_TIMEOUT,
            socket_timeout=REDIS_SOCKET_TIMEOUT,
            cluster_error_retry_attempts=REDIS_MAX_RETRIES,
            reinitialize_steps=REDIS_MAX_REDIRECTS,
            **credentials
        )
        return ClusterTopology(client, db)

    if mode == 'sentinel':
        sentinel = Sentinel(
            [_parse_addr(addr) for addr in addrs],
            socket_timeout=REDIS_SOCKET_TIMEOUT,
            sentinel_kwargs={'password': credentials['password']} if credentials['password'] else None,
        )
        client = sentinel.master_for(
            redis_config.get('master_name'),
            db=db,
            decode_responses=True,
            encoding_errors='backslashreplace',
            socket_connect_timeout=REDIS_SOCKET_CONNECT_TIMEOUT,
            retry_on_timeout=True,
            **credentials
        )
        return SentinelTopology(client, db)

    host, port = _parse_addr(addrs[0])
    client = redis.Redis(
        host=host,
        port=port,
        db=db,
        decode_responses=True,
        encoding_errors='backslashreplace',
        socket_connect_timeout=REDIS_SOCKET_CONNECT_TIMEOUT,
        socket_timeout=REDIS_SOCKET_TIMEOUT,
        retry_on_timeout=True,
        **credentials
    )
    return StoreTopology(client, db)


@retry(
    retry=retry_if_exception_type(redis.ConnectionError),
    stop=stop_after_attempt(REDIS_MAX_RETRIES),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)
def _ping(store: StoreTopology) -> None:
    store.ping()


def connect(redis_config: Dict[str, Any], db: Optional[int] = None) -> StoreTopology:
    """
    Build a topology and validate it with PING.

    Transient connection errors are retried a bounded number of times; the
    client is closed again when validation finally fails.

    Raises:
        StoreConnectionError: If the store cannot be reached
    """
    store = get_redis_client(redis_config, db)
    try:
        _ping(store)
    except (redis.RedisError, OSError) as e:
        logger.error(f"Connection to {redis_config.get('addrs')} (db {store.db}) failed: {e}")
        try:
            store.close()
        except (redis.RedisError, OSError) as close_error:
            logger.debug(f"Error closing rejected connection: {close_error}")
        raise StoreConnectionError(f"connect to redis failed: {e}") from e

    logger.info(f"Connected to {store.mode} store at {redis_config.get('addrs')} (db {store.db})")
    return store
