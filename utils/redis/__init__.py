from .client import (
    ClusterTopology,
    StoreConnectionError,
    StoreError,
    StoreTopology,
    connect,
    get_redis_client,
)
from .fallback import MemoryKV

__all__ = [
    'ClusterTopology',
    'StoreConnectionError',
    'StoreError',
    'StoreTopology',
    'connect',
    'get_redis_client',
    'MemoryKV',
]
