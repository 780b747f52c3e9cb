# Utils package for the Redis viewer

from .redis import StoreConnectionError, StoreError, StoreTopology, connect, get_redis_client
from .workers.worker_pool import WorkerPool

__all__ = [
    'StoreConnectionError',
    'StoreError',
    'StoreTopology',
    'connect',
    'get_redis_client',
    'WorkerPool',
]
