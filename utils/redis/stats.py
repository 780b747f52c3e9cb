"""
Server and per-database statistics for the stats overlay.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import redis

from config import STATS_MAX_DATABASES, STATS_SAMPLE_SIZE
from .client import StoreTopology, get_redis_client

logger = logging.getLogger(__name__)


@dataclass
class ServerStats:
    version: str = ''
    uptime_seconds: int = 0
    used_memory: str = ''
    used_memory_peak: str = ''
    mem_fragmentation_ratio: float = 0.0
    connected_clients: int = 0
    total_commands_processed: int = 0
    ops_per_sec: int = 0
    evicted_keys: int = 0
    expired_keys: int = 0


@dataclass
class DatabaseStats:
    db: int
    keys: int = 0
    avg_ttl: str = ''
    sample_size: int = 0


def _as_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def format_seconds(seconds: int) -> str:
    """Format seconds as e.g. '1d 2h 3m 4s'."""
    if seconds <= 0:
        return '0s'

    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")
    return ' '.join(parts)


def format_bytes(size: int) -> str:
    """Format a byte count the way Redis renders *_human fields."""
    unit = 1024
    if size < unit:
        return f"{size}B"
    value = float(size)
    for suffix in ('K', 'M', 'G', 'T', 'P', 'E'):
        value /= unit
        if value < unit or suffix == 'E':
            return f"{value:.2f}{suffix}"
    return f"{size}B"


def format_uptime(seconds: int) -> str:
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_number(n: int) -> str:
    return f"{n:,}"


def get_server_stats(store: StoreTopology) -> ServerStats:
    """
    Read server-level statistics from INFO.

    Raises:
        redis.RedisError: If INFO fails
    """
    info = store.info()
    stats = ServerStats(
        version=str(info.get('redis_version', '')),
        uptime_seconds=_as_int(info.get('uptime_in_seconds')),
        mem_fragmentation_ratio=_as_float(info.get('mem_fragmentation_ratio')),
        connected_clients=_as_int(info.get('connected_clients')),
        total_commands_processed=_as_int(info.get('total_commands_processed')),
        ops_per_sec=_as_int(info.get('instantaneous_ops_per_sec')),
        evicted_keys=_as_int(info.get('evicted_keys')),
        expired_keys=_as_int(info.get('expired_keys')),
    )

    # Fall back to formatting raw byte counts when the human fields are missing
    stats.used_memory = info.get('used_memory_human') or (
        format_bytes(_as_int(info['used_memory'])) if 'used_memory' in info else ''
    )
    stats.used_memory_peak = info.get('used_memory_peak_human') or (
        format_bytes(_as_int(info['used_memory_peak'])) if 'used_memory_peak' in info else ''
    )
    return stats


def calculate_average_ttl(store: StoreTopology, sample_size: int) -> str:
    """Sample random keys on every partition and average the TTL of those that expire."""
    total_ttl = 0
    keys_with_ttl = 0

    for partition in store.partitions():
        for _ in range(sample_size):
            try:
                key = store.random_key(partition)
                if not key:
                    continue
                ttl = partition.ttl(key)
            except redis.RedisError as e:
                logger.debug(f"TTL sampling skipped a key: {e}")
                continue
            if ttl is None or ttl <= 0:
                continue
            total_ttl += ttl
            keys_with_ttl += 1

    if keys_with_ttl == 0:
        return 'No TTL'
    return format_seconds(total_ttl // keys_with_ttl)


def get_database_stats(store: StoreTopology, db: int, sample_size: int = STATS_SAMPLE_SIZE) -> DatabaseStats:
    """
    Key count and sampled average TTL for one database.

    Raises:
        redis.RedisError: If the key count cannot be read
    """
    stats = DatabaseStats(db=db, sample_size=sample_size)
    stats.keys = store.database_size()
    if stats.keys > 0 and sample_size > 0:
        stats.avg_ttl = calculate_average_ttl(store, sample_size)
    return stats


def collect_stats(redis_config: Dict[str, Any], store: StoreTopology) -> Tuple[ServerStats, List[DatabaseStats]]:
    """
    Server statistics plus every reachable, non-empty database.

    Cluster deployments only expose database 0. The current database is read
    through ``store``; the others through short-lived connections.
    """
    server_stats = get_server_stats(store)

    max_db = 1 if store.mode == 'cluster' else STATS_MAX_DATABASES
    db_stats = []
    for db in range(max_db):
        db_store: Optional[StoreTopology] = None
        try:
            if db == store.db:
                stats = get_database_stats(store, db)
            else:
                db_store = get_redis_client(redis_config, db)
                db_store.ping()
                stats = get_database_stats(db_store, db)
        except (redis.RedisError, OSError) as e:
            logger.debug(f"Skipping database {db} in stats: {e}")
            continue
        finally:
            if db_store is not None:
                db_store.close()

        if stats.keys > 0:
            db_stats.append(stats)

    return server_stats, db_stats
