"""
Worker-side implementations of the UI's asynchronous effects.

Each command performs its I/O and returns exactly one message. Failures are
reported through the message's ``error`` field rather than raised, so the
event loop only ever receives results.
"""

import logging
from typing import Any, Callable, Dict

import redis

from utils.editor import EditorError, prepare_create_file, prepare_edit_file, remove_temp_file, save_edited_value
from utils.redis.client import StoreError, connect
from utils.redis.stats import collect_stats
from utils.scanning import ScanError, count_keys, load_value, run_scan
from utils.scanning.records import NO_EXPIRY, KeyRecord
from . import effects as fx
from . import messages as msgs

logger = logging.getLogger(__name__)

_STORE_ERRORS = (redis.RedisError, StoreError, OSError)


def scan_command(effect: fx.Scan, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        result = run_scan(effect.store, effect.request, effect.spec)
    except ScanError as e:
        return msgs.ScanFailed(generation=effect.generation, error=str(e))
    logger.info(f"Scan {effect.generation}: {len(result.records)} of {result.total_scanned} keys shown")
    return msgs.ScanCompleted(
        generation=effect.generation,
        records=result.records,
        total_scanned=result.total_scanned,
    )


def count_command(effect: fx.Count, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        count = count_keys(effect.store, effect.pattern, effect.cap)
    except ScanError as e:
        return msgs.CountFailed(generation=effect.generation, error=str(e))
    return msgs.CountCompleted(generation=effect.generation, count=count)


def load_value_command(effect: fx.LoadValue, redis_config: Dict[str, Any]) -> msgs.Message:
    record = load_value(effect.store, effect.key, effect.value_type, effect.ttl_seconds)
    return msgs.ValueLoaded(generation=effect.generation, record=record)


def delete_command(effect: fx.DeleteKey, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        effect.store.delete(effect.key)
    except _STORE_ERRORS as e:
        logger.error(f"Failed to delete {effect.key!r}: {e}")
        return msgs.KeyDeleted(key=effect.key, error=str(e))
    logger.info(f"Deleted key {effect.key!r}")
    return msgs.KeyDeleted(key=effect.key)


def set_ttl_command(effect: fx.SetTTL, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        if effect.ttl <= 0:
            effect.store.persist(effect.key)
        else:
            effect.store.expire(effect.key, effect.ttl)
    except _STORE_ERRORS as e:
        logger.error(f"Failed to set TTL on {effect.key!r}: {e}")
        return msgs.TTLSet(key=effect.key, ttl=effect.ttl, error=str(e))
    return msgs.TTLSet(key=effect.key, ttl=effect.ttl)


def purge_command(effect: fx.Purge, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        effect.store.flush_database()
    except _STORE_ERRORS as e:
        logger.error(f"Failed to flush database {effect.db}: {e}")
        return msgs.DatabasePurged(db=effect.db, error=str(e))
    logger.warning(f"Database {effect.db} flushed")
    return msgs.DatabasePurged(db=effect.db)


def switch_db_command(effect: fx.SwitchDB, redis_config: Dict[str, Any]) -> msgs.Message:
    # A fresh, validated connection; the current one is left untouched on failure
    try:
        store = connect(redis_config, db=effect.db)
    except _STORE_ERRORS as e:
        return msgs.DatabaseSwitched(db=effect.db, error=str(e))
    return msgs.DatabaseSwitched(db=effect.db, store=store)


def stats_command(effect: fx.LoadStats, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        server_stats, db_stats = collect_stats(redis_config, effect.store)
    except _STORE_ERRORS as e:
        logger.error(f"Failed to load stats: {e}")
        return msgs.StatsLoaded(error=str(e))
    return msgs.StatsLoaded(server_stats=server_stats, db_stats=db_stats)


def prepare_edit_command(effect: fx.PrepareEdit, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        path = prepare_edit_file(effect.key, effect.value)
    except EditorError as e:
        return msgs.EditFilePrepared(key=effect.key, error=str(e))
    return msgs.EditFilePrepared(key=effect.key, tmp_file=path)


def prepare_create_command(effect: fx.PrepareCreate, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        path = prepare_create_file(effect.key)
    except EditorError as e:
        return msgs.EditFilePrepared(key=effect.key, is_create=True, error=str(e))
    return msgs.EditFilePrepared(key=effect.key, tmp_file=path, is_create=True)


def save_edit_command(effect: fx.SaveEdit, redis_config: Dict[str, Any]) -> msgs.Message:
    try:
        save_edited_value(effect.store, effect.key, effect.tmp_file)
    except (EditorError,) + _STORE_ERRORS as e:
        logger.error(f"Failed to save edited value of {effect.key!r}: {e}")
        return msgs.EditSaved(key=effect.key, is_create=effect.is_create, error=str(e))
    return msgs.EditSaved(key=effect.key, is_create=effect.is_create)


def discard_file_command(effect: fx.DiscardFile, redis_config: Dict[str, Any]) -> None:
    remove_temp_file(effect.tmp_file)
    return None


COMMANDS: Dict[type, Callable[[Any, Dict[str, Any]], Any]] = {
    fx.Scan: scan_command,
    fx.Count: count_command,
    fx.LoadValue: load_value_command,
    fx.DeleteKey: delete_command,
    fx.SetTTL: set_ttl_command,
    fx.Purge: purge_command,
    fx.SwitchDB: switch_db_command,
    fx.LoadStats: stats_command,
    fx.PrepareEdit: prepare_edit_command,
    fx.PrepareCreate: prepare_create_command,
    fx.SaveEdit: save_edit_command,
    fx.DiscardFile: discard_file_command,
}


def failure_message(effect: Any, error: str) -> Any:
    """The failure reply for ``effect``, used when its command raised unexpectedly."""
    if isinstance(effect, fx.Scan):
        return msgs.ScanFailed(generation=effect.generation, error=error)
    if isinstance(effect, fx.Count):
        return msgs.CountFailed(generation=effect.generation, error=error)
    if isinstance(effect, fx.LoadValue):
        record = KeyRecord.unloaded(effect.key).resolved(effect.value_type, NO_EXPIRY, error, fetch_error=True)
        return msgs.ValueLoaded(generation=effect.generation, record=record)
    if isinstance(effect, fx.DeleteKey):
        return msgs.KeyDeleted(key=effect.key, error=error)
    if isinstance(effect, fx.SetTTL):
        return msgs.TTLSet(key=effect.key, ttl=effect.ttl, error=error)
    if isinstance(effect, fx.Purge):
        return msgs.DatabasePurged(db=effect.db, error=error)
    if isinstance(effect, fx.SwitchDB):
        return msgs.DatabaseSwitched(db=effect.db, error=error)
    if isinstance(effect, fx.LoadStats):
        return msgs.StatsLoaded(error=error)
    if isinstance(effect, fx.PrepareEdit):
        return msgs.EditFilePrepared(key=effect.key, error=error)
    if isinstance(effect, fx.PrepareCreate):
        return msgs.EditFilePrepared(key=effect.key, is_create=True, error=error)
    if isinstance(effect, fx.SaveEdit):
        return msgs.EditSaved(key=effect.key, is_create=effect.is_create, error=error)
    return None


def run_effect(effect: Any, redis_config: Dict[str, Any]) -> Any:
    """
    Execute a worker effect and return its message (None for fire-and-forget effects).

    An exception the command did not handle itself is logged and answered with
    the effect's failure message, so the event loop always gets its reply.
    """
    command = COMMANDS.get(type(effect))
    if command is None:
        raise TypeError(f"not a worker effect: {effect!r}")
    try:
        return command(effect, redis_config)
    except Exception as e:
        logger.exception(f"Unexpected error running {type(effect).__name__}: {e}")
        return failure_message(effect, str(e) or type(e).__name__)
