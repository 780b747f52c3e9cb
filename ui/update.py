"""
The transition function of the terminal UI.

``update(state, msg)`` applies one message to the session state and returns
the effects to run next. It performs no I/O and never touches a widget, so
the whole interaction model can be driven from tests.
"""

import logging
from typing import Callable, Dict, List, Tuple

from . import effects as fx
from . import messages as msgs
from .state import INPUT_LIMITS, TEXT_INPUT_MODES, Focus, Mode, SessionState, StatsData
from utils.scanning.loader import apply_loaded

logger = logging.getLogger(__name__)

Effects = List[object]

PAGE_STEP = 10


def count_status(db: int, count: int, cap: int) -> str:
    if count > cap:
        return f"DB {db}: {cap}+ keys found"
    return f"DB {db}: {count} keys found"


def key_token(msg: msgs.KeyPressed) -> str:
    """Printable characters are matched literally, everything else by key name."""
    if msg.character and len(msg.character) == 1 and msg.character.isprintable():
        return msg.character
    return msg.key


def rescan(state: SessionState) -> Effects:
    """Start a new scan generation; results of older generations are dropped on arrival."""
    state.ready = False
    state.scan_generation += 1
    state.total_scanned = 0
    state.key_count = -1
    state.scan_failed = False
    generation = state.scan_generation
    logger.debug(f"Rescan {generation} (pattern={state.search_value!r}, filter={state.filter_value!r})")
    return [
        fx.Scan(state.store, generation, state.scan_request, state.filter_spec),
        fx.Count(state.store, generation, state.search_value, state.count_cap),
    ]


def _load_selected(state: SessionState) -> Effects:
    record = state.selected()
    if record is None or record.loaded:
        return []
    return [fx.LoadValue(state.store, state.scan_generation, record.key, record.value_type, record.ttl_seconds)]


def _toggle_filter_mode(state: SessionState) -> Effects:
    state.filter_strict = not state.filter_strict
    state.status_message = "Switched to strict mode" if state.filter_strict else "Switched to fuzzy mode"
    if state.filter_value:
        return rescan(state)
    return []


def _is_current(state: SessionState, generation: int) -> bool:
    return generation == state.scan_generation


# ==================== Result Messages ====================

def _on_started(state: SessionState, msg: msgs.Started) -> Effects:
    return rescan(state)


def _on_tick(state: SessionState, msg: msgs.Tick) -> Effects:
    state.now = msg.now
    return []


def _on_scan_completed(state: SessionState, msg: msgs.ScanCompleted) -> Effects:
    if not _is_current(state, msg.generation):
        return []
    state.total_scanned = msg.total_scanned
    state.batches.reset(msg.records)
    state.items = []
    state.cursor = 0
    return [fx.ResetList(), fx.ScheduleBatch(msg.generation)]


def _on_scan_failed(state: SessionState, msg: msgs.ScanFailed) -> Effects:
    if not _is_current(state, msg.generation):
        return []
    state.scan_failed = True
    state.batches.clear()
    state.items = []
    state.cursor = 0
    state.status_message = f"Failed to scan keys: {msg.error}"
    return [fx.ResetList()]


def _on_batch_requested(state: SessionState, msg: msgs.BatchRequested) -> Effects:
    if not _is_current(state, msg.generation):
        return []
    was_empty = not state.items
    batch = state.batches.next_batch()
    state.items.extend(batch.records)

    effects: Effects = []
    if batch.records:
        effects.append(fx.AppendRows(batch.start, list(batch.records)))
    if was_empty and batch.records:
        state.cursor = 0
        effects.extend(_load_selected(state))

    if batch.complete:
        state.batches.clear()
        if state.key_count >= 0:
            state.status_message = count_status(state.db, state.key_count, state.count_cap)
    else:
        state.status_message = f"Displaying... {len(state.items)}/{len(state.batches.pending_items)} keys"
        effects.append(fx.ScheduleBatch(msg.generation))
    return effects


def _on_count_completed(state: SessionState, msg: msgs.CountCompleted) -> Effects:
    if not _is_current(state, msg.generation):
        return []
    state.key_count = msg.count
    state.ready = True
    if not state.scan_failed:
        state.status_message = count_status(state.db, msg.count, state.count_cap)
    return []


def _on_count_failed(state: SessionState, msg: msgs.CountFailed) -> Effects:
    if not _is_current(state, msg.generation):
        return []
    state.ready = True
    if not state.scan_failed:
        state.status_message = f"Failed to count keys: {msg.error}"
    return []


def _on_value_loaded(state: SessionState, msg: msgs.ValueLoaded) -> Effects:
    if not _is_current(state, msg.generation):
        return []
    index = apply_loaded(state.items, msg.record)
    if index is None:
        return []
    return [fx.RefreshRow(index)]


def _mutation_result(state: SessionState, error, failure: str, success: str) -> Effects:
    if error:
        state.ready = True
        state.status_message = f"{failure}: {error}"
        return []
    state.status_message = success
    return rescan(state)


def _on_key_deleted(state: SessionState, msg: msgs.KeyDeleted) -> Effects:
    state.key_to_delete = ''
    return _mutation_result(state, msg.error, "Failed to delete key", f"Key '{msg.key}' deleted successfully")


def _on_ttl_set(state: SessionState, msg: msgs.TTLSet) -> Effects:
    if msg.ttl <= 0:
        success = f"TTL removed from key '{msg.key}' (now persistent)"
    else:
        success = f"TTL set to {msg.ttl} seconds for key '{msg.key}'"
    return _mutation_result(state, msg.error, "Failed to set TTL", success)


def _on_database_purged(state: SessionState, msg: msgs.DatabasePurged) -> Effects:
    return _mutation_result(state, msg.error, "Failed to purge database", f"Database {msg.db} purged successfully")


def _on_database_switched(state: SessionState, msg: msgs.DatabaseSwitched) -> Effects:
    if msg.error:
        state.ready = True
        state.status_message = f"Failed to switch database: {msg.error}"
        return []

    old_store = state.store
    state.store = msg.store
    state.db = msg.db
    state.status_message = f"Switched to database {msg.db}"
    logger.info(f"Switched to database {msg.db}")
    return [fx.CloseStore(old_store)] + rescan(state)


def _on_stats_loaded(state: SessionState, msg: msgs.StatsLoaded) -> Effects:
    if msg.error:
        state.status_message = f"Failed to load stats: {msg.error}"
        state.stats = StatsData(loading=False, error=msg.error)
    else:
        state.stats = StatsData(server_stats=msg.server_stats, db_stats=list(msg.db_stats), loading=False)
    return []


def _on_edit_file_prepared(state: SessionState, msg: msgs.EditFilePrepared) -> Effects:
    if msg.error:
        state.mode = Mode.DEFAULT
        action = 'create' if msg.is_create else 'edit'
        state.status_message = f"Failed to prepare {action}: {msg.error}"
        return []
    state.editing_key = msg.key
    state.editing_tmp_file = msg.tmp_file
    state.editing_is_create = msg.is_create
    return [fx.OpenEditor(msg.tmp_file)]


def _on_editor_finished(state: SessionState, msg: msgs.EditorFinished) -> Effects:
    key, is_create = state.editing_key, state.editing_is_create
    state.editing_key = ''
    state.editing_tmp_file = ''
    if msg.error:
        state.mode = Mode.DEFAULT
        state.status_message = f"Editor failed: {msg.error}"
        return [fx.DiscardFile(msg.tmp_file)]
    return [fx.SaveEdit(state.store, key, msg.tmp_file, is_create)]


def _on_edit_saved(state: SessionState, msg: msgs.EditSaved) -> Effects:
    state.mode = Mode.DEFAULT
    state.editing_is_create = False
    if msg.is_create:
        return _mutation_result(state, msg.error, "Failed to create key", f"Key '{msg.key}' created successfully")
    return _mutation_result(state, msg.error, "Failed to update key", f"Key '{msg.key}' updated successfully")


# ==================== Key Handling ====================

def _move_cursor(state: SessionState, delta: int) -> Effects:
    if state.focus is Focus.DETAIL:
        return [fx.ScrollDetail(delta)]
    if not state.items:
        return []
    state.cursor = max(0, min(len(state.items) - 1, state.cursor + delta))
    return _load_selected(state)


def _handle_default(state: SessionState, token: str) -> Effects:
    selected = state.selected()

    if token == 'r':
        return rescan(state)
    if token == 's':
        state.mode = Mode.SEARCH
        state.input_buffer = state.search_value
    elif token == '/':
        state.mode = Mode.FUZZY_SEARCH
        state.input_buffer = state.filter_value
    elif token == 'd':
        state.mode = Mode.SWITCH_DB
        state.input_buffer = ''
    elif token == 't':
        if selected is not None:
            state.key_to_set_ttl = selected.key
            state.mode = Mode.SET_TTL
            state.input_buffer = ''
    elif token == 'x':
        if selected is not None:
            state.key_to_delete = selected.key
            state.mode = Mode.CONFIRM_DELETE
    elif token == 'P':
        state.mode = Mode.CONFIRM_PURGE
    elif token == 'w':
        state.word_wrap = not state.word_wrap
        state.status_message = "Word wrap enabled" if state.word_wrap else "Word wrap disabled"
    elif token == '?':
        state.mode = Mode.HELP
    elif token == 'i':
        state.mode = Mode.STATS
        state.stats = StatsData(loading=True)
        return [fx.LoadStats(state.store)]
    elif token == 'e':
        if selected is None:
            return []
        if not selected.loaded:
            state.status_message = f"Value of key '{selected.key}' is still loading"
            return []
        state.mode = Mode.EDITING_KEY
        state.status_message = f"Opening editor for key '{selected.key}'..."
        return [fx.PrepareEdit(selected.key, selected.value)]
    elif token == 'n':
        state.mode = Mode.CREATE_KEY_INPUT
        state.input_buffer = ''
    elif token == 'left':
        state.focus = Focus.LIST
    elif token == 'right':
        state.focus = Focus.DETAIL
    elif token == 'up':
        return _move_cursor(state, -1)
    elif token == 'down':
        return _move_cursor(state, 1)
    elif token == 'pageup':
        return _move_cursor(state, -PAGE_STEP)
    elif token == 'pagedown':
        return _move_cursor(state, PAGE_STEP)
    return []


def _submit_search(state: SessionState, value: str) -> Effects:
    state.search_value = value
    return rescan(state)


def _cancel_search(state: SessionState) -> Effects:
    if state.search_value:
        state.search_value = ''
        return rescan(state)
    return []


def _submit_filter(state: SessionState, value: str) -> Effects:
    state.filter_value = value
    return rescan(state)


def _cancel_filter(state: SessionState) -> Effects:
    if state.filter_value:
        state.filter_value = ''
        return rescan(state)
    return []


def _submit_switch_db(state: SessionState, value: str) -> Effects:
    try:
        db = int(value)
    except ValueError:
        db = -1
    if db < 0:
        state.status_message = "Invalid database number"
        return []
    state.ready = False
    return [fx.SwitchDB(db)]


def _cancel_switch_db(state: SessionState) -> Effects:
    return []


def _submit_ttl(state: SessionState, value: str) -> Effects:
    key = state.key_to_set_ttl
    state.key_to_set_ttl = ''
    if not value:
        state.status_message = "TTL value cannot be empty. Use 0 to remove TTL."
        return []
    try:
        ttl = int(value)
    except ValueError:
        ttl = -1
    if ttl < 0:
        state.status_message = "TTL value must be 0 or positive"
        return []
    state.ready = False
    return [fx.SetTTL(state.store, key, ttl)]


def _cancel_ttl(state: SessionState) -> Effects:
    state.key_to_set_ttl = ''
    return []


def _submit_create(state: SessionState, value: str) -> Effects:
    if not value:
        state.status_message = "Key name cannot be empty"
        return []
    state.mode = Mode.EDITING_KEY
    state.status_message = f"Opening editor to create key '{value}'..."
    return [fx.PrepareCreate(value)]


def _cancel_create(state: SessionState) -> Effects:
    return []


# (submit, cancel) per text input mode; both run after the mode is reset to DEFAULT
INPUT_HANDLERS: Dict[Mode, Tuple[Callable, Callable]] = {
    Mode.SEARCH: (_submit_search, _cancel_search),
    Mode.FUZZY_SEARCH: (_submit_filter, _cancel_filter),
    Mode.SWITCH_DB: (_submit_switch_db, _cancel_switch_db),
    Mode.SET_TTL: (_submit_ttl, _cancel_ttl),
    Mode.CREATE_KEY_INPUT: (_submit_create, _cancel_create),
}


def _handle_text_input(state: SessionState, msg: msgs.KeyPressed, token: str) -> Effects:
    submit, cancel = INPUT_HANDLERS[state.mode]

    if token == 'enter':
        value = state.input_buffer.strip()
        state.mode = Mode.DEFAULT
        state.input_buffer = ''
        return submit(state, value)
    if token == 'escape':
        state.mode = Mode.DEFAULT
        state.input_buffer = ''
        return cancel(state)
    if token == 'backspace':
        state.input_buffer = state.input_buffer[:-1]
        return []

    character = msg.character
    if character and len(character) == 1 and character.isprintable():
        limit = INPUT_LIMITS.get(state.mode)
        if limit is None or len(state.input_buffer) < limit:
            state.input_buffer += character
    return []


def _handle_confirm(state: SessionState, token: str) -> Effects:
    if token in ('y', 'Y'):
        mode = state.mode
        state.mode = Mode.DEFAULT
        if mode is Mode.CONFIRM_DELETE:
            key = state.key_to_delete
            state.key_to_delete = ''
            return [fx.DeleteKey(state.store, key)]
        return [fx.Purge(state.store, state.db)]
    if token in ('n', 'N', 'escape'):
        state.mode = Mode.DEFAULT
        state.key_to_delete = ''
    return []


def _handle_help(state: SessionState, token: str) -> Effects:
    if token in ('?', 'escape', 'q'):
        state.mode = Mode.DEFAULT
    return []


def _handle_stats(state: SessionState, token: str) -> Effects:
    if token in ('i', 'escape', 'q'):
        state.mode = Mode.DEFAULT
    elif token == 'r':
        state.stats = StatsData(loading=True)
        return [fx.LoadStats(state.store)]
    return []


def _on_key(state: SessionState, msg: msgs.KeyPressed) -> Effects:
    token = key_token(msg)
    mode = state.mode

    # The editor owns the terminal until it reports back
    if mode is Mode.EDITING_KEY:
        return []

    if token == 'ctrl+c':
        return [fx.Quit()]
    if mode in (Mode.CONFIRM_DELETE, Mode.CONFIRM_PURGE):
        return _handle_confirm(state, token)
    if token == 'ctrl+f':
        return _toggle_filter_mode(state)

    if mode is Mode.DEFAULT:
        return _handle_default(state, token)
    if mode in TEXT_INPUT_MODES:
        return _handle_text_input(state, msg, token)
    if mode is Mode.HELP:
        return _handle_help(state, token)
    if mode is Mode.STATS:
        return _handle_stats(state, token)
    return []


HANDLERS: Dict[type, Callable] = {
    msgs.KeyPressed: _on_key,
    msgs.Started: _on_started,
    msgs.Tick: _on_tick,
    msgs.ScanCompleted: _on_scan_completed,
    msgs.ScanFailed: _on_scan_failed,
    msgs.BatchRequested: _on_batch_requested,
    msgs.CountCompleted: _on_count_completed,
    msgs.CountFailed: _on_count_failed,
    msgs.ValueLoaded: _on_value_loaded,
    msgs.KeyDeleted: _on_key_deleted,
    msgs.TTLSet: _on_ttl_set,
    msgs.DatabasePurged: _on_database_purged,
    msgs.DatabaseSwitched: _on_database_switched,
    msgs.StatsLoaded: _on_stats_loaded,
    msgs.EditFilePrepared: _on_edit_file_prepared,
    msgs.EditorFinished: _on_editor_finished,
    msgs.EditSaved: _on_edit_saved,
}


def update(state: SessionState, msg: msgs.Message) -> Tuple[SessionState, Effects]:
    handler = HANDLERS.get(type(msg))
    if handler is None:
        raise TypeError(f"unexpected message: {msg!r}")
    return state, handler(state, msg)
