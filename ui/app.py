"""
Textual front end.

The app owns the widgets and the worker pool; all decisions are made by
``update``. Key presses and worker results become messages, and the effects
``update`` returns are either submitted to the pool or applied to widgets
here on the event loop.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.message import Message
from textual.widgets import OptionList, Static
from textual.widgets.option_list import Option

from utils.editor import EditorError, run_editor
from utils.workers import WorkerPool
from . import effects as fx
from . import messages as msgs
from .commands import run_effect
from .state import Focus, Mode, SessionState
from .update import update
from .views import render_detail, render_help, render_stats, render_status, row_label

logger = logging.getLogger(__name__)

TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


class _EffectResult(Message, bubble=False):
    """Thread-safe bridge: worker thread -> app message pump."""

    def __init__(self, result: Any) -> None:
        self.result = result
        super().__init__()


class KeyList(OptionList):
    can_focus = False


class DetailPane(VerticalScroll):
    can_focus = False


class RedisViewerApp(App):
    """Two-pane key browser: key list on the left, selected value on the right."""

    CSS = """
    Screen { layout: vertical; }
    #main { height: 1fr; }
    #keys { width: 40%; border-right: heavy $primary; }
    #detail-pane { width: 60%; padding: 0 1; }
    #detail-pane.focused { border-left: heavy $accent; }
    #keys.focused { border: heavy $accent; }
    #overlay { height: 1fr; display: none; }
    #status { height: 1; dock: bottom; }
    """

    BINDINGS = [
        Binding('ctrl+c', "press('ctrl+c')", show=False, priority=True),
    ]

    def __init__(self, store: Any, redis_config: Dict[str, Any], pool: WorkerPool, **kwargs):
        super().__init__(**kwargs)
        self.redis_config = redis_config
        self.pool = pool
        self.state = SessionState(store=store, db=redis_config.get('db', 0))
        self._store_tasks: Dict[int, List[str]] = {}
        self._detail_record = None
        self._detail_wrap = False

    def compose(self) -> ComposeResult:
        with Horizontal(id='main'):
            yield KeyList(id='keys')
            with DetailPane(id='detail-pane'):
                yield Static('', id='detail')
        yield Static('', id='overlay')
        yield Static('', id='status')

    def on_mount(self) -> None:
        self.state.now = datetime.now().strftime(TIME_FORMAT)
        self.set_interval(1, self._tick)
        self.feed(msgs.Started())

    def _tick(self) -> None:
        self.pool.auto_cleanup()
        self._prune_store_tasks()
        self.feed(msgs.Tick(now=datetime.now().strftime(TIME_FORMAT)))

    # ==================== Input ====================

    def on_key(self, event) -> None:
        event.stop()
        event.prevent_default()
        self.feed(msgs.KeyPressed(key=event.key, character=event.character))

    def action_press(self, key: str) -> None:
        self.feed(msgs.KeyPressed(key=key))

    def on__effect_result(self, message: _EffectResult) -> None:
        self.feed(message.result)

    # ==================== Update Loop ====================

    def feed(self, msg: msgs.Message) -> None:
        self.state, effects = update(self.state, msg)
        for effect in effects:
            self._apply_effect(effect)
        self._refresh_view()

    def _deliver(self, result: Any) -> None:
        # Called on a worker thread
        if result is not None and self.is_running:
            self.post_message(_EffectResult(result))

    def _apply_effect(self, effect: Any) -> None:
        if isinstance(effect, fx.WORKER_EFFECTS):
            task_id = self.pool.submit_effect(run_effect, self._deliver, effect, self.redis_config)
            store = getattr(effect, 'store', None)
            if store is not None:
                self._store_tasks.setdefault(id(store), []).append(task_id)
            return

        list_view = self.query_one('#keys', KeyList)
        if isinstance(effect, fx.ScheduleBatch):
            self.call_later(self.feed, msgs.BatchRequested(effect.generation))
        elif isinstance(effect, fx.ResetList):
            list_view.clear_options()
            self._detail_record = None
        elif isinstance(effect, fx.AppendRows):
            list_view.add_options([Option(row_label(record)) for record in effect.records])
        elif isinstance(effect, fx.RefreshRow):
            if effect.index < list_view.option_count:
                list_view.replace_option_prompt_at_index(effect.index, row_label(self.state.items[effect.index]))
        elif isinstance(effect, fx.ScrollDetail):
            self.query_one('#detail-pane', DetailPane).scroll_relative(y=effect.delta, animate=False)
        elif isinstance(effect, fx.OpenEditor):
            self.call_later(self._open_editor, effect.tmp_file)
        elif isinstance(effect, fx.CloseStore):
            self._close_store(effect.store)
        elif isinstance(effect, fx.Quit):
            self.exit()
        else:
            raise TypeError(f"unexpected effect: {effect!r}")

    def _open_editor(self, tmp_file: str) -> None:
        error: Optional[str] = None
        try:
            with self.suspend():
                run_editor(tmp_file)
        except (EditorError, SuspendNotSupported) as e:
            logger.error(f"Editor failed: {e}")
            error = str(e) or "terminal cannot be suspended"
        self.feed(msgs.EditorFinished(tmp_file=tmp_file, error=error))

    def _close_store(self, store: Any) -> None:
        # Close only after every task already handed this connection has finished
        pending = self._store_tasks.pop(id(store), [])
        logger.info(f"Closing previous connection after {len(pending)} in-flight tasks")
        self.pool.submit_after(pending, store.close)

    def _prune_store_tasks(self) -> None:
        pending = set(self.pool.pending_task_ids())
        for store_id in list(self._store_tasks):
            remaining = [task_id for task_id in self._store_tasks[store_id] if task_id in pending]
            if remaining:
                self._store_tasks[store_id] = remaining
            else:
                del self._store_tasks[store_id]

    # ==================== Rendering ====================

    def _refresh_view(self) -> None:
        state = self.state
        self.query_one('#status', Static).update(render_status(state, self.size.width))

        overlay = self.query_one('#overlay', Static)
        main = self.query_one('#main', Horizontal)
        if state.mode in (Mode.HELP, Mode.STATS):
            overlay.update(render_help() if state.mode is Mode.HELP else render_stats(state.stats))
            overlay.display = True
            main.display = False
            return
        overlay.display = False
        main.display = True

        list_view = self.query_one('#keys', KeyList)
        if state.items and state.cursor < list_view.option_count:
            list_view.highlighted = state.cursor
        list_view.set_class(state.focus is Focus.LIST, 'focused')
        self.query_one('#detail-pane', DetailPane).set_class(state.focus is Focus.DETAIL, 'focused')

        record = state.selected()
        if record is self._detail_record and state.word_wrap == self._detail_wrap:
            return
        pane = self.query_one('#detail-pane', DetailPane)
        if record is None or self._detail_record is None or record.key != self._detail_record.key:
            pane.scroll_home(animate=False)
        self._detail_record = record
        self._detail_wrap = state.word_wrap
        self.query_one('#detail', Static).update(render_detail(record, state.word_wrap))
