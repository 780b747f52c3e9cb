"""
Rendering helpers for the terminal UI.

Everything here turns session state into ``rich`` renderables; the app only
decides where they go.
"""

import json
from typing import Any, List, Optional, Tuple

from rich.align import Align
from rich.console import Group, RenderableType
from rich.json import JSON
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from utils.redis.stats import format_number, format_uptime
from utils.scanning.records import KeyRecord
from .state import Mode, SessionState, StatsData

INPUT_PROMPT = '> '

INPUT_PLACEHOLDERS = {
    Mode.SEARCH: 'Search Key',
    Mode.FUZZY_SEARCH: 'Fuzzy Filter',
    Mode.SWITCH_DB: 'Database number',
    Mode.SET_TTL: 'TTL in seconds (0 removes it)',
    Mode.CREATE_KEY_INPUT: 'New key name',
}

MODE_LABELS = {
    Mode.SEARCH: 'Search',
    Mode.SWITCH_DB: 'Switch DB',
    Mode.SET_TTL: 'Set TTL',
    Mode.CREATE_KEY_INPUT: 'Create',
    Mode.EDITING_KEY: 'Editor',
    Mode.CONFIRM_DELETE: 'Confirm',
    Mode.CONFIRM_PURGE: 'DANGER',
    Mode.HELP: 'Help',
    Mode.STATS: 'Stats',
}

HELP_LINES = [
    ('↑/↓', 'Navigate keys'),
    ('←/→', 'Navigate panes'),
    ('r', 'Reload keys'),
    ('s', 'Search keys (glob pattern)'),
    ('/', 'Fuzzy filter keys'),
    ('Ctrl+F', 'Toggle fuzzy/strict mode'),
    ('d', 'Switch database'),
    ('t', 'Set TTL for selected key'),
    ('w', 'Toggle word wrap'),
    ('i', 'View server statistics'),
    ('e', 'Edit selected key in $EDITOR'),
    ('n', 'Create new key in $EDITOR'),
    ('x', 'Delete selected key'),
    ('P', 'Purge database (delete all keys)'),
    ('?', 'Toggle this help'),
    ('Ctrl+C', 'Quit application'),
]


def format_ttl(seconds: int) -> str:
    """Format a remaining TTL as e.g. '1d 02h 03m 04s'; empty when there is no expiry."""
    if seconds <= 0:
        return ''

    days, remaining = divmod(seconds, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)

    parts: List[str] = []
    if days:
        parts.append(f"{days}d")
    if hours or parts:
        parts.append(f"{hours:02d}h")
    if minutes or parts:
        parts.append(f"{minutes:02d}m")
    if secs or not parts:
        parts.append(f"{secs:02d}s")
    return ' '.join(parts)


def truncate(text: str, width: int) -> str:
    if width <= 3 or len(text) <= width:
        return text
    return text[:width - 3] + '...'


# ==================== Status Line ====================

def status_parts(state: SessionState) -> Tuple[str, str]:
    """Return the (label, description) pair shown on the status line."""
    mode = state.mode

    if mode is Mode.FUZZY_SEARCH:
        label = 'Strict' if state.filter_strict else 'Fuzzy'
        return label, _input_view(state)
    if mode in INPUT_PLACEHOLDERS:
        return MODE_LABELS[mode], _input_view(state)
    if mode is Mode.CONFIRM_DELETE:
        return MODE_LABELS[mode], f"Delete key '{state.key_to_delete}'? (y/n)"
    if mode is Mode.CONFIRM_PURGE:
        return MODE_LABELS[mode], f"PURGE ALL KEYS in database {state.db}? (y/n)"
    if mode is Mode.EDITING_KEY:
        return MODE_LABELS[mode], state.status_message

    label, description = 'Ready', state.status_message
    if not state.ready:
        label, description = 'Loading', 'Loading...'
    if state.filter_value:
        tag = 'Strict Filter' if state.filter_strict else 'Fuzzy Filter'
        prefix = f"[{tag}: {state.filter_value}]"
        description = f"{prefix} {description}" if description else prefix
    return label, description


def _input_view(state: SessionState) -> str:
    if state.input_buffer:
        return f"{INPUT_PROMPT}{state.input_buffer}█"
    return f"{INPUT_PROMPT}{INPUT_PLACEHOLDERS[state.mode]}"


def render_status(state: SessionState, width: int = 0) -> Text:
    label, description = status_parts(state)
    label_style = 'bold white on red' if state.mode is Mode.CONFIRM_PURGE else 'bold black on magenta'

    right = Text()
    right.append(' UTF-8 ', style='black on cyan')
    if state.word_wrap:
        right.append(' WRAP ', style='black on yellow')
    if state.now:
        right.append(f" {state.now} ", style='white on blue')

    left = Text(f" {label} ", style=label_style)
    available = width - left.cell_len - right.cell_len - 2 if width else 0
    if available > 0:
        description = truncate(description, available)

    line = Text()
    line.append_text(left)
    line.append(f" {description} ")
    if available > 0:
        line.pad_right(max(0, width - line.cell_len - right.cell_len))
    line.append_text(right)
    return line


# ==================== Key List ====================

def row_label(record: KeyRecord) -> Text:
    """Two-line option prompt: the key, then its type and size."""
    text = Text(record.key, style='bold', no_wrap=True, overflow='ellipsis')
    text.append('\n')
    if record.fetch_error:
        text.append(f"get error: {record.value}", style='red')
    elif not record.loaded:
        text.append(f"{record.value_type.value} (not loaded)", style='dim')
    else:
        size = len(record.value.encode('utf-8'))
        text.append(f"{record.value_type.value}: {size} bytes", style='dim')
    return text


# ==================== Detail Pane ====================

def _pretty_value(record: KeyRecord, word_wrap: bool) -> RenderableType:
    if record.fetch_error:
        return Text(record.value, style='red')
    try:
        parsed = json.loads(record.value)
    except ValueError:
        parsed = None
    if isinstance(parsed, (dict, list)):
        renderable = JSON.from_data(parsed, indent=2)
        renderable.text.no_wrap = not word_wrap
        return renderable
    return Text(record.value, no_wrap=not word_wrap, overflow='fold' if word_wrap else 'ignore')


def render_detail(record: Optional[KeyRecord], word_wrap: bool = False) -> RenderableType:
    if record is None:
        return Text('')

    lines: List[RenderableType] = [Text(f"KeyType: {record.value_type.value}")]
    if record.ttl_seconds > 0:
        lines.append(Text(f"TTL: {format_ttl(record.ttl_seconds)} ({record.ttl_seconds} seconds)"))
    lines.append(Rule(style='dim'))
    lines.append(Text(record.key, style='bold'))
    lines.append(Rule(style='dim'))
    if record.loaded:
        lines.append(_pretty_value(record, word_wrap))
    else:
        lines.append(Text('Loading value...', style='italic dim'))
    return Group(*lines)


# ==================== Overlays ====================

def render_help() -> RenderableType:
    table = Table.grid(padding=(0, 3))
    table.add_column(style='bold cyan')
    table.add_column()
    for keys, description in HELP_LINES:
        table.add_row(keys, description)

    body = Group(
        Text('Keybindings', style='bold magenta', justify='center'),
        Text(''),
        table,
        Text(''),
        Text('Press ? or ESC to close', style='dim', justify='center'),
    )
    return Align.center(Panel(body, expand=False, border_style='magenta'), vertical='middle')


def _info_table(rows: List[Tuple[str, str]]) -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style='bold', min_width=22)
    table.add_column(style='cyan')
    for label, value in rows:
        table.add_row(label, value)
    return table


def render_stats(stats: Optional[StatsData]) -> RenderableType:
    if stats is None or stats.loading:
        return Align.center(Text('Loading statistics...', style='italic'), vertical='middle')
    if stats.error:
        return Align.center(Text(f"Error loading stats: {stats.error}", style='bold red'), vertical='middle')

    sections: List[Any] = [Text('Redis Server Statistics', style='bold magenta', justify='center')]

    server = stats.server_stats
    if server is not None:
        sections.append(Text('\nServer Information', style='bold underline'))
        sections.append(_info_table([
            ('Redis Version:', server.version),
            ('Uptime:', format_uptime(server.uptime_seconds)),
            ('Connected Clients:', str(server.connected_clients)),
            ('Ops/sec:', str(server.ops_per_sec)),
            ('Total Commands:', format_number(server.total_commands_processed)),
        ]))
        sections.append(Text('\nMemory Statistics', style='bold underline'))
        sections.append(_info_table([
            ('Used Memory:', server.used_memory or 'N/A'),
            ('Peak Memory:', server.used_memory_peak or 'N/A'),
            ('Fragmentation Ratio:', f"{server.mem_fragmentation_ratio:.2f}"),
            ('Evicted Keys:', format_number(server.evicted_keys)),
            ('Expired Keys:', format_number(server.expired_keys)),
        ]))

    if stats.db_stats:
        sections.append(Text('\nDatabase Statistics', style='bold underline'))
        table = Table(box=None, header_style='bold')
        table.add_column('Database', min_width=10)
        table.add_column('Keys', min_width=15, justify='right')
        table.add_column('Avg TTL', min_width=20)
        for db in stats.db_stats:
            table.add_row(f"DB {db.db}", format_number(db.keys), db.avg_ttl or 'No TTL')
        sections.append(table)

    sections.append(Text(''))
    sections.append(Text("Press 'i', 'q', or ESC to close | Press 'r' to reload", style='dim'))
    return Align.center(Panel(Group(*sections), expand=False, border_style='magenta'), vertical='middle')
