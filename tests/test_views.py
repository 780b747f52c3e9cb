from rich.console import Console

from ui.state import Mode, SessionState
from ui.views import format_ttl, render_detail, render_status, row_label, status_parts
from utils.scanning.records import NO_EXPIRY, KeyRecord, ValueType


def render_text(renderable, width=80):
    console = Console(width=width, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


def test_format_ttl():
    assert format_ttl(0) == ''
    assert format_ttl(5) == '05s'
    assert format_ttl(3600) == '01h 00m'
    assert format_ttl(90061) == '1d 01h 01m 01s'


def test_status_ready_with_filter():
    state = SessionState(store=None, ready=True, status_message='DB 0: 2 keys found', filter_value='usr')
    assert status_parts(state) == ('Ready', '[Fuzzy Filter: usr] DB 0: 2 keys found')

    state.filter_strict = True
    assert status_parts(state)[1].startswith('[Strict Filter: usr]')


def test_status_while_loading():
    assert status_parts(SessionState(store=None)) == ('Loading', 'Loading...')


def test_status_prompts():
    state = SessionState(store=None, mode=Mode.CONFIRM_DELETE, key_to_delete='x')
    assert status_parts(state) == ('Confirm', "Delete key 'x'? (y/n)")

    state = SessionState(store=None, mode=Mode.CONFIRM_PURGE, db=3)
    assert status_parts(state) == ('DANGER', 'PURGE ALL KEYS in database 3? (y/n)')

    state = SessionState(store=None, mode=Mode.SET_TTL, input_buffer='60')
    assert status_parts(state) == ('Set TTL', '> 60█')

    state = SessionState(store=None, mode=Mode.FUZZY_SEARCH, filter_strict=True)
    assert status_parts(state) == ('Strict', '> Fuzzy Filter')


def test_status_line_indicators():
    state = SessionState(store=None, ready=True, word_wrap=True, now='2024-01-01 00:00:00')
    text = render_status(state, width=100).plain
    assert 'UTF-8' in text
    assert 'WRAP' in text
    assert text.rstrip().endswith('2024-01-01 00:00:00')


def test_row_label():
    assert row_label(KeyRecord.unloaded('k')).plain == 'k\nunknown (not loaded)'
    loaded = KeyRecord.unloaded('k').resolved(ValueType.STRING, NO_EXPIRY, 'héllo')
    assert row_label(loaded).plain == 'k\nstring: 6 bytes'
    failed = KeyRecord.unloaded('k').resolved(ValueType.UNKNOWN, NO_EXPIRY, 'boom', fetch_error=True)
    assert row_label(failed).plain == 'k\nget error: boom'


def test_detail_shows_ttl_and_value():
    record = KeyRecord.unloaded('session').resolved(ValueType.HASH, 120, '{\n  "a": "1"\n}')
    text = render_text(render_detail(record))
    assert 'KeyType: hash' in text
    assert 'TTL: 02m (120 seconds)' in text
    assert '"a": "1"' in text


def test_detail_of_unloaded_record():
    text = render_text(render_detail(KeyRecord.unloaded('k')))
    assert 'Loading value...' in text
