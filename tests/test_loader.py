import json

import redis

from ui import effects as fx
from ui.commands import run_effect
from utils.redis.client import MemoryTopology
from utils.redis.fallback import MemoryKV
from utils.scanning.loader import apply_loaded, load_value, render_value
from utils.scanning.records import NO_EXPIRY, KeyRecord, ValueType


def test_string_value_is_verbatim(store, kv):
    kv.set('greeting', '{"not": "reformatted"}')

    record = load_value(store, 'greeting')

    assert record.loaded
    assert record.value_type is ValueType.STRING
    assert record.value == '{"not": "reformatted"}'
    assert record.ttl_seconds == NO_EXPIRY


def test_composite_values_are_indented_json(store, kv):
    kv.rpush('queue', 'a', 'b')
    kv.sadd('tags', 'z', 'x')
    kv.zadd('board', {'low': 1, 'high': 2})
    kv.hset('user', mapping={'name': 'ada'})

    assert json.loads(load_value(store, 'queue').value) == ['a', 'b']
    assert json.loads(load_value(store, 'tags').value) == ['x', 'z']
    assert json.loads(load_value(store, 'board').value) == ['low', 'high']
    hash_record = load_value(store, 'user')
    assert hash_record.value_type is ValueType.HASH
    assert hash_record.value == '{\n  "name": "ada"\n}'


def test_ttl_is_resolved(store, kv):
    kv.set('session', 'x', ex=300)
    record = load_value(store, 'session')
    assert 0 < record.ttl_seconds <= 300


def test_known_type_and_ttl_skip_lookups(store, kv):
    kv.set('k', 'v', ex=300)
    record = load_value(store, 'k', ValueType.STRING, known_ttl=42)
    assert record.ttl_seconds == 42
    assert record.value == 'v'


def test_missing_key_is_a_record_level_error(store):
    record = load_value(store, 'gone')
    assert record.loaded
    assert record.fetch_error
    assert record.value == 'unsupported type: none'


class BrokenTTL(MemoryKV):
    def ttl(self, key):
        raise redis.ConnectionError('ttl unavailable')


class BrokenValue(MemoryKV):
    def get(self, key):
        raise redis.ResponseError('value unavailable')


def test_ttl_failure_degrades_to_no_expiry():
    kv = BrokenTTL()
    kv.set('k', 'v')
    record = load_value(MemoryTopology(kv, 0), 'k')
    assert record.ttl_seconds == NO_EXPIRY
    assert not record.fetch_error
    assert record.value == 'v'


def test_value_failure_marks_record():
    kv = BrokenValue()
    kv.set('k', 'v')
    record = load_value(MemoryTopology(kv, 0), 'k')
    assert record.fetch_error
    assert record.value == 'value unavailable'


def test_render_value():
    assert render_value(ValueType.STRING, None) == ''
    assert render_value(ValueType.LIST, ['ü']) == '[\n  "ü"\n]'


def test_apply_loaded_matches_by_key():
    items = [KeyRecord.unloaded('a'), KeyRecord.unloaded('b')]
    loaded = KeyRecord.unloaded('b').resolved(ValueType.STRING, NO_EXPIRY, 'v')

    assert apply_loaded(items, loaded) == 1
    assert items[1] is loaded
    assert not items[0].loaded


def test_apply_loaded_drops_superseded_keys():
    items = [KeyRecord.unloaded('a')]
    before = list(items)
    stale = KeyRecord.unloaded('zzz').resolved(ValueType.STRING, NO_EXPIRY, 'v')

    assert apply_loaded(items, stale) is None
    assert items == before


class UndecodableValue(MemoryKV):
    """Mimics a client reading a payload that is not valid UTF-8."""

    def get(self, key):
        raise UnicodeDecodeError('utf-8', b'\xff\xfe', 0, 1, 'invalid start byte')


def test_undecodable_value_marks_record():
    kv = UndecodableValue()
    kv.set('bin', 'placeholder')

    record = load_value(MemoryTopology(kv, 0), 'bin')

    assert record.loaded
    assert record.fetch_error
    assert record.value_type is ValueType.STRING
    assert "can't decode byte 0xff" in record.value


def test_undecodable_value_is_reported_by_the_load_command():
    kv = UndecodableValue()
    kv.set('bin', 'placeholder')
    effect = fx.LoadValue(MemoryTopology(kv, 0), 4, 'bin', ValueType.UNKNOWN, -1)

    message = run_effect(effect, {'mode': 'memory'})

    assert message.generation == 4
    assert message.record.fetch_error
