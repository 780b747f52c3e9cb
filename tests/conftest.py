from collections import deque

import pytest
import redis

from ui import effects as fx
from ui import messages as msgs
from ui.commands import run_effect
from ui.state import SessionState
from ui.update import update
from utils.redis.client import _MEMORY_DATABASES, MemoryTopology, StoreTopology
from utils.redis.fallback import MemoryKV


class FailingPageKV(MemoryKV):
    """Serves the first SCAN page and fails on every later one."""

    def scan(self, cursor=0, match=None, count=None):
        if cursor != 0:
            raise redis.ConnectionError("connection reset while scanning")
        return super().scan(cursor=cursor, match=match, count=count)


class PartitionedTopology(StoreTopology):
    """A cluster stand-in whose partitions are independent in-memory stores."""

    mode = 'cluster'

    def __init__(self, shards):
        super().__init__(shards[0], 0)
        self.shards = shards

    def partitions(self):
        return list(self.shards)


class Driver:
    """
    Runs the update loop synchronously: worker effects execute inline and their
    messages are fed back until nothing is left to do.
    """

    def __init__(self, state, redis_config, editor=None):
        self.state = state
        self.redis_config = redis_config
        self.editor = editor
        self.effects = []

    def send(self, msg):
        pending = deque([msg])
        while pending:
            self.state, effects = update(self.state, pending.popleft())
            for effect in effects:
                self.effects.append(effect)
                if isinstance(effect, fx.WORKER_EFFECTS):
                    result = run_effect(effect, self.redis_config)
                    if result is not None:
                        pending.append(result)
                elif isinstance(effect, fx.ScheduleBatch):
                    pending.append(msgs.BatchRequested(effect.generation))
                elif isinstance(effect, fx.OpenEditor):
                    error = self.editor(effect.tmp_file) if self.editor else None
                    pending.append(msgs.EditorFinished(tmp_file=effect.tmp_file, error=error))
        return self.state

    def start(self):
        return self.send(msgs.Started())

    def press(self, *keys):
        for key in keys:
            character = key if len(key) == 1 else None
            self.send(msgs.KeyPressed(key=key, character=character))
        return self.state

    def type(self, text):
        return self.press(*text)

    def effects_of(self, kind):
        return [effect for effect in self.effects if isinstance(effect, kind)]

    @property
    def keys(self):
        return [record.key for record in self.state.items]


@pytest.fixture
def kv():
    return MemoryKV()


@pytest.fixture
def store(kv):
    return MemoryTopology(kv, 0)


@pytest.fixture
def memory_config():
    _MEMORY_DATABASES.clear()
    yield {'addrs': ['localhost:6379'], 'db': 0, 'mode': 'memory'}
    _MEMORY_DATABASES.clear()


@pytest.fixture
def make_driver(memory_config):
    def factory(store, editor=None, **state_kwargs):
        return Driver(SessionState(store=store, **state_kwargs), memory_config, editor=editor)
    return factory
