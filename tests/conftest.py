import json
import threading

import pytest

from pushchannels.builder import RequestBuilder
from pushchannels.client import PushClient
from pushchannels.config import ClientConfig
from pushchannels.transport.base import RawResult, Transport

TOKEN = bytes.fromhex("a1b2c3d4e5f60718")


def ok_body(payload):
    return RawResult.success(200, json.dumps(payload).encode("utf-8"))


ACK = ok_body([1, "Modified Channels"])


class FakeTransport(Transport):
    """Scripted transport: replays results in order (last one repeats) and records requests.

    A script entry may be a RawResult, an exception instance (raised), or a
    callable taking (request, cancel_token).
    """

    def __init__(self, *script, gate=None):
        self.script = list(script) or [ACK]
        self.gate = gate
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def execute(self, request, cancel_token):
        with self._lock:
            index = len(self.calls)
            self.calls.append(request)
        if self.gate is not None:
            self.gate.wait(5)
        entry = self.script[min(index, len(self.script) - 1)]
        if isinstance(entry, Exception):
            raise entry
        if callable(entry):
            return entry(request, cancel_token)
        return entry

    def close(self):
        self.closed = True


class Recorder:
    """Completion that remembers every delivery and lets tests wait for them."""

    def __init__(self):
        self.deliveries = []
        self._cond = threading.Condition()

    def __call__(self, *args):
        with self._cond:
            self.deliveries.append(args)
            self._cond.notify_all()

    def wait_for(self, count, timeout=5):
        with self._cond:
            return self._cond.wait_for(lambda: len(self.deliveries) >= count, timeout)

    @property
    def statuses(self):
        return [args[-1] for args in self.deliveries]


@pytest.fixture
def config():
    return ClientConfig(subscribe_key="sub-c-test", uuid="tester", max_workers=4)


@pytest.fixture
def builder():
    return RequestBuilder(subscribe_key="sub-c-test", uuid="tester")


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_client(config):
    clients = []

    def _make(transport, **kwargs):
        client = PushClient(config, transport=transport, **kwargs)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
