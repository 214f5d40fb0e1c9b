from __future__ import annotations

import importlib
import logging
import sys
import types
from datetime import timezone

import pytest


class StubListener:
    def __init__(self, **callbacks):
        self.callbacks = callbacks
        self.running = False

    def start(self):
        self.running = True

    def stop(self):
        self.running = False


@pytest.fixture
def activity(monkeypatch):
    # Headless machines cannot load the real input backends.
    stub = types.ModuleType("pynput")
    stub.keyboard = types.SimpleNamespace(Listener=StubListener)
    stub.mouse = types.SimpleNamespace(Listener=StubListener)
    monkeypatch.setitem(sys.modules, "pynput", stub)
    monkeypatch.delitem(sys.modules, "tasklens.activity", raising=False)
    module = importlib.import_module("tasklens.activity")
    yield module
    sys.modules.pop("tasklens.activity", None)


def test_idle_time_follows_input(activity, monkeypatch):
    now = [100.0]
    monkeypatch.setattr(activity.time, "monotonic", lambda: now[0])
    monitor = activity.InputActivityMonitor(300, timezone.utc, logging.getLogger("tests.activity"))

    assert monitor.idle_for().total_seconds() == 0
    now[0] = 400.0
    assert monitor.is_idle()

    before = monitor.last_input()
    monitor._on_input("key")
    now[0] = 450.0
    assert monitor.last_input() >= before
    assert monitor.last_input().tzinfo is timezone.utc
    assert not monitor.is_idle()


def test_start_and_stop_listeners(activity):
    monitor = activity.InputActivityMonitor(300, timezone.utc, logging.getLogger("tests.activity"))
    monitor.start()
    listeners = list(monitor._listeners)
    assert [listener.running for listener in listeners] == [True, True]
    assert set(listeners[0].callbacks) == {"on_move", "on_click", "on_scroll"}

    monitor.start()
    assert monitor._listeners == listeners

    monitor.stop()
    assert [listener.running for listener in listeners] == [False, False]
    assert monitor._listeners == []
