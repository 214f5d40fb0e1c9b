from __future__ import annotations

from tasklens.events import TaskEvents


def test_emit_delivers_copies_and_counts_listeners():
    events = TaskEvents()
    received = []
    events.on("demo", received.append)
    events.on("demo", lambda payload: payload.append("mutated"))

    payload = ["original"]
    assert events.emit("demo", payload) == 2

    assert received == [["original"]]
    assert payload == ["original"]


def test_failing_listener_is_isolated(caplog):
    events = TaskEvents()
    received = []

    def broken(payload):
        raise ValueError("boom")

    events.on("demo", broken)
    events.on("demo", received.append)
    events.emit("demo", {"x": 1})

    assert received == [{"x": 1}]
    assert "Listener" in caplog.text


def test_off_removes_listener():
    events = TaskEvents()
    listener = events.on("demo", lambda payload: None)
    events.off("demo", listener)
    events.off("demo", listener)
    assert events.listener_count("demo") == 0
    assert events.emit("demo") == 0
