from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta

from pynput import keyboard, mouse


class InputActivityMonitor:
    """Keyboard/mouse listener that tells the observer when the user stepped away.

    Idle time is measured on the monotonic clock. ``last_input()`` reports the
    wall-clock moment of the last input in the observer's timezone.
    """

    def __init__(self, idle_threshold_seconds: float, timezone, log):
        self._idle_threshold_seconds = idle_threshold_seconds
        self._timezone = timezone
        self._logger = log
        self._lock = threading.Lock()
        self._last_input_monotonic = time.monotonic()
        self._last_input_at = datetime.now(tz=timezone)
        self._input_events = 0
        self._listeners: list = []

    def start(self) -> None:
        if self._listeners:
            return
        self._listeners = [
            mouse.Listener(on_move=self._on_input, on_click=self._on_input, on_scroll=self._on_input),
            keyboard.Listener(on_press=self._on_input),
        ]
        for listener in self._listeners:
            listener.start()
        self._logger.debug("Input listeners started (idle after %ss)", self._idle_threshold_seconds)

    def stop(self) -> None:
        for listener in self._listeners:
            listener.stop()
        self._listeners = []
        self._logger.debug("Input listeners stopped after %s input events", self._input_events)

    def _on_input(self, *args, **kwargs) -> None:
        with self._lock:
            self._last_input_monotonic = time.monotonic()
            self._last_input_at = datetime.now(tz=self._timezone)
            self._input_events += 1

    def idle_for(self) -> timedelta:
        with self._lock:
            last = self._last_input_monotonic
        return timedelta(seconds=max(0.0, time.monotonic() - last))

    def is_idle(self) -> bool:
        return self.idle_for().total_seconds() >= self._idle_threshold_seconds

    def last_input(self) -> datetime:
        with self._lock:
            return self._last_input_at
