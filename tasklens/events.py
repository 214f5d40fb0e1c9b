from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

Listener = Callable[[Any], None]

TASK_STARTED = "task:started"
TASK_ENDED = "task:ended"
TASK_SWITCHED = "task:switched"
TASK_INTERRUPTED = "task:interrupted"
TASK_RESUMED = "task:resumed"
TASK_MERGED = "task:merged"
TASK_NAMED = "task:named"
TASK_BOUNDARY = "task:boundary"
DETECTOR_WARNING = "detector:warning"
DETECTION_INITIALIZED = "taskdetection:initialized"
CONFIG_UPDATED = "taskdetection:config-updated"
SESSION_ENDED = "taskdetection:session-ended"


class TaskEvents:
    """Named-channel publisher for task lifecycle notifications.

    Every listener receives its own deep copy of the payload so subscribers can
    never mutate detector state. A listener that raises is logged and skipped.
    """

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logging.getLogger("tasklens.events")
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, name: str, listener: Listener) -> Listener:
        self._listeners[name].append(listener)
        return listener

    def off(self, name: str, listener: Listener) -> None:
        try:
            self._listeners[name].remove(listener)
        except ValueError:
            pass

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, ()))

    def emit(self, name: str, payload: Any = None) -> int:
        listeners = list(self._listeners.get(name, ()))
        for listener in listeners:
            try:
                listener(copy.deepcopy(payload))
            except Exception:
                self._logger.exception("Listener %r failed for %s", listener, name)
        return len(listeners)
