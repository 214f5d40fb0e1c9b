from __future__ import annotations

from collections import deque
from typing import Any, Deque, Optional

from . import events as ev
from .events import TaskEvents
from .models import AssembledContext, Screenshot, Task


class ContextTracker:
    """Rolling view of what the user has been doing, for the detector's prompts."""

    def __init__(self, role_summary: Optional[str] = None, max_recent: int = 10):
        self._role_summary = role_summary
        self._applications: Deque[str] = deque(maxlen=max_recent)
        self._titles: Deque[str] = deque(maxlen=max_recent)
        self._task_theory: Optional[str] = None

    def observe(self, screenshot: Screenshot) -> None:
        if screenshot.active_application:
            self._applications.append(screenshot.active_application)
        if screenshot.window_title:
            self._titles.append(screenshot.window_title)

    def set_task_theory(self, theory: Optional[str]) -> None:
        self._task_theory = theory or None

    @property
    def current_task_theory(self) -> Optional[str]:
        return self._task_theory

    def assemble(self) -> AssembledContext:
        return AssembledContext(
            current_task_theory=self._task_theory,
            recent_applications=tuple(self._applications),
            recent_window_titles=tuple(self._titles),
            role_summary=self._role_summary,
        )

    def attach(self, events: TaskEvents) -> None:
        events.on(ev.TASK_STARTED, self._on_task_started)
        events.on(ev.TASK_RESUMED, self._on_task_started)
        events.on(ev.TASK_NAMED, self._on_task_named)
        events.on(ev.SESSION_ENDED, self._on_session_ended)

    def _on_task_started(self, task: Task) -> None:
        # A fresh unnamed task has no theory yet.
        self._task_theory = None if task.is_unnamed else task.name

    def _on_task_named(self, task: Task) -> None:
        self._task_theory = task.name

    def _on_session_ended(self, payload: Any) -> None:
        self._applications.clear()
        self._titles.clear()
        self._task_theory = None
