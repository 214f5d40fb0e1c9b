from __future__ import annotations

from datetime import datetime
from typing import Optional

from .models import AppSwitchEvent, AppUsage
from .utils import seconds_between


class AppSwitchTracker:
    """Turns successive foreground-window readings into app switch events."""

    def __init__(self):
        self._current: Optional[AppUsage] = None

    @property
    def current(self) -> Optional[AppUsage]:
        return self._current

    def track(self, app: str, title: str, now: datetime) -> Optional[AppSwitchEvent]:
        if not app:
            return None

        previous = self._current
        if previous is not None and previous.app == app:
            previous.title = title or previous.title
            return None

        self._current = AppUsage(app=app, title=title or "", start_time=now)
        if previous is None:
            return None

        previous.end_time = now
        previous.duration = seconds_between(previous.start_time, now)
        return AppSwitchEvent(previous=previous, current=AppUsage(app=app, title=title or ""))

    def close(self, now: datetime) -> Optional[AppUsage]:
        usage = self._current
        if usage is not None:
            usage.end_time = now
            usage.duration = seconds_between(usage.start_time, now)
        self._current = None
        return usage
