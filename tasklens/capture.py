from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path

import pyautogui

from .models import Screenshot
from .utils import ensure_directory, get_active_window, is_session_locked, timestamp_slug

pyautogui.FAILSAFE = False


class CaptureSkipped(RuntimeError):
    pass


class CaptureManager:
    def __init__(self, capture_root: Path, timezone, log):
        self._capture_root = ensure_directory(capture_root)
        self._timezone = timezone
        self._logger = log

    def capture(self, session_id: str) -> Screenshot:
        if is_session_locked():
            raise CaptureSkipped("Session is locked")

        timestamp = datetime.now(tz=self._timezone)
        folder = ensure_directory(self._capture_root / session_id / timestamp.strftime("%Y-%m-%d"))
        slug = timestamp_slug(timestamp)
        path = folder / f"capture-{slug}.png"

        image = pyautogui.screenshot()
        image.save(path)
        window_title, app = get_active_window()
        if not app:
            path.unlink(missing_ok=True)
            raise CaptureSkipped("No foreground application")

        screenshot = Screenshot(
            id=f"{int(timestamp.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}",
            session_id=session_id,
            timestamp=timestamp,
            active_application=app,
            window_title=window_title,
            image_path=path,
        )
        self._logger.info("Captured screenshot %s (%s: %s)", path.name, app, window_title)
        return screenshot
