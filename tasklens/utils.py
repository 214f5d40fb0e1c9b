from __future__ import annotations

import ctypes
import math
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Tuple


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def timestamp_slug(ts: datetime) -> str:
    return ts.strftime("%Y%m%d-%H%M%S")


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, floored."""
    return math.floor((end - start).total_seconds())


def coerce_timestamp(value: Any, reference: datetime) -> Optional[datetime]:
    """Turn a capture timestamp into a datetime comparable with ``reference``.

    Accepts datetimes, ISO-8601 strings (a trailing ``Z`` included) and epoch
    seconds or milliseconds. Returns None when the value cannot be read.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        try:
            parsed = datetime.fromtimestamp(seconds, tz=reference.tzinfo)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        return None

    if reference.tzinfo is not None and parsed.tzinfo is None:
        return parsed.replace(tzinfo=reference.tzinfo)
    if reference.tzinfo is None and parsed.tzinfo is not None:
        return parsed.astimezone().replace(tzinfo=None)
    return parsed


def get_active_window() -> Tuple[str, str]:
    """Return (window title, executable name) of the foreground window."""
    if os.name != "nt":
        return "Unknown", "Unknown"

    from ctypes import wintypes

    user32 = ctypes.windll.user32

    hwnd = user32.GetForegroundWindow()
    if not hwnd:
        return "Unknown", "Unknown"

    length = user32.GetWindowTextLengthW(hwnd)
    buffer = ctypes.create_unicode_buffer(length + 1)
    user32.GetWindowTextW(hwnd, buffer, length + 1)
    title = buffer.value

    pid = wintypes.DWORD()
    user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
    exe_name = "Unknown"

    if pid.value:
        import psutil

        try:
            exe_name = psutil.Process(pid.value).name()
        except psutil.Error:
            exe_name = f"PID-{pid.value}"
    return title or "Unknown", exe_name


def is_session_locked() -> bool:
    if os.name != "nt":
        return False

    if os.getenv("TASKLENS_DISABLE_LOCK_CHECK", "").strip().lower() in {"1", "true", "yes", "on"}:
        return False

    # The input desktop cannot be opened while the workstation is locked.
    user32 = ctypes.windll.user32
    DESKTOP_SWITCHDESKTOP = 0x0100
    hdesktop = user32.OpenInputDesktop(0, False, DESKTOP_SWITCHDESKTOP)
    if hdesktop == 0:
        return True
    user32.CloseDesktop(hdesktop)
    return False
