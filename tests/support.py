from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

from tasklens.completion import CompletionOptions, CompletionResult
from tasklens.models import Screenshot

BASE = datetime(2024, 5, 1, 9, 0, 0)


def at(seconds: float) -> datetime:
    return BASE + timedelta(seconds=seconds)


def shot(seconds: float, app: str, title: str = "", image: Optional[str] = None) -> Screenshot:
    return Screenshot(
        id=f"s{seconds}",
        session_id="session-1",
        timestamp=at(seconds),
        active_application=app,
        window_title=title,
        image_path=Path(image) if image else None,
    )


class FakeClock:
    def __init__(self, start: datetime = BASE):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set(self, seconds: float) -> None:
        self.now = at(seconds)


@dataclass
class RecordedCall:
    images: List[Path]
    prompt: str
    options: CompletionOptions


class FakeCompletion:
    """Replays scripted replies (plain text or CompletionResult) in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: List[RecordedCall] = []

    def complete(self, images: Sequence[Path], prompt: str, options: CompletionOptions) -> CompletionResult:
        self.calls.append(RecordedCall(list(images), prompt, options))
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, CompletionResult):
            return reply
        return CompletionResult.success(reply)


class RaisingCompletion:
    def __init__(self, exc: Exception | None = None):
        self.exc = exc or RuntimeError("backend exploded")
        self.calls = 0

    def complete(self, images, prompt, options):
        self.calls += 1
        raise self.exc
