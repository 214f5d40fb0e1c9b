from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from .utils import coerce_timestamp, seconds_between

UNNAMED_TASK = "Unnamed task"


class TaskStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


class Trigger(str, Enum):
    APP_SWITCH = "app_switch"
    TIME_GAP = "time_gap"
    CONTEXT_CHANGE = "context_change"
    TIME_PATTERN = "time_pattern"
    USER_INDICATION = "user_indication"


@dataclass
class AppSegment:
    application: str
    window_title: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = 0

    def close(self, at: datetime) -> "AppSegment":
        self.end_time = at
        self.duration = seconds_between(self.start_time, at)
        return self


@dataclass
class Task:
    id: str
    session_id: str
    start_time: datetime
    name: str = UNNAMED_TASK
    end_time: Optional[datetime] = None
    duration: int = 0
    status: TaskStatus = TaskStatus.ACTIVE
    applications: List[AppSegment] = field(default_factory=list)
    screenshots: List[str] = field(default_factory=list)
    user_explanation: Optional[str] = None

    @staticmethod
    def new_id() -> str:
        return f"task-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"

    @property
    def is_unnamed(self) -> bool:
        return self.name == UNNAMED_TASK

    def application_names(self) -> List[str]:
        """Distinct application names in first-seen order."""
        seen: List[str] = []
        for segment in self.applications:
            if segment.application not in seen:
                seen.append(segment.application)
        return seen

    def elapsed_seconds(self, now: datetime) -> int:
        return seconds_between(self.start_time, self.end_time or now)


@dataclass(frozen=True)
class TaskStarted:
    timestamp: datetime
    trigger: Trigger
    new_task: Task
    type: str = field(default="task_start", init=False)


@dataclass(frozen=True)
class TaskEnded:
    timestamp: datetime
    trigger: Trigger
    previous_task: Task
    type: str = field(default="task_end", init=False)


@dataclass(frozen=True)
class TaskSwitched:
    timestamp: datetime
    trigger: Trigger
    previous_task: Task
    new_task: Task
    type: str = field(default="task_switch", init=False)


TaskBoundaryEvent = Union[TaskStarted, TaskEnded, TaskSwitched]


@dataclass(frozen=True)
class DetectionConfig:
    min_task_duration: int = 60
    idle_threshold: int = 300
    app_switch_debounce: int = 30
    context_window: int = 5

    def merged(self, partial: Mapping[str, Any] | None = None) -> "DetectionConfig":
        if not partial:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(partial) - known)
        if unknown:
            raise ValueError(f"Unknown detection setting(s): {', '.join(unknown)}")
        return replace(self, **dict(partial))

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class Screenshot:
    id: str
    session_id: str
    timestamp: datetime
    active_application: str
    window_title: str = ""
    url: Optional[str] = None
    image_path: Optional[Path] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], fallback_time: datetime) -> tuple["Screenshot", list[str]]:
        """Build a screenshot from a loose capture payload.

        Returns the screenshot and a list of problems that were papered over.
        Accepts both snake_case keys and the capture layer's camelCase keys.
        """
        problems: list[str] = []

        app = payload.get("active_application", payload.get("activeApplication", payload.get("activeApp")))
        if not isinstance(app, str) or not app.strip():
            problems.append(f"missing application name ({app!r})")
            app = ""

        raw_ts = payload.get("timestamp")
        timestamp = coerce_timestamp(raw_ts, fallback_time)
        if timestamp is None:
            problems.append(f"unparsable timestamp ({raw_ts!r})")
            timestamp = fallback_time

        title = payload.get("window_title", payload.get("windowTitle")) or ""
        image = payload.get("image_path", payload.get("imagePath"))
        return (
            cls(
                id=str(payload.get("id") or ""),
                session_id=str(payload.get("session_id", payload.get("sessionId")) or ""),
                timestamp=timestamp,
                active_application=app,
                window_title=str(title),
                url=payload.get("url"),
                image_path=Path(image) if image else None,
            ),
            problems,
        )


@dataclass
class AppUsage:
    app: str
    title: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = 0


@dataclass
class AppSwitchEvent:
    previous: AppUsage
    current: AppUsage


@dataclass(frozen=True)
class AssembledContext:
    current_task_theory: Optional[str] = None
    recent_applications: tuple[str, ...] = ()
    recent_window_titles: tuple[str, ...] = ()
    role_summary: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AssembledContext":
        """Read either flat snake_case keys or the nested session/historical layout."""
        session = data.get("session") if isinstance(data.get("session"), Mapping) else {}
        historical = data.get("historical") if isinstance(data.get("historical"), Mapping) else {}
        interview = historical.get("interviewSummary") if isinstance(historical.get("interviewSummary"), Mapping) else {}
        return cls(
            current_task_theory=data.get("current_task_theory") or session.get("currentTaskTheory"),
            recent_applications=tuple(data.get("recent_applications") or ()),
            recent_window_titles=tuple(data.get("recent_window_titles") or ()),
            role_summary=data.get("role_summary") or interview.get("roleSummary"),
        )


@dataclass(frozen=True)
class ContextChangeAnalysis:
    same_task: bool
    confidence: float
    reasoning: str = ""
