from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime
from typing import Any, Iterable, List, Optional

from .models import Task


def format_duration(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{_round_half_up(seconds / 60)}m"
    hours = seconds // 3600
    minutes = _round_half_up((seconds % 3600) / 60)
    return f"{hours}h {minutes}m"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def task_to_documentation(task: Task, min_task_duration: int = 0) -> dict[str, Any]:
    per_app: defaultdict[str, int] = defaultdict(int)
    for segment in task.applications:
        per_app[segment.application] += segment.duration
    return {
        "id": task.id,
        "name": task.name,
        "start_time": task.start_time.isoformat(),
        "end_time": task.end_time.isoformat() if task.end_time else None,
        "duration": task.duration,
        "duration_formatted": format_duration(task.duration),
        "status": task.status.value,
        "applications": [{"app": app, "duration": seconds} for app, seconds in per_app.items()],
        "screenshot_count": len(task.screenshots),
        "user_explanation": task.user_explanation,
        "short": task.duration < min_task_duration,
    }


def to_dict(session_id: str, tasks: Iterable[Task], min_task_duration: int = 0) -> dict[str, Any]:
    rows = [task_to_documentation(task, min_task_duration) for task in tasks]
    return {
        "session_id": session_id,
        "task_count": len(rows),
        "total_seconds": sum(row["duration"] for row in rows),
        "tasks": rows,
    }


def render_markdown(session_id: str, tasks: List[Task], generated_at: Optional[datetime] = None) -> str:
    lines = [f"# Task timeline: {session_id}", ""]
    if generated_at is not None:
        lines.append(f"- Generated: {generated_at.strftime('%Y-%m-%d %H:%M')}")
    total = sum(task.duration for task in tasks)
    lines.append(f"- Tasks: {len(tasks)}")
    lines.append(f"- Tracked time: **{format_duration(total)}**")

    lines.append("\n## Timeline\n")
    lines.append("| Start | Task | Duration | Status | Applications |")
    lines.append("| --- | --- | ---: | --- | --- |")
    for task in tasks:
        apps = ", ".join(task.application_names()) or "-"
        lines.append(
            f"| {task.start_time.strftime('%H:%M')} | {task.name} | {format_duration(task.duration)} "
            f"| {task.status.value} | {apps} |"
        )
    if not tasks:
        lines.append("| - | (no tasks) | 0s | - | - |")

    explained = [task for task in tasks if task.user_explanation]
    if explained:
        lines.append("\n## User notes\n")
        for task in explained:
            lines.append(f"- {task.name}: {task.user_explanation}")

    return "\n".join(lines)
