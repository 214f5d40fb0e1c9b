from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import events as ev
from .events import TaskEvents
from .models import AppSegment, Task, TaskStatus
from .utils import ensure_directory


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class TaskRepository:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        ensure_directory(db_path.parent)
        self._initialize()

    def _initialize(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    duration INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL,
                    user_explanation TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_segments (
                    task_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    application TEXT NOT NULL,
                    window_title TEXT,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    duration INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (task_id, position),
                    FOREIGN KEY (task_id) REFERENCES tasks(id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS task_screenshots (
                    task_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    screenshot_id TEXT NOT NULL,
                    PRIMARY KEY (task_id, position),
                    FOREIGN KEY (task_id) REFERENCES tasks(id)
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_session ON tasks(session_id, start_time)")
            conn.commit()

    def save_task(self, task: Task) -> None:
        """Insert or replace a task together with its segments and screenshot ids."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO tasks (id, session_id, name, start_time, end_time, duration, status, user_explanation)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.session_id,
                    task.name,
                    task.start_time.isoformat(),
                    _iso(task.end_time),
                    task.duration,
                    task.status.value,
                    task.user_explanation,
                ),
            )
            conn.execute("DELETE FROM app_segments WHERE task_id = ?", (task.id,))
            conn.executemany(
                """
                INSERT INTO app_segments (task_id, position, application, window_title, start_time, end_time, duration)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        task.id,
                        position,
                        segment.application,
                        segment.window_title,
                        segment.start_time.isoformat(),
                        _iso(segment.end_time),
                        segment.duration,
                    )
                    for position, segment in enumerate(task.applications)
                ],
            )
            conn.execute("DELETE FROM task_screenshots WHERE task_id = ?", (task.id,))
            conn.executemany(
                "INSERT INTO task_screenshots (task_id, position, screenshot_id) VALUES (?, ?, ?)",
                [(task.id, position, shot_id) for position, shot_id in enumerate(task.screenshots)],
            )
            conn.commit()

    def delete_task(self, task_id: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM app_segments WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM task_screenshots WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()

    def session_tasks(self, session_id: str) -> List[Task]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT id, session_id, name, start_time, end_time, duration, status, user_explanation
                FROM tasks
                WHERE session_id = ?
                ORDER BY start_time ASC
                """,
                (session_id,),
            ).fetchall()
            segment_rows = conn.execute(
                """
                SELECT s.task_id, s.application, s.window_title, s.start_time, s.end_time, s.duration
                FROM app_segments s
                JOIN tasks t ON t.id = s.task_id
                WHERE t.session_id = ?
                ORDER BY s.task_id, s.position
                """,
                (session_id,),
            ).fetchall()
            screenshot_rows = conn.execute(
                """
                SELECT ts.task_id, ts.screenshot_id
                FROM task_screenshots ts
                JOIN tasks t ON t.id = ts.task_id
                WHERE t.session_id = ?
                ORDER BY ts.task_id, ts.position
                """,
                (session_id,),
            ).fetchall()

        segments: Dict[str, List[AppSegment]] = {}
        for row in segment_rows:
            segments.setdefault(row[0], []).append(
                AppSegment(
                    application=row[1],
                    window_title=row[2] or "",
                    start_time=datetime.fromisoformat(row[3]),
                    end_time=_parse(row[4]),
                    duration=int(row[5] or 0),
                )
            )
        screenshots: Dict[str, List[str]] = {}
        for task_id, screenshot_id in screenshot_rows:
            screenshots.setdefault(task_id, []).append(screenshot_id)

        tasks: List[Task] = []
        for row in rows:
            tasks.append(
                Task(
                    id=row[0],
                    session_id=row[1],
                    name=row[2],
                    start_time=datetime.fromisoformat(row[3]),
                    end_time=_parse(row[4]),
                    duration=int(row[5] or 0),
                    status=TaskStatus(row[6]),
                    user_explanation=row[7],
                    applications=segments.get(row[0], []),
                    screenshots=screenshots.get(row[0], []),
                )
            )
        return tasks

    def sessions(self) -> List[tuple]:
        """(session_id, task count, first start) for every recorded session."""
        query = """
            SELECT session_id, COUNT(*), MIN(start_time)
            FROM tasks
            GROUP BY session_id
            ORDER BY MIN(start_time)
        """
        with sqlite3.connect(self.db_path) as conn:
            return conn.execute(query).fetchall()

    def attach(self, events: TaskEvents) -> None:
        for name in (ev.TASK_STARTED, ev.TASK_ENDED, ev.TASK_INTERRUPTED, ev.TASK_RESUMED, ev.TASK_NAMED):
            events.on(name, self.save_task)
        events.on(ev.TASK_MERGED, self._on_merged)

    def _on_merged(self, payload: Dict[str, Any]) -> None:
        self.save_task(payload["merged"])
        self.delete_task(payload["task2"].id)
