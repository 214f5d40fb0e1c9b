from __future__ import annotations

from support import FakeClock, at, shot

from tasklens.detector import TaskBoundaryDetector
from tasklens.models import AppSegment, Task, TaskStatus, Trigger
from tasklens.storage import TaskRepository


def _task(task_id="task-1", session_id="session-1"):
    return Task(
        id=task_id,
        session_id=session_id,
        start_time=at(0),
        end_time=at(120),
        duration=120,
        status=TaskStatus.COMPLETED,
        applications=[AppSegment("Excel", "Budget.xlsx", at(0), at(80), 80), AppSegment("Chrome", "", at(80), at(120), 40)],
        screenshots=["s0", "s60"],
    )


def test_save_and_load_round_trip(tmp_path):
    repository = TaskRepository(tmp_path / "data" / "tasklens.db")
    repository.save_task(_task())

    (loaded,) = repository.session_tasks("session-1")

    assert loaded == _task()


def test_save_task_replaces_existing_rows(tmp_path):
    repository = TaskRepository(tmp_path / "tasklens.db")
    task = _task()
    repository.save_task(task)

    task.name = "Budget review"
    task.applications = task.applications[:1]
    task.screenshots.append("s110")
    repository.save_task(task)

    (loaded,) = repository.session_tasks("session-1")
    assert loaded.name == "Budget review"
    assert [segment.application for segment in loaded.applications] == ["Excel"]
    assert loaded.screenshots == ["s0", "s60", "s110"]


def test_delete_and_sessions(tmp_path):
    repository = TaskRepository(tmp_path / "tasklens.db")
    repository.save_task(_task("a", "session-1"))
    repository.save_task(_task("b", "session-2"))
    repository.delete_task("a")

    assert repository.session_tasks("session-1") == []
    assert [row[0] for row in repository.sessions()] == ["session-2"]


def test_attached_repository_follows_detector(tmp_path):
    repository = TaskRepository(tmp_path / "tasklens.db")
    clock = FakeClock()
    detector = TaskBoundaryDetector(clock=clock)
    repository.attach(detector.events)
    detector.init("session-1")

    detector.process_screenshot(shot(0, "Excel"))
    detector.process_screenshot(shot(30, "Word"))
    assert [task.status for task in repository.session_tasks("session-1")] == [
        TaskStatus.COMPLETED,
        TaskStatus.ACTIVE,
    ]

    clock.set(60)
    detector.end_task(Trigger.TIME_PATTERN)
    clock.set(100)
    detector.start_task(Trigger.TIME_PATTERN, "Word")
    clock.set(130)
    detector.end_task(Trigger.TIME_PATTERN)

    detector.merge_adjacent_tasks()

    stored = repository.session_tasks("session-1")
    assert [task.duration for task in stored] == [30, 60]
    assert stored[1].end_time == at(130)
