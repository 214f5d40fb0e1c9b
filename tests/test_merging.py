from __future__ import annotations

import pytest

from support import FakeClock, at

from tasklens import events as ev
from tasklens.detector import TaskBoundaryDetector, TaskDetectionError
from tasklens.merging import merge_task_records, should_merge_tasks
from tasklens.models import AppSegment, Task, TaskStatus, Trigger


def _task(task_id: str, start: int, end: int, app: str = "Excel") -> Task:
    return Task(
        id=task_id,
        session_id="session-1",
        start_time=at(start),
        end_time=at(end),
        duration=end - start,
        status=TaskStatus.COMPLETED,
        applications=[AppSegment(app, "", at(start), at(end), end - start)],
        screenshots=[f"{task_id}-shot"],
    )


def _run_tasks(spans, app="Excel") -> TaskBoundaryDetector:
    clock = FakeClock()
    detector = TaskBoundaryDetector(clock=clock)
    detector.init("session-1")
    for start, end in spans:
        clock.set(start)
        detector.start_task(Trigger.TIME_PATTERN, app)
        clock.set(end)
        detector.end_task(Trigger.TIME_PATTERN)
    return detector


def test_short_neighbours_sharing_an_app_merge():
    assert should_merge_tasks(_task("a", 0, 90), _task("b", 150, 240))


@pytest.mark.parametrize(
    "second",
    [
        _task("b", 211, 300),
        _task("b", 150, 240, app="Word"),
        _task("b", 150, 300),
    ],
)
def test_merge_rejected(second):
    assert not should_merge_tasks(_task("a", 0, 90), second)


def test_open_task_never_merges():
    first = _task("a", 0, 90)
    first.end_time = None
    assert not should_merge_tasks(first, _task("b", 150, 240))


def test_merge_task_records_keeps_first_identity():
    first, second = _task("a", 0, 90), _task("b", 150, 240)
    first.name = "Budget review"

    merged = merge_task_records(first, second)

    assert merged.id == "a"
    assert merged.name == "Budget review"
    assert merged.start_time == at(0)
    assert merged.end_time == at(240)
    assert merged.duration == 180
    assert merged.screenshots == ["a-shot", "b-shot"]
    assert [segment.start_time for segment in merged.applications] == [at(0), at(150)]
    assert first.duration == 90


def test_detector_merge_adjacent_tasks():
    detector = _run_tasks([(0, 90), (150, 240)])
    merged_events = []
    detector.events.on(ev.TASK_MERGED, merged_events.append)
    first_id, second_id = [task.id for task in detector.session_tasks()]

    assert detector.merge_adjacent_tasks() == 1

    (task,) = detector.session_tasks()
    assert task.id == first_id
    assert task.duration == 180
    assert task.end_time == at(240)
    assert [segment.application for segment in task.applications] == ["Excel", "Excel"]
    assert merged_events[0]["task2"].id == second_id
    assert merged_events[0]["merged"].id == first_id


def test_merge_adjacent_collapses_chain():
    detector = _run_tasks([(0, 30), (60, 90), (120, 150), (1000, 1500)])
    assert detector.merge_adjacent_tasks() == 2
    assert [task.duration for task in detector.session_tasks()] == [90, 500]


def test_merge_tasks_requires_adjacency():
    detector = _run_tasks([(0, 30), (60, 90), (120, 150)])
    first, _, third = detector.session_tasks()
    with pytest.raises(TaskDetectionError):
        detector.merge_tasks(first, third)
    with pytest.raises(TaskDetectionError):
        detector.merge_tasks(third, first)
