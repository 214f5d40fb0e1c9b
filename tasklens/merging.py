"""Collapse over-segmented neighbouring tasks."""

from __future__ import annotations

import copy

from .models import Task
from .utils import seconds_between

MERGE_MAX_GAP_SECONDS = 120
MERGE_MAX_DURATION_SECONDS = 120


def should_merge_tasks(task_a: Task, task_b: Task) -> bool:
    """True when ``task_b`` (which follows ``task_a``) looks like a fragment of it.

    Requires a gap of at most two minutes, at least one shared application and
    both tasks shorter than two minutes.
    """
    if task_a.end_time is None or task_b.start_time is None:
        return False

    if seconds_between(task_a.end_time, task_b.start_time) > MERGE_MAX_GAP_SECONDS:
        return False

    if not set(task_a.application_names()) & set(task_b.application_names()):
        return False

    return task_a.duration < MERGE_MAX_DURATION_SECONDS and task_b.duration < MERGE_MAX_DURATION_SECONDS


def merge_task_records(task_a: Task, task_b: Task) -> Task:
    """New task with ``task_a``'s identity spanning both inputs.

    Duration is the sum of both durations, not the wall-clock span.
    """
    merged = copy.deepcopy(task_a)
    merged.end_time = task_b.end_time
    merged.status = task_b.status
    merged.duration = task_a.duration + task_b.duration
    merged.applications = copy.deepcopy(task_a.applications) + copy.deepcopy(task_b.applications)
    merged.screenshots = list(task_a.screenshots) + list(task_b.screenshots)
    return merged
