"""LLM-backed task naming with a deterministic fallback."""

from __future__ import annotations

import logging
from typing import Optional

from .completion import CompletionOptions, CompletionService, safe_complete
from .models import UNNAMED_TASK, AssembledContext, Task
from .prompts import task_name_prompt

NAMING_OPTIONS = CompletionOptions(temperature=0.5, max_output_tokens=50)

logger = logging.getLogger("tasklens.naming")


def fallback_task_name(task: Task) -> str:
    apps = [app for app in task.application_names() if app]
    if apps:
        return f"Work in {apps[0]}"
    return UNNAMED_TASK


def clean_task_name(text: str) -> str:
    """First non-empty line of a model reply, without list markers or quotes."""
    for line in (text or "").splitlines():
        candidate = line.strip().lstrip("-*").strip().strip("\"'").strip()
        if candidate:
            return candidate
    return ""


def infer_task_name(
    task: Task,
    context: Optional[AssembledContext],
    completion: Optional[CompletionService],
    timeout_seconds: Optional[float] = None,
    log: logging.Logger | None = None,
) -> str:
    """Ask the completion service for a 2-5 word name for ``task``.

    Only reads ``task``; concurrent calls for different tasks are independent.
    Any failure (no service, timeout, error, empty reply) yields the fallback
    ``"Work in <first application>"``.
    """
    log = log or logger
    if completion is None:
        return fallback_task_name(task)

    prompt = task_name_prompt(
        applications=task.application_names(),
        titles=[segment.window_title for segment in task.applications],
        minutes=round(task.duration / 60),
        role=context.role_summary if context else None,
    )
    options = NAMING_OPTIONS
    if timeout_seconds is not None:
        options = CompletionOptions(
            temperature=NAMING_OPTIONS.temperature,
            max_output_tokens=NAMING_OPTIONS.max_output_tokens,
            timeout_seconds=timeout_seconds,
        )

    result = safe_complete(completion, [], prompt, options, log)
    if not result.ok:
        log.warning("Task naming for %s fell back (%s: %s)", task.id, result.status.value, result.error)
        return fallback_task_name(task)

    name = clean_task_name(result.text)
    if not name:
        log.warning("Task naming for %s returned an empty name", task.id)
        return fallback_task_name(task)
    return name
