from __future__ import annotations

from typing import Iterable

CONTEXT_CHANGE_PROMPT = """Looking at these recent screenshots, has the user switched to a different task or are they continuing the same work?

Current task theory: {task_theory}
Recent applications: {applications}
Recent window titles: {titles}

Respond with JSON only:
{{
  "sameTask": true/false,
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation"
}}

Be conservative - minor context switches within the same goal (e.g., checking email mid-task) don't count as new tasks."""

TASK_NAME_PROMPT = """Based on these observations, give this task a brief, descriptive name.

Applications used: {applications}
Window titles seen: {titles}
Duration: {minutes} minutes
User's role: {role}

Respond with just the task name (2-5 words), e.g.:
- "Process purchase orders"
- "Update inventory spreadsheet"
- "Email customer about delivery"
- "Review sales report\""""


def _distinct(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def context_change_prompt(task_theory: str | None, applications: Iterable[str], titles: Iterable[str]) -> str:
    return CONTEXT_CHANGE_PROMPT.format(
        task_theory=task_theory or "Unknown task",
        applications=", ".join(_distinct(applications)),
        titles=" | ".join([t for t in titles if t][-3:]),
    )


def task_name_prompt(applications: Iterable[str], titles: Iterable[str], minutes: int, role: str | None) -> str:
    return TASK_NAME_PROMPT.format(
        applications=", ".join(_distinct(applications)),
        titles=" | ".join(_distinct(titles)[:5]),
        minutes=minutes,
        role=role or "Unknown role",
    )
