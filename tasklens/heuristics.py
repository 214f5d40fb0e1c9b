"""Application-switch heuristics used by the task boundary detector."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

WILDCARD = "*"

# (from, to) switches that are excursions inside the current task rather than a
# new task. Either side may be WILDCARD. Patterns match as case-insensitive
# substrings of the application name.
SAME_TASK_PAIRS: Tuple[Tuple[str, str], ...] = (
    # Browser lookups
    (WILDCARD, "Chrome"),
    (WILDCARD, "Safari"),
    (WILDCARD, "Firefox"),
    (WILDCARD, "Arc"),
    (WILDCARD, "Microsoft Edge"),
    # Quick reference
    (WILDCARD, "Calculator"),
    (WILDCARD, "Notes"),
    (WILDCARD, "Preview"),
    (WILDCARD, "Finder"),
    (WILDCARD, "File Explorer"),
    # Brief chat checks
    (WILDCARD, "Slack"),
    (WILDCARD, "Microsoft Teams"),
    (WILDCARD, "Discord"),
)

# Communication and meeting apps that usually start a new unit of work.
NEW_TASK_APPS: Tuple[str, ...] = (
    "Mail",
    "Outlook",
    "Calendar",
    "Zoom",
    "Google Meet",
    "Microsoft Teams",
    "Webex",
    "FaceTime",
)


def _contains(app: str, pattern: str) -> bool:
    return pattern.lower() in app.lower()


def is_new_task_app(app_name: Optional[str], new_task_apps: Iterable[str] = NEW_TASK_APPS) -> bool:
    if not app_name:
        return False
    return any(_contains(app_name, candidate) for candidate in new_task_apps)


def is_same_task_switch(
    from_app: Optional[str],
    to_app: Optional[str],
    pairs: Sequence[Tuple[str, str]] = SAME_TASK_PAIRS,
) -> bool:
    if not from_app or not to_app:
        return False

    for source, target in pairs:
        if source == WILDCARD and target == WILDCARD:
            return True
        if source == WILDCARD and _contains(to_app, target):
            return True
        if target == WILDCARD and _contains(from_app, source):
            return True
        if _contains(from_app, source) and _contains(to_app, target):
            return True
    return False
