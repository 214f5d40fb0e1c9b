from __future__ import annotations

from support import FakeClock, shot

from tasklens.context import ContextTracker
from tasklens.detector import TaskBoundaryDetector


def test_tracker_keeps_recent_observations():
    tracker = ContextTracker("Accountant", max_recent=2)
    for seconds, app, title in [(0, "Excel", "A.xlsx"), (10, "Word", ""), (20, "Outlook", "Inbox")]:
        tracker.observe(shot(seconds, app, title))

    context = tracker.assemble()
    assert context.recent_applications == ("Word", "Outlook")
    assert context.recent_window_titles == ("A.xlsx", "Inbox")
    assert context.role_summary == "Accountant"
    assert context.current_task_theory is None


def test_tracker_follows_task_names():
    detector = TaskBoundaryDetector(clock=FakeClock())
    tracker = ContextTracker()
    tracker.attach(detector.events)
    detector.init("session-1")

    detector.handle_user_task_indication("Close the books")
    assert tracker.current_task_theory == "Close the books"

    detector.end_session()
    assert tracker.assemble().current_task_theory is None
