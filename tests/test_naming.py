from __future__ import annotations

from support import FakeCompletion, RaisingCompletion, at

from tasklens.completion import CompletionResult
from tasklens.models import AppSegment, AssembledContext, Task
from tasklens.naming import clean_task_name, fallback_task_name, infer_task_name


def _task(*apps: str) -> Task:
    segments = [AppSegment(app, f"{app} window", at(i * 60), at(i * 60 + 60), 60) for i, app in enumerate(apps)]
    return Task(id="task-1", session_id="session-1", start_time=at(0), end_time=at(60 * len(apps)),
                duration=60 * len(apps), applications=segments)


def test_fallback_names():
    assert fallback_task_name(_task("Excel", "Word")) == "Work in Excel"
    assert fallback_task_name(_task()) == "Unnamed task"


def test_clean_task_name():
    assert clean_task_name('"Review sales report"\nBecause the user...') == "Review sales report"
    assert clean_task_name("\n- 'Update inventory'") == "Update inventory"
    assert clean_task_name("   ") == ""


def test_infer_task_name_uses_completion():
    completion = FakeCompletion('"Quarterly Budget Review"')
    context = AssembledContext(role_summary="Finance analyst")

    name = infer_task_name(_task("Excel", "Outlook", "Excel"), context, completion)

    assert name == "Quarterly Budget Review"
    call = completion.calls[0]
    assert call.images == []
    assert call.options.max_output_tokens == 50
    assert call.options.temperature == 0.5
    assert "Excel, Outlook" in call.prompt
    assert "Duration: 3 minutes" in call.prompt
    assert "Finance analyst" in call.prompt


def test_infer_task_name_falls_back_on_failures():
    task = _task("Excel")
    assert infer_task_name(task, None, RaisingCompletion()) == "Work in Excel"
    assert infer_task_name(task, None, FakeCompletion(CompletionResult.timed_out())) == "Work in Excel"
    assert infer_task_name(task, None, FakeCompletion("")) == "Work in Excel"
    assert infer_task_name(task, None, None) == "Work in Excel"


def test_infer_task_name_passes_timeout():
    completion = FakeCompletion("Inbox triage")
    infer_task_name(_task("Outlook"), None, completion, timeout_seconds=5)
    assert completion.calls[0].options.timeout_seconds == 5
