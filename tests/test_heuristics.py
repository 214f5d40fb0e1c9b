from __future__ import annotations

from tasklens.heuristics import WILDCARD, is_new_task_app, is_same_task_switch


def test_browser_lookup_is_same_task():
    assert is_same_task_switch("Excel", "Google Chrome")
    assert is_same_task_switch("Word", "firefox.exe")


def test_returning_from_browser_is_not_a_same_task_pair():
    assert not is_same_task_switch("Chrome", "Excel")


def test_empty_apps_never_match():
    assert not is_same_task_switch("", "Chrome")
    assert not is_same_task_switch("Excel", None)


def test_custom_pairs_with_wildcard_source():
    pairs = [("Terminal", WILDCARD), ("Excel", "Word")]
    assert is_same_task_switch("Terminal", "Anything", pairs)
    assert is_same_task_switch("Microsoft Excel", "Word", pairs)
    assert not is_same_task_switch("Word", "Excel", pairs)


def test_new_task_apps():
    assert is_new_task_app("Zoom")
    assert is_new_task_app("OUTLOOK.EXE")
    assert not is_new_task_app("Excel")
    assert not is_new_task_app("")
    assert is_new_task_app("Jira", ["jira"])
