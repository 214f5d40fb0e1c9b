from __future__ import annotations

import pytest

from support import FakeClock

from tasklens.detector import TaskBoundaryDetector


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def detector(clock) -> TaskBoundaryDetector:
    detector = TaskBoundaryDetector(clock=clock)
    detector.init("session-1")
    return detector
