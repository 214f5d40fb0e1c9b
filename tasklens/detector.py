"""Task boundary detection.

Turns a stream of screenshots and app-switch events into a task timeline:
decides when one unit of work ends and the next begins, tracks which
applications were used inside each task, names finished tasks and merges
over-segmented neighbours.

One :class:`TaskBoundaryDetector` owns one observation session. Feed it from a
single thread; run one instance per session when several are observed at once.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Deque, List, Mapping, Optional, Sequence, Tuple, Union

from . import events as ev
from .completion import CompletionOptions, CompletionService, extract_json_object, safe_complete
from .events import TaskEvents
from .heuristics import NEW_TASK_APPS, SAME_TASK_PAIRS, is_new_task_app, is_same_task_switch
from .merging import merge_task_records, should_merge_tasks
from .models import (
    UNNAMED_TASK,
    AppSegment,
    AppSwitchEvent,
    AppUsage,
    AssembledContext,
    ContextChangeAnalysis,
    DetectionConfig,
    Screenshot,
    Task,
    TaskBoundaryEvent,
    TaskEnded,
    TaskStarted,
    TaskStatus,
    TaskSwitched,
    Trigger,
)
from .naming import infer_task_name
from .prompts import context_change_prompt
from .timeline import task_to_documentation
from .utils import coerce_timestamp, seconds_between

CONTEXT_CHANGE_MIN_CONFIDENCE = 0.7
CONTEXT_CHANGE_MIN_SCREENSHOTS = 3
CONTEXT_CHANGE_MAX_IMAGES = 3
CONTEXT_CHANGE_OPTIONS = CompletionOptions(temperature=0.3, max_output_tokens=256, expect_json=True)

ContextLike = Union[AssembledContext, Mapping[str, Any], None]
ScreenshotLike = Union[Screenshot, Mapping[str, Any]]


class TaskDetectionError(RuntimeError):
    """A detector method was called in a state its contract forbids."""


class TaskBoundaryDetector:
    def __init__(
        self,
        completion: Optional[CompletionService] = None,
        log: logging.Logger | None = None,
        clock: Callable[[], datetime] = datetime.now,
        events: Optional[TaskEvents] = None,
        same_task_pairs: Sequence[Tuple[str, str]] = SAME_TASK_PAIRS,
        new_task_apps: Sequence[str] = NEW_TASK_APPS,
        completion_timeout: Optional[float] = None,
    ):
        self._completion = completion
        self._logger = log or logging.getLogger("tasklens.detector")
        self._clock = clock
        self.events = events or TaskEvents(self._logger)
        self._same_task_pairs = tuple(same_task_pairs)
        self._new_task_apps = tuple(new_task_apps)
        self._completion_timeout = completion_timeout
        self._config = DetectionConfig()
        self._reset()

    def _reset(self) -> None:
        self._session_id: Optional[str] = None
        self._current_task: Optional[Task] = None
        self._current_segment: Optional[AppSegment] = None
        self._tasks: List[Task] = []
        self._last_activity: Optional[datetime] = None
        self._last_screenshot: Optional[Screenshot] = None
        self._recent: Deque[Screenshot] = deque(maxlen=self._config.context_window)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def init(self, session_id: str, config: DetectionConfig | Mapping[str, Any] | None = None) -> None:
        if isinstance(config, DetectionConfig):
            self._config = config
        else:
            self._config = DetectionConfig().merged(config)
        self._reset()
        self._session_id = session_id
        self._logger.info("Task detection initialized for session %s", session_id)
        self.events.emit(ev.DETECTION_INITIALIZED, {"session_id": session_id, "config": self._config.as_dict()})

    def end_session(self) -> List[Task]:
        """Close the active task and hand back the session's task list.

        All state is cleared afterwards. With no active task this just returns
        what was accumulated (an empty list before ``init``).
        """
        if self._session_id is None:
            return []

        if self._current_task is not None:
            self._end(Trigger.TIME_PATTERN, self._now())

        tasks = copy.deepcopy(self._tasks)
        session_id = self._session_id
        self._reset()
        self._logger.info("Session %s ended, %d tasks recorded", session_id, len(tasks))
        self.events.emit(ev.SESSION_ENDED, {"session_id": session_id, "tasks": tasks})
        return tasks

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def current_task(self) -> Optional[Task]:
        if self._current_task is None:
            return None
        return self._snapshot(self._current_task)

    def session_tasks(self) -> List[Task]:
        return [self._snapshot(task) for task in self._tasks]

    def get_config(self) -> DetectionConfig:
        return self._config

    def update_config(self, **partial: Any) -> DetectionConfig:
        self._config = self._config.merged(partial)
        if self._recent.maxlen != self._config.context_window:
            self._recent = deque(self._recent, maxlen=self._config.context_window)
        self.events.emit(ev.CONFIG_UPDATED, self._config.as_dict())
        return self._config

    def tasks_for_documentation(self) -> List[dict[str, Any]]:
        return [task_to_documentation(task, self._config.min_task_duration) for task in self._tasks]

    # ------------------------------------------------------------------
    # Inbound stream
    # ------------------------------------------------------------------

    def process_screenshot(self, screenshot: ScreenshotLike, context: ContextLike = None) -> Optional[TaskBoundaryEvent]:
        if self._session_id is None:
            self._logger.warning("Task detection not initialized, ignoring screenshot")
            return None

        shot = self._coerce_screenshot(screenshot)
        if shot is None:
            return None

        previous = self._last_screenshot
        gap_event: Optional[TaskEnded] = None
        if self._current_task is not None and previous is not None and self._is_idle_gap(previous, shot):
            self._logger.info(
                "Idle gap of %ss before screenshot %s", seconds_between(previous.timestamp, shot.timestamp), shot.id
            )
            gap_event = self._interrupt(previous.timestamp)

        self._last_activity = shot.timestamp

        if self._current_task is None:
            self._open_task_for(shot, after_gap=gap_event is not None)

        if shot.id:
            self._current_task.screenshots.append(shot.id)
        self._reconcile_segment(shot)

        self._recent.append(shot)
        self._last_screenshot = shot

        if gap_event is not None:
            return gap_event
        if previous is None:
            return None
        return self._detect(previous, shot, list(self._recent), self._coerce_context(context))

    def detect_boundary(
        self, screenshots: Sequence[ScreenshotLike], context: ContextLike = None
    ) -> Optional[TaskBoundaryEvent]:
        """Run the boundary checks on a window of recent screenshots.

        The newest two (by timestamp) are compared for idle gaps and app
        switches; the whole window feeds the context-change check.
        """
        if self._current_task is None or not screenshots or len(screenshots) < 2:
            return None

        window = [shot for shot in (self._coerce_screenshot(s) for s in screenshots) if shot is not None]
        if len(window) < 2:
            return None
        ordered = sorted(window, key=lambda s: s.timestamp, reverse=True)
        return self._detect(ordered[1], ordered[0], window, self._coerce_context(context))

    def check_idle(self, now: Optional[datetime] = None) -> Optional[TaskEnded]:
        """Interrupt the current task when nothing was observed for the idle threshold."""
        if self._session_id is None:
            self._logger.warning("Task detection not initialized, ignoring idle check")
            return None
        if self._current_task is None or self._last_activity is None:
            return None

        now = now or self._clock()
        if seconds_between(self._last_activity, now) < self._config.idle_threshold:
            return None
        self._logger.info("No activity since %s, interrupting task", self._last_activity.isoformat())
        return self._interrupt(self._last_activity)

    def handle_app_switch(
        self, event: AppSwitchEvent | Mapping[str, Any], context: ContextLike = None
    ) -> Optional[TaskSwitched]:
        """React to a switch already confirmed by the capture layer (no debounce)."""
        if self._session_id is None:
            self._logger.warning("Task detection not initialized, ignoring app switch")
            return None
        if self._current_task is None:
            return None

        switch = self._coerce_app_switch(event)
        if switch is None:
            return None
        previous_app, current_app = switch.previous.app, switch.current.app

        if is_new_task_app(current_app, self._new_task_apps) and not is_same_task_switch(
            previous_app, current_app, self._same_task_pairs
        ):
            self._logger.info("Significant app switch detected: %s -> %s", previous_app, current_app)
            at = self._clamp(switch.previous.end_time or self._now())
            result = self._switch(Trigger.APP_SWITCH, current_app, switch.current.title, at)
            self._last_screenshot = None
            return result
        return None

    def handle_user_task_indication(self, description: str) -> Task:
        """Start a task the user named explicitly; the name is never auto-replaced."""
        if self._session_id is None:
            raise TaskDetectionError("handle_user_task_indication() called before init()")
        if not description or not description.strip():
            raise TaskDetectionError("handle_user_task_indication() requires a non-empty description")
        description = description.strip()

        at = self._now()
        if self._current_task is not None:
            segment = self._current_segment
            app = segment.application if segment else None
            title = segment.window_title if segment else ""
            self._switch(Trigger.USER_INDICATION, app, title, at, name=description)
        else:
            seed = self._last_screenshot
            self._start(
                Trigger.USER_INDICATION,
                seed.active_application if seed else None,
                seed.window_title if seed else "",
                at,
                name=description,
            )
            self._emit_boundary(TaskStarted(at, Trigger.USER_INDICATION, self._snapshot(self._current_task)))
        self._last_screenshot = None
        return self._snapshot(self._current_task)

    # ------------------------------------------------------------------
    # Lifecycle primitives
    # ------------------------------------------------------------------

    def start_task(self, trigger: Trigger, app: Optional[str] = None, window_title: str = "") -> Task:
        self._require_session("start_task")
        if self._current_task is not None:
            raise TaskDetectionError(
                f"start_task() called while task {self._current_task.id} is active; use switch_task()"
            )
        at = self._now()
        task = self._start(Trigger(trigger), app, window_title, at)
        self._emit_boundary(TaskStarted(at, Trigger(trigger), self._snapshot(task)))
        return self._snapshot(task)

    def end_task(self, trigger: Trigger) -> Task:
        self._require_current("end_task")
        at = self._now()
        task = self._end(Trigger(trigger), at)
        self._last_screenshot = None
        self._emit_boundary(TaskEnded(at, Trigger(trigger), self._snapshot(task)))
        return self._snapshot(task)

    def switch_task(self, trigger: Trigger, app: Optional[str] = None, window_title: str = "") -> TaskSwitched:
        self._require_current("switch_task")
        return self._switch(Trigger(trigger), app, window_title, self._now())

    def interrupt_task(self) -> Task:
        self._require_current("interrupt_task")
        event = self._interrupt(self._now())
        return event.previous_task

    # ------------------------------------------------------------------
    # Naming and merging
    # ------------------------------------------------------------------

    def name_unnamed_tasks(self, context: ContextLike = None) -> int:
        """Name every placeholder-named task that has application history."""
        ctx = self._coerce_context(context)
        renamed = 0
        for task in self._tasks:
            if not task.is_unnamed or not task.applications:
                continue
            name = infer_task_name(task, ctx, self._completion, self._completion_timeout, self._logger)
            if name == UNNAMED_TASK:
                continue
            task.name = name
            renamed += 1
            self._logger.info("Named task %s: %s", task.id, name)
            self.events.emit(ev.TASK_NAMED, self._snapshot(task))
        return renamed

    def merge_tasks(self, task_a: Task, task_b: Task) -> Task:
        """Fold ``task_b`` into the task right before it."""
        index_a = self._index_of(task_a.id)
        index_b = self._index_of(task_b.id)
        if index_a is None or index_b is None:
            missing = task_a.id if index_a is None else task_b.id
            raise TaskDetectionError(f"merge_tasks(): task {missing} is not part of session {self._session_id}")
        if index_b != index_a + 1:
            raise TaskDetectionError(
                f"merge_tasks(): task {task_b.id} does not immediately follow task {task_a.id}"
            )

        first, second = self._tasks[index_a], self._tasks[index_b]
        merged = merge_task_records(first, second)
        self._tasks[index_a] = merged
        del self._tasks[index_b]
        if self._current_task is second:
            self._current_task = merged

        self._logger.info("Merged tasks %s and %s", first.id, second.id)
        self.events.emit(
            ev.TASK_MERGED,
            {"task1": self._snapshot(first), "task2": self._snapshot(second), "merged": self._snapshot(merged)},
        )
        return self._snapshot(merged)

    def merge_adjacent_tasks(self) -> int:
        """Sweep the session once, merging every neighbour pair that qualifies."""
        merges = 0
        index = 0
        while index < len(self._tasks) - 1:
            first, second = self._tasks[index], self._tasks[index + 1]
            if should_merge_tasks(first, second):
                self.merge_tasks(first, second)
                merges += 1
            else:
                index += 1
        return merges

    # ------------------------------------------------------------------
    # Boundary checks
    # ------------------------------------------------------------------

    def detect_context_change(
        self, screenshots: Sequence[Screenshot], context: ContextLike = None
    ) -> Optional[ContextChangeAnalysis]:
        """Ask the model whether the same-app screenshots still show the same task.

        Returns None ("no signal") when no images are available, the call fails
        or times out, or the reply holds no usable JSON.
        """
        if self._completion is None or len(screenshots) < 2:
            return None

        images = [shot.image_path for shot in screenshots if shot.image_path is not None][-CONTEXT_CHANGE_MAX_IMAGES:]
        if not images:
            self._logger.debug("No images available for context change detection")
            return None

        ctx = self._coerce_context(context) or AssembledContext()
        prompt = context_change_prompt(
            ctx.current_task_theory,
            [shot.active_application for shot in screenshots] + list(ctx.recent_applications),
            [shot.window_title for shot in screenshots],
        )
        options = CONTEXT_CHANGE_OPTIONS
        if self._completion_timeout is not None:
            options = replace(options, timeout_seconds=self._completion_timeout)

        result = safe_complete(self._completion, images, prompt, options, self._logger)
        if not result.ok:
            self._logger.warning("Context change check skipped (%s: %s)", result.status.value, result.error)
            return None

        payload = extract_json_object(result.text)
        if payload is None:
            self._logger.warning("Could not parse context change response")
            return None
        return self._parse_context_analysis(payload)

    def _detect(
        self,
        previous: Screenshot,
        current: Screenshot,
        window: List[Screenshot],
        context: Optional[AssembledContext],
    ) -> Optional[TaskBoundaryEvent]:
        if self._current_task is None:
            return None

        if self._is_idle_gap(previous, current):
            self._logger.info("Idle gap detected")
            return self._interrupt(previous.timestamp)

        if previous.active_application != current.active_application:
            if not self._is_significant_switch(previous.active_application, current.active_application):
                return None
            if seconds_between(previous.timestamp, current.timestamp) < self._config.app_switch_debounce:
                return None
            self._logger.info(
                "Significant app switch: %s -> %s", previous.active_application, current.active_application
            )
            return self._switch(
                Trigger.APP_SWITCH, current.active_application, current.window_title, current.timestamp, seed=current
            )

        same_app = [shot for shot in window if shot.active_application == current.active_application]
        if len(same_app) >= CONTEXT_CHANGE_MIN_SCREENSHOTS:
            analysis = self.detect_context_change(same_app, context)
            if (
                analysis is not None
                and not analysis.same_task
                and analysis.confidence >= CONTEXT_CHANGE_MIN_CONFIDENCE
            ):
                self._logger.info("Context change detected: %s", analysis.reasoning)
                return self._switch(
                    Trigger.CONTEXT_CHANGE,
                    current.active_application,
                    current.window_title,
                    current.timestamp,
                    seed=current,
                )
        return None

    def _is_idle_gap(self, previous: Screenshot, current: Screenshot) -> bool:
        return seconds_between(previous.timestamp, current.timestamp) >= self._config.idle_threshold

    def _is_significant_switch(self, previous_app: str, current_app: str) -> bool:
        if previous_app == current_app:
            return False
        if is_same_task_switch(previous_app, current_app, self._same_task_pairs):
            self._logger.debug("App switch %s -> %s considered same task", previous_app, current_app)
            return False
        if is_new_task_app(current_app, self._new_task_apps):
            self._logger.info("App %s is a new-task indicator", current_app)
        return True

    @staticmethod
    def _parse_context_analysis(payload: Mapping[str, Any]) -> Optional[ContextChangeAnalysis]:
        same_task = payload.get("sameTask", payload.get("same_task"))
        if isinstance(same_task, str):
            lowered = same_task.strip().lower()
            if lowered not in {"true", "false"}:
                return None
            same_task = lowered == "true"
        if not isinstance(same_task, bool):
            return None
        try:
            confidence = float(payload.get("confidence", 0.0))
        except (TypeError, ValueError):
            return None
        return ContextChangeAnalysis(
            same_task=same_task, confidence=confidence, reasoning=str(payload.get("reasoning") or "")
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _open_task_for(self, shot: Screenshot, after_gap: bool) -> None:
        last = self._tasks[-1] if self._tasks else None
        if after_gap:
            task = self._start(Trigger.TIME_GAP, shot.active_application, shot.window_title, shot.timestamp)
            self._emit_boundary(TaskStarted(shot.timestamp, Trigger.TIME_GAP, self._snapshot(task)))
        elif last is not None and last.status is TaskStatus.INTERRUPTED:
            if shot.active_application in last.application_names():
                self._resume(last, shot)
            else:
                task = self._start(Trigger.TIME_GAP, shot.active_application, shot.window_title, shot.timestamp)
                self._emit_boundary(TaskStarted(shot.timestamp, Trigger.TIME_GAP, self._snapshot(task)))
        else:
            task = self._start(Trigger.TIME_PATTERN, shot.active_application, shot.window_title, shot.timestamp)
            self._emit_boundary(TaskStarted(shot.timestamp, Trigger.TIME_PATTERN, self._snapshot(task)))

    def _start(
        self,
        trigger: Trigger,
        app: Optional[str],
        window_title: str,
        at: datetime,
        name: Optional[str] = None,
    ) -> Task:
        task = Task(id=Task.new_id(), session_id=self._session_id, start_time=at)
        if name:
            task.name = name
            task.user_explanation = name
        if app is not None:
            self._current_segment = AppSegment(application=app, window_title=window_title or "", start_time=at)

        self._current_task = task
        self._tasks.append(task)
        self._recent.clear()
        if self._last_activity is None or at > self._last_activity:
            self._last_activity = at

        self._logger.info("Started task %s (trigger: %s)", task.id, trigger.value)
        self.events.emit(ev.TASK_STARTED, self._snapshot(task))
        return task

    def _end(self, trigger: Trigger, at: datetime) -> Task:
        task = self._current_task
        self._close_segment(task, at)
        task.end_time = at
        task.duration = seconds_between(task.start_time, at)
        task.status = TaskStatus.COMPLETED
        self._current_task = None

        self._logger.info("Ended task %s (duration: %ss, trigger: %s)", task.id, task.duration, trigger.value)
        self.events.emit(ev.TASK_ENDED, self._snapshot(task))
        return task

    def _switch(
        self,
        trigger: Trigger,
        app: Optional[str],
        window_title: str,
        at: datetime,
        name: Optional[str] = None,
        seed: Optional[Screenshot] = None,
    ) -> TaskSwitched:
        ended = self._end(trigger, at)
        started = self._start(trigger, app, window_title, at, name=name)
        if seed is not None:
            self._recent.append(seed)

        event = TaskSwitched(at, trigger, self._snapshot(ended), self._snapshot(started))
        self._logger.info("Switched from task %s to %s", ended.id, started.id)
        self.events.emit(ev.TASK_SWITCHED, {"ended": event.previous_task, "started": event.new_task})
        self._emit_boundary(event)
        return event

    def _interrupt(self, at: datetime) -> TaskEnded:
        task = self._current_task
        at = max(at, task.start_time)
        self._close_segment(task, at)
        task.end_time = at
        task.duration = seconds_between(task.start_time, at)
        task.status = TaskStatus.INTERRUPTED
        self._current_task = None
        self._last_screenshot = None
        self._recent.clear()

        self._logger.info("Task %s interrupted (idle)", task.id)
        self.events.emit(ev.TASK_INTERRUPTED, self._snapshot(task))
        event = TaskEnded(at, Trigger.TIME_GAP, self._snapshot(task))
        self._emit_boundary(event)
        return event

    def _resume(self, task: Task, shot: Screenshot) -> None:
        # The fresh segment starts where the task was interrupted so the task's
        # span stays covered by segments.
        resumed_from = task.end_time or shot.timestamp
        task.status = TaskStatus.ACTIVE
        task.end_time = None
        self._current_task = task
        self._current_segment = AppSegment(
            application=shot.active_application, window_title=shot.window_title, start_time=resumed_from
        )
        self._recent.clear()

        self._logger.info("Resumed task %s", task.id)
        self.events.emit(ev.TASK_RESUMED, self._snapshot(task))

    def _close_segment(self, task: Task, at: datetime) -> None:
        segment = self._current_segment
        if segment is None:
            return
        segment.close(max(at, segment.start_time))
        # Zero-length tail opened by the screenshot that triggered a switch.
        if segment.end_time > segment.start_time or not task.applications:
            task.applications.append(segment)
        self._current_segment = None

    def _reconcile_segment(self, shot: Screenshot) -> None:
        task = self._current_task
        segment = self._current_segment
        if segment is None:
            start = task.applications[-1].end_time if task.applications else task.start_time
            self._current_segment = AppSegment(shot.active_application, shot.window_title, start)
        elif segment.application != shot.active_application:
            self._close_segment(task, shot.timestamp)
            self._current_segment = AppSegment(shot.active_application, shot.window_title, shot.timestamp)
        else:
            segment.window_title = shot.window_title or segment.window_title

    def _emit_boundary(self, event: TaskBoundaryEvent) -> None:
        self.events.emit(ev.TASK_BOUNDARY, event)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        now = self._clock()
        if self._last_activity is not None and now < self._last_activity:
            return self._last_activity
        return now

    def _clamp(self, at: datetime) -> datetime:
        floor = self._current_segment.start_time if self._current_segment else self._current_task.start_time
        return max(at, floor)

    def _snapshot(self, task: Task) -> Task:
        snapshot = copy.deepcopy(task)
        if task is self._current_task and self._current_segment is not None:
            snapshot.applications.append(copy.deepcopy(self._current_segment))
        return snapshot

    def _index_of(self, task_id: str) -> Optional[int]:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        return None

    def _require_session(self, operation: str) -> None:
        if self._session_id is None:
            raise TaskDetectionError(f"{operation}() called before init()")

    def _require_current(self, operation: str) -> None:
        self._require_session(operation)
        if self._current_task is None:
            raise TaskDetectionError(f"{operation}() requires a current task but none is active")

    def _warn(self, message: str) -> None:
        self._logger.warning(message)
        self.events.emit(ev.DETECTOR_WARNING, {"session_id": self._session_id, "message": message})

    def _coerce_screenshot(self, screenshot: Any) -> Optional[Screenshot]:
        if isinstance(screenshot, Screenshot):
            shot = screenshot
            if not isinstance(shot.active_application, str) or not shot.active_application.strip():
                self._warn(f"Screenshot {shot.id or '?'} has no application name; treating it as ''")
                shot = replace(shot, active_application="")
            timestamp = coerce_timestamp(shot.timestamp, self._clock())
            if timestamp is None:
                self._warn(f"Screenshot {shot.id or '?'} has an unparsable timestamp; using the current time")
                timestamp = self._now()
            shot = replace(shot, timestamp=timestamp)
            return shot

        if isinstance(screenshot, Mapping):
            shot, problems = Screenshot.from_payload(screenshot, self._now())
            for problem in problems:
                self._warn(f"Screenshot {shot.id or '?'}: {problem}")
            return shot

        self._warn(f"Ignoring screenshot of unsupported type {type(screenshot).__name__}")
        return None

    def _coerce_app_switch(self, event: Any) -> Optional[AppSwitchEvent]:
        reference = self._now()
        if isinstance(event, AppSwitchEvent):
            switch = AppSwitchEvent(
                previous=replace(
                    event.previous,
                    start_time=self._usage_time(event.previous.start_time, reference),
                    end_time=self._usage_time(event.previous.end_time, reference),
                ),
                current=event.current,
            )
        elif isinstance(event, Mapping):
            previous = event.get("previous") or {}
            current = event.get("current") or {}
            if not isinstance(previous, Mapping) or not isinstance(current, Mapping):
                self._warn("Ignoring malformed app switch event")
                return None
            switch = AppSwitchEvent(
                previous=AppUsage(
                    app=str(previous.get("app") or ""),
                    title=str(previous.get("title") or previous.get("windowTitle") or ""),
                    start_time=self._usage_time(previous.get("startTime", previous.get("start_time")), reference),
                    end_time=self._usage_time(previous.get("endTime", previous.get("end_time")), reference),
                    duration=self._usage_duration(previous.get("duration")),
                ),
                current=AppUsage(app=str(current.get("app") or ""), title=str(current.get("title") or "")),
            )
        else:
            self._warn(f"Ignoring app switch event of unsupported type {type(event).__name__}")
            return None

        if not switch.current.app:
            self._warn("App switch event has no target application")
            return None
        return switch

    def _usage_time(self, value: Any, reference: datetime) -> Optional[datetime]:
        if value is None:
            return None
        parsed = coerce_timestamp(value, reference)
        if parsed is None:
            self._warn(f"App switch event has an unparsable time ({value!r}); ignoring it")
        return parsed

    def _usage_duration(self, value: Any) -> int:
        if value is None or value == "":
            return 0
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            self._warn(f"App switch event has an invalid duration ({value!r}); using 0")
            return 0

    @staticmethod
    def _coerce_context(context: ContextLike) -> Optional[AssembledContext]:
        if context is None or isinstance(context, AssembledContext):
            return context
        if isinstance(context, Mapping):
            return AssembledContext.from_mapping(context)
        return None
