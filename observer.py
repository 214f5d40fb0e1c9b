from __future__ import annotations

import argparse
import os
import signal
import time
from datetime import datetime

from tasklens.activity import InputActivityMonitor
from tasklens.app_switch import AppSwitchTracker
from tasklens.capture import CaptureManager, CaptureSkipped
from tasklens.completion import build_completion
from tasklens.config import get_settings
from tasklens.context import ContextTracker
from tasklens.detector import TaskBoundaryDetector
from tasklens.logging_utils import child_logger, init_logger
from tasklens.models import Trigger
from tasklens.storage import TaskRepository
from tasklens.utils import is_session_locked, timestamp_slug


def main() -> None:
    parser = argparse.ArgumentParser(description="TaskLens observer (screen capture + task detection)")
    parser.add_argument("--session", default=None, help="Session id (defaults to session-<timestamp>)")
    parser.add_argument("--task", default=None, help="Describe the task you are starting, e.g. \"Quarterly report\"")
    parser.add_argument(
        "--capture-root",
        default=None,
        help="Override CAPTURE_ROOT (e.g. D:/TaskLens/captures)",
    )
    args = parser.parse_args()

    if args.capture_root:
        os.environ["CAPTURE_ROOT"] = args.capture_root

    settings = get_settings()
    logger = init_logger("observer", settings.logging.directory, settings.logging.level)

    def clock() -> datetime:
        return datetime.now(tz=settings.timezone)

    session_id = args.session or f"session-{timestamp_slug(clock())}"

    repository = TaskRepository(settings.database_path)
    capture_manager = CaptureManager(settings.capture.capture_root, settings.timezone, logger)
    monitor = InputActivityMonitor(settings.detection.idle_threshold, settings.timezone, logger)
    switches = AppSwitchTracker()
    context = ContextTracker(settings.role_summary)
    detector = TaskBoundaryDetector(
        completion=build_completion(settings, logger),
        log=child_logger(logger, "detector"),
        clock=clock,
        completion_timeout=settings.completion.timeout_seconds,
    )
    repository.attach(detector.events)
    context.attach(detector.events)
    detector.init(session_id, settings.detection)

    if args.task:
        task = detector.handle_user_task_indication(args.task)
        context.set_task_theory(task.name)

    running = True

    def _graceful_stop(signum, frame):
        nonlocal running
        running = False
        logger.info("Received signal %s - shutting down observer", signum)

    signal.signal(signal.SIGINT, _graceful_stop)
    signal.signal(signal.SIGTERM, _graceful_stop)

    monitor.start()
    interval = settings.capture.interval_seconds
    logger.info(
        "Observer started: session=%s interval=%ss idle_threshold=%ss",
        session_id,
        interval,
        settings.detection.idle_threshold,
    )

    last_skip_reason: str | None = None
    last_skip_log_at = 0.0
    skip_log_interval_seconds = 60.0

    try:
        while running:
            now = time.time()

            if is_session_locked():
                if last_skip_reason != "locked" or (now - last_skip_log_at) >= skip_log_interval_seconds:
                    logger.info("Skipping capture: session is locked")
                    last_skip_reason = "locked"
                    last_skip_log_at = now
                detector.check_idle(clock())
                time.sleep(interval)
                continue

            if monitor.is_idle():
                if last_skip_reason != "idle" or (now - last_skip_log_at) >= skip_log_interval_seconds:
                    logger.info(
                        "Skipping capture: idle for %ss (last input at %s)",
                        int(monitor.idle_for().total_seconds()),
                        monitor.last_input().isoformat(),
                    )
                    last_skip_reason = "idle"
                    last_skip_log_at = now
                detector.check_idle(clock())
                time.sleep(interval)
                continue

            try:
                screenshot = capture_manager.capture(session_id)
                switch = switches.track(screenshot.active_application, screenshot.window_title, screenshot.timestamp)
                context.observe(screenshot)
                if switch is not None:
                    detector.handle_app_switch(switch, context.assemble())
                event = detector.process_screenshot(screenshot, context.assemble())
                if event is not None:
                    logger.info("Task boundary: %s (%s)", event.type, event.trigger.value)
                last_skip_reason = None
            except CaptureSkipped as exc:
                if last_skip_reason != "capture_skipped" or (now - last_skip_log_at) >= skip_log_interval_seconds:
                    logger.info("Skipping capture: %s", exc)
                    last_skip_reason = "capture_skipped"
                    last_skip_log_at = now
            except Exception as exc:
                logger.exception("Failed to capture screenshot: %s", exc)

            time.sleep(interval)
    finally:
        monitor.stop()
        switches.close(clock())
        if detector.current_task is not None:
            detector.end_task(Trigger.TIME_PATTERN)
        merged = detector.merge_adjacent_tasks()
        named = detector.name_unnamed_tasks(context.assemble())
        tasks = detector.end_session()
        for task in tasks:
            repository.save_task(task)
        logger.info("Observer stopped: %s tasks (%s merged, %s named)", len(tasks), merged, named)


if __name__ == "__main__":
    main()
