from __future__ import annotations

import argparse
import json
from datetime import datetime

from tasklens.config import get_settings
from tasklens.logging_utils import init_logger
from tasklens.storage import TaskRepository
from tasklens.timeline import render_markdown, to_dict


def main() -> None:
    parser = argparse.ArgumentParser(description="Export the task timeline of a TaskLens session")
    parser.add_argument("--session", help="Session id (defaults to the most recent session)")
    args = parser.parse_args()

    settings = get_settings()
    logger = init_logger("summarizer", settings.logging.directory, settings.logging.level)
    repository = TaskRepository(settings.database_path)

    session_id = args.session
    if not session_id:
        sessions = repository.sessions()
        if not sessions:
            logger.warning("No recorded sessions in %s", settings.database_path)
            return
        session_id = sessions[-1][0]

    tasks = repository.session_tasks(session_id)
    if not tasks:
        logger.warning("No tasks recorded for session %s", session_id)

    summary_dir = settings.output.summary_dir
    summary_dir.mkdir(parents=True, exist_ok=True)
    markdown_path = summary_dir / f"task-timeline-{session_id}.md"
    json_path = summary_dir / f"task-timeline-{session_id}.json"

    generated_at = datetime.now(tz=settings.timezone)
    markdown_path.write_text(render_markdown(session_id, tasks, generated_at), encoding="utf-8")
    payload = to_dict(session_id, tasks, settings.detection.min_task_duration)
    json_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Task timeline saved to %s", markdown_path)


if __name__ == "__main__":
    main()
