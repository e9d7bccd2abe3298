"""Lifecycle events for interview records and background jobs.

Each event is a single log record carrying a dict under ``record.event``.
The console renders it as one ``key=value`` line; when file logs are enabled
a rotating file receives the same event as JSON.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/events.jsonl")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))
LINE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

JOB_OUTCOMES = {"completed": "completed", "retry": "retry", "failed": "failed", "dispatch_failed": "pending"}

_events = logging.getLogger("interview_prep.events")
_events.propagate = False


class ConsoleEventFormatter(logging.Formatter):
    """``job=<id> stage=retry type=answer-feedback attempt=2 ...``"""

    def __init__(self) -> None:
        super().__init__(LINE_FORMAT, datefmt=DATE_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        event: Dict[str, Any] = getattr(record, "event", None) or {}
        if event:
            record.message = describe(event)
        return super().formatMessage(record)


class JsonEventFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        event = dict(getattr(record, "event", None) or {"message": record.getMessage()})
        event.setdefault("level", record.levelname)
        return json.dumps(event, ensure_ascii=False, default=str)


def describe(event: Dict[str, Any]) -> str:
    entity = event.get("entity", "record")
    head = [f"{entity}={event.get('id')}", f"{'stage' if entity == 'job' else 'event'}={event.get('action')}"]
    rest = [f"{k}={v}" for k, v in event.items() if k not in ("ts", "entity", "id", "action") and v is not None]
    return " ".join(head + rest)


def _handlers_ready() -> None:
    if _events.handlers:
        return
    _events.setLevel(LOG_LEVEL)
    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(ConsoleEventFormatter())
    _events.addHandler(console)
    if ENABLE_FILE_LOGS:
        if os.path.dirname(LOG_FILE):
            os.makedirs(os.path.dirname(LOG_FILE), exist_ok=True)
        json_file = logging.handlers.RotatingFileHandler(LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
        json_file.setFormatter(JsonEventFormatter())
        _events.addHandler(json_file)


def _emit(event: Dict[str, Any], level: int = logging.INFO) -> Dict[str, Any]:
    _handlers_ready()
    event = {"ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"), **event}
    _events.log(level, "%s %s", event.get("entity"), event.get("action"), extra={"event": event})
    return event


def log_event(kind: str, record_id: str, **fields: Any) -> Dict[str, Any]:
    """Record a state change of a session, answer or document.

    ``kind`` is ``<entity>_<action>``, e.g. ``session_completed``.
    """

    entity, _, action = kind.partition("_")
    return _emit({"entity": entity, "id": record_id, "action": action or kind, **fields})


def log_job(
    job_id: str,
    job_type: str,
    stage: str,
    *,
    attempt: Optional[int] = None,
    queue: Optional[str] = None,
    delay_ms: Optional[int] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """Record one step of a job's life: enqueued, attempt, retry, completed, failed."""

    event = {
        "entity": "job",
        "id": job_id,
        "action": stage,
        "type": job_type,
        "queue": queue,
        "attempt": attempt,
        "delay_ms": delay_ms,
        "outcome": JOB_OUTCOMES.get(stage),
        "error": error,
    }
    level = logging.WARNING if stage in ("failed", "dispatch_failed") else logging.INFO
    return _emit(event, level)


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Root logging for module loggers in the API server and workers."""

    logging.basicConfig(level=level, format=LINE_FORMAT, datefmt=DATE_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["describe", "log_event", "log_job", "setup_logging"]
