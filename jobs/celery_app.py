"""Celery application: one named queue per job type.

Run a dedicated worker pool per queue, for example::

    celery -A jobs.celery_app worker -Q answer-feedback --concurrency 4
    celery -A jobs.celery_app worker -Q document-analysis --concurrency 2
    celery -A jobs.celery_app worker -Q maintenance --concurrency 1
    celery -A jobs.celery_app beat

``CELERY_TASK_ALWAYS_EAGER=1`` runs every task in the calling process, for
local development without a broker.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from celery import Celery

from config.settings import settings
from jobs.payloads import JOB_TYPES

MAINTENANCE_QUEUE = "maintenance"

app = Celery("interview_prep", include=["jobs.tasks"])


def route_task(name: str, args: Sequence[Any], kwargs: Dict[str, Any], options: Dict[str, Any], task: Any = None, **_: Any) -> Optional[Dict[str, str]]:
    """Send each job to the queue named after its job type."""

    if name == "jobs.process_job":
        payload = args[1] if len(args) > 1 else kwargs.get("payload", {})
        job_type = payload.get("jobType")
        if job_type in JOB_TYPES:
            return {"queue": job_type}
    if name == "jobs.redispatch_pending":
        return {"queue": MAINTENANCE_QUEUE}
    return None


app.conf.update(
    broker_url=settings.broker_url,
    result_backend=settings.CELERY_RESULT_BACKEND or None,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue=JOB_TYPES[0],
    task_routes=(route_task,),
    task_serializer="json",
    accept_content=["json"],
    beat_schedule={
        "redispatch-pending-jobs-every-minute": {
            "task": "jobs.redispatch_pending",
            "schedule": 60.0,
        },
    },
)
