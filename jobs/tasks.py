"""Celery task entry points."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List

from config.settings import settings
from jobs.celery_app import app
from jobs.queue import JobQueue
from jobs.runner import JobOutcome, execute_job

logger = logging.getLogger(__name__)


def run_inline(job_id: str, payload: Dict[str, Any]) -> JobOutcome:
    """Run every attempt of a job in this process, sleeping out the backoff."""

    attempt = 1
    outcome = execute_job(job_id, payload, attempt)
    while outcome.status == "retry":
        time.sleep(outcome.delay_ms / 1000.0)
        attempt += 1
        outcome = execute_job(job_id, payload, attempt)
    return outcome


@app.task(bind=True, name="jobs.process_job", max_retries=settings.JOB_MAX_ATTEMPTS)
def process_job(self, job_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    if self.request.is_eager:
        # no broker to redeliver an eager retry
        outcome = run_inline(job_id, payload)
    else:
        outcome = execute_job(job_id, payload, self.request.retries + 1)
        if outcome.status == "retry":
            raise self.retry(countdown=outcome.delay_ms / 1000.0)
    return {"job_id": job_id, "status": outcome.status, "attempt": outcome.attempt}


@app.task(name="jobs.redispatch_pending")
def redispatch_pending() -> List[str]:
    return JobQueue().redispatch_pending()
