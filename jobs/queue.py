"""Durable job submission through an outbox table.

Callers stage a job row in the same transaction as the state change that
requires it, commit, then dispatch. A failed dispatch leaves the row
``pending`` and ``redispatch_pending`` sends it later, so no staged job is
ever lost.
"""
from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Callable, List, Optional, Union

from celery.exceptions import Retry

from config.settings import settings
from jobs.payloads import AnswerFeedbackJob, DocumentAnalysisJob, SessionFeedbackJob
from observability.logger import log_job
from storage.jobs import insert_job, mark_dispatched, stale_pending, touch_pending
from storage.records import JobRecord
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)

Payload = Union[AnswerFeedbackJob, SessionFeedbackJob, DocumentAnalysisJob]
Dispatcher = Callable[[JobRecord], None]


def celery_dispatch(job: JobRecord) -> None:
    from jobs.tasks import process_job

    process_job.apply_async(args=[job.job_id, job.payload], task_id=job.job_id)


class JobQueue:
    def __init__(self, dispatcher: Optional[Dispatcher] = None) -> None:
        self._dispatcher = dispatcher or celery_dispatch

    def stage(self, conn: sqlite3.Connection, payload: Payload) -> JobRecord:
        """Write a pending job row inside the caller's transaction."""

        return insert_job(
            conn,
            job_id=str(uuid.uuid4()),
            queue=payload.queue,
            job_type=payload.job_type,
            payload=payload.to_wire(),
        )

    def dispatch(self, job: JobRecord) -> bool:
        """Hand a committed job to the broker. Returns ``False`` when it stays pending."""

        try:
            self._dispatcher(job)
        except Retry as exc:
            # accepted; the task scheduled its own retry
            logger.info("Job retry scheduled job=%s type=%s: %s", job.job_id, job.job_type, exc)
        except Exception as exc:  # noqa: BLE001
            logger.error("Job dispatch failed job=%s type=%s: %s", job.job_id, job.job_type, exc)
            log_job(job.job_id, job.job_type, "dispatch_failed", queue=job.queue, error=str(exc))
            with get_conn() as conn:
                touch_pending(conn, job.job_id)
            return False
        with get_conn() as conn:
            mark_dispatched(conn, job.job_id)
        log_job(job.job_id, job.job_type, "enqueued", queue=job.queue)
        return True

    def enqueue(self, payload: Payload) -> JobRecord:
        """Stage and dispatch a job that has no accompanying state change."""

        with get_conn() as conn:
            job = self.stage(conn, payload)
        self.dispatch(job)
        return job

    def redispatch_pending(self, older_than_s: Optional[int] = None) -> List[str]:
        """Re-send jobs whose original dispatch never happened."""

        threshold = settings.JOB_REDISPATCH_AFTER_S if older_than_s is None else older_than_s
        with get_conn() as conn:
            jobs = stale_pending(conn, threshold)
        sent: List[str] = []
        for job in jobs:
            if self.dispatch(job):
                sent.append(job.job_id)
        if jobs:
            logger.info("Redispatched pending jobs sent=%d found=%d", len(sent), len(jobs))
        return sent


__all__ = ["Dispatcher", "JobQueue", "Payload", "celery_dispatch"]
