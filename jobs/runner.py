from __future__ import annotations  # Retry policy for background jobs

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from agents.parsing import OutputParseError
from config.settings import settings
from jobs.handlers import FAILURE_HOOKS, HANDLERS
from jobs.payloads import parse_payload
from llm_gateway import PermanentLlmError, TransientLlmError
from observability.logger import log_job
from services.errors import RecordNotFound
from storage.jobs import mark_job
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Analysis failed. Please retry."


@dataclass
class JobOutcome:
    status: Literal["completed", "retry", "failed"]
    attempt: int
    delay_ms: int = 0
    error: Optional[str] = None


def backoff_ms(attempt: int) -> int:
    """Exponential backoff: base delay, doubling per attempt."""

    return settings.JOB_BACKOFF_MS * 2 ** (max(1, attempt) - 1)


def execute_job(job_id: str, payload: Dict[str, Any], attempt: int = 1, *, max_attempts: Optional[int] = None) -> JobOutcome:
    """Run one attempt of a job and decide what happens next.

    Permanent provider errors and missing records fail at once. Transient
    provider errors, unparseable scoring output and unexpected errors are
    retried until ``max_attempts`` is reached; the owning record is then moved
    to its failed sub-state with a generic message.
    """

    job = parse_payload(payload)
    ceiling = max_attempts or settings.JOB_MAX_ATTEMPTS
    _mark(job_id, "running", attempts=attempt)
    log_job(job_id, job.job_type, "attempt", attempt=attempt)
    try:
        HANDLERS[job.job_type](job)
    except (PermanentLlmError, RecordNotFound) as exc:
        logger.error("Job failed permanently job=%s type=%s: %s", job_id, job.job_type, exc)
        return _fail(job_id, job, attempt, exc)
    except (TransientLlmError, OutputParseError) as exc:
        return _retry_or_fail(job_id, job, attempt, ceiling, exc)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Job raised unexpectedly job=%s type=%s", job_id, job.job_type)
        return _retry_or_fail(job_id, job, attempt, ceiling, exc)
    _mark(job_id, "completed", attempts=attempt)
    log_job(job_id, job.job_type, "completed", attempt=attempt)
    return JobOutcome(status="completed", attempt=attempt)


def _retry_or_fail(job_id: str, job: Any, attempt: int, ceiling: int, exc: Exception) -> JobOutcome:
    if attempt >= ceiling:
        logger.error("Job exhausted attempts job=%s type=%s attempts=%d: %s", job_id, job.job_type, attempt, exc)
        return _fail(job_id, job, attempt, exc)
    delay = backoff_ms(attempt)
    logger.warning(
        "Job attempt failed, retrying job=%s type=%s attempt=%d delay_ms=%d: %s",
        job_id,
        job.job_type,
        attempt,
        delay,
        exc,
    )
    _mark(job_id, "retrying", attempts=attempt, last_error=_describe(exc))
    log_job(job_id, job.job_type, "retry", attempt=attempt, delay_ms=delay)
    return JobOutcome(status="retry", attempt=attempt, delay_ms=delay, error=_describe(exc))


def _fail(job_id: str, job: Any, attempt: int, exc: Exception) -> JobOutcome:
    _mark(job_id, "failed", attempts=attempt, last_error=_describe(exc))
    try:
        FAILURE_HOOKS[job.job_type](job, GENERIC_FAILURE)
    except Exception as hook_exc:  # noqa: BLE001
        logger.error("Failure hook raised job=%s type=%s: %s", job_id, job.job_type, hook_exc)
    log_job(job_id, job.job_type, "failed", attempt=attempt, error=_describe(exc))
    return JobOutcome(status="failed", attempt=attempt, error=_describe(exc))


def _describe(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"


def _mark(job_id: str, status: str, **fields: Any) -> None:
    with get_conn() as conn:
        mark_job(conn, job_id, status, **fields)


__all__ = ["GENERIC_FAILURE", "JobOutcome", "backoff_ms", "execute_job"]
