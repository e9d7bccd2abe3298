"""Persistence helpers for the job outbox and audit trail."""
from __future__ import annotations

import datetime as dt
import sqlite3
from typing import Any, Dict, List, Optional

from .records import JobRecord, dumps, utcnow


def insert_job(conn: sqlite3.Connection, *, job_id: str, queue: str, job_type: str, payload: Dict[str, Any]) -> JobRecord:
    now = utcnow()
    conn.execute(
        """INSERT INTO jobs (job_id, queue, job_type, payload, status, attempts, created_at, updated_at)
           VALUES (?, ?, ?, ?, 'pending', 0, ?, ?)""",
        (job_id, queue, job_type, dumps(payload), now, now),
    )
    return JobRecord(
        job_id=job_id,
        queue=queue,
        job_type=job_type,
        payload=payload,
        created_at=now,
        updated_at=now,
    )


def get_job(conn: sqlite3.Connection, job_id: str) -> Optional[JobRecord]:
    row = conn.execute("SELECT * FROM jobs WHERE job_id = ?", (job_id,)).fetchone()
    return JobRecord.from_row(row) if row else None


def mark_job(
    conn: sqlite3.Connection,
    job_id: str,
    status: str,
    *,
    attempts: Optional[int] = None,
    last_error: Optional[str] = None,
    dispatched: bool = False,
) -> None:
    now = utcnow()
    parts = ["status = ?", "updated_at = ?"]
    values: list[Any] = [status, now]
    if attempts is not None:
        parts.append("attempts = ?")
        values.append(attempts)
    if last_error is not None:
        parts.append("last_error = ?")
        values.append(last_error)
    if dispatched:
        parts.append("dispatched_at = ?")
        values.append(now)
    conn.execute(f"UPDATE jobs SET {', '.join(parts)} WHERE job_id = ?", (*values, job_id))


def mark_dispatched(conn: sqlite3.Connection, job_id: str) -> bool:
    """Move a pending job to queued; a worker may already have advanced it."""

    now = utcnow()
    cur = conn.execute(
        "UPDATE jobs SET status = 'queued', dispatched_at = ?, updated_at = ? WHERE job_id = ? AND status = 'pending'",
        (now, now, job_id),
    )
    return cur.rowcount == 1


def touch_pending(conn: sqlite3.Connection, job_id: str) -> None:
    conn.execute(
        "UPDATE jobs SET updated_at = ? WHERE job_id = ? AND status = 'pending'", (utcnow(), job_id)
    )


def stale_pending(conn: sqlite3.Connection, older_than_s: int, *, limit: int = 100) -> List[JobRecord]:
    """Pending jobs untouched for ``older_than_s`` seconds (dispatch never happened)."""

    cutoff = (dt.datetime.now(dt.timezone.utc) - dt.timedelta(seconds=older_than_s)).isoformat()
    rows = conn.execute(
        "SELECT * FROM jobs WHERE status = 'pending' AND updated_at <= ? ORDER BY created_at LIMIT ?",
        (cutoff, limit),
    ).fetchall()
    return [JobRecord.from_row(row) for row in rows]


def recent_jobs(conn: sqlite3.Connection, *, limit: int = 20, status: Optional[str] = None) -> List[JobRecord]:
    if status is None:
        rows = conn.execute("SELECT * FROM jobs ORDER BY updated_at DESC LIMIT ?", (limit,)).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM jobs WHERE status = ? ORDER BY updated_at DESC LIMIT ?", (status, limit)
        ).fetchall()
    return [JobRecord.from_row(row) for row in rows]


__all__ = [
    "get_job",
    "insert_job",
    "mark_dispatched",
    "mark_job",
    "recent_jobs",
    "stale_pending",
    "touch_pending",
]
