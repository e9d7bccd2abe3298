"""Persistence helpers for résumé analysis records."""
from __future__ import annotations

import sqlite3
from typing import Any, List, Optional

from .records import AnalysisRecord, dumps, utcnow

_UPDATABLE = {"status", "analysis", "error", "job_description", "language", "analyzed_at"}


def insert_record(conn: sqlite3.Connection, record: AnalysisRecord) -> None:
    conn.execute(
        """INSERT INTO analysis_records
           (record_id, user_id, file_name, mime_type, file_size, parsed_text,
            job_description, language, status, analysis, error, created_at,
            updated_at, analyzed_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            record.record_id,
            record.user_id,
            record.file_name,
            record.mime_type,
            record.file_size,
            record.parsed_text,
            record.job_description,
            record.language,
            record.status,
            dumps(record.analysis),
            record.error,
            record.created_at,
            record.updated_at,
            record.analyzed_at,
        ),
    )


def get_record(conn: sqlite3.Connection, record_id: str) -> Optional[AnalysisRecord]:
    row = conn.execute(
        "SELECT * FROM analysis_records WHERE record_id = ?", (record_id,)
    ).fetchone()
    return AnalysisRecord.from_row(row) if row else None


def update_record(conn: sqlite3.Connection, record_id: str, **fields: Any) -> None:
    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValueError(f"Unknown columns: {sorted(unknown)}")
    parts = [f"{key} = ?" for key in fields]
    values = [dumps(v) if k == "analysis" else v for k, v in fields.items()]
    conn.execute(
        f"UPDATE analysis_records SET {', '.join(parts)}, updated_at = ? WHERE record_id = ?",
        (*values, utcnow(), record_id),
    )


def list_records(conn: sqlite3.Connection, user_id: str, *, limit: int = 20) -> List[AnalysisRecord]:
    rows = conn.execute(
        "SELECT * FROM analysis_records WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
        (user_id, limit),
    ).fetchall()
    return [AnalysisRecord.from_row(row) for row in rows]


def latest_completed(conn: sqlite3.Connection, user_id: str) -> Optional[AnalysisRecord]:
    row = conn.execute(
        """SELECT * FROM analysis_records WHERE user_id = ? AND status = 'completed'
           ORDER BY analyzed_at DESC LIMIT 1""",
        (user_id,),
    ).fetchone()
    return AnalysisRecord.from_row(row) if row else None


__all__ = ["get_record", "insert_record", "latest_completed", "list_records", "update_record"]
