"""Persistence helpers for users and usage counters."""
from __future__ import annotations

import sqlite3
from typing import Dict, Optional

from .records import UserRecord, utcnow


def get_user(conn: sqlite3.Connection, user_id: str) -> Optional[UserRecord]:
    row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
    return UserRecord.from_row(row) if row else None


def ensure_user(conn: sqlite3.Connection, user_id: str) -> UserRecord:
    """Return the user, creating a free-plan English user on first sight."""

    conn.execute(
        "INSERT OR IGNORE INTO users (user_id, plan, language, created_at) VALUES (?, 'free', 'en', ?)",
        (user_id, utcnow()),
    )
    row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
    return UserRecord.from_row(row)


def update_user(
    conn: sqlite3.Connection,
    user_id: str,
    *,
    plan: Optional[str] = None,
    language: Optional[str] = None,
) -> UserRecord:
    current = ensure_user(conn, user_id)
    changes = {k: v for k, v in {"plan": plan, "language": language}.items() if v is not None}
    updated = UserRecord(**{**current.model_dump(), **changes})
    conn.execute(
        "UPDATE users SET plan = ?, language = ? WHERE user_id = ?",
        (updated.plan, updated.language, user_id),
    )
    return updated


def get_usage(conn: sqlite3.Connection, user_id: str, feature: str) -> int:
    row = conn.execute(
        "SELECT count FROM usage_counters WHERE user_id = ? AND feature = ?",
        (user_id, feature),
    ).fetchone()
    return int(row["count"]) if row else 0


def usage_counts(conn: sqlite3.Connection, user_id: str) -> Dict[str, int]:
    rows = conn.execute(
        "SELECT feature, count FROM usage_counters WHERE user_id = ?", (user_id,)
    ).fetchall()
    return {row["feature"]: int(row["count"]) for row in rows}


def increment_usage(conn: sqlite3.Connection, user_id: str, feature: str) -> int:
    conn.execute(
        """INSERT INTO usage_counters (user_id, feature, count) VALUES (?, ?, 1)
           ON CONFLICT (user_id, feature) DO UPDATE SET count = count + 1""",
        (user_id, feature),
    )
    return get_usage(conn, user_id, feature)


def reset_usage(conn: sqlite3.Connection, user_id: Optional[str] = None) -> int:
    """Zero usage counters for one user or everyone; returns rows touched."""

    if user_id is None:
        cur = conn.execute("UPDATE usage_counters SET count = 0")
    else:
        cur = conn.execute("UPDATE usage_counters SET count = 0 WHERE user_id = ?", (user_id,))
    return cur.rowcount


__all__ = [
    "ensure_user",
    "get_usage",
    "get_user",
    "increment_usage",
    "reset_usage",
    "update_user",
    "usage_counts",
]
