"""Persistence helpers for conversation contexts and their message log."""
from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from .records import ContextMessage, ConversationContext, dumps, utcnow


def insert_context(conn: sqlite3.Connection, ctx: ConversationContext) -> None:
    conn.execute(
        """INSERT INTO conversation_contexts
           (context_id, user_id, kind, topics, context, archived, tokens_used, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            ctx.context_id,
            ctx.user_id,
            ctx.kind,
            dumps(ctx.topics),
            dumps(ctx.context),
            int(ctx.archived),
            ctx.tokens_used,
            ctx.created_at,
            ctx.updated_at,
        ),
    )


def get_context(conn: sqlite3.Connection, context_id: str, *, last: Optional[int] = None) -> Optional[ConversationContext]:
    """Load a context with its last ``last`` messages (all when ``None``)."""

    row = conn.execute(
        "SELECT * FROM conversation_contexts WHERE context_id = ?", (context_id,)
    ).fetchone()
    if row is None:
        return None
    return ConversationContext.from_row(row, list_messages(conn, context_id, last=last))


def latest_active_context(conn: sqlite3.Connection, user_id: str, kind: str) -> Optional[ConversationContext]:
    row = conn.execute(
        """SELECT * FROM conversation_contexts
           WHERE user_id = ? AND kind = ? AND archived = 0
           ORDER BY updated_at DESC LIMIT 1""",
        (user_id, kind),
    ).fetchone()
    return ConversationContext.from_row(row) if row else None


def append_message(conn: sqlite3.Connection, context_id: str, message: ContextMessage) -> None:
    conn.execute(
        "INSERT INTO context_messages (context_id, role, content, type, timestamp) VALUES (?, ?, ?, ?, ?)",
        (context_id, message.role, message.content, message.type, message.timestamp),
    )


def list_messages(conn: sqlite3.Connection, context_id: str, *, last: Optional[int] = None) -> List[ContextMessage]:
    if last is None:
        rows = conn.execute(
            "SELECT role, content, type, timestamp FROM context_messages WHERE context_id = ? ORDER BY id",
            (context_id,),
        ).fetchall()
    else:
        rows = conn.execute(
            """SELECT role, content, type, timestamp FROM (
                 SELECT id, role, content, type, timestamp FROM context_messages
                 WHERE context_id = ? ORDER BY id DESC LIMIT ?
               ) ORDER BY id""",
            (context_id, last),
        ).fetchall()
    return [ContextMessage(**dict(row)) for row in rows]


def update_context_row(
    conn: sqlite3.Connection,
    context_id: str,
    *,
    topics: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None,
    archived: Optional[bool] = None,
    tokens_delta: int = 0,
) -> None:
    parts = ["tokens_used = tokens_used + ?", "updated_at = ?"]
    values: list[Any] = [tokens_delta, utcnow()]
    if topics is not None:
        parts.append("topics = ?")
        values.append(dumps(topics))
    if context is not None:
        parts.append("context = ?")
        values.append(dumps(context))
    if archived is not None:
        parts.append("archived = ?")
        values.append(int(archived))
    conn.execute(
        f"UPDATE conversation_contexts SET {', '.join(parts)} WHERE context_id = ?",
        (*values, context_id),
    )


__all__ = [
    "append_message",
    "get_context",
    "insert_context",
    "latest_active_context",
    "list_messages",
    "update_context_row",
]
