"""Rolling conversation memory keyed by context id.

Messages are appended to an unbounded log; readers only ever see the last
``window`` entries. The full log stays available through
:meth:`ContextStore.full_history` for auditing.
"""
from __future__ import annotations

import logging
import re
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from agents.classifiers import FOLLOW_UP_PHRASES, KeywordClassifier, TextClassifier
from config.settings import settings
from services.errors import RecordNotFound
from storage.contexts import (
    append_message,
    get_context,
    insert_context,
    latest_active_context,
    list_messages,
    update_context_row,
)
from storage.records import ContextMessage, ConversationContext, utcnow
from storage.sqlite import get_conn

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[\w']+", re.UNICODE)


@contextmanager
def _use(conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
    if conn is not None:
        yield conn
        return
    with get_conn() as own:
        yield own


class ContextStore:
    def __init__(self, window: Optional[int] = None, classifier: Optional[TextClassifier] = None) -> None:
        self._window = window
        self.classifier = classifier or KeywordClassifier()

    @property
    def window(self) -> int:
        return self._window if self._window is not None else settings.CONTEXT_WINDOW

    def create_context(
        self,
        user_id: str,
        *,
        kind: str = "interview",
        context: Optional[Dict[str, Any]] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> ConversationContext:
        now = utcnow()
        ctx = ConversationContext(
            context_id=str(uuid.uuid4()),
            user_id=user_id,
            kind=kind,
            context=dict(context or {}),
            created_at=now,
            updated_at=now,
        )
        with _use(conn) as c:
            insert_context(c, ctx)
        return ctx

    def get_or_create_context(self, user_id: str, *, kind: str = "assistant") -> ConversationContext:
        with get_conn() as conn:
            existing = latest_active_context(conn, user_id, kind)
            if existing is not None:
                return self._load(conn, existing.context_id)
            return self.create_context(user_id, kind=kind, conn=conn)

    def get_context(self, context_id: str) -> ConversationContext:
        """Context with only the most recent ``window`` messages."""

        with get_conn() as conn:
            return self._load(conn, context_id)

    def full_history(self, context_id: str) -> List[ContextMessage]:
        with get_conn() as conn:
            return list_messages(conn, context_id)

    def prompt_history(self, context_id: str) -> List[Dict[str, str]]:
        """Recent window rendered as chat messages for a completion call."""

        return [
            {"role": msg.role, "content": msg.content}
            for msg in self.get_context(context_id).messages
            if msg.role in ("user", "assistant")
        ]

    def add_message(
        self,
        context_id: str,
        role: str,
        content: str,
        *,
        type: str = "message",
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[str]:
        """Append one entry and merge any topics found in it; returns the topic set."""

        message = ContextMessage(role=role, content=content, type=type)
        with _use(conn) as c:
            ctx = get_context(c, context_id, last=0)
            if ctx is None:
                raise RecordNotFound(f"Conversation context {context_id} not found")
            append_message(c, context_id, message)
            topics = list(ctx.topics)
            for topic in self.classifier.topics(content):
                if topic not in topics:
                    topics.append(topic)
            update_context_row(c, context_id, topics=topics)
        return topics

    def update_context(self, context_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge ``updates`` into the free-form context map."""

        with get_conn() as conn:
            ctx = get_context(conn, context_id, last=0)
            if ctx is None:
                raise RecordNotFound(f"Conversation context {context_id} not found")
            merged = {**ctx.context, **updates}
            update_context_row(conn, context_id, context=merged)
        return merged

    def archive(self, context_id: Optional[str]) -> bool:
        """Flag the context archived. Failures are logged, never raised."""

        if not context_id:
            return False
        try:
            with get_conn() as conn:
                update_context_row(conn, context_id, archived=True)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Context archive failed context=%s: %s", context_id, exc)
            return False
        return True

    def add_tokens(self, context_id: str, tokens: int) -> None:
        try:
            with get_conn() as conn:
                update_context_row(conn, context_id, tokens_delta=max(0, int(tokens)))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Token accounting failed context=%s: %s", context_id, exc)

    def detect_follow_up(self, context_id: str, text: str) -> bool:
        """Heuristic: follow-up phrasing, or at least three content words shared with the last message."""

        lowered = (text or "").lower()
        if any(phrase in lowered for phrase in FOLLOW_UP_PHRASES):
            return True
        messages = self.get_context(context_id).messages
        if not messages:
            return False
        previous = {w for w in _WORD.findall(messages[-1].content.lower()) if len(w) > 3}
        current = {w for w in _WORD.findall(lowered) if len(w) > 3}
        return len(previous & current) >= 3

    def _load(self, conn: sqlite3.Connection, context_id: str) -> ConversationContext:
        ctx = get_context(conn, context_id, last=self.window)
        if ctx is None:
            raise RecordNotFound(f"Conversation context {context_id} not found")
        return ctx


def estimate_tokens(*texts: str) -> int:
    return sum(len(text or "") for text in texts) // 4


__all__ = ["ContextStore", "estimate_tokens"]
