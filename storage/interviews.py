"""Persistence helpers for interview sessions, questions and answers."""
from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from .records import InterviewAnswer, InterviewQuestion, InterviewSession, dumps, utcnow

_SESSION_JSON = {"technology", "question_ids", "answer_ids", "feedback"}
_SESSION_COLUMNS = {
    "status",
    "current_question_index",
    "question_ids",
    "answer_ids",
    "completed_at",
    "overall_score",
    "feedback",
    "feedback_status",
    "feedback_error",
    "context_id",
}
_ANSWER_JSON = {"feedback"}
_ANSWER_COLUMNS = {"analyzed", "score", "feedback", "analysis_error", "ai_model"}


def _assignments(fields: Dict[str, Any], allowed: Iterable[str], json_cols: Iterable[str]) -> tuple[str, list[Any]]:
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown columns: {sorted(unknown)}")
    parts: list[str] = []
    values: list[Any] = []
    for key, value in fields.items():
        parts.append(f"{key} = ?")
        values.append(dumps(value) if key in json_cols else value)
    return ", ".join(parts), values


def insert_session(conn: sqlite3.Connection, session: InterviewSession) -> None:
    conn.execute(
        """INSERT INTO interview_sessions
           (session_id, user_id, type, difficulty, domain, technology, num_questions,
            mode, time_limit, language, status, current_question_index, question_ids,
            answer_ids, started_at, completed_at, overall_score, feedback,
            feedback_status, feedback_error, context_id, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            session.session_id,
            session.user_id,
            session.type,
            session.difficulty,
            session.domain,
            dumps(session.technology),
            session.num_questions,
            session.mode,
            session.time_limit,
            session.language,
            session.status,
            session.current_question_index,
            dumps(session.question_ids),
            dumps(session.answer_ids),
            session.started_at,
            session.completed_at,
            session.overall_score,
            dumps(session.feedback),
            session.feedback_status,
            session.feedback_error,
            session.context_id,
            session.updated_at,
        ),
    )


def get_session(conn: sqlite3.Connection, session_id: str) -> Optional[InterviewSession]:
    row = conn.execute(
        "SELECT * FROM interview_sessions WHERE session_id = ?", (session_id,)
    ).fetchone()
    return InterviewSession.from_row(row) if row else None


def update_session(conn: sqlite3.Connection, session_id: str, **fields: Any) -> None:
    """Overwrite the given session columns."""

    clause, values = _assignments(fields, _SESSION_COLUMNS, _SESSION_JSON)
    conn.execute(
        f"UPDATE interview_sessions SET {clause}, updated_at = ? WHERE session_id = ?",
        (*values, utcnow(), session_id),
    )


def list_sessions(conn: sqlite3.Connection, user_id: str, *, limit: int = 10, skip: int = 0) -> List[InterviewSession]:
    rows = conn.execute(
        """SELECT * FROM interview_sessions WHERE user_id = ?
           ORDER BY started_at DESC LIMIT ? OFFSET ?""",
        (user_id, limit, skip),
    ).fetchall()
    return [InterviewSession.from_row(row) for row in rows]


def count_sessions(conn: sqlite3.Connection, user_id: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM interview_sessions WHERE user_id = ?", (user_id,)
    ).fetchone()
    return int(row["n"])


def insert_question(conn: sqlite3.Connection, question: InterviewQuestion) -> None:
    conn.execute(
        """INSERT INTO interview_questions
           (question_id, session_id, position, category, difficulty, question,
            expected_key_points, hints, tags, times_asked, average_score)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            question.question_id,
            question.session_id,
            question.order,
            question.category,
            question.difficulty,
            question.question,
            dumps(question.expected_key_points),
            dumps(question.hints),
            dumps(question.tags),
            question.times_asked,
            question.average_score,
        ),
    )


def get_question(conn: sqlite3.Connection, question_id: str) -> Optional[InterviewQuestion]:
    row = conn.execute(
        "SELECT * FROM interview_questions WHERE question_id = ?", (question_id,)
    ).fetchone()
    return InterviewQuestion.from_row(row) if row else None


def list_questions(conn: sqlite3.Connection, session_id: str) -> List[InterviewQuestion]:
    rows = conn.execute(
        "SELECT * FROM interview_questions WHERE session_id = ? ORDER BY position",
        (session_id,),
    ).fetchall()
    return [InterviewQuestion.from_row(row) for row in rows]


def update_question_stats(
    conn: sqlite3.Connection, question_id: str, *, times_asked: int, average_score: Optional[float]
) -> None:
    conn.execute(
        "UPDATE interview_questions SET times_asked = ?, average_score = ? WHERE question_id = ?",
        (times_asked, average_score, question_id),
    )


def insert_answer(conn: sqlite3.Connection, answer: InterviewAnswer) -> None:
    conn.execute(
        """INSERT INTO interview_answers
           (answer_id, session_id, question_id, user_id, answer_type, content,
            audio_url, duration, submitted_at, analyzed, score, feedback,
            analysis_error, ai_model)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            answer.answer_id,
            answer.session_id,
            answer.question_id,
            answer.user_id,
            answer.answer_type,
            answer.content,
            answer.audio_url,
            answer.duration,
            answer.submitted_at,
            int(answer.analyzed),
            answer.score,
            dumps(answer.feedback),
            answer.analysis_error,
            answer.ai_model,
        ),
    )


def get_answer(conn: sqlite3.Connection, answer_id: str) -> Optional[InterviewAnswer]:
    row = conn.execute(
        "SELECT * FROM interview_answers WHERE answer_id = ?", (answer_id,)
    ).fetchone()
    return InterviewAnswer.from_row(row) if row else None


def update_answer(conn: sqlite3.Connection, answer_id: str, **fields: Any) -> None:
    """Overwrite the given answer columns."""

    if "analyzed" in fields:
        fields["analyzed"] = int(bool(fields["analyzed"]))
    clause, values = _assignments(fields, _ANSWER_COLUMNS, _ANSWER_JSON)
    conn.execute(
        f"UPDATE interview_answers SET {clause} WHERE answer_id = ?",
        (*values, answer_id),
    )


def list_answers(conn: sqlite3.Connection, answer_ids: List[str]) -> List[InterviewAnswer]:
    """Load answers preserving the order of ``answer_ids``."""

    if not answer_ids:
        return []
    marks = ", ".join("?" for _ in answer_ids)
    rows = conn.execute(
        f"SELECT * FROM interview_answers WHERE answer_id IN ({marks})", tuple(answer_ids)
    ).fetchall()
    by_id = {row["answer_id"]: InterviewAnswer.from_row(row) for row in rows}
    return [by_id[a] for a in answer_ids if a in by_id]


def list_answers_for_question(conn: sqlite3.Connection, question_id: str) -> List[InterviewAnswer]:
    rows = conn.execute(
        "SELECT * FROM interview_answers WHERE question_id = ? ORDER BY submitted_at",
        (question_id,),
    ).fetchall()
    return [InterviewAnswer.from_row(row) for row in rows]


__all__ = [
    "count_sessions",
    "get_answer",
    "get_question",
    "get_session",
    "insert_answer",
    "insert_question",
    "insert_session",
    "list_answers",
    "list_answers_for_question",
    "list_questions",
    "list_sessions",
    "update_answer",
    "update_question_stats",
    "update_session",
]
