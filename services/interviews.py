"""Interview session lifecycle.

States: ``active`` <-> ``paused`` (advisory), ``active``/``paused`` ->
``completed`` or ``abandoned`` (both terminal). Submitting an answer never
changes the status; it appends the answer and advances the question cursor
in the same transaction that stages the feedback job.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from agents.question_generation import generate_questions
from jobs.payloads import AnswerFeedbackJob, SessionFeedbackJob
from jobs.queue import JobQueue
from llm_gateway import LlmGatewayError, user_message
from observability.logger import log_event
from services.context_store import ContextStore
from services.errors import AiUnavailableError, InvalidRequestError, RecordNotFound
from services.quota import MOCK_INTERVIEWS, authorize, record_usage
from storage.interviews import (
    count_sessions,
    get_session,
    insert_answer,
    insert_question,
    insert_session,
    list_answers,
    list_questions,
    list_sessions,
    update_session,
)
from storage.records import InterviewAnswer, InterviewQuestion, InterviewSession, utcnow
from storage.sqlite import get_conn
from storage.users import ensure_user

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("active", "paused")


class SessionSettings(BaseModel):
    type: Literal["technical", "behavioral", "case_study", "mixed"]
    difficulty: Literal["junior", "mid", "senior"]
    domain: str = ""
    technology: List[str] = Field(default_factory=list)
    num_questions: int = Field(ge=5, le=20)
    mode: Literal["text", "audio"] = "text"
    time_limit: Optional[int] = Field(default=None, ge=1)
    language: Optional[Literal["uz", "ru", "en"]] = None


class AnswerSubmission(BaseModel):
    question_id: str
    answer_type: Literal["text", "audio"] = "text"
    answer_text: Optional[str] = None
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    duration: int = Field(ge=1)

    @model_validator(mode="after")
    def _has_content(self) -> "AnswerSubmission":
        if self.answer_type == "text" and not (self.answer_text or "").strip():
            raise ValueError("answer_text is required for text answers")
        if self.answer_type == "audio" and not (self.audio_url or (self.transcript or "").strip()):
            raise ValueError("audio_url or transcript is required for audio answers")
        return self

    @property
    def content(self) -> str:
        return (self.answer_text or self.transcript or "").strip()


@dataclass
class SessionDetail:
    session: InterviewSession
    questions: List[InterviewQuestion]
    answers: List[InterviewAnswer] = field(default_factory=list)

    @property
    def current_question(self) -> Optional[InterviewQuestion]:
        index = self.session.current_question_index
        return self.questions[index] if index < len(self.questions) else None


class InterviewService:
    def __init__(self, queue: Optional[JobQueue] = None, contexts: Optional[ContextStore] = None) -> None:
        self.queue = queue or JobQueue()
        self.contexts = contexts or ContextStore()

    def start_session(self, user_id: str, request: SessionSettings) -> SessionDetail:
        with get_conn() as conn:
            authorize(conn, user_id, MOCK_INTERVIEWS)
            user = ensure_user(conn, user_id)
        language = request.language or user.language

        try:
            generated = generate_questions(
                interview_type=request.type,
                difficulty=request.difficulty,
                num_questions=request.num_questions,
                domain=request.domain,
                technology=request.technology,
                language=language,
                plan=user.plan,
            )
        except LlmGatewayError as exc:
            logger.error("Question generation failed user=%s: %s", user_id, exc)
            raise AiUnavailableError(user_message(exc)) from exc

        session_id = str(uuid.uuid4())
        questions = [
            InterviewQuestion(
                question_id=str(uuid.uuid4()),
                session_id=session_id,
                order=position,
                category=item.category,
                difficulty=item.difficulty or request.difficulty,
                question=item.question,
                expected_key_points=item.expected_key_points,
                hints=item.hints,
                tags=item.tags,
            )
            for position, item in enumerate(generated)
        ]
        now = utcnow()
        with get_conn(immediate=True) as conn:
            # re-check: generation ran outside the write lock
            authorize(conn, user_id, MOCK_INTERVIEWS)
            ctx = self.contexts.create_context(
                user_id,
                kind="interview",
                context={"sessionId": session_id, "type": request.type, "difficulty": request.difficulty},
                conn=conn,
            )
            session = InterviewSession(
                session_id=session_id,
                user_id=user_id,
                type=request.type,
                difficulty=request.difficulty,
                domain=request.domain,
                technology=request.technology,
                num_questions=request.num_questions,
                mode=request.mode,
                time_limit=request.time_limit,
                language=language,
                status="active",
                current_question_index=0,
                question_ids=[q.question_id for q in questions],
                answer_ids=[],
                started_at=now,
                context_id=ctx.context_id,
                updated_at=now,
            )
            for question in questions:
                insert_question(conn, question)
            insert_session(conn, session)
            record_usage(conn, user_id, MOCK_INTERVIEWS)
        log_event("session_started", session_id, user_id=user_id, questions=len(questions), type=request.type)
        return SessionDetail(session=session, questions=questions)

    def get_session(self, user_id: str, session_id: str) -> SessionDetail:
        """Side-effect-free read used by polling callers."""

        with get_conn() as conn:
            session = self._owned(conn, user_id, session_id)
            return SessionDetail(
                session=session,
                questions=list_questions(conn, session_id),
                answers=list_answers(conn, session.answer_ids),
            )

    def get_answer(self, user_id: str, session_id: str, answer_id: str) -> InterviewAnswer:
        with get_conn() as conn:
            session = self._owned(conn, user_id, session_id)
            if answer_id not in session.answer_ids:
                raise RecordNotFound(f"Answer {answer_id} not found")
            answers = list_answers(conn, [answer_id])
        if not answers:
            raise RecordNotFound(f"Answer {answer_id} not found")
        return answers[0]

    def submit_answer(self, user_id: str, session_id: str, submission: AnswerSubmission) -> InterviewAnswer:
        with get_conn(immediate=True) as conn:
            session = self._owned(conn, user_id, session_id)
            if session.status not in OPEN_STATUSES:
                raise InvalidRequestError(f"Cannot submit answers to a {session.status} session.")
            if submission.question_id not in session.question_ids:
                raise InvalidRequestError("Question does not belong to this session.")
            if len(session.answer_ids) >= len(session.question_ids):
                raise InvalidRequestError("All questions in this session have already been answered.")
            answer = InterviewAnswer(
                answer_id=str(uuid.uuid4()),
                session_id=session_id,
                question_id=submission.question_id,
                user_id=user_id,
                answer_type=submission.answer_type,
                content=submission.content,
                audio_url=submission.audio_url,
                duration=submission.duration,
                submitted_at=utcnow(),
            )
            insert_answer(conn, answer)
            update_session(
                conn,
                session_id,
                answer_ids=session.answer_ids + [answer.answer_id],
                current_question_index=min(session.current_question_index + 1, len(session.question_ids)),
            )
            job = self.queue.stage(
                conn,
                AnswerFeedbackJob(
                    answer_id=answer.answer_id,
                    question_id=submission.question_id,
                    session_id=session_id,
                    user_id=user_id,
                ),
            )
        log_event("answer_submitted", session_id, answer_id=answer.answer_id, question_id=submission.question_id)
        self.queue.dispatch(job)
        self._remember_exchange(session, submission.question_id, answer.content)
        return answer

    def complete_session(self, user_id: str, session_id: str) -> InterviewSession:
        with get_conn(immediate=True) as conn:
            session = self._owned(conn, user_id, session_id)
            if session.status == "completed":
                raise InvalidRequestError("Session is already completed.")
            if session.status == "abandoned":
                raise InvalidRequestError("Session was abandoned and cannot be completed.")
            update_session(
                conn,
                session_id,
                status="completed",
                completed_at=utcnow(),
                feedback_status="pending",
                feedback_error=None,
            )
            job = self.queue.stage(conn, SessionFeedbackJob(session_id=session_id, user_id=user_id))
            completed = get_session(conn, session_id)
            if completed is None:
                raise RecordNotFound(f"Session {session_id} not found")
        log_event("session_completed", session_id, answers=len(completed.answer_ids))
        self.queue.dispatch(job)
        self.contexts.archive(completed.context_id)
        return completed

    def pause_session(self, user_id: str, session_id: str) -> InterviewSession:
        return self._transition(user_id, session_id, allowed=("active",), target="paused")

    def resume_session(self, user_id: str, session_id: str) -> InterviewSession:
        return self._transition(user_id, session_id, allowed=("paused",), target="active")

    def abandon_session(self, user_id: str, session_id: str) -> InterviewSession:
        session = self._transition(user_id, session_id, allowed=OPEN_STATUSES, target="abandoned")
        self.contexts.archive(session.context_id)
        return session

    def update_question_index(self, user_id: str, session_id: str, index: int) -> InterviewSession:
        """Move the cursor forward, e.g. to skip a question."""

        with get_conn(immediate=True) as conn:
            session = self._owned(conn, user_id, session_id)
            if session.status not in OPEN_STATUSES:
                raise InvalidRequestError(f"Cannot move the cursor of a {session.status} session.")
            if not 0 <= index <= len(session.question_ids):
                raise InvalidRequestError(f"Question index must be between 0 and {len(session.question_ids)}.")
            if index < session.current_question_index:
                raise InvalidRequestError("Question index cannot move backwards.")
            update_session(conn, session_id, current_question_index=index)
            updated = get_session(conn, session_id)
            if updated is None:
                raise RecordNotFound(f"Session {session_id} not found")
        return updated

    def get_history(self, user_id: str, *, limit: int = 10, skip: int = 0) -> Tuple[List[InterviewSession], int]:
        with get_conn() as conn:
            return list_sessions(conn, user_id, limit=limit, skip=skip), count_sessions(conn, user_id)

    def get_analytics(self, user_id: str) -> Dict[str, Any]:
        with get_conn() as conn:
            sessions = list_sessions(conn, user_id, limit=-1)
        completed = [s for s in sessions if s.status == "completed"]
        scored = [s for s in completed if s.overall_score is not None]
        topics: List[str] = []
        for s in sessions:
            for tag in [s.type, s.domain, *s.technology]:
                if tag and tag not in topics:
                    topics.append(tag)
        by_type: Dict[str, int] = {}
        for s in sessions:
            by_type[s.type] = by_type.get(s.type, 0) + 1
        progress = [
            {"session_id": s.session_id, "completed_at": s.completed_at, "overall_score": s.overall_score}
            for s in sorted(scored, key=lambda item: item.completed_at or "")
        ]
        return {
            "total_sessions": len(sessions),
            "completed_sessions": len(completed),
            "average_score": round(sum(s.overall_score or 0 for s in scored) / len(scored), 1) if scored else None,
            "sessions_by_type": by_type,
            "topics_practiced": topics,
            "progress": progress,
        }

    def _transition(self, user_id: str, session_id: str, *, allowed: Tuple[str, ...], target: str) -> InterviewSession:
        with get_conn(immediate=True) as conn:
            session = self._owned(conn, user_id, session_id)
            if session.status not in allowed:
                raise InvalidRequestError(f"Cannot change a {session.status} session to {target}.")
            update_session(conn, session_id, status=target)
            updated = get_session(conn, session_id)
            if updated is None:
                raise RecordNotFound(f"Session {session_id} not found")
        log_event(f"session_{target}", session_id)
        return updated

    def _remember_exchange(self, session: InterviewSession, question_id: str, content: str) -> None:
        if not session.context_id:
            return
        try:
            with get_conn() as conn:
                questions = {q.question_id: q for q in list_questions(conn, session.session_id)}
            question = questions.get(question_id)
            if question is not None:
                self.contexts.add_message(session.context_id, "assistant", question.question, type="question")
            self.contexts.add_message(session.context_id, "user", content, type="answer")
        except Exception as exc:  # noqa: BLE001
            logger.warning("Context update failed session=%s: %s", session.session_id, exc)

    @staticmethod
    def _owned(conn, user_id: str, session_id: str) -> InterviewSession:
        session = get_session(conn, session_id)
        if session is None or session.user_id != user_id:
            raise RecordNotFound(f"Interview session {session_id} not found")
        return session


__all__ = ["AnswerSubmission", "InterviewService", "SessionDetail", "SessionSettings"]
