"""Background scoring of answers and sessions.

Every write here overwrites fields on the owning record so a replayed job
converges on the same end state.
"""
from __future__ import annotations

import logging
from typing import Optional

from agents.answer_feedback import analyze_answer
from agents.session_feedback import ScoredAnswer, analyze_session, empty_session_feedback
from config.routes import model_for_plan
from observability.logger import log_event
from services.context_store import ContextStore
from services.errors import RecordNotFound
from storage.interviews import (
    get_answer,
    get_question,
    get_session,
    list_answers,
    list_answers_for_question,
    list_questions,
    update_answer,
    update_question_stats,
    update_session,
)
from storage.records import InterviewAnswer, InterviewSession
from storage.sqlite import get_conn
from storage.users import ensure_user

logger = logging.getLogger(__name__)


class FeedbackAnalyzer:
    def __init__(self, contexts: Optional[ContextStore] = None) -> None:
        self.contexts = contexts or ContextStore()

    def generate_answer_feedback(self, answer_id: str, question_id: str) -> InterviewAnswer:
        with get_conn() as conn:
            answer = get_answer(conn, answer_id)
            question = get_question(conn, question_id)
            if answer is None or question is None:
                raise RecordNotFound(f"Answer {answer_id} or question {question_id} not found")
            session = get_session(conn, answer.session_id)
            if session is None:
                raise RecordNotFound(f"Session {answer.session_id} not found")
            user = ensure_user(conn, session.user_id)

        feedback = analyze_answer(
            question=question.question,
            answer=answer.content,
            expected_key_points=question.expected_key_points,
            category=question.category,
            difficulty=question.difficulty,
            language=session.language,
            plan=user.plan,
        )
        with get_conn() as conn:
            update_answer(
                conn,
                answer_id,
                analyzed=True,
                score=feedback.score,
                feedback=feedback.model_dump(),
                analysis_error=None,
                ai_model=model_for_plan(user.plan),
            )
            scored = get_answer(conn, answer_id)
            if scored is None:
                raise RecordNotFound(f"Answer {answer_id} not found")
        log_event("answer_scored", session.session_id, answer_id=answer_id, score=feedback.score)

        self.recompute_question_stats(question_id)
        if session.context_id:
            try:
                self.contexts.update_context(
                    session.context_id,
                    {"lastScoredAnswerId": answer_id, "lastScore": feedback.score},
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning("Context update after scoring failed session=%s: %s", session.session_id, exc)
        return scored

    def recompute_question_stats(self, question_id: str) -> bool:
        """Re-read every answer to the question; failures are logged only."""

        try:
            with get_conn() as conn:
                answers = list_answers_for_question(conn, question_id)
                scores = [a.score for a in answers if a.score is not None]
                average = round(sum(scores) / len(scores), 1) if scores else None
                update_question_stats(conn, question_id, times_asked=len(answers), average_score=average)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Question stats recompute failed question=%s: %s", question_id, exc)
            return False
        return True

    def generate_session_feedback(self, session_id: str) -> InterviewSession:
        with get_conn() as conn:
            session = get_session(conn, session_id)
            if session is None:
                raise RecordNotFound(f"Session {session_id} not found")
            user = ensure_user(conn, session.user_id)
            questions = {q.question_id: q for q in list_questions(conn, session_id)}
            answers = list_answers(conn, session.answer_ids)

        if not answers:
            feedback = empty_session_feedback()
        else:
            scored = [
                ScoredAnswer(
                    question=questions[a.question_id].question if a.question_id in questions else "",
                    category=questions[a.question_id].category if a.question_id in questions else session.type,
                    answer=a.content,
                    score=a.score,
                )
                for a in answers
            ]
            unscored = sum(1 for item in scored if item.score is None)
            if unscored:
                logger.info("Session feedback running with unscored answers session=%s unscored=%d", session_id, unscored)
            feedback = analyze_session(
                scored,
                interview_type=session.type,
                difficulty=session.difficulty,
                language=session.language,
                plan=user.plan,
            )
        with get_conn() as conn:
            update_session(
                conn,
                session_id,
                feedback=feedback.model_dump(),
                overall_score=feedback.overall_score,
                feedback_status="completed",
                feedback_error=None,
            )
            updated = get_session(conn, session_id)
            if updated is None:
                raise RecordNotFound(f"Session {session_id} not found")
        log_event("session_scored", session_id, overall_score=feedback.overall_score)
        return updated

    def mark_answer_feedback_failed(self, answer_id: str, message: str) -> None:
        with get_conn() as conn:
            answer = get_answer(conn, answer_id)
            if answer is None or answer.analyzed:
                return
            update_answer(conn, answer_id, analysis_error=message)

    def mark_session_feedback_failed(self, session_id: str, message: str) -> None:
        with get_conn() as conn:
            session = get_session(conn, session_id)
            if session is None or session.feedback_status == "completed":
                return
            update_session(conn, session_id, feedback_status="failed", feedback_error=message)


__all__ = ["FeedbackAnalyzer"]
