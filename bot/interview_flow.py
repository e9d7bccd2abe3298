"""Transport-agnostic chat-bot flow over the shared interview and document services.

The bot keeps a per-chat cache of the current question index so it can
render without a round trip, but the persisted session is authoritative:
the cache is refreshed from the record before rendering and after every
mutation.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from services.documents import DocumentService, DocumentUpload
from services.errors import ServiceError
from services.interviews import AnswerSubmission, InterviewService, SessionDetail, SessionSettings
from services.polling import PollResult, document_terminal_state, poll, session_feedback_state
from storage.records import InterviewQuestion

from .session_cache import BotSessionCache, ChatState

logger = logging.getLogger(__name__)

Reply = Callable[[str, str], None]

STILL_PROCESSING = "Analysis is taking longer than usual. Please check back later."
NO_ACTIVE_INTERVIEW = "You have no active interview. Start one first."
EMPTY_ANSWER = "Please type your answer to the question."


class InterviewBot:
    def __init__(
        self,
        interviews: InterviewService,
        documents: DocumentService,
        reply: Reply,
        *,
        cache: Optional[BotSessionCache] = None,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval_s: Optional[float] = None,
        poll_attempts: Optional[int] = None,
    ) -> None:
        self.interviews = interviews
        self.documents = documents
        self.reply = reply
        self.cache = cache or BotSessionCache()
        self._sleep = sleep
        self._interval = poll_interval_s
        self._attempts = poll_attempts

    def start_interview(self, chat_id: str, user_id: str, request: SessionSettings) -> Optional[InterviewQuestion]:
        try:
            detail = self.interviews.start_session(user_id, request)
        except ServiceError as exc:
            self.reply(chat_id, exc.detail)
            return None
        state = self.cache.get(chat_id) or ChatState(user_id=user_id)
        state.session_id = detail.session.session_id
        state.question_index = 0
        state.language = detail.session.language
        self.cache.save(chat_id, state)
        self.reply(chat_id, f"Interview started: {len(detail.questions)} questions.")
        return self._show_current(chat_id, detail)

    def current_question(self, chat_id: str) -> Optional[InterviewQuestion]:
        detail = self._refresh(chat_id)
        return detail.current_question if detail else None

    def handle_answer(self, chat_id: str, text: str, *, duration: int = 60) -> bool:
        state = self.cache.get(chat_id)
        detail = self._refresh(chat_id)
        if state is None or detail is None:
            self.reply(chat_id, NO_ACTIVE_INTERVIEW)
            return False
        question = detail.current_question
        if question is None:
            self.reply(chat_id, "All questions are answered. Finish the interview to get feedback.")
            return False
        if not text.strip():
            self.reply(chat_id, EMPTY_ANSWER)
            return False
        try:
            submission = AnswerSubmission(question_id=question.question_id, answer_text=text, duration=max(1, duration))
        except ValidationError as exc:
            logger.info("Bot rejected answer chat=%s: %s", chat_id, exc.errors()[0]["msg"])
            self.reply(chat_id, EMPTY_ANSWER)
            return False
        try:
            self.interviews.submit_answer(state.user_id, detail.session.session_id, submission)
        except ServiceError as exc:
            self.reply(chat_id, exc.detail)
            return False
        self.reply(chat_id, "Answer received. Feedback is being prepared.")
        self._show_current(chat_id, self._refresh(chat_id))
        return True

    def skip_question(self, chat_id: str) -> Optional[InterviewQuestion]:
        detail = self._refresh(chat_id)
        state = self.cache.get(chat_id)
        if detail is None or state is None:
            self.reply(chat_id, NO_ACTIVE_INTERVIEW)
            return None
        try:
            self.interviews.update_question_index(
                state.user_id, detail.session.session_id, detail.session.current_question_index + 1
            )
        except ServiceError as exc:
            self.reply(chat_id, exc.detail)
            return None
        return self._show_current(chat_id, self._refresh(chat_id))

    def finish_interview(self, chat_id: str) -> Optional[PollResult]:
        state = self.cache.get(chat_id)
        if state is None or state.session_id is None:
            self.reply(chat_id, NO_ACTIVE_INTERVIEW)
            return None
        user_id, session_id = state.user_id, state.session_id
        try:
            self.interviews.complete_session(user_id, session_id)
        except ServiceError as exc:
            self.reply(chat_id, exc.detail)
            return None
        state.session_id = None
        state.question_index = 0
        self.reply(chat_id, "Interview completed. Preparing your feedback...")
        result = poll(
            lambda: self.interviews.get_session(user_id, session_id).session,
            session_feedback_state,
            interval_s=self._interval,
            max_attempts=self._attempts,
            sleep=self._sleep,
        )
        if result.state == "completed" and result.record is not None:
            self.reply(chat_id, _session_summary(result.record.overall_score, result.record.feedback or {}))
        elif result.state == "failed":
            self.reply(chat_id, "We could not prepare your feedback. Please retry later.")
        else:
            self.reply(chat_id, STILL_PROCESSING)
        return result

    def upload_document(self, chat_id: str, user_id: str, upload: DocumentUpload) -> Optional[PollResult]:
        try:
            record = self.documents.upload(user_id, upload)
        except ServiceError as exc:
            self.reply(chat_id, exc.detail)
            return None
        state = self.cache.get(chat_id) or ChatState(user_id=user_id)
        state.document_id = record.record_id
        self.cache.save(chat_id, state)
        self.reply(chat_id, "Résumé received. Analyzing...")
        result = poll(
            lambda: self.documents.get(user_id, record.record_id),
            document_terminal_state,
            interval_s=self._interval,
            max_attempts=self._attempts,
            sleep=self._sleep,
        )
        if result.state == "completed" and result.record is not None:
            analysis = result.record.analysis or {}
            self.reply(
                chat_id,
                f"ATS score: {analysis.get('ats_score')}/100. Overall rating: {analysis.get('overall_rating')}/10.",
            )
        elif result.state == "failed":
            self.reply(chat_id, (result.record.error if result.record else None) or "Analysis failed. Please retry.")
        else:
            self.reply(chat_id, STILL_PROCESSING)
        return result

    def _refresh(self, chat_id: str) -> Optional[SessionDetail]:
        """Re-read the session and overwrite the cached index when they disagree."""

        state = self.cache.get(chat_id)
        if state is None or state.session_id is None:
            return None
        try:
            detail = self.interviews.get_session(state.user_id, state.session_id)
        except ServiceError:
            state.session_id = None
            return None
        persisted = detail.session.current_question_index
        if state.question_index != persisted:
            logger.info(
                "Bot cache index stale chat=%s cached=%d persisted=%d",
                chat_id,
                state.question_index,
                persisted,
            )
            state.question_index = persisted
        if detail.session.status not in ("active", "paused"):
            state.session_id = None
            return None
        return detail

    def _show_current(self, chat_id: str, detail: Optional[SessionDetail]) -> Optional[InterviewQuestion]:
        if detail is None:
            return None
        question = detail.current_question
        if question is None:
            self.reply(chat_id, "That was the last question. Finish the interview to get feedback.")
            return None
        self.reply(
            chat_id,
            f"Question {detail.session.current_question_index + 1}/{len(detail.questions)}:\n{question.question}",
        )
        return question


def _session_summary(overall: Optional[float], feedback: dict) -> str:
    lines = [f"Overall score: {overall}/100"]
    strengths = feedback.get("strengths") or []
    recommendations = feedback.get("recommendations") or []
    if strengths:
        lines.append("Strengths: " + "; ".join(strengths[:3]))
    if recommendations:
        lines.append("Next: " + "; ".join(recommendations[:3]))
    return "\n".join(lines)


__all__ = ["InterviewBot", "STILL_PROCESSING"]
