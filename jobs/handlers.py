"""Job type to handler wiring."""
from __future__ import annotations

from typing import Any, Callable, Dict

from jobs.payloads import ANSWER_FEEDBACK, DOCUMENT_ANALYSIS, SESSION_FEEDBACK
from services.documents import DocumentService
from services.feedback import FeedbackAnalyzer


def _answer_feedback(job: Any) -> None:
    FeedbackAnalyzer().generate_answer_feedback(job.answer_id, job.question_id)


def _session_feedback(job: Any) -> None:
    FeedbackAnalyzer().generate_session_feedback(job.session_id)


def _document_analysis(job: Any) -> None:
    DocumentService().run_analysis(job.record_id, job_description=job.job_description, language=job.language)


HANDLERS: Dict[str, Callable[[Any], None]] = {
    ANSWER_FEEDBACK: _answer_feedback,
    SESSION_FEEDBACK: _session_feedback,
    DOCUMENT_ANALYSIS: _document_analysis,
}

FAILURE_HOOKS: Dict[str, Callable[[Any, str], None]] = {
    ANSWER_FEEDBACK: lambda job, message: FeedbackAnalyzer().mark_answer_feedback_failed(job.answer_id, message),
    SESSION_FEEDBACK: lambda job, message: FeedbackAnalyzer().mark_session_feedback_failed(job.session_id, message),
    DOCUMENT_ANALYSIS: lambda job, message: DocumentService().mark_failed(job.record_id, message),
}


__all__ = ["FAILURE_HOOKS", "HANDLERS"]
