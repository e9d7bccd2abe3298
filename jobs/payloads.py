"""Typed job payloads. Jobs carry record ids only, never live objects."""
from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

ANSWER_FEEDBACK = "answer-feedback"
SESSION_FEEDBACK = "session-feedback"
DOCUMENT_ANALYSIS = "document-analysis"
JOB_TYPES = (ANSWER_FEEDBACK, SESSION_FEEDBACK, DOCUMENT_ANALYSIS)


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def queue(self) -> str:
        return self.job_type  # type: ignore[attr-defined]


class AnswerFeedbackJob(_Payload):
    job_type: Literal["answer-feedback"] = ANSWER_FEEDBACK
    answer_id: str
    question_id: str
    session_id: str
    user_id: str


class SessionFeedbackJob(_Payload):
    job_type: Literal["session-feedback"] = SESSION_FEEDBACK
    session_id: str
    user_id: str


class DocumentAnalysisJob(_Payload):
    job_type: Literal["document-analysis"] = DOCUMENT_ANALYSIS
    record_id: str
    user_id: str
    job_description: Optional[str] = None
    language: Optional[Literal["uz", "ru", "en"]] = None


JobPayload = Annotated[
    Union[AnswerFeedbackJob, SessionFeedbackJob, DocumentAnalysisJob],
    Field(discriminator="job_type"),
]

_adapter: TypeAdapter[Any] = TypeAdapter(JobPayload)


def parse_payload(data: Dict[str, Any]) -> Union[AnswerFeedbackJob, SessionFeedbackJob, DocumentAnalysisJob]:
    """Rebuild a payload from its wire (camelCase) form."""

    return _adapter.validate_python(data)


__all__ = [
    "ANSWER_FEEDBACK",
    "AnswerFeedbackJob",
    "DOCUMENT_ANALYSIS",
    "DocumentAnalysisJob",
    "JOB_TYPES",
    "JobPayload",
    "SESSION_FEEDBACK",
    "SessionFeedbackJob",
    "parse_payload",
]
