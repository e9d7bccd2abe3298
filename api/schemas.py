"""Pydantic schemas for the interview preparation API (camelCase on the wire)."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from services.interviews import SessionDetail
from storage.records import AnalysisRecord, InterviewAnswer, InterviewQuestion, InterviewSession


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartSessionReq(CamelModel):
    type: Literal["technical", "behavioral", "case_study", "mixed"]
    difficulty: Literal["junior", "mid", "senior"]
    domain: str = ""
    technology: List[str] = Field(default_factory=list)
    num_questions: int = Field(ge=5, le=20)
    mode: Literal["text", "audio"] = "text"
    time_limit: Optional[int] = Field(default=None, ge=1)
    language: Optional[Literal["uz", "ru", "en"]] = None


class SubmitAnswerReq(CamelModel):
    question_id: str
    answer_type: Literal["text", "audio"] = "text"
    answer_text: Optional[str] = None
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    duration: int = Field(ge=1)


class QuestionIndexReq(CamelModel):
    index: int = Field(ge=0)


class UploadDocumentReq(CamelModel):
    file_name: str
    mime_type: str
    file_size: int = Field(ge=1)
    text: str
    job_description: Optional[str] = None
    language: Optional[Literal["uz", "ru", "en"]] = None


class ReanalyzeReq(CamelModel):
    job_description: Optional[str] = None
    language: Optional[Literal["uz", "ru", "en"]] = None


class AssistantReq(CamelModel):
    question: str = Field(min_length=3)
    context_id: Optional[str] = None
    variations: int = Field(default=1, ge=1, le=3)
    length: Literal["short", "medium", "long"] = "medium"
    language: Optional[Literal["uz", "ru", "en"]] = None


class UserUpdateReq(CamelModel):
    model_config = ConfigDict(extra="forbid")

    language: Optional[Literal["uz", "ru", "en"]] = None


class QuestionResp(CamelModel):
    question_id: str
    order: int
    category: str
    difficulty: str
    question: str
    hints: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    times_asked: int = 0
    average_score: Optional[float] = None

    @classmethod
    def of(cls, q: InterviewQuestion) -> "QuestionResp":
        return cls(**q.model_dump(exclude={"session_id", "expected_key_points"}))


class AnswerResp(CamelModel):
    answer_id: str
    session_id: str
    question_id: str
    answer_type: str
    content: str
    audio_url: Optional[str] = None
    duration: Optional[int] = None
    submitted_at: str
    analyzed: bool
    score: Optional[float] = None
    feedback: Optional[Dict[str, Any]] = None
    analysis_error: Optional[str] = None

    @classmethod
    def of(cls, a: InterviewAnswer) -> "AnswerResp":
        return cls(**a.model_dump(exclude={"user_id", "ai_model"}))


class SessionResp(CamelModel):
    session_id: str
    type: str
    difficulty: str
    domain: str
    technology: List[str]
    num_questions: int
    mode: str
    time_limit: Optional[int] = None
    language: str
    status: str
    current_question_index: int
    question_ids: List[str]
    answer_ids: List[str]
    started_at: str
    completed_at: Optional[str] = None
    overall_score: Optional[float] = None
    feedback: Optional[Dict[str, Any]] = None
    feedback_status: str
    feedback_error: Optional[str] = None
    questions: List[QuestionResp] = Field(default_factory=list)
    answers: List[AnswerResp] = Field(default_factory=list)

    @classmethod
    def of(cls, session: InterviewSession, detail: Optional[SessionDetail] = None) -> "SessionResp":
        data = session.model_dump(exclude={"user_id", "context_id", "updated_at"})
        if detail is not None:
            data["questions"] = [QuestionResp.of(q) for q in detail.questions]
            data["answers"] = [AnswerResp.of(a) for a in detail.answers]
        return cls(**data)


class HistoryResp(CamelModel):
    sessions: List[SessionResp]
    total: int
    limit: int
    skip: int


class AnalysisResp(CamelModel):
    record_id: str
    file_name: str
    mime_type: str
    file_size: int
    job_description: Optional[str] = None
    language: str
    status: str
    analysis: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: str
    analyzed_at: Optional[str] = None

    @classmethod
    def of(cls, record: AnalysisRecord) -> "AnalysisResp":
        return cls(**record.model_dump(exclude={"user_id", "parsed_text", "updated_at"}))


class PollStatusResp(CamelModel):
    """Single side-effect-free read for clients running the polling loop."""

    record_id: str
    state: Literal["processing", "completed", "failed"]
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    retry_after_s: float


class UsageResp(CamelModel):
    plan: str
    usage: Dict[str, Dict[str, int]]


__all__ = [
    "AnalysisResp",
    "AnswerResp",
    "AssistantReq",
    "CamelModel",
    "HistoryResp",
    "PollStatusResp",
    "QuestionIndexReq",
    "QuestionResp",
    "ReanalyzeReq",
    "SessionResp",
    "StartSessionReq",
    "SubmitAnswerReq",
    "UploadDocumentReq",
    "UsageResp",
    "UserUpdateReq",
]
