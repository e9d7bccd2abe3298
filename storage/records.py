"""Persisted record models and row decoding."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Plan = Literal["free", "pro", "elite", "enterprise"]
Language = Literal["uz", "ru", "en"]
Feature = Literal["mock_interviews", "document_analyses"]
SessionStatus = Literal["active", "paused", "completed", "abandoned"]
FeedbackStatus = Literal["none", "pending", "completed", "failed"]
DocumentStatus = Literal["pending", "processing", "completed", "failed"]
JobStatus = Literal["pending", "queued", "running", "retrying", "completed", "failed"]


def utcnow() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def dumps(value: Any) -> Optional[str]:
    return None if value is None else json.dumps(value, ensure_ascii=False)


def loads(raw: Optional[str], default: Any = None) -> Any:
    if raw is None:
        return default
    return json.loads(raw)


class UserRecord(BaseModel):
    user_id: str
    plan: Plan = "free"
    language: Language = "en"
    created_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "UserRecord":
        return cls(**dict(row))


class InterviewSession(BaseModel):
    session_id: str
    user_id: str
    type: str
    difficulty: str
    domain: str
    technology: List[str] = Field(default_factory=list)
    num_questions: int
    mode: str = "text"
    time_limit: Optional[int] = None
    language: Language = "en"
    status: SessionStatus = "active"
    current_question_index: int = 0
    question_ids: List[str] = Field(default_factory=list)
    answer_ids: List[str] = Field(default_factory=list)
    started_at: str
    completed_at: Optional[str] = None
    overall_score: Optional[float] = None
    feedback: Optional[Dict[str, Any]] = None
    feedback_status: FeedbackStatus = "none"
    feedback_error: Optional[str] = None
    context_id: Optional[str] = None
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "InterviewSession":
        data = dict(row)
        data["technology"] = loads(data["technology"], [])
        data["question_ids"] = loads(data["question_ids"], [])
        data["answer_ids"] = loads(data["answer_ids"], [])
        data["feedback"] = loads(data["feedback"])
        return cls(**data)


class InterviewQuestion(BaseModel):
    question_id: str
    session_id: str
    order: int
    category: str
    difficulty: str
    question: str
    expected_key_points: List[str] = Field(default_factory=list)
    hints: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    times_asked: int = 0
    average_score: Optional[float] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "InterviewQuestion":
        data = dict(row)
        data["order"] = data.pop("position")
        for key in ("expected_key_points", "hints", "tags"):
            data[key] = loads(data[key], [])
        return cls(**data)


class InterviewAnswer(BaseModel):
    answer_id: str
    session_id: str
    question_id: str
    user_id: str
    answer_type: str = "text"
    content: str
    audio_url: Optional[str] = None
    duration: Optional[int] = None
    submitted_at: str
    analyzed: bool = False
    score: Optional[float] = None
    feedback: Optional[Dict[str, Any]] = None
    analysis_error: Optional[str] = None
    ai_model: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "InterviewAnswer":
        data = dict(row)
        data["analyzed"] = bool(data["analyzed"])
        data["feedback"] = loads(data["feedback"])
        return cls(**data)


class AnalysisRecord(BaseModel):
    record_id: str
    user_id: str
    file_name: str
    mime_type: str
    file_size: int
    parsed_text: str
    job_description: Optional[str] = None
    language: Language = "en"
    status: DocumentStatus = "pending"
    analysis: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: str
    updated_at: str
    analyzed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "AnalysisRecord":
        data = dict(row)
        data["analysis"] = loads(data["analysis"])
        return cls(**data)


class ContextMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    type: str = "message"
    timestamp: str = Field(default_factory=utcnow)


class ConversationContext(BaseModel):
    context_id: str
    user_id: str
    kind: str = "interview"
    topics: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
    archived: bool = False
    tokens_used: int = 0
    created_at: str
    updated_at: str
    messages: List[ContextMessage] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row, messages: Optional[List[ContextMessage]] = None) -> "ConversationContext":
        data = dict(row)
        data["topics"] = loads(data["topics"], [])
        data["context"] = loads(data["context"], {})
        data["archived"] = bool(data["archived"])
        return cls(**data, messages=messages or [])


class JobRecord(BaseModel):
    job_id: str
    queue: str
    job_type: str
    payload: Dict[str, Any]
    status: JobStatus = "pending"
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: str
    updated_at: str
    dispatched_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "JobRecord":
        data = dict(row)
        data["payload"] = loads(data["payload"], {})
        return cls(**data)


__all__ = [
    "AnalysisRecord",
    "ContextMessage",
    "ConversationContext",
    "InterviewAnswer",
    "InterviewQuestion",
    "InterviewSession",
    "JobRecord",
    "UserRecord",
    "dumps",
    "loads",
    "utcnow",
]
