"""Lazily built service singletons for request handlers."""
from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from jobs.queue import JobQueue
from services.assistant import AssistantService
from services.context_store import ContextStore
from services.documents import DocumentService
from services.interviews import InterviewService

_queue: Optional[JobQueue] = None
_contexts: Optional[ContextStore] = None
_interviews: Optional[InterviewService] = None
_documents: Optional[DocumentService] = None
_assistant: Optional[AssistantService] = None


def get_queue() -> JobQueue:
    global _queue
    if _queue is None:
        _queue = JobQueue()
    return _queue


def get_contexts() -> ContextStore:
    global _contexts
    if _contexts is None:
        _contexts = ContextStore()
    return _contexts


def get_interviews() -> InterviewService:
    global _interviews
    if _interviews is None:
        _interviews = InterviewService(get_queue(), get_contexts())
    return _interviews


def get_documents() -> DocumentService:
    global _documents
    if _documents is None:
        _documents = DocumentService(get_queue())
    return _documents


def get_assistant() -> AssistantService:
    global _assistant
    if _assistant is None:
        _assistant = AssistantService(get_contexts())
    return _assistant


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Authentication happens upstream; the gateway forwards the user id."""

    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id
