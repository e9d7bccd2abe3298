"""Conversational answer assistant backed by the rolling context store."""
from __future__ import annotations

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agents.answer_generation import generate_answers
from agents.types import AnswerVariant
from llm_gateway import LlmGatewayError, user_message
from services.context_store import ContextStore, estimate_tokens
from services.errors import AiUnavailableError, RecordNotFound
from storage.documents import latest_completed
from storage.records import AnalysisRecord
from storage.sqlite import get_conn
from storage.users import ensure_user

logger = logging.getLogger(__name__)


class AssistantRequest(BaseModel):
    question: str = Field(min_length=3)
    context_id: Optional[str] = None
    variations: int = Field(default=1, ge=1, le=3)
    length: Literal["short", "medium", "long"] = "medium"
    language: Optional[Literal["uz", "ru", "en"]] = None


class AssistantReply(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    context_id: str
    is_follow_up: bool
    answers: List[AnswerVariant]


class AssistantService:
    def __init__(self, contexts: Optional[ContextStore] = None) -> None:
        self.contexts = contexts or ContextStore()

    def generate_answer(self, user_id: str, request: AssistantRequest) -> AssistantReply:
        with get_conn() as conn:
            user = ensure_user(conn, user_id)
            analysis = latest_completed(conn, user_id)
        if request.context_id:
            ctx = self.contexts.get_context(request.context_id)
            if ctx.user_id != user_id:
                raise RecordNotFound(f"Conversation context {request.context_id} not found")
        else:
            ctx = self.contexts.get_or_create_context(user_id, kind="assistant")

        is_follow_up = self.contexts.detect_follow_up(ctx.context_id, request.question)
        try:
            answers = generate_answers(
                request.question,
                variations=request.variations,
                length=request.length,
                language=request.language or user.language,
                plan=user.plan,
                history=[{"role": m.role, "content": m.content} for m in ctx.messages if m.role != "system"],
                profile=_profile_summary(analysis),
                classifier=self.contexts.classifier,
            )
        except LlmGatewayError as exc:
            logger.error("Answer generation failed user=%s: %s", user_id, exc)
            raise AiUnavailableError(user_message(exc)) from exc

        self.contexts.add_message(ctx.context_id, "user", request.question, type="question")
        self.contexts.add_message(ctx.context_id, "assistant", answers[0].content, type="answer")
        self.contexts.update_context(ctx.context_id, {"lastQuestion": request.question, "followUp": is_follow_up})
        self.contexts.add_tokens(ctx.context_id, estimate_tokens(request.question, *(a.content for a in answers)))
        return AssistantReply(context_id=ctx.context_id, is_follow_up=is_follow_up, answers=answers)


def _profile_summary(record: Optional[AnalysisRecord]) -> Optional[str]:
    if record is None or not record.analysis:
        return None
    strengths = ", ".join(record.analysis.get("strengths", [])[:3])
    gaps = ", ".join(record.analysis.get("missing_keywords", [])[:5])
    lines = []
    if strengths:
        lines.append(f"Strengths: {strengths}")
    if gaps:
        lines.append(f"Gaps to address carefully: {gaps}")
    return "\n".join(lines) or None


__all__ = ["AssistantReply", "AssistantRequest", "AssistantService"]
