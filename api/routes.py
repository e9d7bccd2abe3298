"""FastAPI routes for interview sessions, document analysis and the assistant."""
from __future__ import annotations

from typing import Any, Dict, Type, TypeVar

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from api.deps import current_user, get_assistant, get_documents, get_interviews
from api.schemas import (
    AnalysisResp,
    AnswerResp,
    AssistantReq,
    HistoryResp,
    PollStatusResp,
    QuestionIndexReq,
    ReanalyzeReq,
    SessionResp,
    StartSessionReq,
    SubmitAnswerReq,
    UploadDocumentReq,
    UsageResp,
    UserUpdateReq,
)
from config.settings import settings
from services.assistant import AssistantReply, AssistantRequest, AssistantService
from services.documents import DocumentService, DocumentUpload
from services.interviews import AnswerSubmission, InterviewService, SessionSettings
from services.polling import answer_feedback_state, document_terminal_state, session_feedback_state
from services.quota import usage_snapshot
from storage.sqlite import get_conn
from storage.users import ensure_user, update_user

router = APIRouter(prefix="/api")

M = TypeVar("M", bound=BaseModel)


def _convert(model: Type[M], req: BaseModel) -> M:
    try:
        return model.model_validate(req.model_dump())
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc


def _status(record_id: str, state: Any, result: Any = None, error: Any = None) -> PollStatusResp:
    return PollStatusResp(
        record_id=record_id,
        state=state or "processing",
        result=result if state == "completed" else None,
        error=error if state == "failed" else None,
        retry_after_s=settings.POLL_INTERVAL_S,
    )


@router.post("/interviews", response_model=SessionResp, status_code=201)
def start_interview(
    req: StartSessionReq,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    detail = service.start_session(user_id, _convert(SessionSettings, req))
    return SessionResp.of(detail.session, detail)


@router.get("/interviews", response_model=HistoryResp)
def interview_history(
    limit: int = 10,
    skip: int = 0,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> HistoryResp:
    sessions, total = service.get_history(user_id, limit=limit, skip=skip)
    return HistoryResp(sessions=[SessionResp.of(s) for s in sessions], total=total, limit=limit, skip=skip)


@router.get("/interviews/analytics")
def interview_analytics(
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> Dict[str, Any]:
    return service.get_analytics(user_id)


@router.get("/interviews/{session_id}", response_model=SessionResp)
def get_interview(
    session_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    detail = service.get_session(user_id, session_id)
    return SessionResp.of(detail.session, detail)


@router.get("/interviews/{session_id}/feedback-status", response_model=PollStatusResp)
def interview_feedback_status(
    session_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> PollStatusResp:
    session = service.get_session(user_id, session_id).session
    result = None
    if session.feedback is not None:
        result = {"overallScore": session.overall_score, "feedback": session.feedback}
    return _status(session_id, session_feedback_state(session), result, session.feedback_error)


@router.post("/interviews/{session_id}/answers", response_model=AnswerResp, status_code=202)
def submit_answer(
    session_id: str,
    req: SubmitAnswerReq,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> AnswerResp:
    answer = service.submit_answer(user_id, session_id, _convert(AnswerSubmission, req))
    return AnswerResp.of(answer)


@router.get("/interviews/{session_id}/answers/{answer_id}/status", response_model=PollStatusResp)
def answer_feedback_status(
    session_id: str,
    answer_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> PollStatusResp:
    answer = service.get_answer(user_id, session_id, answer_id)
    result = {"score": answer.score, "feedback": answer.feedback} if answer.analyzed else None
    return _status(answer_id, answer_feedback_state(answer), result, answer.analysis_error)


@router.post("/interviews/{session_id}/complete", response_model=SessionResp)
def complete_interview(
    session_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    return SessionResp.of(service.complete_session(user_id, session_id))


@router.post("/interviews/{session_id}/pause", response_model=SessionResp)
def pause_interview(
    session_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    return SessionResp.of(service.pause_session(user_id, session_id))


@router.post("/interviews/{session_id}/resume", response_model=SessionResp)
def resume_interview(
    session_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    return SessionResp.of(service.resume_session(user_id, session_id))


@router.post("/interviews/{session_id}/abandon", response_model=SessionResp)
def abandon_interview(
    session_id: str,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    return SessionResp.of(service.abandon_session(user_id, session_id))


@router.put("/interviews/{session_id}/question-index", response_model=SessionResp)
def move_question_index(
    session_id: str,
    req: QuestionIndexReq,
    user_id: str = Depends(current_user),
    service: InterviewService = Depends(get_interviews),
) -> SessionResp:
    return SessionResp.of(service.update_question_index(user_id, session_id, req.index))


@router.post("/documents", response_model=AnalysisResp, status_code=202)
def upload_document(
    req: UploadDocumentReq,
    user_id: str = Depends(current_user),
    service: DocumentService = Depends(get_documents),
) -> AnalysisResp:
    return AnalysisResp.of(service.upload(user_id, _convert(DocumentUpload, req)))


@router.get("/documents", response_model=list[AnalysisResp])
def list_documents(
    user_id: str = Depends(current_user),
    service: DocumentService = Depends(get_documents),
) -> list[AnalysisResp]:
    return [AnalysisResp.of(r) for r in service.list(user_id)]


@router.get("/documents/{record_id}", response_model=AnalysisResp)
def get_document(
    record_id: str,
    user_id: str = Depends(current_user),
    service: DocumentService = Depends(get_documents),
) -> AnalysisResp:
    return AnalysisResp.of(service.get(user_id, record_id))


@router.get("/documents/{record_id}/status", response_model=PollStatusResp)
def document_status(
    record_id: str,
    user_id: str = Depends(current_user),
    service: DocumentService = Depends(get_documents),
) -> PollStatusResp:
    record = service.get(user_id, record_id)
    return _status(record_id, document_terminal_state(record), record.analysis, record.error)


@router.post("/documents/{record_id}/reanalyze", response_model=AnalysisResp, status_code=202)
def reanalyze_document(
    record_id: str,
    req: ReanalyzeReq,
    user_id: str = Depends(current_user),
    service: DocumentService = Depends(get_documents),
) -> AnalysisResp:
    record = service.reanalyze(user_id, record_id, job_description=req.job_description, language=req.language)
    return AnalysisResp.of(record)


@router.post("/assistant/answers", response_model=AssistantReply)
def assistant_answer(
    req: AssistantReq,
    user_id: str = Depends(current_user),
    service: AssistantService = Depends(get_assistant),
) -> AssistantReply:
    return service.generate_answer(user_id, _convert(AssistantRequest, req))


@router.get("/usage", response_model=UsageResp)
def usage(user_id: str = Depends(current_user)) -> UsageResp:
    with get_conn() as conn:
        user = ensure_user(conn, user_id)
    return UsageResp(plan=user.plan, usage=usage_snapshot(user_id))


@router.patch("/users/me", response_model=UsageResp)
def update_me(req: UserUpdateReq, user_id: str = Depends(current_user)) -> UsageResp:
    """Update user settings. The plan is owned by billing and cannot be set here."""

    with get_conn() as conn:
        user = update_user(conn, user_id, language=req.language)
    return UsageResp(plan=user.plan, usage=usage_snapshot(user_id))
