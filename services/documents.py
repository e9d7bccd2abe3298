"""Résumé upload and queued analysis."""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field

from agents.document_analysis import analyze_document
from config.settings import settings
from jobs.payloads import DocumentAnalysisJob
from jobs.queue import JobQueue
from observability.logger import log_event
from services.errors import InvalidRequestError, RecordNotFound
from services.quota import DOCUMENT_ANALYSES, authorize, record_usage
from storage.documents import get_record, insert_record, list_records, update_record
from storage.records import AnalysisRecord, utcnow
from storage.sqlite import get_conn
from storage.users import ensure_user

logger = logging.getLogger(__name__)


class DocumentUpload(BaseModel):
    file_name: str = Field(min_length=1)
    mime_type: str
    file_size: int = Field(ge=1)
    text: str
    job_description: Optional[str] = None
    language: Optional[str] = None


class DocumentService:
    def __init__(self, queue: Optional[JobQueue] = None) -> None:
        self.queue = queue or JobQueue()

    def upload(self, user_id: str, upload: DocumentUpload) -> AnalysisRecord:
        if upload.file_size > settings.MAX_DOCUMENT_BYTES:
            raise InvalidRequestError(
                f"File is too large. Maximum size is {settings.MAX_DOCUMENT_BYTES // (1024 * 1024)}MB."
            )
        if upload.mime_type not in settings.ALLOWED_DOCUMENT_TYPES:
            raise InvalidRequestError("Unsupported file format. Upload a PDF, DOC, DOCX or TXT file.")
        if not upload.text.strip():
            raise InvalidRequestError("No text could be read from the uploaded document.")

        with get_conn(immediate=True) as conn:
            authorize(conn, user_id, DOCUMENT_ANALYSES)
            user = ensure_user(conn, user_id)
            now = utcnow()
            record = AnalysisRecord(
                record_id=str(uuid.uuid4()),
                user_id=user_id,
                file_name=upload.file_name,
                mime_type=upload.mime_type,
                file_size=upload.file_size,
                parsed_text=upload.text,
                job_description=upload.job_description,
                language=upload.language or user.language,
                status="pending",
                created_at=now,
                updated_at=now,
            )
            insert_record(conn, record)
            record_usage(conn, user_id, DOCUMENT_ANALYSES)
            job = self.queue.stage(conn, self._job(record))
        log_event("document_uploaded", record.record_id, user_id=user_id, file_size=record.file_size)
        self.queue.dispatch(job)
        return record

    def reanalyze(
        self,
        user_id: str,
        record_id: str,
        *,
        job_description: Optional[str] = None,
        language: Optional[str] = None,
    ) -> AnalysisRecord:
        with get_conn(immediate=True) as conn:
            record = self._owned(conn, user_id, record_id)
            if record.status == "processing":
                raise InvalidRequestError("This document is already being analyzed.")
            changes = {"status": "processing", "error": None}
            if job_description is not None:
                changes["job_description"] = job_description
            if language is not None:
                changes["language"] = language
            update_record(conn, record_id, **changes)
            record = record.model_copy(update=changes)
            job = self.queue.stage(conn, self._job(record))
        log_event("document_reanalysis", record_id, user_id=user_id)
        self.queue.dispatch(job)
        return record

    def get(self, user_id: str, record_id: str) -> AnalysisRecord:
        with get_conn() as conn:
            return self._owned(conn, user_id, record_id)

    def list(self, user_id: str, *, limit: int = 20) -> List[AnalysisRecord]:
        with get_conn() as conn:
            return list_records(conn, user_id, limit=limit)

    def run_analysis(self, record_id: str, *, job_description: Optional[str] = None, language: Optional[str] = None) -> AnalysisRecord:
        """Job handler: processing, then completed with the analysis."""

        with get_conn() as conn:
            record = get_record(conn, record_id)
            if record is None:
                raise RecordNotFound(f"Analysis record {record_id} not found")
            user = ensure_user(conn, record.user_id)
            update_record(conn, record_id, status="processing")
        analysis = analyze_document(
            record.parsed_text,
            job_description=job_description if job_description is not None else record.job_description,
            language=language or record.language,
            plan=user.plan,
        )
        with get_conn() as conn:
            update_record(
                conn,
                record_id,
                status="completed",
                analysis=analysis.model_dump(),
                error=None,
                analyzed_at=utcnow(),
            )
            done = get_record(conn, record_id)
            if done is None:
                raise RecordNotFound(f"Analysis record {record_id} not found")
        log_event("document_analyzed", record_id, ats_score=analysis.ats_score)
        return done

    def mark_failed(self, record_id: str, message: str) -> None:
        with get_conn() as conn:
            record = get_record(conn, record_id)
            if record is None or record.status == "completed":
                return
            update_record(conn, record_id, status="failed", error=message)

    def _owned(self, conn, user_id: str, record_id: str) -> AnalysisRecord:
        record = get_record(conn, record_id)
        if record is None or record.user_id != user_id:
            raise RecordNotFound(f"Analysis record {record_id} not found")
        return record

    @staticmethod
    def _job(record: AnalysisRecord) -> DocumentAnalysisJob:
        return DocumentAnalysisJob(
            record_id=record.record_id,
            user_id=record.user_id,
            job_description=record.job_description,
            language=record.language,
        )


__all__ = ["DocumentService", "DocumentUpload"]
