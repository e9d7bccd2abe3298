import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.deps import get_documents
from api.errors import install_error_handlers
from api.routes import router
from config.registry import DOCUMENT_ANALYSIS_KEY, bind_model
from llm_gateway import LlmTimeoutError
from services.documents import DocumentService

HEADERS = {"X-User-Id": "user-7"}
UPLOAD = {
    "fileName": "resume.pdf",
    "mimeType": "application/pdf",
    "fileSize": 4096,
    "text": "Jane Doe. Senior Python engineer. Led a team of five.",
}


@pytest.fixture
def client(fake_models, queue):
    app = FastAPI()
    app.include_router(router)
    install_error_handlers(app)
    app.dependency_overrides[get_documents] = lambda: DocumentService(queue)
    return TestClient(app)


def test_upload_then_poll_until_completed(client, dispatcher):
    res = client.post("/api/documents", json={**UPLOAD, "jobDescription": "Platform engineer"}, headers=HEADERS)
    assert res.status_code == 202, res.text
    record = res.json()
    assert record["status"] == "pending"
    assert "parsedText" not in record

    rid = record["recordId"]
    assert client.get(f"/api/documents/{rid}/status", headers=HEADERS).json()["state"] == "processing"

    dispatcher.run_all()
    status = client.get(f"/api/documents/{rid}/status", headers=HEADERS).json()
    assert status["state"] == "completed"
    assert status["result"]["ats_score"] == 81

    listed = client.get("/api/documents", headers=HEADERS).json()
    assert [r["recordId"] for r in listed] == [rid]


def test_free_plan_allows_one_analysis(client):
    assert client.post("/api/documents", json=UPLOAD, headers=HEADERS).status_code == 202
    denied = client.post("/api/documents", json=UPLOAD, headers=HEADERS)
    assert denied.status_code == 403


def test_rejects_unsupported_format(client):
    res = client.post("/api/documents", json={**UPLOAD, "mimeType": "image/png"}, headers=HEADERS)
    assert res.status_code == 400
    assert "Unsupported file format" in res.json()["detail"]


def test_exhausted_retries_surface_failed_state(client, dispatcher):
    from jobs.runner import GENERIC_FAILURE, execute_job

    rid = client.post("/api/documents", json=UPLOAD, headers=HEADERS).json()["recordId"]

    def _slow(**_):
        raise LlmTimeoutError("timeout")

    bind_model(DOCUMENT_ANALYSIS_KEY, _slow)
    job = dispatcher.jobs.pop()
    for attempt in (1, 2, 3):
        execute_job(job.job_id, job.payload, attempt)

    status = client.get(f"/api/documents/{rid}/status", headers=HEADERS).json()
    assert status["state"] == "failed"
    assert status["error"] == GENERIC_FAILURE

    res = client.post(f"/api/documents/{rid}/reanalyze", json={}, headers=HEADERS)
    assert res.status_code == 202
    assert res.json()["status"] == "processing"
