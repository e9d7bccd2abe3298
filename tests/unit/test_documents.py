import pytest

from config.registry import DOCUMENT_ANALYSIS_KEY, bind_model
from jobs.runner import GENERIC_FAILURE, execute_job
from services.documents import DocumentService, DocumentUpload
from services.errors import InvalidRequestError, QuotaExceeded, RecordNotFound
from services.quota import DOCUMENT_ANALYSES, usage_snapshot
from llm_gateway import LlmAuthError


def _upload(**overrides):
    data = dict(
        file_name="resume.pdf",
        mime_type="application/pdf",
        file_size=2048,
        text="Jane Doe. Python engineer with 6 years of experience.",
    )
    data.update(overrides)
    return DocumentUpload(**data)


@pytest.fixture
def service(fake_models, queue):
    return DocumentService(queue)


def test_upload_queues_analysis_and_consumes_quota(service, dispatcher):
    record = service.upload("u1", _upload(job_description="Backend role"))
    assert record.status == "pending"
    assert [j.job_type for j in dispatcher.jobs] == ["document-analysis"]
    assert dispatcher.jobs[0].payload["recordId"] == record.record_id
    assert usage_snapshot("u1")[DOCUMENT_ANALYSES] == {"used": 1, "limit": 1}


def test_second_free_upload_is_rejected(service):
    service.upload("u1", _upload())
    with pytest.raises(QuotaExceeded):
        service.upload("u1", _upload())
    assert len(service.list("u1")) == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"file_size": 6 * 1024 * 1024},
        {"mime_type": "image/png"},
        {"text": "   "},
    ],
)
def test_invalid_uploads_are_rejected(service, overrides):
    with pytest.raises(InvalidRequestError):
        service.upload("u1", _upload(**overrides))
    assert usage_snapshot("u1")[DOCUMENT_ANALYSES]["used"] == 0


def test_analysis_job_completes_record(service, dispatcher):
    record = service.upload("u1", _upload())
    outcome = dispatcher.run_all()[0]
    assert outcome.status == "completed"
    done = service.get("u1", record.record_id)
    assert done.status == "completed"
    assert done.analysis["ats_score"] == 81
    assert done.analyzed_at is not None


def test_permanent_failure_marks_record_failed(service, dispatcher):
    record = service.upload("u1", _upload())

    def _denied(**_):
        raise LlmAuthError("401")

    bind_model(DOCUMENT_ANALYSIS_KEY, _denied)
    job = dispatcher.jobs.pop()
    assert execute_job(job.job_id, job.payload, 1).status == "failed"
    failed = service.get("u1", record.record_id)
    assert failed.status == "failed"
    assert failed.error == GENERIC_FAILURE


def test_reanalyze_reuses_record_without_quota(service, dispatcher):
    record = service.upload("u1", _upload())
    dispatcher.run_all()
    again = service.reanalyze("u1", record.record_id, job_description="Data role")
    assert again.status == "processing"
    assert again.job_description == "Data role"
    with pytest.raises(InvalidRequestError):
        service.reanalyze("u1", record.record_id)
    assert dispatcher.jobs[0].payload["jobDescription"] == "Data role"
    dispatcher.run_all()
    assert service.get("u1", record.record_id).status == "completed"
    assert usage_snapshot("u1")[DOCUMENT_ANALYSES]["used"] == 1


def test_records_are_private(service):
    record = service.upload("u1", _upload())
    with pytest.raises(RecordNotFound):
        service.get("u2", record.record_id)
