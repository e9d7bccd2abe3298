import json

import pytest

from config.registry import ANSWER_FEEDBACK_KEY, SESSION_FEEDBACK_KEY, bind_model
from config.settings import settings
from jobs.celery_app import app
from jobs.payloads import ANSWER_FEEDBACK, AnswerFeedbackJob, parse_payload
from jobs.queue import JobQueue, celery_dispatch
from jobs.runner import GENERIC_FAILURE, backoff_ms, execute_job
from llm_gateway import LlmAuthError, LlmTimeoutError
from services.interviews import AnswerSubmission, InterviewService, SessionSettings
from storage.interviews import get_answer, get_question, get_session
from storage.jobs import get_job, recent_jobs
from storage.sqlite import get_conn

REPLY = json.dumps({"score": 6, "keyPointsCovered": ["caching"]})


class Flaky:
    def __init__(self, failures, exc=LlmTimeoutError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self, **_):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc("provider unavailable")
        return REPLY


@pytest.fixture
def answered(fake_models, dispatcher, queue):
    service = InterviewService(queue)
    detail = service.start_session("u1", SessionSettings(type="technical", difficulty="mid", num_questions=5))
    question = detail.questions[0]
    answer = service.submit_answer(
        "u1",
        detail.session.session_id,
        AnswerSubmission(question_id=question.question_id, answer_text="Use caching and pagination.", duration=30),
    )
    job = dispatcher.jobs.pop()
    return detail, answer, job


def test_backoff_doubles():
    assert backoff_ms(1) == 2000
    assert backoff_ms(2) == 4000
    assert backoff_ms(3) == 8000


def test_payload_wire_round_trip():
    job = AnswerFeedbackJob(answer_id="a", question_id="q", session_id="s", user_id="u")
    wire = job.to_wire()
    assert wire["jobType"] == ANSWER_FEEDBACK
    assert wire["answerId"] == "a"
    assert parse_payload(wire) == job
    assert job.queue == "answer-feedback"


def test_two_timeouts_then_success(answered):
    _, answer, job = answered
    flaky = Flaky(2)
    bind_model(ANSWER_FEEDBACK_KEY, flaky)

    first = execute_job(job.job_id, job.payload, 1)
    second = execute_job(job.job_id, job.payload, 2)
    third = execute_job(job.job_id, job.payload, 3)

    assert (first.status, first.delay_ms) == ("retry", 2000)
    assert (second.status, second.delay_ms) == ("retry", 4000)
    assert third.status == "completed"
    assert flaky.calls == 3
    with get_conn() as conn:
        stored = get_answer(conn, answer.answer_id)
        job_row = get_job(conn, job.job_id)
        question = get_question(conn, answer.question_id)
    assert stored.analyzed is True
    assert stored.score == 6
    assert stored.analysis_error is None
    assert stored.feedback["key_points_covered"] == ["caching"]
    assert job_row.status == "completed"
    assert job_row.attempts == 3
    assert question.times_asked == 1
    assert question.average_score == 6


def test_exhausted_retries_mark_answer_failed(answered):
    _, answer, job = answered
    bind_model(ANSWER_FEEDBACK_KEY, Flaky(10))

    outcomes = [execute_job(job.job_id, job.payload, attempt) for attempt in (1, 2, 3)]

    assert [o.status for o in outcomes] == ["retry", "retry", "failed"]
    assert outcomes[-1].error
    with get_conn() as conn:
        stored = get_answer(conn, answer.answer_id)
        job_row = get_job(conn, job.job_id)
    assert stored.analyzed is False
    assert stored.analysis_error == GENERIC_FAILURE
    assert job_row.status == "failed"
    assert "LlmTimeoutError" in job_row.last_error


def test_permanent_error_fails_without_retry(answered):
    _, answer, job = answered
    flaky = Flaky(10, exc=LlmAuthError)
    bind_model(ANSWER_FEEDBACK_KEY, flaky)

    outcome = execute_job(job.job_id, job.payload, 1)

    assert outcome.status == "failed"
    assert flaky.calls == 1
    with get_conn() as conn:
        assert get_answer(conn, answer.answer_id).analysis_error == GENERIC_FAILURE


def test_unparseable_feedback_is_retried(answered):
    _, _, job = answered
    bind_model(ANSWER_FEEDBACK_KEY, lambda **_: "Nice answer, well done.")
    assert execute_job(job.job_id, job.payload, 1).status == "retry"


def test_replay_after_success_overwrites(answered):
    _, answer, job = answered
    execute_job(job.job_id, job.payload, 1)
    execute_job(job.job_id, job.payload, 1)
    with get_conn() as conn:
        stored = get_answer(conn, answer.answer_id)
        question = get_question(conn, answer.question_id)
    assert stored.score == 7.5
    assert question.times_asked == 1


def test_failure_after_success_keeps_result(answered):
    _, answer, job = answered
    execute_job(job.job_id, job.payload, 1)
    bind_model(ANSWER_FEEDBACK_KEY, Flaky(10, exc=LlmAuthError))
    execute_job(job.job_id, job.payload, 1)
    with get_conn() as conn:
        stored = get_answer(conn, answer.answer_id)
    assert stored.analyzed is True
    assert stored.analysis_error is None


def test_missing_record_fails_immediately():
    payload = AnswerFeedbackJob(answer_id="nope", question_id="nope", session_id="s", user_id="u").to_wire()
    outcome = execute_job("job-missing", payload, 1)
    assert outcome.status == "failed"
    assert "RecordNotFound" in outcome.error


def test_empty_session_feedback_needs_no_ai_call(fake_models, dispatcher, queue):
    service = InterviewService(queue)
    detail = service.start_session("u1", SessionSettings(type="technical", difficulty="mid", num_questions=5))
    service.complete_session("u1", detail.session.session_id)
    job = dispatcher.jobs.pop()
    bind_model(SESSION_FEEDBACK_KEY, Flaky(10, exc=LlmAuthError))

    assert execute_job(job.job_id, job.payload, 1).status == "completed"  # no answers: no AI call

    with get_conn() as conn:
        session = get_session(conn, detail.session.session_id)
    assert session.feedback_status == "completed"
    assert session.overall_score == 0


def test_session_feedback_exhausted(fake_models, dispatcher, queue):
    service = InterviewService(queue)
    detail = service.start_session("u1", SessionSettings(type="technical", difficulty="mid", num_questions=5))
    q = detail.questions[0]
    service.submit_answer(
        "u1", detail.session.session_id, AnswerSubmission(question_id=q.question_id, answer_text="answer", duration=5)
    )
    service.complete_session("u1", detail.session.session_id)
    job = dispatcher.jobs.pop()
    bind_model(SESSION_FEEDBACK_KEY, Flaky(10))

    outcomes = [execute_job(job.job_id, job.payload, attempt) for attempt in (1, 2, 3)]

    assert outcomes[-1].status == "failed"
    with get_conn() as conn:
        session = get_session(conn, detail.session.session_id)
    assert session.feedback_status == "failed"
    assert session.feedback_error == GENERIC_FAILURE
    assert session.status == "completed"


def test_celery_task_runs_eagerly(answered):
    from jobs.tasks import process_job

    _, answer, job = answered
    result = process_job.apply(args=[job.job_id, job.payload]).get()
    assert result["status"] == "completed"
    with get_conn() as conn:
        assert get_answer(conn, answer.answer_id).analyzed is True


@pytest.fixture
def eager_celery(monkeypatch):
    monkeypatch.setitem(app.conf, "task_always_eager", True)
    monkeypatch.setattr(settings, "JOB_BACKOFF_MS", 0)


def _submit_through_celery():
    service = InterviewService(JobQueue(celery_dispatch))
    detail = service.start_session("u1", SessionSettings(type="technical", difficulty="mid", num_questions=5))
    question = detail.questions[0]
    return service.submit_answer(
        "u1",
        detail.session.session_id,
        AnswerSubmission(question_id=question.question_id, answer_text="Use caching and pagination.", duration=30),
    )


def test_eager_celery_retries_until_success(fake_models, eager_celery):
    flaky = Flaky(2)
    bind_model(ANSWER_FEEDBACK_KEY, flaky)

    answer = _submit_through_celery()

    assert flaky.calls == 3
    with get_conn() as conn:
        stored = get_answer(conn, answer.answer_id)
        [job_row] = recent_jobs(conn)
    assert stored.analyzed is True
    assert stored.score == 6
    assert (job_row.status, job_row.attempts) == ("completed", 3)


def test_eager_celery_exhausts_and_marks_failed(fake_models, eager_celery):
    flaky = Flaky(10)
    bind_model(ANSWER_FEEDBACK_KEY, flaky)

    answer = _submit_through_celery()

    assert flaky.calls == 3
    with get_conn() as conn:
        stored = get_answer(conn, answer.answer_id)
        [job_row] = recent_jobs(conn)
    assert stored.analyzed is False
    assert stored.analysis_error == GENERIC_FAILURE
    assert (job_row.status, job_row.attempts) == ("failed", 3)


def test_redispatch_routes_to_maintenance_queue():
    from jobs.celery_app import route_task

    assert route_task("jobs.redispatch_pending", [], {}, {}) == {"queue": "maintenance"}
    assert route_task("jobs.process_job", ["j1", {"jobType": "document-analysis"}], {}, {}) == {
        "queue": "document-analysis"
    }
