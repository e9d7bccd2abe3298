import json

import pytest

from config.registry import ANSWER_FEEDBACK_KEY, SESSION_FEEDBACK_KEY, bind_model
from services.context_store import ContextStore
from services.errors import RecordNotFound
from services.feedback import FeedbackAnalyzer
from services.interviews import AnswerSubmission, InterviewService, SessionSettings
from storage.interviews import get_question
from storage.sqlite import get_conn


def _session_with_answers(queue, texts, n=5):
    service = InterviewService(queue)
    detail = service.start_session("u1", SessionSettings(type="technical", difficulty="mid", num_questions=n))
    answers = [
        service.submit_answer(
            "u1",
            detail.session.session_id,
            AnswerSubmission(question_id=question.question_id, answer_text=text, duration=10),
        )
        for question, text in zip(detail.questions, texts)
    ]
    return service, detail, answers


def test_answer_feedback_updates_answer_stats_and_context(fake_models, queue):
    _, detail, answers = _session_with_answers(queue, ["caching and pagination"])
    analyzer = FeedbackAnalyzer()

    scored = analyzer.generate_answer_feedback(answers[0].answer_id, answers[0].question_id)

    assert scored.analyzed is True
    assert scored.score == 7.5
    assert scored.ai_model
    ctx = ContextStore().get_context(detail.session.context_id)
    assert ctx.context["lastScoredAnswerId"] == answers[0].answer_id
    assert ctx.context["lastScore"] == 7.5


def test_question_stats_average_all_answers(fake_models, queue):
    _, _, answers = _session_with_answers(queue, ["first"])
    analyzer = FeedbackAnalyzer()
    scores = iter([4.0, 8.0])
    bind_model(ANSWER_FEEDBACK_KEY, lambda **_: json.dumps({"score": next(scores)}))
    analyzer.generate_answer_feedback(answers[0].answer_id, answers[0].question_id)
    with get_conn() as conn:
        assert get_question(conn, answers[0].question_id).average_score == 4.0
    analyzer.generate_answer_feedback(answers[0].answer_id, answers[0].question_id)
    with get_conn() as conn:
        question = get_question(conn, answers[0].question_id)
    assert question.times_asked == 1
    assert question.average_score == 8.0


def test_stats_failure_does_not_fail_scoring(fake_models, queue, monkeypatch):
    import services.feedback as module

    _, _, answers = _session_with_answers(queue, ["first"])

    def _broken(*args, **kwargs):
        raise RuntimeError("locked")

    monkeypatch.setattr(module, "update_question_stats", _broken)
    scored = FeedbackAnalyzer().generate_answer_feedback(answers[0].answer_id, answers[0].question_id)
    assert scored.analyzed is True


def test_session_feedback_uses_scored_and_unscored_answers(fake_models, queue):
    service, detail, answers = _session_with_answers(queue, ["one", "two"])
    analyzer = FeedbackAnalyzer()
    analyzer.generate_answer_feedback(answers[0].answer_id, answers[0].question_id)
    service.complete_session("u1", detail.session.session_id)

    session = analyzer.generate_session_feedback(detail.session.session_id)

    assert session.overall_score == 72
    assert session.feedback_status == "completed"
    assert session.feedback["ratings"]["communication"] == 8
    prompt = fake_models[SESSION_FEEDBACK_KEY][0]["messages"][1]["content"]
    assert "Score: 7.5/10" in prompt
    assert "Score: N/A" in prompt


def test_session_feedback_without_answers(fake_models, queue):
    service, detail, _ = _session_with_answers(queue, [])
    service.complete_session("u1", detail.session.session_id)

    session = FeedbackAnalyzer().generate_session_feedback(detail.session.session_id)

    assert session.overall_score == 0
    assert session.feedback["weaknesses"]
    assert fake_models[SESSION_FEEDBACK_KEY] == []


def test_failure_marks_do_not_override_success(fake_models, queue):
    service, detail, answers = _session_with_answers(queue, ["one"])
    analyzer = FeedbackAnalyzer()
    analyzer.generate_answer_feedback(answers[0].answer_id, answers[0].question_id)
    service.complete_session("u1", detail.session.session_id)
    analyzer.generate_session_feedback(detail.session.session_id)

    analyzer.mark_answer_feedback_failed(answers[0].answer_id, "boom")
    analyzer.mark_session_feedback_failed(detail.session.session_id, "boom")

    after = service.get_session("u1", detail.session.session_id)
    assert after.answers[0].analysis_error is None
    assert after.session.feedback_status == "completed"
    assert after.session.feedback_error is None


def test_session_deleted_during_scoring_raises_not_found(fake_models, queue):
    _, detail, _ = _session_with_answers(queue, ["caching"])
    session_id = detail.session.session_id

    def _delete_then_reply(**_):
        with get_conn() as conn:
            conn.execute("DELETE FROM interview_sessions WHERE session_id = ?", (session_id,))
        return json.dumps({"overallScore": 60})

    bind_model(SESSION_FEEDBACK_KEY, _delete_then_reply)
    with pytest.raises(RecordNotFound):
        FeedbackAnalyzer().generate_session_feedback(session_id)
