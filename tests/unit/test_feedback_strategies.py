import pytest

from agents.answer_feedback import analyze_answer, reconcile_key_points
from agents.document_analysis import analyze_document
from agents.parsing import OutputParseError
from agents.session_feedback import ScoredAnswer, analyze_session, empty_session_feedback, score_distribution
from agents.types import AnswerFeedback
from config.registry import ANSWER_FEEDBACK_KEY, SESSION_FEEDBACK_KEY, bind_model


def test_analyze_answer_partitions_key_points(fake_models):
    feedback = analyze_answer(
        question="How would you scale an API?",
        answer="Add caching and pagination.",
        expected_key_points=["caching", "rate limiting", "pagination"],
    )
    assert feedback.score == 7.5
    assert feedback.key_points_covered == ["caching", "pagination"]
    assert feedback.key_points_missed == ["rate limiting"]
    prompt = fake_models[ANSWER_FEEDBACK_KEY][0]["messages"][1]["content"]
    assert "- rate limiting" in prompt


def test_analyze_answer_with_braces_in_answer(fake_models):
    feedback = analyze_answer(question="Show a dict literal", answer="{'a': 1} and {b}")
    assert feedback.score == 7.5


def test_analyze_answer_raises_on_garbage():
    bind_model(ANSWER_FEEDBACK_KEY, lambda **_: "Great answer!")
    with pytest.raises(OutputParseError):
        analyze_answer(question="q", answer="a")


def test_reconcile_ignores_unknown_covered_points():
    feedback = AnswerFeedback(score=5, key_points_covered=["Caching", "something else"])
    reconciled = reconcile_key_points(feedback, ["caching", "indexes"])
    assert reconciled.key_points_covered == ["caching"]
    assert reconciled.key_points_missed == ["indexes"]


def test_session_prompt_marks_unscored_answers(fake_models):
    answers = [
        ScoredAnswer(question="Q1", category="technical", answer="A1", score=8.0),
        ScoredAnswer(question="Q2", category="behavioral", answer="A2", score=None),
    ]
    feedback = analyze_session(answers, interview_type="mixed", difficulty="mid")
    assert feedback.overall_score == 72
    assert feedback.ratings.communication == 8
    prompt = fake_models[SESSION_FEEDBACK_KEY][0]["messages"][1]["content"]
    assert "Score: N/A" in prompt
    assert "Score: 8.0/10" in prompt


def test_session_feedback_garbage_raises():
    bind_model(SESSION_FEEDBACK_KEY, lambda **_: "[]")
    with pytest.raises(OutputParseError):
        analyze_session([], interview_type="technical", difficulty="mid")


def test_empty_session_feedback_scores_zero():
    assert empty_session_feedback().overall_score == 0


def test_score_distribution_buckets():
    answers = [ScoredAnswer("q", "technical", "a", s) for s in (9, 7, 5, 1, None)]
    assert score_distribution(answers) == {
        "excellent (8-10)": 1,
        "good (6-8)": 1,
        "fair (4-6)": 1,
        "poor (0-4)": 1,
        "unscored": 1,
    }


def test_analyze_document_includes_job_description(fake_models):
    from config.registry import DOCUMENT_ANALYSIS_KEY

    analysis = analyze_document("Jane Doe, Python engineer", job_description="Kubernetes platform role")
    assert analysis.ats_score == 81
    assert analysis.section_scores.summary == 60
    prompt = fake_models[DOCUMENT_ANALYSIS_KEY][0]["messages"][1]["content"]
    assert "Kubernetes platform role" in prompt
