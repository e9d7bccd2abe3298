import json

from agents.answer_generation import DEFAULT_KEY_POINTS, generate_answers, parse_answer
from agents.classifiers import KeywordClassifier
from config.registry import ANSWER_GEN_KEY, bind_model


def test_behavioral_question_gets_star_breakdown(fake_models):
    answers = generate_answers("Tell me about a time you handled a conflict.", variations=2, length="short")
    assert [a.style for a in answers] == ["professional", "balanced"]
    assert answers[0].star is not None
    assert answers[0].star.situation == "s"
    assert len(answers[0].follow_ups) >= 2
    assert fake_models[ANSWER_GEN_KEY][0]["max_tokens"] == 300


def test_technical_question_drops_star(fake_models):
    answers = generate_answers("Explain the difference between TCP and UDP.")
    assert len(answers) == 1
    assert answers[0].star is None


def test_history_and_profile_are_sent(fake_models):
    history = [{"role": "user", "content": "What is REST?"}, {"role": "assistant", "content": "An architectural style."}]
    generate_answers("Why is it stateless?", history=history, profile="Strengths: APIs")
    messages = fake_models[ANSWER_GEN_KEY][0]["messages"]
    assert "Strengths: APIs" in messages[0]["content"]
    assert messages[1:3] == history


def test_non_json_reply_degrades_to_raw_text():
    bind_model(ANSWER_GEN_KEY, lambda **_: "Just talk about your last project honestly.")
    answers = generate_answers("Describe a situation where you failed.", classifier=KeywordClassifier())
    assert answers[0].content == "Just talk about your last project honestly."
    assert answers[0].star is not None
    assert answers[0].key_points
    assert len(answers[0].follow_ups) >= 2


def test_parse_answer_clamps_confidence():
    answer = parse_answer('{"answer": "x", "confidence": 3}', style="simple", behavioral=False)
    assert answer.confidence == 1.0
    assert answer.style == "simple"


def test_strict_language_lowers_temperature(fake_models):
    generate_answers("Explain caching.", language="uz")
    assert fake_models[ANSWER_GEN_KEY][0]["temperature"] <= 0.5


def test_short_key_point_list_is_topped_up_to_three():
    answer = parse_answer('{"answer": "x", "keyPoints": ["Use an index"]}', style="balanced", behavioral=False)
    assert len(answer.key_points) == 3
    assert answer.key_points[0] == "Use an index"
    assert answer.key_points[1:] == list(DEFAULT_KEY_POINTS[:2])


def test_long_key_point_list_is_capped_at_five():
    points = [f"point {i}" for i in range(7)]
    answer = parse_answer(json.dumps({"answer": "x", "keyPoints": points}), style="simple", behavioral=False)
    assert answer.key_points == points[:5]


def test_technical_question_asks_for_specifics(fake_models):
    generate_answers("Explain how you would design a rate limiter.")
    generate_answers("Why do you want this job?")
    first, second = fake_models[ANSWER_GEN_KEY]
    assert "trade-offs" in first["messages"][-1]["content"]
    assert "trade-offs" not in second["messages"][-1]["content"]
