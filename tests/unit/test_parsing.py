import pytest

from agents.parsing import OutputParseError, extract_json, parse_model, strip_code_fences
from agents.types import AnswerFeedback, AnswerVariant, DocumentAnalysis


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_extract_json_from_surrounding_prose():
    raw = 'Sure! Here is the result:\n{"score": 6, "strengths": ["ok"]}\nHope this helps.'
    assert extract_json(raw) == {"score": 6, "strengths": ["ok"]}


def test_extract_json_respects_expected_shape():
    raw = 'Notes [1, 2] then {"questions": []}'
    assert extract_json(raw, expect=dict) == {"questions": []}
    assert extract_json(raw, expect=list) == [1, 2]


def test_extract_json_raises_without_json():
    with pytest.raises(OutputParseError):
        extract_json("I cannot help with that.")


def test_parse_model_validates_schema():
    feedback = parse_model('{"score": 14, "strengths": ["a","b","c","d","e","f"]}', AnswerFeedback)
    assert feedback.score == 10
    assert len(feedback.strengths) == 5


def test_parse_model_rejects_missing_required_field():
    with pytest.raises(OutputParseError):
        parse_model('{"strengths": ["a"]}', AnswerFeedback)


def test_document_analysis_ranges_are_clamped():
    analysis = DocumentAnalysis.model_validate(
        {"atsScore": 140, "overallRating": -2, "sectionScores": {"summary": 120}}
    )
    assert analysis.ats_score == 100
    assert analysis.overall_rating == 0
    assert analysis.section_scores.summary == 100


def test_answer_variant_accepts_provider_and_wire_names():
    from_provider = AnswerVariant.model_validate({"answer": "text", "suggestedFollowups": ["a", "b"]})
    from_wire = AnswerVariant.model_validate(from_provider.model_dump(by_alias=True))
    assert from_wire.content == "text"
    assert from_wire.follow_ups == ["a", "b"]
