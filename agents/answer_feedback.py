"""Per-answer scoring strategy."""
from __future__ import annotations

from textwrap import dedent
from typing import List, Optional

from agents.common import bullet_list, language_directive, schema_directive, temperature_for
from agents.parsing import parse_model
from agents.types import AnswerFeedback
from config.registry import ANSWER_FEEDBACK_KEY, get_model
from config.settings import settings


def analyze_answer(
    *,
    question: str,
    answer: str,
    expected_key_points: Optional[List[str]] = None,
    category: str = "technical",
    difficulty: str = "mid",
    language: str = "en",
    plan: Optional[str] = None,
) -> AnswerFeedback:
    """Score one answer on a 0-10 scale.

    Raises:
        OutputParseError: When the reply carries no conforming feedback object.
            Scores have no safe default so the caller should retry.
    """

    expected = list(expected_key_points or [])
    messages = [
        {
            "role": "system",
            "content": "You are an experienced interviewer giving fair, specific feedback. "
            + language_directive(language),
        },
        {"role": "user", "content": _build_task(question, answer, expected, category, difficulty)},
    ]
    raw = get_model(ANSWER_FEEDBACK_KEY)(
        messages=messages,
        plan=plan,
        max_tokens=settings.FEEDBACK_MAX_TOKENS,
        temperature=temperature_for(language, 0.5),
        json_mode=True,
    )
    feedback = parse_model(raw, AnswerFeedback)
    return reconcile_key_points(feedback, expected)


def reconcile_key_points(feedback: AnswerFeedback, expected: List[str]) -> AnswerFeedback:
    """Keep covered/missed as a partition of the expected key points."""

    if not expected:
        return feedback
    covered_lower = {item.strip().lower() for item in feedback.key_points_covered}
    covered = [point for point in expected if point.strip().lower() in covered_lower]
    missed = [point for point in expected if point not in covered]
    return feedback.model_copy(update={"key_points_covered": covered, "key_points_missed": missed})


def _build_task(question: str, answer: str, expected: List[str], category: str, difficulty: str) -> str:
    contract = dedent(
        """
        - score: number from 0 to 10.
        - strengths: three to five strengths of the answer.
        - improvements: three to five areas to improve.
        - keyPointsCovered: the expected key points the answer covers, copied verbatim.
        - keyPointsMissed: the expected key points the answer misses, copied verbatim.
        - suggestions: three to five actionable suggestions.
        - exampleAnswer: an improved example answer (optional).
        """
    )
    header = (
        f"Evaluate this {category.replace('_', ' ')} interview answer for a {difficulty} level candidate.\n"
        f"Question: {question}"
    )
    sections = [
        header,
        "Expected key points:\n" + bullet_list(expected),
        "Candidate answer:\n" + (answer.strip() or "(empty answer)"),
        schema_directive(contract),
    ]
    return "\n\n".join(sections)


__all__ = ["analyze_answer", "reconcile_key_points"]
