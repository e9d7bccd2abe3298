"""Whole-session scoring strategy."""
from __future__ import annotations

from dataclasses import dataclass
from textwrap import dedent
from typing import Dict, List, Optional

from agents.common import language_directive, schema_directive, temperature_for
from agents.parsing import parse_model
from agents.types import SessionFeedback
from config.registry import SESSION_FEEDBACK_KEY, get_model
from config.settings import settings


@dataclass
class ScoredAnswer:
    question: str
    category: str
    answer: str
    score: Optional[float]


def analyze_session(
    answers: List[ScoredAnswer],
    *,
    interview_type: str,
    difficulty: str,
    language: str = "en",
    plan: Optional[str] = None,
) -> SessionFeedback:
    """Score a completed session 0-100 with five 0-10 sub-ratings.

    Answers not yet scored are shown to the model as ``N/A``.

    Raises:
        OutputParseError: When the reply carries no conforming feedback object.
    """

    messages = [
        {
            "role": "system",
            "content": "You are a senior interview coach summarizing a full mock interview. "
            + language_directive(language),
        },
        {"role": "user", "content": _build_task(answers, interview_type, difficulty)},
    ]
    raw = get_model(SESSION_FEEDBACK_KEY)(
        messages=messages,
        plan=plan,
        max_tokens=settings.FEEDBACK_MAX_TOKENS,
        temperature=temperature_for(language, 0.5),
        json_mode=True,
    )
    return parse_model(raw, SessionFeedback)


def empty_session_feedback() -> SessionFeedback:
    """Feedback for a session completed without any answers."""

    return SessionFeedback(
        overall_score=0,
        weaknesses=["No answers were submitted in this session."],
        recommendations=["Answer at least a few questions to receive detailed feedback."],
        next_steps=["Start a new mock interview and answer every question."],
    )


def score_distribution(answers: List[ScoredAnswer]) -> Dict[str, int]:
    buckets = {"excellent (8-10)": 0, "good (6-8)": 0, "fair (4-6)": 0, "poor (0-4)": 0, "unscored": 0}
    for item in answers:
        if item.score is None:
            buckets["unscored"] += 1
        elif item.score >= 8:
            buckets["excellent (8-10)"] += 1
        elif item.score >= 6:
            buckets["good (6-8)"] += 1
        elif item.score >= 4:
            buckets["fair (4-6)"] += 1
        else:
            buckets["poor (0-4)"] += 1
    return buckets


def _build_task(answers: List[ScoredAnswer], interview_type: str, difficulty: str) -> str:
    lines = []
    for idx, item in enumerate(answers, start=1):
        score = "N/A" if item.score is None else f"{item.score:.1f}/10"
        lines.append(
            f"{idx}. [{item.category}] Q: {item.question}\n   A: {item.answer.strip()}\n   Score: {score}"
        )
    distribution = ", ".join(f"{k}: {v}" for k, v in score_distribution(answers).items())
    contract = dedent(
        """
        - overallScore: number from 0 to 100.
        - ratings: object with technicalAccuracy, communication, structuredThinking,
          confidence, problemSolving, each a number from 0 to 10.
        - strengths: the candidate's main strengths.
        - weaknesses: the candidate's main weaknesses.
        - topConcerns: the most important concerns for a hiring decision.
        - improvementTrends: how answer quality changed over the session.
        - bestCategory: the strongest question category.
        - weakestCategory: the weakest question category.
        - recommendations: ordered list, most important first.
        - nextSteps: ordered list of concrete practice steps.
        """
    )
    return "\n\n".join(
        [
            f"Summarize this {interview_type.replace('_', ' ')} mock interview for a {difficulty} level candidate.",
            "Answers:\n" + "\n".join(lines),
            f"Score distribution: {distribution}",
            schema_directive(contract),
        ]
    )


__all__ = ["ScoredAnswer", "analyze_session", "empty_session_feedback", "score_distribution"]
