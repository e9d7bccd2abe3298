"""Structured AI output schemas shared by the generation strategies."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _AiModel(BaseModel):
    """Providers answer in camelCase; records keep snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


def _cap(items: List[str], limit: int) -> List[str]:
    return [str(item).strip() for item in items if str(item).strip()][:limit]


class GeneratedQuestion(_AiModel):
    question: str
    category: str = "technical"
    difficulty: str = "mid"
    expected_key_points: List[str] = Field(default_factory=list)
    hints: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class StarBreakdown(_AiModel):
    situation: str = ""
    task: str = ""
    action: str = ""
    result: str = ""


AnswerStyle = Literal["professional", "balanced", "simple"]
AnswerLength = Literal["short", "medium", "long"]


class AnswerVariant(_AiModel):
    style: AnswerStyle = "professional"
    content: str = Field(validation_alias=AliasChoices("answer", "content"))
    key_points: List[str] = Field(default_factory=list)
    star: Optional[StarBreakdown] = Field(default=None, validation_alias=AliasChoices("starMethod", "star"))
    confidence: float = 0.9
    follow_ups: List[str] = Field(default_factory=list, validation_alias=AliasChoices("suggestedFollowups", "followUps"))

    @field_validator("confidence")
    @classmethod
    def _bounded_confidence(cls, value: float) -> float:
        return _clamp(value, 0.0, 1.0)

    @field_validator("key_points")
    @classmethod
    def _five_points(cls, value: List[str]) -> List[str]:
        return _cap(value, 5)

    @field_validator("follow_ups")
    @classmethod
    def _three_follow_ups(cls, value: List[str]) -> List[str]:
        return _cap(value, 3)


class AnswerFeedback(_AiModel):
    score: float
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    key_points_covered: List[str] = Field(default_factory=list)
    key_points_missed: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    example_answer: Optional[str] = None

    @field_validator("score")
    @classmethod
    def _score_range(cls, value: float) -> float:
        return round(_clamp(value, 0, 10), 1)

    @field_validator("strengths", "improvements", "suggestions")
    @classmethod
    def _five_items(cls, value: List[str]) -> List[str]:
        return _cap(value, 5)


class SessionRatings(_AiModel):
    technical_accuracy: float = 0
    communication: float = 0
    structured_thinking: float = 0
    confidence: float = 0
    problem_solving: float = 0

    @field_validator("*")
    @classmethod
    def _rating_range(cls, value: float) -> float:
        return round(_clamp(value, 0, 10), 1)


class SessionFeedback(_AiModel):
    overall_score: float
    ratings: SessionRatings = Field(default_factory=SessionRatings)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    top_concerns: List[str] = Field(default_factory=list)
    improvement_trends: List[str] = Field(default_factory=list)
    best_category: Optional[str] = None
    weakest_category: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)

    @field_validator("overall_score")
    @classmethod
    def _overall_range(cls, value: float) -> float:
        return round(_clamp(value, 0, 100), 1)


class SectionScores(_AiModel):
    personal_info: float = 0
    summary: float = 0
    experience: float = 0
    education: float = 0
    skills: float = 0
    formatting: float = 0

    @field_validator("*")
    @classmethod
    def _section_range(cls, value: float) -> float:
        return round(_clamp(value, 0, 100), 1)


class DocumentAnalysis(_AiModel):
    ats_score: float
    overall_rating: float
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    missing_keywords: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    section_scores: SectionScores = Field(default_factory=SectionScores)

    @field_validator("ats_score")
    @classmethod
    def _ats_range(cls, value: float) -> float:
        return round(_clamp(value, 0, 100), 1)

    @field_validator("overall_rating")
    @classmethod
    def _rating_range(cls, value: float) -> float:
        return round(_clamp(value, 0, 10), 1)


__all__ = [
    "AnswerFeedback",
    "AnswerLength",
    "AnswerStyle",
    "AnswerVariant",
    "DocumentAnalysis",
    "GeneratedQuestion",
    "SectionScores",
    "SessionFeedback",
    "SessionRatings",
    "StarBreakdown",
]
