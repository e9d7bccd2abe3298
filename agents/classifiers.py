"""Lightweight content classification for questions and conversation turns.

Callers depend on the :class:`TextClassifier` protocol only, so the
fixed-vocabulary implementation here can be swapped for a model-backed one.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Protocol, Sequence

TOPIC_KEYWORDS: Sequence[str] = (
    "javascript",
    "typescript",
    "react",
    "node",
    "python",
    "java",
    "leadership",
    "teamwork",
    "communication",
    "problem solving",
    "architecture",
    "database",
    "api",
    "testing",
    "agile",
    "scrum",
)

BEHAVIORAL_PHRASES: Sequence[str] = (
    "tell me about a time",
    "describe a situation",
    "give me an example",
    "have you ever",
    "can you share",
    "when did you",
    "conflict",
    "challenge",
    "difficult",
    "mistake",
    "failure",
    "success",
)

TECHNICAL_PHRASES: Sequence[str] = (
    "how would you",
    "explain",
    "what is",
    "difference between",
    "implement",
    "design",
    "algorithm",
    "complexity",
    "optimize",
    "code",
)

FOLLOW_UP_PHRASES: Sequence[str] = (
    "what about",
    "how about",
    "and if",
    "also",
    "more about",
    "can you elaborate",
    "why",
    "tell me more",
)


class TextClassifier(Protocol):
    def topics(self, text: str) -> List[str]: ...

    def is_behavioral(self, question: str) -> bool: ...

    def is_technical(self, question: str) -> bool: ...


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


class KeywordClassifier:
    """Fixed-vocabulary keyword matching."""

    def __init__(
        self,
        topics: Iterable[str] = TOPIC_KEYWORDS,
        behavioral: Iterable[str] = BEHAVIORAL_PHRASES,
        technical: Iterable[str] = TECHNICAL_PHRASES,
    ) -> None:
        self._topics = tuple(topics)
        self._behavioral = tuple(behavioral)
        self._technical = tuple(technical)

    def topics(self, text: str) -> List[str]:
        lowered = (text or "").lower()
        return [topic for topic in self._topics if _contains_phrase(lowered, topic)]

    def is_behavioral(self, question: str) -> bool:
        lowered = (question or "").lower()
        return any(phrase in lowered for phrase in self._behavioral)

    def is_technical(self, question: str) -> bool:
        lowered = (question or "").lower()
        return any(phrase in lowered for phrase in self._technical)


__all__ = [
    "BEHAVIORAL_PHRASES",
    "FOLLOW_UP_PHRASES",
    "KeywordClassifier",
    "TECHNICAL_PHRASES",
    "TOPIC_KEYWORDS",
    "TextClassifier",
]
