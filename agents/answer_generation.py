from __future__ import annotations  # Model answer generation for the interview assistant

import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from agents.classifiers import KeywordClassifier, TextClassifier
from agents.common import language_directive, schema_directive, temperature_for
from agents.parsing import OutputParseError, extract_json, strip_code_fences
from agents.types import AnswerLength, AnswerStyle, AnswerVariant, StarBreakdown
from config.registry import ANSWER_GEN_KEY, get_model

logger = logging.getLogger(__name__)

STYLES: Sequence[AnswerStyle] = ("professional", "balanced", "simple")
LENGTH_TOKENS: Dict[str, int] = {"short": 300, "medium": 600, "long": 1000}
STYLE_GUIDANCE: Dict[str, str] = {
    "professional": "formal and precise, suited to a senior interviewer",
    "balanced": "confident and conversational while staying structured",
    "simple": "plain language with short sentences",
}
TECHNICAL_HINT = "\nName the specific tools, trade-offs or metrics involved."

DEFAULT_KEY_POINTS = (
    "Answer the question directly",
    "Support it with a concrete example",
    "Close with the outcome",
)

_classifier: TextClassifier = KeywordClassifier()


def generate_answers(
    question: str,
    *,
    variations: int = 1,
    length: AnswerLength = "medium",
    language: str = "en",
    plan: Optional[str] = None,
    history: Optional[List[Dict[str, str]]] = None,
    profile: Optional[str] = None,
    classifier: Optional[TextClassifier] = None,
) -> List[AnswerVariant]:  # One structured answer per requested style
    classifier = classifier or _classifier
    variations = max(1, min(3, int(variations)))
    behavioral = classifier.is_behavioral(question)
    technical = classifier.is_technical(question)
    answers: List[AnswerVariant] = []
    for style in STYLES[:variations]:
        messages: List[Dict[str, str]] = [{"role": "system", "content": _system_prompt(language, profile)}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": _build_task(question, style, length, behavioral, technical)})
        raw = get_model(ANSWER_GEN_KEY)(
            messages=messages,
            plan=plan,
            max_tokens=LENGTH_TOKENS.get(length, LENGTH_TOKENS["medium"]),
            temperature=temperature_for(language),
            json_mode=True,
        )
        answers.append(parse_answer(raw, style=style, behavioral=behavioral))
    return answers


def parse_answer(raw: str, *, style: AnswerStyle, behavioral: bool) -> AnswerVariant:
    """Parse one variant, degrading to the raw reply text when no usable JSON is present."""

    try:
        data: Any = extract_json(raw, expect=dict)
        data = {**data, "style": style}
        if not behavioral:
            data.pop("starMethod", None)
        answer = AnswerVariant.model_validate(data)
    except (OutputParseError, ValidationError) as exc:
        logger.warning("Answer reply unusable, keeping raw text style=%s: %s", style, exc)
        answer = AnswerVariant(style=style, content=strip_code_fences(raw or "").strip() or "No answer generated.")
    if behavioral and answer.star is None:
        answer.star = StarBreakdown()
    if len(answer.key_points) < 3:
        extra = [p for p in DEFAULT_KEY_POINTS if p not in answer.key_points]
        answer.key_points = answer.key_points + extra[: 3 - len(answer.key_points)]
    if len(answer.follow_ups) < 2:
        answer.follow_ups = (answer.follow_ups + [
            "Can you give a specific example?",
            "What would you do differently next time?",
        ])[:3]
    return answer


def _system_prompt(language: str, profile: Optional[str]) -> str:
    prompt = (
        "You are an interview coach who writes strong model answers for candidates. "
        + language_directive(language)
    )
    if profile:
        prompt += f"\nCandidate background (from their résumé analysis):\n{profile}"
    return prompt


def _build_task(question: str, style: str, length: str, behavioral: bool, technical: bool = False) -> str:  # Build task prompt for LLM
    star_line = (
        "- starMethod: object with situation, task, action, result describing one concrete story.\n"
        if behavioral
        else ""
    )
    contract = (
        "- answer: the full answer text.\n"
        "- keyPoints: three to five short key points.\n"
        f"{star_line}"
        "- confidence: number between 0 and 1.\n"
        "- suggestedFollowups: two or three follow-up questions an interviewer may ask next."
    )
    return dedent(
        f"""
        Interview question: {question}
        Write a {length} answer. Tone: {STYLE_GUIDANCE[style]}.
        """
    ).strip() + (TECHNICAL_HINT if technical else "") + "\n\n" + schema_directive(contract)


__all__ = ["DEFAULT_KEY_POINTS", "LENGTH_TOKENS", "STYLES", "generate_answers", "parse_answer"]
