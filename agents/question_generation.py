from __future__ import annotations  # Mock-interview question generation

import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from agents.common import language_directive, schema_directive
from agents.parsing import OutputParseError, extract_json
from agents.types import GeneratedQuestion
from config.registry import QUESTION_GEN_KEY, get_model
from config.settings import settings

logger = logging.getLogger(__name__)

CATEGORIES: Sequence[str] = ("technical", "behavioral", "case_study", "situational")
MIN_QUESTION_CHARS = 10

DEFAULT_QUESTIONS: Dict[str, List[str]] = {
    "technical": [
        "Explain the difference between a process and a thread, and when you would use each.",
        "How would you design a REST API for a resource that many clients update concurrently?",
        "Describe how you would find and fix a memory leak in a long-running service.",
        "What trade-offs do you consider when choosing between a relational and a document database?",
        "How do you approach writing tests for code that depends on external services?",
        "Walk through how you would optimize a slow database query in production.",
    ],
    "behavioral": [
        "Tell me about a time you disagreed with a teammate and how you resolved it.",
        "Describe a situation where you had to deliver under a tight deadline.",
        "Give me an example of a mistake you made at work and what you learned from it.",
        "Tell me about a time you took ownership of a problem outside your responsibilities.",
        "Describe a situation where you had to explain a complex idea to a non-technical audience.",
        "Tell me about your most significant professional achievement and your role in it.",
    ],
    "case_study": [
        "A key service's latency doubled overnight. How would you investigate the cause?",
        "Our sign-up conversion dropped by 20% after a release. Walk me through your analysis.",
        "How would you plan the migration of a monolith to services without downtime?",
        "A client asks for a feature that conflicts with the product roadmap. How do you handle it?",
        "Estimate the infrastructure needed to serve one million daily active users.",
        "How would you prioritize a backlog of fifty bugs with a team of three engineers?",
    ],
    "situational": [
        "What would you do if you discovered a critical bug an hour before a release?",
        "How would you handle a teammate who repeatedly misses code review deadlines?",
        "What would you do if requirements changed halfway through a sprint?",
        "How would you react if a stakeholder rejected your proposal in a meeting?",
        "What would you do in your first month after joining a new team?",
        "How would you handle being assigned a task with unfamiliar technology?",
    ],
}


def generate_questions(
    *,
    interview_type: str,
    difficulty: str,
    num_questions: int,
    domain: str = "",
    technology: Optional[List[str]] = None,
    language: str = "en",
    plan: Optional[str] = None,
) -> List[GeneratedQuestion]:  # Return exactly ``num_questions`` questions
    messages = [
        {"role": "system", "content": language_directive(language)},
        {
            "role": "user",
            "content": _build_task(interview_type, difficulty, num_questions, domain, technology or []),
        },
    ]
    raw = get_model(QUESTION_GEN_KEY)(
        messages=messages,
        plan=plan,
        max_tokens=settings.QUESTION_GEN_MAX_TOKENS,
        temperature=settings.QUESTION_GEN_TEMPERATURE,
        json_mode=True,
    )
    try:
        questions = parse_questions(raw, interview_type=interview_type, difficulty=difficulty)
    except OutputParseError as exc:
        logger.warning("Question generation reply unusable, using defaults: %s", exc)
        questions = []
    if len(questions) < num_questions:
        logger.info(
            "Topping up questions generated=%d requested=%d type=%s",
            len(questions),
            num_questions,
            interview_type,
        )
        questions.extend(default_questions(interview_type, difficulty, num_questions - len(questions), skip=questions))
    return questions[:num_questions]


def parse_questions(raw: str, *, interview_type: str, difficulty: str) -> List[GeneratedQuestion]:
    """Accept ``{"questions": [...]}``, ``{"questionsList": [...]}``, any array value, or a bare array."""

    data = extract_json(raw)
    items = _question_items(data)
    if items is None:
        raise OutputParseError("No question array found in reply")
    fallback_category = interview_type if interview_type in CATEGORIES else "technical"
    questions: List[GeneratedQuestion] = []
    for item in items:
        question = _coerce_question(item, fallback_category, difficulty)
        if question is not None:
            questions.append(question)
    return questions


def default_questions(
    interview_type: str, difficulty: str, count: int, *, skip: Sequence[GeneratedQuestion] = ()
) -> List[GeneratedQuestion]:  # Built-in questions, category first then the rest
    seen = {q.question for q in skip}
    if interview_type == "mixed":
        depth = max(len(pool) for pool in DEFAULT_QUESTIONS.values())
        candidates = [
            (category, DEFAULT_QUESTIONS[category][i])
            for i in range(depth)
            for category in CATEGORIES
            if i < len(DEFAULT_QUESTIONS[category])
        ]
    else:
        primary = interview_type if interview_type in DEFAULT_QUESTIONS else "technical"
        candidates = [(primary, text) for text in DEFAULT_QUESTIONS[primary]]
        for category in CATEGORIES:
            if category != primary:
                candidates.extend((category, text) for text in DEFAULT_QUESTIONS[category])
    result: List[GeneratedQuestion] = []
    for category, text in candidates:
        if len(result) >= count:
            break
        if text in seen:
            continue
        seen.add(text)
        result.append(GeneratedQuestion(question=text, category=category, difficulty=difficulty))
    return result


def _question_items(data: Any) -> Optional[List[Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("questions", "questionsList"):
            if isinstance(data.get(key), list):
                return data[key]
        for value in data.values():
            if isinstance(value, list):
                return value
    return None


def _coerce_question(item: Any, category: str, difficulty: str) -> Optional[GeneratedQuestion]:
    if isinstance(item, str):
        text = item.strip()
        if len(text) <= MIN_QUESTION_CHARS:
            return None
        return GeneratedQuestion(question=text, category=category, difficulty=difficulty)
    if isinstance(item, dict):
        data = {"category": category, "difficulty": difficulty, **item}
        if "question" not in data and isinstance(data.get("text"), str):
            data["question"] = data["text"]
        try:
            question = GeneratedQuestion.model_validate(data)
        except ValidationError:
            return None
        if len(question.question.strip()) <= MIN_QUESTION_CHARS:
            return None
        return question
    return None


def _build_task(
    interview_type: str,
    difficulty: str,
    num_questions: int,
    domain: str,
    technology: List[str],
) -> str:  # Build task prompt for LLM
    focus = ", ".join(technology) if technology else "general"
    contract = dedent(
        """
        - questions: array of objects, each containing:
            - question: the interview question text.
            - category: one of technical, behavioral, case_study, situational.
            - difficulty: copy of the requested difficulty.
            - expectedKeyPoints: three to five points a strong answer covers.
            - hints: one or two short hints.
            - tags: short topic tags.
        """
    )
    return dedent(
        f"""
        Generate {num_questions} unique {interview_type.replace('_', ' ')} interview questions
        for a {difficulty} level candidate.
        Domain: {domain or 'general software engineering'}
        Technologies: {focus}
        Questions must be realistic, specific, and progressively challenging.
        """
    ).strip() + "\n\n" + schema_directive(contract)


__all__ = ["CATEGORIES", "DEFAULT_QUESTIONS", "default_questions", "generate_questions", "parse_questions"]
