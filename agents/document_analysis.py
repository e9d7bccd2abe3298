from __future__ import annotations  # Résumé analysis strategy

from textwrap import dedent
from typing import Optional

from agents.common import language_directive, schema_directive, temperature_for
from agents.parsing import parse_model
from agents.types import DocumentAnalysis
from config.registry import DOCUMENT_ANALYSIS_KEY, get_model
from config.settings import settings

MAX_DOCUMENT_CHARS = 12000


def analyze_document(
    text: str,
    *,
    job_description: Optional[str] = None,
    language: str = "en",
    plan: Optional[str] = None,
) -> DocumentAnalysis:  # Raises OutputParseError on non-conforming replies
    messages = [
        {
            "role": "system",
            "content": "You are an expert recruiter and ATS specialist reviewing résumés. "
            + language_directive(language),
        },
        {"role": "user", "content": _build_task(text, job_description)},
    ]
    raw = get_model(DOCUMENT_ANALYSIS_KEY)(
        messages=messages,
        plan=plan,
        max_tokens=settings.ANALYSIS_MAX_TOKENS,
        temperature=temperature_for(language, 0.5),
        json_mode=True,
    )
    return parse_model(raw, DocumentAnalysis)


def _build_task(text: str, job_description: Optional[str]) -> str:  # Build task prompt for LLM
    contract = dedent(
        """
        - atsScore: number from 0 to 100 estimating applicant-tracking-system compatibility.
        - overallRating: number from 0 to 10.
        - strengths: three to five strengths.
        - weaknesses: three to five weaknesses.
        - missingKeywords: important keywords absent from the résumé.
        - suggestions: three to five concrete improvements.
        - sectionScores: object with personalInfo, summary, experience, education,
          skills, formatting, each a number from 0 to 100.
        """
    )
    sections = ["Analyze the following résumé.", "Résumé:\n" + text[:MAX_DOCUMENT_CHARS]]
    if job_description:
        sections.append(
            "Target job description (judge keyword match against it):\n" + job_description[:MAX_DOCUMENT_CHARS]
        )
    sections.append(schema_directive(contract))
    return "\n\n".join(sections)


__all__ = ["analyze_document"]
