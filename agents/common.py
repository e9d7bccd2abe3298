from __future__ import annotations  # Prompt pieces shared by all generation strategies

from typing import Dict, List, Optional

from config.settings import settings

LANGUAGE_NAMES: Dict[str, str] = {"uz": "Uzbek", "ru": "Russian", "en": "English"}


def language_name(language: Optional[str]) -> str:
    return LANGUAGE_NAMES.get(language or "en", "English")


def language_directive(language: Optional[str]) -> str:  # Strict target-language instruction
    name = language_name(language)
    return (
        f"Respond strictly in {name}. Every string value in your reply must be written in {name}, "
        "even if the input is in another language."
    )


def schema_directive(contract: str) -> str:  # Strict output-schema instruction
    return (
        "Respond with a single JSON value following this contract:\n"
        f"{contract.strip()}\n"
        "Return only JSON without markdown fences, text, or commentary."
    )


def temperature_for(language: Optional[str], preferred: Optional[float] = None) -> float:
    """Cap temperature when output must stay in a non-English language."""

    value = settings.DEFAULT_TEMPERATURE if preferred is None else preferred
    if (language or "en") != "en":
        return min(value, settings.STRICT_LANGUAGE_TEMPERATURE)
    return value


def bullet_list(items: List[str], empty: str = "- (none provided)") -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


__all__ = [
    "LANGUAGE_NAMES",
    "bullet_list",
    "language_directive",
    "language_name",
    "schema_directive",
    "temperature_for",
]
