from __future__ import annotations  # Tolerant JSON extraction for AI replies

import json
import logging
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class OutputParseError(ValueError):  # Provider output did not match the expected schema
    pass


def strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines:
            lines = lines[1:]
            while lines and lines[0].strip() == "":
                lines = lines[1:]
            while lines and lines[-1].strip() == "":
                lines = lines[:-1]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


def extract_json(content: str, *, expect: Optional[type] = None) -> Any:
    """Decode the first JSON value of the expected shape found in ``content``.

    Tries the whole reply (fences stripped) first, then scans for the first
    ``{`` or ``[`` that starts a decodable value. ``expect`` restricts the
    accepted top-level type to ``dict`` or ``list``.
    """

    text = strip_code_fences(content or "")
    try:
        value = json.loads(text)
        if expect is None or isinstance(value, expect):
            return value
    except json.JSONDecodeError:
        pass
    decoder = json.JSONDecoder()
    openers = "{[" if expect is None else ("{" if expect is dict else "[")
    for index, char in enumerate(text):
        if char not in openers:
            continue
        try:
            value, _ = decoder.raw_decode(text[index:])
        except json.JSONDecodeError:
            continue
        if expect is None or isinstance(value, expect):
            return value
    raise OutputParseError("No JSON value of the expected shape found in reply")


def parse_model(content: str, schema: Type[T]) -> T:
    """Extract a JSON object from ``content`` and validate it against ``schema``."""

    data = extract_json(content, expect=dict)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        logger.warning("AI output failed validation for %s: %s", schema.__name__, exc.errors()[:3])
        raise OutputParseError(f"Reply did not match {schema.__name__}") from exc


__all__ = ["OutputParseError", "extract_json", "parse_model", "strip_code_fences"]
