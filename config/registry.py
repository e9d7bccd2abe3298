"""In-memory completion registry keyed by AI task."""
from typing import Any, Callable, Dict

_REGISTRY: Dict[str, Callable[..., Any]] = {}


def bind_model(key: str, fn: Callable[..., Any]) -> None:
    """Bind a completion callable to a task key."""
    _REGISTRY[key] = fn


def is_bound(key: str) -> bool:
    return key in _REGISTRY


def get_model(key: str) -> Callable[..., Any]:
    """Retrieve the completion callable for a task.

    The callable is invoked with keyword arguments ``messages``, ``plan``,
    ``max_tokens``, ``temperature`` and ``json_mode`` and returns the raw
    completion text.

    Raises:
        KeyError: If no callable has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


QUESTION_GEN_KEY = "models.question_generation"
ANSWER_GEN_KEY = "models.answer_generation"
ANSWER_FEEDBACK_KEY = "models.answer_feedback"
SESSION_FEEDBACK_KEY = "models.session_feedback"
DOCUMENT_ANALYSIS_KEY = "models.document_analysis"

TASK_KEYS = (
    QUESTION_GEN_KEY,
    ANSWER_GEN_KEY,
    ANSWER_FEEDBACK_KEY,
    SESSION_FEEDBACK_KEY,
    DOCUMENT_ANALYSIS_KEY,
)
