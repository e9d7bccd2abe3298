"""Configuration package for the interview preparation services."""
from .registry import (
    ANSWER_FEEDBACK_KEY,
    ANSWER_GEN_KEY,
    DOCUMENT_ANALYSIS_KEY,
    QUESTION_GEN_KEY,
    SESSION_FEEDBACK_KEY,
    TASK_KEYS,
    bind_model,
    get_model,
    is_bound,
)
from .routes import LlmRoute, model_for_plan, route_for_plan
from .settings import Settings, settings

__all__ = [
    "ANSWER_FEEDBACK_KEY",
    "ANSWER_GEN_KEY",
    "DOCUMENT_ANALYSIS_KEY",
    "QUESTION_GEN_KEY",
    "SESSION_FEEDBACK_KEY",
    "TASK_KEYS",
    "bind_model",
    "get_model",
    "is_bound",
    "LlmRoute",
    "model_for_plan",
    "route_for_plan",
    "Settings",
    "settings",
]
