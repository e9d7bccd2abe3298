"""Application settings and configuration management."""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_plan_limits() -> Dict[str, Dict[str, int]]:
    return {
        "free": {"mock_interviews": 3, "document_analyses": 1},
        "pro": {"mock_interviews": 50, "document_analyses": 10},
        "elite": {"mock_interviews": -1, "document_analyses": -1},
        "enterprise": {"mock_interviews": -1, "document_analyses": -1},
    }


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview_prep.db")

    # AI provider (OpenRouter-compatible chat completions)
    AI_BASE_URL: str = "https://openrouter.ai/api/v1"
    AI_ENDPOINT: str = "/chat/completions"
    AI_API_KEY_ENV: str = "OPENAI_API_KEY"
    AI_SITE_URL: Optional[str] = None
    AI_SITE_TITLE: Optional[str] = None
    AI_TIMEOUT_S: float = Field(default=30.0, ge=0.1)
    AI_MODEL_STANDARD: str = "openai/gpt-3.5-turbo"
    AI_MODEL_ADVANCED: str = "openai/gpt-4-turbo"
    ADVANCED_PLANS: List[str] = Field(default_factory=lambda: ["pro", "elite", "enterprise"])

    QUESTION_GEN_MAX_TOKENS: int = 2000
    QUESTION_GEN_TEMPERATURE: float = 0.8
    FEEDBACK_MAX_TOKENS: int = 1500
    ANALYSIS_MAX_TOKENS: int = 2000
    DEFAULT_TEMPERATURE: float = 0.7
    STRICT_LANGUAGE_TEMPERATURE: float = 0.5

    # Job queue
    REDIS_URL: Optional[str] = None
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    CELERY_TASK_ALWAYS_EAGER: bool = False
    JOB_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    JOB_BACKOFF_MS: int = Field(default=2000, ge=0)
    JOB_REDISPATCH_AFTER_S: int = 30

    CONTEXT_WINDOW: int = Field(default=10, ge=1)
    POLL_INTERVAL_S: float = 5.0
    POLL_MAX_ATTEMPTS: int = Field(default=30, ge=1)

    PLAN_LIMITS: Dict[str, Dict[str, int]] = Field(default_factory=_default_plan_limits)
    MAX_DOCUMENT_BYTES: int = 5 * 1024 * 1024
    ALLOWED_DOCUMENT_TYPES: List[str] = Field(
        default_factory=lambda: [
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "text/plain",
        ]
    )

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)

    @property
    def broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.REDIS_URL or "redis://localhost:6379/0"


settings = Settings()
