"""Provider route configuration for AI completions."""
from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from .settings import Settings, settings as default_settings


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.endpoint}"


def model_for_plan(plan: Optional[str], cfg: Optional[Settings] = None) -> str:
    """Paid plans are served by the advanced model."""

    cfg = cfg or default_settings
    if plan and plan in cfg.ADVANCED_PLANS:
        return cfg.AI_MODEL_ADVANCED
    return cfg.AI_MODEL_STANDARD


def route_for_plan(plan: Optional[str], cfg: Optional[Settings] = None) -> LlmRoute:
    """Build the provider route used for a user's plan."""

    cfg = cfg or default_settings
    headers: Dict[str, str] = {}
    if cfg.AI_SITE_URL:
        headers["HTTP-Referer"] = cfg.AI_SITE_URL
    if cfg.AI_SITE_TITLE:
        headers["X-Title"] = cfg.AI_SITE_TITLE
    return LlmRoute(
        name=f"plan:{plan or 'free'}",
        base_url=cfg.AI_BASE_URL,
        endpoint=cfg.AI_ENDPOINT,
        model=model_for_plan(plan, cfg),
        timeout_s=cfg.AI_TIMEOUT_S,
        api_key_env=cfg.AI_API_KEY_ENV,
        extra_headers=headers,
    )
