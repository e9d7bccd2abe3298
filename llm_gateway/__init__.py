from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    HttpClient,
    HttpResponse,
    LlmAuthError,
    LlmConfigError,
    LlmGatewayError,
    LlmOverloadedError,
    LlmRateLimitError,
    LlmTimeoutError,
    PermanentLlmError,
    TransientLlmError,
    bind_defaults,
    complete,
    plan_completion,
    user_message,
)

__all__ = [
    "HttpClient",
    "HttpResponse",
    "LlmAuthError",
    "LlmConfigError",
    "LlmGatewayError",
    "LlmOverloadedError",
    "LlmRateLimitError",
    "LlmTimeoutError",
    "PermanentLlmError",
    "TransientLlmError",
    "bind_defaults",
    "complete",
    "plan_completion",
    "user_message",
]
