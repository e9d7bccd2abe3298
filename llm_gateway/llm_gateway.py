from __future__ import annotations  # AI completion gateway module

import logging
import os
import time
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

import httpx

from config.registry import TASK_KEYS, bind_model, is_bound
from config.routes import LlmRoute, route_for_plan


logger = logging.getLogger(__name__)  # Module logger setup


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    user_message = "The AI service is unavailable right now. Please try again later."


class TransientLlmError(LlmGatewayError):  # Worth retrying with backoff
    pass


class LlmTimeoutError(TransientLlmError):
    user_message = "The AI service took too long to respond. Please try again."


class LlmRateLimitError(TransientLlmError):
    user_message = "The AI service is receiving too many requests. Please try again in a few minutes."


class LlmOverloadedError(TransientLlmError):
    user_message = "The AI service is temporarily overloaded. Please try again shortly."


class PermanentLlmError(LlmGatewayError):  # Retrying will not help
    pass


class LlmAuthError(PermanentLlmError):
    user_message = "The AI service is misconfigured. Please contact support."


class LlmConfigError(PermanentLlmError):
    user_message = "The AI service is misconfigured. Please contact support."


def complete(
    messages: Sequence[Dict[str, str]],
    *,
    route: LlmRoute,
    max_tokens: int,
    temperature: float,
    json_mode: bool = False,
    client: Optional[HttpClient] = None,
) -> str:  # Send one chat completion and return the raw text
    input_messages = _normalize_messages(messages)
    payload: Dict[str, Any] = {
        "model": route.model,
        "messages": input_messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    headers = {"Content-Type": "application/json"}
    if route.api_key_env:
        api_key = os.getenv(route.api_key_env)
        if not api_key:
            logger.error("LLM api key missing env=%s route=%s", route.api_key_env, route.name)
            raise LlmConfigError(f"API key not configured in {route.api_key_env}")
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(route.extra_headers)

    preview = _preview(input_messages)
    if len(preview) > 120:
        preview = preview[:117] + "..."
    logger.info(
        "LLM request send route=%s model=%s max_tokens=%d preview=%s",
        route.name,
        route.model,
        max_tokens,
        preview,
    )
    started = time.monotonic()
    try:
        response, close_cb = _post(route.url, payload, headers, route.timeout_s, client)
    except (httpx.TimeoutException, TimeoutError) as exc:
        logger.error("LLM timeout route=%s: %s", route.name, exc)
        raise LlmTimeoutError("LLM request timed out") from exc
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM transport failure route=%s: %s", route.name, exc)
        raise TransientLlmError("LLM transport failed") from exc
    try:
        if response.status_code >= 400:
            raise _error_for_status(response)
        try:
            data = response.json()
        except Exception as exc:  # noqa: BLE001
            logger.error("Invalid JSON payload from LLM: %s", exc)
            raise LlmConfigError("LLM payload was not JSON") from exc
        content = _extract_content(data)
    finally:
        _close_safely(close_cb)
    logger.info(
        "LLM request done route=%s model=%s ms=%d",
        route.name,
        route.model,
        int((time.monotonic() - started) * 1000),
    )
    return content


def user_message(exc: LlmGatewayError) -> str:  # Actionable text safe to show to end users
    return exc.user_message


def plan_completion(client: Optional[HttpClient] = None) -> Callable[..., str]:  # Registry adapter routing by plan
    def _complete(
        *,
        messages: Sequence[Dict[str, str]],
        plan: Optional[str] = None,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> str:
        return complete(
            messages,
            route=route_for_plan(plan),
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=json_mode,
            client=client,
        )

    return _complete


def bind_defaults(*, overwrite: bool = False, client: Optional[HttpClient] = None) -> None:
    """Bind the provider-backed completion to every AI task key.

    Existing bindings are kept unless ``overwrite`` is set, so test fakes
    bound before application start-up survive.
    """

    fn = plan_completion(client)
    for key in TASK_KEYS:
        if overwrite or not is_bound(key):
            bind_model(key, fn)


def _error_for_status(response: HttpResponse) -> LlmGatewayError:  # Classify provider failures
    status = response.status_code
    body = _safe_text(response)
    logger.error("LLM error status=%s body=%s", status, body[:200])
    lowered = body.lower()
    if status == 429 or "quota" in lowered or "rate limit" in lowered:
        return LlmRateLimitError(f"LLM rate limited (status {status})")
    if status in (401, 403):
        return LlmAuthError(f"LLM rejected credentials (status {status})")
    if status == 408:
        return LlmTimeoutError("LLM request timed out (status 408)")
    if status >= 500:
        return LlmOverloadedError(f"LLM unavailable (status {status})")
    return LlmConfigError(f"LLM rejected request (status {status})")


def _safe_text(response: HttpResponse) -> str:
    try:
        return str(response.text or "")
    except Exception:  # noqa: BLE001
        return ""


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> list[Dict[str, str]]:  # Ensure message payload shape
    normalized: list[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in messages:
        if message.get("role") == "system":
            continue
        text = message.get("content", "").strip()
        if text:
            return text.splitlines()[0]
    return ""


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
    raise LlmConfigError("LLM response missing content")
