"""Service-level error taxonomy mapped to HTTP status codes by the API layer."""
from __future__ import annotations


class ServiceError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidRequestError(ServiceError):  # Validation and state-transition rejections
    status_code = 400


class QuotaExceeded(ServiceError):
    status_code = 403

    def __init__(self, feature: str, limit: int, used: int) -> None:
        super().__init__(
            f"Monthly limit reached for {feature.replace('_', ' ')} ({used}/{limit}). "
            "Upgrade your plan or wait for the next billing period."
        )
        self.feature = feature
        self.limit = limit
        self.used = used


class RecordNotFound(ServiceError):
    status_code = 404


class AiUnavailableError(ServiceError):  # Synchronous AI step failed; detail is user-actionable
    status_code = 503


__all__ = [
    "AiUnavailableError",
    "InvalidRequestError",
    "QuotaExceeded",
    "RecordNotFound",
    "ServiceError",
]
