"""Per-plan monthly usage limits."""
from __future__ import annotations

import logging
import sqlite3
from typing import Dict

from config.settings import settings
from services.errors import InvalidRequestError, QuotaExceeded
from storage.sqlite import get_conn
from storage.users import ensure_user, get_usage, increment_usage, reset_usage, update_user, usage_counts

logger = logging.getLogger(__name__)

MOCK_INTERVIEWS = "mock_interviews"
DOCUMENT_ANALYSES = "document_analyses"
FEATURES = (MOCK_INTERVIEWS, DOCUMENT_ANALYSES)
UNLIMITED = -1


def limit_for(plan: str, feature: str) -> int:
    limits = settings.PLAN_LIMITS.get(plan) or settings.PLAN_LIMITS["free"]
    return int(limits.get(feature, 0))


def authorize(conn: sqlite3.Connection, user_id: str, feature: str) -> None:
    """Raise ``QuotaExceeded`` when the user's plan allows no further use of ``feature``.

    Never writes usage. The caller increments the counter in the same
    transaction that durably creates the guarded record.
    """

    user = ensure_user(conn, user_id)
    limit = limit_for(user.plan, feature)
    if limit == UNLIMITED:
        return
    used = get_usage(conn, user_id, feature)
    if used >= limit:
        logger.info("Quota denied user=%s plan=%s feature=%s used=%d limit=%d", user_id, user.plan, feature, used, limit)
        raise QuotaExceeded(feature, limit, used)


def record_usage(conn: sqlite3.Connection, user_id: str, feature: str) -> int:
    return increment_usage(conn, user_id, feature)


def usage_snapshot(user_id: str) -> Dict[str, Dict[str, int]]:
    with get_conn() as conn:
        user = ensure_user(conn, user_id)
        counts = usage_counts(conn, user_id)
    return {
        feature: {"used": counts.get(feature, 0), "limit": limit_for(user.plan, feature)}
        for feature in FEATURES
    }


def change_plan(user_id: str, plan: str) -> str:
    """Apply a plan change confirmed by billing. Not reachable from user routes."""

    if plan not in settings.PLAN_LIMITS:
        raise InvalidRequestError(f"Unknown plan: {plan}")
    with get_conn() as conn:
        previous = ensure_user(conn, user_id).plan
        update_user(conn, user_id, plan=plan)
    logger.info("Plan changed user=%s %s -> %s", user_id, previous, plan)
    return plan


def reset_monthly_usage() -> int:
    """Entry point for the external monthly scheduler."""

    with get_conn() as conn:
        touched = reset_usage(conn)
    logger.info("Monthly usage reset rows=%d", touched)
    return touched


__all__ = [
    "DOCUMENT_ANALYSES",
    "FEATURES",
    "MOCK_INTERVIEWS",
    "UNLIMITED",
    "authorize",
    "change_plan",
    "limit_for",
    "record_usage",
    "reset_monthly_usage",
    "usage_snapshot",
]
