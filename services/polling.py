from __future__ import annotations  # Bounded polling for queued AI work

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Literal, Optional, TypeVar

from config.settings import settings
from storage.records import AnalysisRecord, InterviewSession

logger = logging.getLogger(__name__)

T = TypeVar("T")
PollState = Literal["completed", "failed", "timeout"]
Terminal = Optional[Literal["completed", "failed"]]


@dataclass
class PollResult(Generic[T]):
    state: PollState
    record: Optional[T]
    attempts: int

    @property
    def timed_out(self) -> bool:
        return self.state == "timeout"


def document_terminal_state(record: Optional[AnalysisRecord]) -> Terminal:
    if record is None:
        return None
    if record.status == "completed":
        return "completed"
    if record.status == "failed":
        return "failed"
    return None


def session_feedback_state(session: Optional[InterviewSession]) -> Terminal:
    if session is None:
        return None
    if session.feedback is not None and session.overall_score is not None:
        return "completed"
    if session.feedback_status == "failed":
        return "failed"
    return None


def answer_feedback_state(answer: Any) -> Terminal:
    if answer is None:
        return None
    if answer.analyzed:
        return "completed"
    if answer.analysis_error:
        return "failed"
    return None


def poll(
    fetch: Callable[[], Optional[T]],
    is_terminal: Callable[[Optional[T]], Terminal],
    *,
    interval_s: Optional[float] = None,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult[T]:
    """Re-read a record until it reaches a terminal state or attempts run out.

    ``fetch`` must be side-effect free; abandoning and resuming a poll is safe.
    """

    interval = settings.POLL_INTERVAL_S if interval_s is None else interval_s
    attempts = settings.POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
    record: Optional[T] = None
    for attempt in range(1, attempts + 1):
        record = fetch()
        state = is_terminal(record)
        if state is not None:
            logger.info("Poll finished state=%s attempts=%d", state, attempt)
            return PollResult(state=state, record=record, attempts=attempt)
        if attempt < attempts:
            sleep(interval)
    logger.info("Poll timed out attempts=%d", attempts)
    return PollResult(state="timeout", record=record, attempts=attempts)


__all__ = [
    "PollResult",
    "answer_feedback_state",
    "document_terminal_state",
    "poll",
    "session_feedback_state",
]
