"""Bounded retry policy for failed FOIA request submissions."""

from __future__ import annotations

from enum import Enum

DEFAULT_MAX_SUBMISSION_FAILURES = 3


class FailureDecision(str, Enum):
    RETRY = "retry"
    GIVE_UP = "give_up"


def decide_failure(*, failure_count: int, max_failures: int) -> FailureDecision:
    """Decide what happens after the failure counter was incremented."""

    if failure_count < max_failures:
        return FailureDecision.RETRY
    return FailureDecision.GIVE_UP


def requeue_message(*, request_id: int, failure_count: int) -> str:
    return f"Failed submission {request_id}. Scheduling re-queue #{failure_count}."


def give_up_message(*, request_id: int) -> str:
    return f"FOIA request failed too many times. Attention needed. Id: {request_id}."
