from __future__ import annotations

import allure
import pytest

from foia_submission.submission.failure_policy import (
    DEFAULT_MAX_SUBMISSION_FAILURES,
    FailureDecision,
    decide_failure,
    give_up_message,
    requeue_message,
)

pytestmark = [
    allure.epic("Submission Queue"),
    allure.feature("Failure Policy"),
]


def test_default_max_submission_failures_is_three() -> None:
    assert DEFAULT_MAX_SUBMISSION_FAILURES == 3


@pytest.mark.parametrize(
    ("failure_count", "expected"),
    [
        (1, FailureDecision.RETRY),
        (2, FailureDecision.RETRY),
        (3, FailureDecision.GIVE_UP),
        (4, FailureDecision.GIVE_UP),
    ],
)
def test_decide_failure_retries_below_maximum(
    failure_count: int,
    expected: FailureDecision,
) -> None:
    assert decide_failure(failure_count=failure_count, max_failures=3) is expected


def test_decide_failure_with_single_allowed_failure_never_retries() -> None:
    assert decide_failure(failure_count=1, max_failures=1) is FailureDecision.GIVE_UP


def test_policy_messages() -> None:
    assert (
        requeue_message(request_id=42, failure_count=1)
        == "Failed submission 42. Scheduling re-queue #1."
    )
    assert (
        give_up_message(request_id=42)
        == "FOIA request failed too many times. Attention needed. Id: 42."
    )
