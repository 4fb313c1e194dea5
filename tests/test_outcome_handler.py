from __future__ import annotations

import logging

import allure
import pytest

from foia_submission.channels.base import SubmissionErrors, SubmissionResponse
from foia_submission.config import FORCE_FAILURES_ENV
from foia_submission.submission.models import (
    METHOD_API,
    METHOD_EMAIL,
    Done,
    FoiaRequest,
    InvalidStatusTransitionError,
    RequestStatus,
    Retry,
)
from foia_submission.submission.outcome_handler import (
    SubmissionOutcomeHandler,
    mock_failed_submission_errors,
)

pytestmark = [
    allure.epic("Submission Queue"),
    allure.feature("Outcome Handling"),
]


def test_api_success_marks_submitted_and_deletes_webform_submission(
    repository,
    seed_request,
    fake_channel,
) -> None:
    seeded = seed_request()
    handler = SubmissionOutcomeHandler(repository=repository)

    result = handler.handle(
        seeded.request,
        SubmissionResponse(
            method=METHOD_API,
            case_management_id="C-100",
            tracking_number="T-200",
            response_code="200",
        ),
        fake_channel(),
    )

    assert result == Done(status=RequestStatus.SUBMITTED)
    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.request_status is RequestStatus.SUBMITTED
    assert stored.case_management_id == "C-100"
    assert stored.tracking_number == "T-200"
    assert stored.submission_method == METHOD_API
    assert stored.response_code == "200"
    assert stored.submission_failures == 0
    assert repository.load_webform_submission(seeded.webform.submission_id) is None


def test_email_success_is_in_transit_and_keeps_webform_submission(
    repository,
    seed_request,
    fake_channel,
) -> None:
    seeded = seed_request(method=METHOD_EMAIL)
    handler = SubmissionOutcomeHandler(repository=repository)

    result = handler.handle(seeded.request, SubmissionResponse(method=METHOD_EMAIL), fake_channel())

    assert result == Done(status=RequestStatus.IN_TRANSIT)
    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.request_status is RequestStatus.IN_TRANSIT
    assert stored.submission_method == METHOD_EMAIL
    assert repository.load_webform_submission(seeded.webform.submission_id) is not None


def test_success_without_identifiers_keeps_existing_values(
    repository,
    seed_request,
    fake_channel,
) -> None:
    seeded = seed_request()
    seeded.request.case_management_id = "C-OLD"
    seeded.request.tracking_number = "T-OLD"
    seeded.request.response_code = "202"
    handler = SubmissionOutcomeHandler(repository=repository)

    handler.handle(seeded.request, SubmissionResponse(method=METHOD_API), fake_channel())

    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.case_management_id == "C-OLD"
    assert stored.tracking_number == "T-OLD"
    assert stored.response_code == "202"


def test_first_failure_requests_retry(repository, seed_request, caplog, fake_channel) -> None:
    seeded = seed_request()
    request_id = seeded.request.request_id
    handler = SubmissionOutcomeHandler(repository=repository, max_submission_failures=3)

    with caplog.at_level(logging.ERROR):
        result = handler.handle(seeded.request, None, fake_channel())

    assert isinstance(result, Retry)
    assert result.reason == f"Failed submission {request_id}. Scheduling re-queue #1."
    assert "#1" in result.reason
    stored = repository.load_request(request_id)
    assert stored is not None
    assert stored.request_status is RequestStatus.QUEUED
    assert stored.submission_failures == 1
    assert stored.error_code == "E500"
    assert stored.error_message == "Agency API unavailable"
    assert stored.error_description == "The component API answered with an internal error."
    assert stored.response_code == "500"
    assert stored.submission_method == METHOD_API
    assert repository.load_webform_submission(seeded.webform.submission_id) is not None
    assert [record.getMessage() for record in caplog.records] == [result.reason]


def test_failure_at_maximum_gives_up(repository, seed_request, caplog, fake_channel) -> None:
    seeded = seed_request(submission_failures=2)
    request_id = seeded.request.request_id
    handler = SubmissionOutcomeHandler(repository=repository, max_submission_failures=3)

    with caplog.at_level(logging.ERROR):
        result = handler.handle(seeded.request, None, fake_channel())

    assert result == Done(status=RequestStatus.FAILED)
    stored = repository.load_request(request_id)
    assert stored is not None
    assert stored.request_status is RequestStatus.FAILED
    assert stored.submission_failures == 3
    error_records = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert [record.getMessage() for record in error_records] == [
        f"FOIA request failed too many times. Attention needed. Id: {request_id}.",
    ]


def test_failure_without_error_detail_keeps_previous_errors(
    repository,
    seed_request,
    fake_channel,
) -> None:
    seeded = seed_request()
    seeded.request.error_code = "E-PREV"
    seeded.request.error_message = "Previous message"
    seeded.request.error_description = "Previous description"
    handler = SubmissionOutcomeHandler(repository=repository)

    handler.handle(seeded.request, None, fake_channel(errors=SubmissionErrors()))

    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.error_code == "E-PREV"
    assert stored.error_message == "Previous message"
    assert stored.error_description == "Previous description"
    assert stored.submission_method == ""
    assert stored.submission_failures == 1


def test_forced_failure_ignores_successful_response(repository, seed_request, fake_channel) -> None:
    seeded = seed_request()
    handler = SubmissionOutcomeHandler(repository=repository, force_failures=True)

    result = handler.handle(
        seeded.request,
        SubmissionResponse(method=METHOD_API, case_management_id="C-100", response_code="200"),
        fake_channel(),
    )

    assert isinstance(result, Retry)
    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.request_status is RequestStatus.QUEUED
    assert stored.case_management_id is None
    assert stored.response_code == "503"
    assert stored.error_code == "503"
    assert stored.error_message == "Forced failure"
    assert FORCE_FAILURES_ENV in (stored.error_description or "")
    assert repository.load_webform_submission(seeded.webform.submission_id) is not None


def test_mock_failed_submission_errors_values() -> None:
    errors = mock_failed_submission_errors()
    assert errors.response_code == "503"
    assert errors.code == "503"
    assert errors.message == "Forced failure"
    assert errors.method is None


def test_missing_webform_submission_is_logged_not_raised(
    repository,
    seed_request,
    caplog,
    fake_channel,
) -> None:
    seeded = seed_request()
    assert repository.delete_webform_submission(seeded.webform.submission_id) is True
    handler = SubmissionOutcomeHandler(repository=repository)

    with caplog.at_level(logging.WARNING):
        result = handler.handle(
            seeded.request,
            SubmissionResponse(method=METHOD_API, case_management_id="C-1"),
            fake_channel(),
        )

    assert result == Done(status=RequestStatus.SUBMITTED)
    assert any("already deleted" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize("failures_before", [0, 1, 2, 5])
def test_failure_counter_is_incremented_exactly_once(
    repository,
    seed_request,
    failures_before: int,
    fake_channel,
) -> None:
    seeded = seed_request(submission_failures=failures_before)
    handler = SubmissionOutcomeHandler(repository=repository, max_submission_failures=10)

    handler.handle(seeded.request, None, fake_channel())

    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.submission_failures == failures_before + 1


def test_forced_failure_overrides_channel_errors(repository, seed_request, fake_channel) -> None:
    seeded = seed_request()
    handler = SubmissionOutcomeHandler(repository=repository, force_failures=True)
    channel = fake_channel(
        errors=SubmissionErrors(
            response_code="400",
            code="A-400",
            message="Agency rejected the request",
            description="Missing requester address.",
            method=METHOD_API,
        ),
    )

    result = handler.handle(seeded.request, None, channel)

    assert isinstance(result, Retry)
    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.response_code == "503"
    assert stored.error_code == "503"
    assert stored.error_message == "Forced failure"
    assert FORCE_FAILURES_ENV in (stored.error_description or "")
    assert stored.submission_method == ""
    assert stored.submission_failures == 1


@pytest.mark.parametrize(
    "status",
    [RequestStatus.SUBMITTED, RequestStatus.IN_TRANSIT, RequestStatus.FAILED],
)
@pytest.mark.parametrize("succeeded", [True, False])
def test_terminal_request_status_is_not_rewritten(
    repository,
    seed_request,
    fake_channel,
    status: RequestStatus,
    succeeded: bool,
) -> None:
    seeded = seed_request()
    seeded.request.request_status = status
    repository.save_request(seeded.request)
    handler = SubmissionOutcomeHandler(repository=repository)
    response = (
        SubmissionResponse(method=METHOD_API, case_management_id="C-2") if succeeded else None
    )

    with pytest.raises(InvalidStatusTransitionError):
        handler.handle(seeded.request, response, fake_channel())

    stored = repository.load_request(seeded.request.request_id)
    assert stored is not None
    assert stored.request_status is status
    assert stored.submission_failures == 0
    assert stored.case_management_id is None
    assert repository.load_webform_submission(seeded.webform.submission_id) is not None


def test_queued_request_may_be_requeued() -> None:
    request = FoiaRequest(request_id=1, agency_component_id=1, webform_submission_id=None)

    request.set_request_status(RequestStatus.QUEUED)
    assert request.request_status is RequestStatus.QUEUED

    request.set_request_status(RequestStatus.SUBMITTED)
    with pytest.raises(InvalidStatusTransitionError, match="from submitted to queued"):
        request.set_request_status(RequestStatus.QUEUED)
    assert request.request_status is RequestStatus.SUBMITTED
