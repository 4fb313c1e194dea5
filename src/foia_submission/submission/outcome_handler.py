"""Apply a channel's delivery result to the FOIA request."""

from __future__ import annotations

import logging

from foia_submission.channels.base import (
    SubmissionChannel,
    SubmissionErrors,
    SubmissionResponse,
)
from foia_submission.config import FORCE_FAILURES_ENV
from foia_submission.submission.failure_policy import (
    DEFAULT_MAX_SUBMISSION_FAILURES,
    FailureDecision,
    decide_failure,
    give_up_message,
    requeue_message,
)
from foia_submission.submission.models import (
    METHOD_EMAIL,
    Done,
    FoiaRequest,
    HandleResult,
    RequestStatus,
    Retry,
)
from foia_submission.submission.repository import SubmissionRepository

logger = logging.getLogger(__name__)


def mock_failed_submission_errors() -> SubmissionErrors:
    """Failure detail substituted for every attempt while failures are forced."""

    return SubmissionErrors(
        response_code="503",
        code="503",
        message="Forced failure",
        description=f'Forcing a failure, according to the "{FORCE_FAILURES_ENV}" setting.',
    )


class SubmissionOutcomeHandler:
    """Updates the request after a successful or failed submission attempt.

    Every call ends with exactly one save of the request. A success that is not
    in transit also deletes the webform submission the request was built from.
    Failures go through the bounded retry policy; the returned `Retry` is the
    only way redelivery is requested.
    """

    def __init__(
        self,
        *,
        repository: SubmissionRepository,
        max_submission_failures: int = DEFAULT_MAX_SUBMISSION_FAILURES,
        force_failures: bool = False,
    ) -> None:
        self.repository = repository
        self.max_submission_failures = max_submission_failures
        self.force_failures = force_failures

    def handle(
        self,
        request: FoiaRequest,
        response: SubmissionResponse | None,
        channel: SubmissionChannel,
    ) -> HandleResult:
        if response and not self.force_failures:
            result = self._handle_valid_submission(request, response)
            method = response.method
            response_code = response.response_code
        else:
            errors = (
                mock_failed_submission_errors()
                if self.force_failures
                else channel.submission_errors()
            )
            result = self._handle_failed_submission(request, errors)
            method = errors.method
            response_code = errors.response_code

        request.submission_method = method or ""
        if response_code:
            request.response_code = response_code
        self.repository.save_request(request)
        return result

    def _handle_valid_submission(
        self,
        request: FoiaRequest,
        response: SubmissionResponse,
    ) -> HandleResult:
        new_status = RequestStatus.SUBMITTED
        if response.method == METHOD_EMAIL:
            new_status = RequestStatus.IN_TRANSIT
        request.set_request_status(new_status)

        if response.case_management_id:
            request.case_management_id = response.case_management_id
        if response.tracking_number:
            request.tracking_number = response.tracking_number

        # An email in transit may still need the original form.
        if new_status is not RequestStatus.IN_TRANSIT:
            self._delete_webform_submission(request)
        return Done(status=new_status)

    def _handle_failed_submission(
        self,
        request: FoiaRequest,
        errors: SubmissionErrors,
    ) -> HandleResult:
        if errors.code:
            request.error_code = errors.code
        if errors.message:
            request.error_message = errors.message
        if errors.description:
            request.error_description = errors.description

        failure_count = request.add_submission_failure()
        decision = decide_failure(
            failure_count=failure_count,
            max_failures=self.max_submission_failures,
        )
        if decision is FailureDecision.RETRY:
            request.set_request_status(RequestStatus.QUEUED)
            message = requeue_message(request_id=request.request_id, failure_count=failure_count)
            logger.error(message)
            return Retry(reason=message)

        request.set_request_status(RequestStatus.FAILED)
        logger.error(give_up_message(request_id=request.request_id))
        return Done(status=RequestStatus.FAILED)

    def _delete_webform_submission(self, request: FoiaRequest) -> None:
        if request.webform_submission_id is None:
            return
        if not self.repository.delete_webform_submission(request.webform_submission_id):
            logger.warning(
                "Webform submission %s for request %s was already deleted",
                request.webform_submission_id,
                request.request_id,
            )
