"""Deliver FOIA requests to agency components by email."""

from __future__ import annotations

import logging
import smtplib
from collections.abc import Callable
from email.message import EmailMessage

from foia_submission.channels.base import SubmissionErrors, SubmissionResponse
from foia_submission.submission.models import (
    METHOD_EMAIL,
    AgencyComponent,
    FoiaRequest,
    WebformSubmissionView,
)
from foia_submission.submission.repository import SubmissionRepository

logger = logging.getLogger(__name__)

SmtpFactory = Callable[..., smtplib.SMTP]


class EmailSubmissionChannel:
    """Hand the rendered request to an SMTP relay.

    Acceptance by the relay is not delivery to the agency, so a successful
    send reports the email method and the request stays in transit.
    """

    def __init__(
        self,
        *,
        repository: SubmissionRepository,
        smtp_host: str = "localhost",
        smtp_port: int = 25,
        timeout_seconds: float = 30.0,
        from_address: str = "foia-submissions@localhost",
        smtp_factory: SmtpFactory = smtplib.SMTP,
    ) -> None:
        self._repository = repository
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._timeout_seconds = timeout_seconds
        self._from_address = from_address
        self._smtp_factory = smtp_factory
        self._errors = SubmissionErrors(method=METHOD_EMAIL)

    def submit(self, request: FoiaRequest, component: AgencyComponent) -> SubmissionResponse | None:
        self._errors = SubmissionErrors(method=METHOD_EMAIL)
        if not component.submission_email:
            return self._fail(
                message="Missing submission email address for component.",
                description=f"Agency component {component.component_id} has no email address.",
            )

        submission: WebformSubmissionView | None = None
        if request.webform_submission_id is not None:
            submission = self._repository.load_webform_submission(request.webform_submission_id)
            if submission is None:
                return self._fail(
                    message="Missing webform submission for request.",
                    description=(
                        f"Webform submission {request.webform_submission_id} "
                        f"for request {request.request_id} could not be loaded."
                    ),
                )

        try:
            message = build_request_email(
                request=request,
                component=component,
                submission=submission,
                from_address=self._from_address,
            )
        except ValueError as exc:
            logger.warning(
                "Cannot build email for request %s to %r: %s",
                request.request_id,
                component.submission_email,
                exc,
            )
            return self._fail(
                message="Invalid submission email for component.",
                description=str(exc),
            )

        try:
            with self._smtp_factory(
                self._smtp_host,
                self._smtp_port,
                timeout=self._timeout_seconds,
            ) as smtp:
                smtp.send_message(message)
        except smtplib.SMTPResponseException as exc:
            logger.warning(
                "SMTP relay rejected request %s for %s: %s",
                request.request_id,
                component.submission_email,
                exc,
            )
            return self._fail(
                code=str(exc.smtp_code),
                message="SMTP relay rejected the message.",
                description=_smtp_error_text(exc.smtp_error),
            )
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning(
                "Email delivery failed for request %s to %s: %s",
                request.request_id,
                component.submission_email,
                exc,
            )
            return self._fail(
                message=str(exc) or type(exc).__name__,
                description=type(exc).__name__,
            )

        return SubmissionResponse(method=METHOD_EMAIL)

    def submission_errors(self) -> SubmissionErrors:
        return self._errors

    def _fail(
        self,
        *,
        message: str,
        code: str | None = None,
        description: str | None = None,
    ) -> None:
        self._errors = SubmissionErrors(
            code=code,
            message=message,
            description=description,
            method=METHOD_EMAIL,
        )


def build_request_email(
    *,
    request: FoiaRequest,
    component: AgencyComponent,
    submission: WebformSubmissionView | None,
    from_address: str,
) -> EmailMessage:
    """Render the request's form values as a plain text email."""

    message = EmailMessage()
    message["Subject"] = f"FOIA Request #{request.request_id}"
    message["From"] = from_address
    message["To"] = component.submission_email or ""
    lines = [
        f"A FOIA request was submitted to {component.title}.",
        "",
        f"Request ID: {request.request_id}",
    ]
    if submission is not None:
        lines.append(f"Form: {submission.webform_id}")
        lines.append("")
        lines.extend(f"{key}: {value}" for key, value in sorted(submission.data.items()))
    message.set_content("\n".join(lines) + "\n")
    return message


def _smtp_error_text(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
