"""Deliver FOIA requests to agency components that expose a submission API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from foia_submission.channels.base import SubmissionErrors, SubmissionResponse
from foia_submission.submission.models import METHOD_API, AgencyComponent, FoiaRequest
from foia_submission.submission.repository import SubmissionRepository

logger = logging.getLogger(__name__)

API_SECRET_HEADER = "FOIA-API-SECRET"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_USER_AGENT = "foia-submission/1.0"


class ApiSubmissionChannel:
    """POST the request and its form values as JSON to the component's API endpoint."""

    def __init__(
        self,
        *,
        repository: SubmissionRepository,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._repository = repository
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        self._user_agent = user_agent
        self._max_retries = max_retries
        self._transport = transport
        self._errors = SubmissionErrors(method=METHOD_API)

    def submit(self, request: FoiaRequest, component: AgencyComponent) -> SubmissionResponse | None:
        self._errors = SubmissionErrors(method=METHOD_API)
        if not component.api_url:
            return self._fail(
                message="Missing API Submission URL for component.",
                description=f"Agency component {component.component_id} has no API URL.",
            )

        payload = self._build_payload(request=request, component=component)
        if payload is None:
            return self._fail(
                message="Missing webform submission for request.",
                description=(
                    f"Webform submission {request.webform_submission_id} "
                    f"for request {request.request_id} could not be loaded."
                ),
            )

        headers = {"User-Agent": self._user_agent}
        if component.api_secret_token:
            headers[API_SECRET_HEADER] = component.api_secret_token

        try:
            with httpx.Client(
                timeout=self._timeout,
                headers=headers,
                transport=self._transport or httpx.HTTPTransport(retries=self._max_retries),
            ) as client:
                response = client.post(component.api_url, json=payload)
        except httpx.TimeoutException:
            logger.warning(
                "Timeout submitting request %s to %s",
                request.request_id,
                component.api_url,
            )
            return self._fail(
                message="Timeout",
                description=f"Timed out posting to {component.api_url}.",
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "HTTP error submitting request %s to %s: %s",
                request.request_id,
                component.api_url,
                exc,
            )
            return self._fail(message=str(exc), description=type(exc).__name__)
        except (httpx.InvalidURL, UnicodeEncodeError) as exc:
            # Raised while building the request from component settings.
            logger.warning(
                "Invalid API settings for agency component %s: %s",
                component.component_id,
                exc,
            )
            return self._fail(
                message="Invalid API settings for component.",
                description=f"{type(exc).__name__}: {exc}",
            )

        body = _json_body(response)
        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Agency component %s rejected request %s with HTTP %s",
                component.component_id,
                request.request_id,
                response.status_code,
            )
            return self._fail(
                response_code=str(response.status_code),
                code=_optional_str(body.get("code")),
                message=_optional_str(body.get("message")) or f"HTTP {response.status_code}",
                description=_optional_str(body.get("description")),
            )

        case_management_id = _optional_str(body.get("id"))
        tracking_number = _optional_str(body.get("status_tracking_number"))
        if case_management_id is None or tracking_number is None:
            return self._fail(
                response_code=str(response.status_code),
                message="Invalid response from agency component.",
                description="Response did not include id and status_tracking_number.",
            )

        return SubmissionResponse(
            method=METHOD_API,
            case_management_id=case_management_id,
            tracking_number=tracking_number,
            response_code=str(response.status_code),
        )

    def submission_errors(self) -> SubmissionErrors:
        return self._errors

    def _build_payload(
        self,
        *,
        request: FoiaRequest,
        component: AgencyComponent,
    ) -> dict[str, Any] | None:
        form_values: dict[str, Any] = {}
        if request.webform_submission_id is not None:
            submission = self._repository.load_webform_submission(request.webform_submission_id)
            if submission is None:
                return None
            form_values = {**submission.data, "webform_id": submission.webform_id}
        return {
            **form_values,
            "request_id": request.request_id,
            "agency_component_id": component.component_id,
            "agency_component_name": component.title,
        }

    def _fail(
        self,
        *,
        message: str,
        response_code: str | None = None,
        code: str | None = None,
        description: str | None = None,
    ) -> None:
        self._errors = SubmissionErrors(
            response_code=response_code,
            code=code,
            message=message,
            description=description,
            method=METHOD_API,
        )


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        parsed = response.json()
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _optional_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
