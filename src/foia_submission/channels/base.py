"""Submission channel interface for delivering FOIA requests to agency components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from foia_submission.submission.models import AgencyComponent, FoiaRequest


@dataclass(slots=True)
class SubmissionResponse:
    """Successful delivery descriptor."""

    method: str
    case_management_id: str | None = None
    tracking_number: str | None = None
    response_code: str | None = None


@dataclass(slots=True)
class SubmissionErrors:
    """Failed delivery descriptor."""

    response_code: str | None = None
    code: str | None = None
    message: str | None = None
    description: str | None = None
    method: str | None = None


class SubmissionChannel(Protocol):
    """Protocol implemented by agency component delivery channels."""

    def submit(self, request: FoiaRequest, component: AgencyComponent) -> SubmissionResponse | None:
        """Attempt one delivery; return None on ordinary failure instead of raising."""

    def submission_errors(self) -> SubmissionErrors:
        """Detail of the most recent failed delivery."""
