"""Domain models for FOIA request submission and its queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

METHOD_API = "api"
METHOD_EMAIL = "email"


class RequestStatus(str, Enum):
    """FOIA request lifecycle states driven by the submission queue."""

    QUEUED = "queued"
    SUBMITTED = "submitted"
    IN_TRANSIT = "in_transit"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.QUEUED


class QueueItemStatus(str, Enum):
    """Durable queue item states."""

    READY = "ready"
    CLAIMED = "claimed"
    DONE = "done"
    DEAD = "dead"


class SubmissionError(RuntimeError):
    """Base class for errors the submission workflow does not recover from."""


class RequestNotFoundError(SubmissionError):
    def __init__(self, request_id: int) -> None:
        super().__init__(f"FOIA request not found: {request_id}")
        self.request_id = request_id


class AgencyComponentNotFoundError(SubmissionError):
    def __init__(self, component_id: int) -> None:
        super().__init__(f"Agency component not found: {component_id}")
        self.component_id = component_id


class InvalidStatusTransitionError(SubmissionError):
    def __init__(self, current: RequestStatus, new: RequestStatus) -> None:
        super().__init__(f"Request status cannot change from {current.value} to {new.value}")
        self.current = current
        self.new = new


@dataclass(slots=True)
class FoiaRequest:
    """Mutable FOIA request record loaded for one submission attempt."""

    request_id: int
    agency_component_id: int
    webform_submission_id: int | None
    request_status: RequestStatus = RequestStatus.QUEUED
    submission_method: str = ""
    submission_time: datetime | None = None
    response_code: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    error_description: str | None = None
    case_management_id: str | None = None
    tracking_number: str | None = None
    submission_failures: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def set_request_status(self, status: RequestStatus) -> None:
        """Move along the queued -> submitted | in_transit | failed state machine."""

        if self.request_status.is_terminal:
            raise InvalidStatusTransitionError(self.request_status, status)
        self.request_status = status

    def add_submission_failure(self) -> int:
        self.submission_failures += 1
        return self.submission_failures


@dataclass(slots=True)
class FoiaRequestCreate:
    """Input payload for persisting a new FOIA request."""

    agency_component_id: int
    webform_submission_id: int | None = None


@dataclass(slots=True)
class AgencyComponent:
    """Agency component a request is routed to."""

    component_id: int
    title: str
    submission_method: str
    api_url: str | None = None
    api_secret_token: str | None = None
    submission_email: str | None = None


@dataclass(slots=True)
class AgencyComponentCreate:
    title: str
    submission_method: str
    api_url: str | None = None
    api_secret_token: str | None = None
    submission_email: str | None = None


@dataclass(slots=True)
class WebformSubmissionView:
    """Original form submission that produced a FOIA request."""

    submission_id: int
    webform_id: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass(slots=True)
class QueueItem:
    """One queued delivery of a FOIA request."""

    item_id: int
    request_id: int
    status: QueueItemStatus
    deliveries: int
    run_after: datetime
    claimed_at: datetime | None
    worker_id: str | None
    last_error: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class Done:
    """Item handled; nothing left for the queue to do."""

    status: RequestStatus


@dataclass(frozen=True, slots=True)
class Retry:
    """Item should be redelivered later."""

    reason: str


HandleResult = Done | Retry
