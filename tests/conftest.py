"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from foia_submission.channels.base import SubmissionErrors, SubmissionResponse
from foia_submission.channels.factory import SubmissionChannelFactory
from foia_submission.submission.models import (
    METHOD_API,
    METHOD_EMAIL,
    AgencyComponent,
    AgencyComponentCreate,
    FoiaRequest,
    FoiaRequestCreate,
    WebformSubmissionView,
)
from foia_submission.submission.repository import SubmissionRepository
from foia_submission.submission.worker import SubmissionQueueWorker


class FakeChannel:
    """Scripted channel: returns queued responses in order, then None."""

    def __init__(
        self,
        responses: list[SubmissionResponse | None] | None = None,
        errors: SubmissionErrors | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.errors = errors or SubmissionErrors(
            response_code="500",
            code="E500",
            message="Agency API unavailable",
            description="The component API answered with an internal error.",
            method=METHOD_API,
        )
        self.submitted: list[int] = []

    def submit(self, request: FoiaRequest, component: AgencyComponent) -> SubmissionResponse | None:
        self.submitted.append(request.request_id)
        if self.responses:
            return self.responses.pop(0)
        return None

    def submission_errors(self) -> SubmissionErrors:
        return self.errors


@dataclass(slots=True)
class SeededRequest:
    request: FoiaRequest
    component: AgencyComponent
    webform: WebformSubmissionView


@pytest.fixture()
def fake_channel() -> type[FakeChannel]:
    return FakeChannel


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[SubmissionRepository]:
    repo = SubmissionRepository(tmp_path / "submission.db")
    repo.init_schema()
    yield repo
    repo.close()


@pytest.fixture()
def seed_request(repository: SubmissionRepository) -> Callable[..., SeededRequest]:
    def _seed(
        *,
        method: str = METHOD_API,
        submission_failures: int = 0,
        data: dict[str, Any] | None = None,
    ) -> SeededRequest:
        component = repository.add_agency_component(
            AgencyComponentCreate(
                title="Office of Information Policy",
                submission_method=method,
                api_url="https://agency.example.gov/api/requests" if method == METHOD_API else None,
                api_secret_token="s3cret" if method == METHOD_API else None,
                submission_email="foia@agency.example.gov" if method == METHOD_EMAIL else None,
            ),
        )
        webform = repository.add_webform_submission(
            webform_id="basic_request_submission_form",
            data=data
            or {
                "name_first": "Jane",
                "name_last": "Doe",
                "request_description": "All records about the 2019 audit.",
            },
        )
        request = repository.create_request(
            FoiaRequestCreate(
                agency_component_id=component.component_id,
                webform_submission_id=webform.submission_id,
            ),
        )
        if submission_failures:
            request.submission_failures = submission_failures
            repository.save_request(request)
        return SeededRequest(request=request, component=component, webform=webform)

    return _seed


@pytest.fixture()
def make_worker(repository: SubmissionRepository) -> Callable[..., SubmissionQueueWorker]:
    def _make(channel: FakeChannel, **overrides: Any) -> SubmissionQueueWorker:
        options: dict[str, Any] = {
            "worker_id": "test-worker",
            "poll_interval_seconds": 0.0,
            "retry_base_seconds": 0,
            "retry_max_seconds": 0,
        }
        options.update(overrides)
        factory = SubmissionChannelFactory(
            {
                METHOD_API: lambda: channel,
                METHOD_EMAIL: lambda: channel,
            },
        )
        return SubmissionQueueWorker(
            repository=repository,
            channel_factory=factory,
            **options,
        )

    return _make
