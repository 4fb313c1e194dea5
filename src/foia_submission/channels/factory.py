"""Resolve the submission channel for an agency component."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from foia_submission.channels.api_channel import ApiSubmissionChannel
from foia_submission.channels.base import SubmissionChannel
from foia_submission.channels.email_channel import EmailSubmissionChannel
from foia_submission.config import Settings
from foia_submission.submission.models import (
    METHOD_API,
    METHOD_EMAIL,
    AgencyComponent,
    SubmissionError,
)
from foia_submission.submission.repository import SubmissionRepository

ChannelBuilder = Callable[[], SubmissionChannel]


class UnknownSubmissionMethodError(SubmissionError):
    def __init__(self, component: AgencyComponent) -> None:
        super().__init__(
            f"No submission channel registered for method {component.submission_method!r} "
            f"(agency component {component.component_id}).",
        )
        self.component = component


class SubmissionChannelFactory:
    """Registry of channel builders keyed by the component's submission method."""

    def __init__(self, builders: Mapping[str, ChannelBuilder] | None = None) -> None:
        self._builders: dict[str, ChannelBuilder] = dict(builders or {})

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        repository: SubmissionRepository,
    ) -> SubmissionChannelFactory:
        return cls(
            {
                METHOD_API: lambda: ApiSubmissionChannel(
                    repository=repository,
                    timeout_seconds=settings.api.timeout_seconds,
                    max_retries=settings.api.max_retries,
                    user_agent=settings.api.user_agent,
                ),
                METHOD_EMAIL: lambda: EmailSubmissionChannel(
                    repository=repository,
                    smtp_host=settings.email.smtp_host,
                    smtp_port=settings.email.smtp_port,
                    timeout_seconds=settings.email.smtp_timeout_seconds,
                    from_address=settings.email.from_address,
                ),
            },
        )

    @property
    def methods(self) -> tuple[str, ...]:
        return tuple(sorted(self._builders))

    def register(self, method: str, builder: ChannelBuilder) -> None:
        self._builders[method] = builder

    def get(self, component: AgencyComponent) -> SubmissionChannel:
        builder = self._builders.get(component.submission_method)
        if builder is None:
            raise UnknownSubmissionMethodError(component)
        return builder()
