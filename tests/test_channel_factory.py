from __future__ import annotations

import allure
import pytest

from foia_submission.channels.api_channel import ApiSubmissionChannel
from foia_submission.channels.email_channel import EmailSubmissionChannel
from foia_submission.channels.factory import (
    SubmissionChannelFactory,
    UnknownSubmissionMethodError,
)
from foia_submission.config import Settings
from foia_submission.submission.models import METHOD_API, METHOD_EMAIL, AgencyComponent

pytestmark = [
    allure.epic("Submission Queue"),
    allure.feature("Channel Selection"),
]


def _component(method: str) -> AgencyComponent:
    return AgencyComponent(component_id=7, title="FBI", submission_method=method)


def test_from_settings_registers_api_and_email(repository) -> None:
    factory = SubmissionChannelFactory.from_settings(Settings(), repository=repository)

    assert factory.methods == (METHOD_API, METHOD_EMAIL)
    assert isinstance(factory.get(_component(METHOD_API)), ApiSubmissionChannel)
    assert isinstance(factory.get(_component(METHOD_EMAIL)), EmailSubmissionChannel)


def test_unknown_method_raises() -> None:
    factory = SubmissionChannelFactory()

    with pytest.raises(UnknownSubmissionMethodError, match="'fax'"):
        factory.get(_component("fax"))


def test_register_adds_or_replaces_builder(fake_channel) -> None:
    channel = fake_channel()
    factory = SubmissionChannelFactory({METHOD_API: fake_channel})

    factory.register("portal", lambda: channel)
    factory.register(METHOD_API, lambda: channel)

    assert factory.methods == (METHOD_API, "portal")
    assert factory.get(_component("portal")) is channel
    assert factory.get(_component(METHOD_API)) is channel
