"""Agency component submission channels."""

from foia_submission.channels.api_channel import ApiSubmissionChannel
from foia_submission.channels.base import (
    SubmissionChannel,
    SubmissionErrors,
    SubmissionResponse,
)
from foia_submission.channels.email_channel import EmailSubmissionChannel
from foia_submission.channels.factory import (
    SubmissionChannelFactory,
    UnknownSubmissionMethodError,
)

__all__ = [
    "ApiSubmissionChannel",
    "EmailSubmissionChannel",
    "SubmissionChannel",
    "SubmissionChannelFactory",
    "SubmissionErrors",
    "SubmissionResponse",
    "UnknownSubmissionMethodError",
]
