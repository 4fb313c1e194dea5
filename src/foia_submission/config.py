"""Runtime configuration for the FOIA submission queue worker."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from pathlib import Path

FORCE_FAILURES_ENV = "FOIA_SUBMISSION_FORCE_FAILURES"


@dataclass(slots=True)
class SubmissionSettings:
    """Submission outcome policy settings."""

    max_submission_failures: int = 3
    # Test environments only. Never persisted, only read from the deployment environment.
    force_failures: bool = False


@dataclass(slots=True)
class WorkerSettings:
    """Queue runtime settings."""

    worker_id: str = field(default_factory=lambda: f"{socket.gethostname()}-{os.getpid()}")
    poll_interval_seconds: float = 2.0
    retry_base_seconds: int = 30
    retry_max_seconds: int = 900
    stale_claim_seconds: int = 1_800
    max_deliveries: int = 10


@dataclass(slots=True)
class ApiChannelSettings:
    """Agency component API channel settings."""

    timeout_seconds: float = 30.0
    max_retries: int = 3
    user_agent: str = "foia-submission/1.0"


@dataclass(slots=True)
class EmailChannelSettings:
    """Agency component email channel settings."""

    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_timeout_seconds: float = 30.0
    from_address: str = "foia-submissions@localhost"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".foia_submission.db")
    sqlite_busy_timeout_ms: int = 5_000
    submission: SubmissionSettings = field(default_factory=SubmissionSettings)
    worker: WorkerSettings = field(default_factory=WorkerSettings)
    api: ApiChannelSettings = field(default_factory=ApiChannelSettings)
    email: EmailChannelSettings = field(default_factory=EmailChannelSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        defaults = WorkerSettings()
        return cls(
            db_path=db_path or Path(os.getenv("FOIA_SUBMISSION_DB_PATH", ".foia_submission.db")),
            sqlite_busy_timeout_ms=int(os.getenv("FOIA_SUBMISSION_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            submission=SubmissionSettings(
                max_submission_failures=int(
                    os.getenv("FOIA_SUBMISSION_MAX_SUBMISSION_FAILURES", "3"),
                ),
                force_failures=_env_bool(FORCE_FAILURES_ENV, default=False),
            ),
            worker=WorkerSettings(
                worker_id=os.getenv("FOIA_SUBMISSION_WORKER_ID", defaults.worker_id),
                poll_interval_seconds=float(
                    os.getenv("FOIA_SUBMISSION_WORKER_POLL_INTERVAL_SECONDS", "2.0"),
                ),
                retry_base_seconds=int(os.getenv("FOIA_SUBMISSION_RETRY_BASE_SECONDS", "30")),
                retry_max_seconds=int(os.getenv("FOIA_SUBMISSION_RETRY_MAX_SECONDS", "900")),
                stale_claim_seconds=int(
                    os.getenv("FOIA_SUBMISSION_WORKER_STALE_CLAIM_SECONDS", "1800"),
                ),
                max_deliveries=int(os.getenv("FOIA_SUBMISSION_MAX_DELIVERIES", "10")),
            ),
            api=ApiChannelSettings(
                timeout_seconds=float(os.getenv("FOIA_SUBMISSION_API_TIMEOUT_SECONDS", "30.0")),
                max_retries=int(os.getenv("FOIA_SUBMISSION_API_MAX_RETRIES", "3")),
                user_agent=os.getenv("FOIA_SUBMISSION_API_USER_AGENT", "foia-submission/1.0"),
            ),
            email=EmailChannelSettings(
                smtp_host=os.getenv("FOIA_SUBMISSION_SMTP_HOST", "localhost"),
                smtp_port=int(os.getenv("FOIA_SUBMISSION_SMTP_PORT", "25")),
                smtp_timeout_seconds=float(
                    os.getenv("FOIA_SUBMISSION_SMTP_TIMEOUT_SECONDS", "30.0"),
                ),
                from_address=os.getenv(
                    "FOIA_SUBMISSION_EMAIL_FROM",
                    "foia-submissions@localhost",
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if limits are out of range."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("FOIA_SUBMISSION_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.submission.max_submission_failures <= 0:
            raise ValueError("FOIA_SUBMISSION_MAX_SUBMISSION_FAILURES must be > 0.")
        if self.worker.max_deliveries <= 0:
            raise ValueError("FOIA_SUBMISSION_MAX_DELIVERIES must be > 0.")
        if self.worker.poll_interval_seconds < 0:
            raise ValueError("FOIA_SUBMISSION_WORKER_POLL_INTERVAL_SECONDS must be >= 0.")
        if self.worker.retry_base_seconds < 0 or self.worker.retry_max_seconds < 0:
            raise ValueError("Retry backoff seconds must be >= 0.")
        if self.worker.stale_claim_seconds < 0:
            raise ValueError("FOIA_SUBMISSION_WORKER_STALE_CLAIM_SECONDS must be >= 0.")
        if self.api.timeout_seconds <= 0:
            raise ValueError("FOIA_SUBMISSION_API_TIMEOUT_SECONDS must be > 0.")
        if not 0 < self.email.smtp_port < 65_536:
            raise ValueError(
                f"Invalid FOIA_SUBMISSION_SMTP_PORT: {self.email.smtp_port!r}",
            )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off", ""}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
