"""Controllers for submission queue CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from foia_submission.channels.factory import SubmissionChannelFactory
from foia_submission.config import Settings
from foia_submission.submission.models import (
    FoiaRequest,
    QueueItemStatus,
    RequestNotFoundError,
    RequestStatus,
)
from foia_submission.submission.repository import SubmissionRepository
from foia_submission.submission.worker import SubmissionQueueWorker


@dataclass(slots=True)
class EnqueueCommand:
    """CLI input for queueing a request delivery."""

    db_path: Path | None
    request_id: int


@dataclass(slots=True)
class WorkerCommand:
    """CLI input for worker execution."""

    db_path: Path | None
    once: bool
    max_items: int | None
    max_idle_polls: int = 1


@dataclass(slots=True)
class ListQueueCommand:
    db_path: Path | None
    status: str | None
    limit: int


@dataclass(slots=True)
class ListRequestsCommand:
    db_path: Path | None
    status: str | None
    limit: int


@dataclass(slots=True)
class InspectRequestCommand:
    db_path: Path | None
    request_id: int


class SubmissionCliController:
    """Coordinates queue, worker, and inspection CLI operations."""

    def enqueue(self, command: EnqueueCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            item = repository.enqueue(request_id=command.request_id)
        return [
            "Request enqueued: "
            f"item_id={item.item_id} request_id={item.request_id} status={item.status.value}",
        ]

    def run_worker(self, command: WorkerCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        with _repository(settings) as repository:
            worker = SubmissionQueueWorker(
                repository=repository,
                channel_factory=SubmissionChannelFactory.from_settings(
                    settings,
                    repository=repository,
                ),
                worker_id=settings.worker.worker_id,
                max_submission_failures=settings.submission.max_submission_failures,
                force_failures=settings.submission.force_failures,
                poll_interval_seconds=settings.worker.poll_interval_seconds,
                retry_base_seconds=settings.worker.retry_base_seconds,
                retry_max_seconds=settings.worker.retry_max_seconds,
                stale_claim_seconds=settings.worker.stale_claim_seconds,
                max_deliveries=settings.worker.max_deliveries,
            )
            summary = (
                worker.run_once()
                if command.once
                else worker.run_loop(
                    max_items=command.max_items,
                    max_idle_polls=command.max_idle_polls,
                )
            )

        return [
            "Worker summary: "
            f"processed={summary.processed} submitted={summary.submitted} "
            f"in_transit={summary.in_transit} failed={summary.failed} "
            f"retried={summary.retried} errors={summary.errors} "
            f"dead_lettered={summary.dead_lettered} idle_polls={summary.idle_polls}",
        ]

    def list_queue(self, command: ListQueueCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        status = QueueItemStatus(command.status) if command.status else None
        with _repository(settings) as repository:
            items = repository.list_queue_items(status=status, limit=command.limit)
        if not items:
            return ["No queue items found."]
        return [
            f"{item.item_id}\trequest={item.request_id}\t{item.status.value}\t"
            f"deliveries={item.deliveries}\trun_after={item.run_after.isoformat()}"
            + (f"\tlast_error={item.last_error}" if item.last_error else "")
            for item in items
        ]

    def list_requests(self, command: ListRequestsCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        status = RequestStatus(command.status) if command.status else None
        with _repository(settings) as repository:
            requests = repository.list_requests(status=status, limit=command.limit)
        if not requests:
            return ["No requests found."]
        return [
            f"{request.request_id}\tcomponent={request.agency_component_id}\t"
            f"{request.request_status.value}\tfailures={request.submission_failures}"
            for request in requests
        ]

    def inspect_request(self, command: InspectRequestCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            request = repository.load_request(command.request_id)
            if request is None:
                raise RequestNotFoundError(command.request_id)
            items = repository.list_queue_items(request_id=command.request_id, limit=20)

        lines = _request_lines(request)
        lines.append(f"Queue items: {len(items)}")
        lines.extend(
            f"- item {item.item_id}: {item.status.value} deliveries={item.deliveries}"
            for item in items
        )
        return lines


def _request_lines(request: FoiaRequest) -> list[str]:
    submission_time = (
        request.submission_time.isoformat() if request.submission_time is not None else "-"
    )
    return [
        f"Request: {request.request_id}",
        f"Status: {request.request_status.value}",
        f"Agency component: {request.agency_component_id}",
        f"Webform submission: {request.webform_submission_id or '-'}",
        f"Submission method: {request.submission_method or '-'}",
        f"Submission time: {submission_time}",
        f"Submission failures: {request.submission_failures}",
        f"Response code: {request.response_code or '-'}",
        f"Case management id: {request.case_management_id or '-'}",
        f"Tracking number: {request.tracking_number or '-'}",
        f"Error: {request.error_code or '-'} {request.error_message or ''}".rstrip(),
    ]


@contextmanager
def _repository(settings: Settings) -> Iterator[SubmissionRepository]:
    repository = SubmissionRepository(
        settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
