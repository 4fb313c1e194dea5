"""Queue worker that submits FOIA requests to agency components."""

from __future__ import annotations

import logging
import random
import signal
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from foia_submission.channels.factory import SubmissionChannelFactory
from foia_submission.storage.common import utc_now
from foia_submission.submission.failure_policy import DEFAULT_MAX_SUBMISSION_FAILURES
from foia_submission.submission.models import (
    AgencyComponentNotFoundError,
    Done,
    HandleResult,
    QueueItem,
    RequestNotFoundError,
    RequestStatus,
    Retry,
)
from foia_submission.submission.outcome_handler import SubmissionOutcomeHandler
from foia_submission.submission.repository import SubmissionRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkerRunSummary:
    """Aggregate worker counters for CLI reporting."""

    processed: int = 0
    submitted: int = 0
    in_transit: int = 0
    failed: int = 0
    retried: int = 0
    errors: int = 0
    dead_lettered: int = 0
    idle_polls: int = 0

    def add(self, other: WorkerRunSummary) -> None:
        self.processed += other.processed
        self.submitted += other.submitted
        self.in_transit += other.in_transit
        self.failed += other.failed
        self.retried += other.retried
        self.errors += other.errors
        self.dead_lettered += other.dead_lettered
        self.idle_polls += other.idle_polls


class SubmissionQueueWorker:
    """Consumes queued FOIA requests and delivers them through their channel."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        repository: SubmissionRepository,
        channel_factory: SubmissionChannelFactory,
        worker_id: str,
        max_submission_failures: int = DEFAULT_MAX_SUBMISSION_FAILURES,
        force_failures: bool = False,
        poll_interval_seconds: float = 2.0,
        retry_base_seconds: int = 30,
        retry_max_seconds: int = 900,
        stale_claim_seconds: int = 1800,
        max_deliveries: int = 10,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.channel_factory = channel_factory
        self.worker_id = worker_id
        self.poll_interval_seconds = poll_interval_seconds
        self.retry_base_seconds = retry_base_seconds
        self.retry_max_seconds = retry_max_seconds
        self.stale_claim_seconds = stale_claim_seconds
        self.max_deliveries = max_deliveries
        self.clock = clock
        self.outcome_handler = SubmissionOutcomeHandler(
            repository=repository,
            max_submission_failures=max_submission_failures,
            force_failures=force_failures,
        )
        self._random = random.Random()  # noqa: S311
        self._stop_requested = False

    def process_item(self, item: QueueItem) -> HandleResult:
        """Submit the item's request once and record the outcome.

        Errors other than ordinary delivery failures propagate to the caller.
        """

        request = self.repository.load_request(item.request_id)
        if request is None:
            raise RequestNotFoundError(item.request_id)
        if request.request_status.is_terminal:
            logger.warning(
                "Skipping request %s redelivered in terminal status %s",
                request.request_id,
                request.request_status.value,
            )
            return Done(status=request.request_status)

        component = self.repository.load_agency_component(request.agency_component_id)
        if component is None:
            raise AgencyComponentNotFoundError(request.agency_component_id)
        channel = self.channel_factory.get(component)

        request.submission_time = self.clock()
        response = channel.submit(request, component)
        return self.outcome_handler.handle(request, response, channel)

    def run_once(self) -> WorkerRunSummary:
        """Process at most one item from the queue."""

        summary = WorkerRunSummary()
        if self._stop_requested:
            summary.idle_polls = 1
            return summary

        item = self._claim_item()
        if item is None:
            summary.idle_polls = 1
            return summary

        summary.processed = 1
        try:
            result = self.process_item(item)
        except Exception as error:  # noqa: BLE001
            self._handle_unrecovered_error(item=item, error=error, summary=summary)
            return summary

        if isinstance(result, Retry):
            self.repository.release_item(
                item_id=item.item_id,
                run_after=self.clock() + timedelta(seconds=self._compute_retry_delay(item)),
                error=result.reason,
            )
            summary.retried = 1
            return summary

        self.repository.complete_item(item_id=item.item_id)
        if result.status is RequestStatus.SUBMITTED:
            summary.submitted = 1
        elif result.status is RequestStatus.IN_TRANSIT:
            summary.in_transit = 1
        elif result.status is RequestStatus.FAILED:
            summary.failed = 1
        return summary

    def run_loop(
        self,
        *,
        max_items: int | None = None,
        max_idle_polls: int = 1,
    ) -> WorkerRunSummary:
        """Run worker loop until queue is idle or max_items reached.

        Args:
            max_items: Stop after processing this many items (None = unlimited).
            max_idle_polls: How many consecutive empty polls before exiting.
        """

        aggregate = WorkerRunSummary()
        consecutive_idle = 0
        with self._signal_handlers():
            while True:
                if self._stop_requested:
                    return aggregate
                if max_items is not None and aggregate.processed >= max_items:
                    return aggregate

                summary = self.run_once()
                aggregate.add(summary)

                if summary.processed == 0:
                    consecutive_idle += 1
                    if consecutive_idle >= max_idle_polls:
                        return aggregate
                    self._sleep_with_stop(self.poll_interval_seconds)
                    continue
                consecutive_idle = 0

    def _claim_item(self) -> QueueItem | None:
        if self.stale_claim_seconds > 0:
            recovered = self.repository.recover_stale_claims(
                stale_after=timedelta(seconds=self.stale_claim_seconds),
            )
            if recovered:
                logger.warning("Released %d stale queue claims", recovered)
        return self.repository.claim_next_item(worker_id=self.worker_id)

    def _handle_unrecovered_error(
        self,
        *,
        item: QueueItem,
        error: Exception,
        summary: WorkerRunSummary,
    ) -> None:
        summary.errors = 1
        error_summary = f"{type(error).__name__}: {error}"
        if item.deliveries >= self.max_deliveries:
            logger.exception(
                "Queue item %s for request %s dead-lettered after %d deliveries",
                item.item_id,
                item.request_id,
                item.deliveries,
            )
            self.repository.dead_letter_item(item_id=item.item_id, error=error_summary)
            summary.dead_lettered = 1
            return

        logger.exception(
            "Unrecovered error processing queue item %s for request %s (delivery %d of %d)",
            item.item_id,
            item.request_id,
            item.deliveries,
            self.max_deliveries,
        )
        self.repository.release_item(
            item_id=item.item_id,
            run_after=self.clock() + timedelta(seconds=self._compute_retry_delay(item)),
            error=error_summary,
        )

    def _compute_retry_delay(self, item: QueueItem) -> float:
        max_delay = min(
            self.retry_max_seconds,
            self.retry_base_seconds * (2 ** max(item.deliveries - 1, 0)),
        )
        return self._random.uniform(0, max_delay)

    def _sleep_with_stop(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self._stop_requested and time.monotonic() < deadline:
            time.sleep(min(0.1, max(0.0, deadline - time.monotonic())))

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            logger.info("Received %s, stopping after the current item", name)
            self._stop_requested = True

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            pass
        try:
            yield
        finally:
            try:
                signal.signal(signal.SIGINT, original_sigint)
                signal.signal(signal.SIGTERM, original_sigterm)
            except ValueError:
                pass
