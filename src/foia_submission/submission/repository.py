"""Persistence facade for FOIA requests and their submission queue."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from foia_submission.storage.alembic_runner import current_revision, upgrade_head
from foia_submission.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from foia_submission.storage.sqlmodel_models import (
    AgencyComponentRow,
    FoiaRequestRow,
    SubmissionQueueItem,
    WebformSubmissionRow,
)
from foia_submission.submission.models import (
    AgencyComponent,
    AgencyComponentCreate,
    FoiaRequest,
    FoiaRequestCreate,
    QueueItem,
    QueueItemStatus,
    RequestNotFoundError,
    RequestStatus,
    WebformSubmissionView,
)


class SubmissionRepository:
    """Request and queue persistence backed by SQLModel + SQLite."""

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    def schema_revision(self) -> str | None:
        return current_revision(self.engine)

    def add_agency_component(self, payload: AgencyComponentCreate) -> AgencyComponent:
        with Session(self.engine) as session:
            row = AgencyComponentRow(
                title=payload.title,
                submission_method=payload.submission_method,
                api_url=payload.api_url,
                api_secret_token=payload.api_secret_token,
                submission_email=payload.submission_email,
                created_at=to_db_datetime(utc_now()),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_agency_component(row)

    def load_agency_component(self, component_id: int) -> AgencyComponent | None:
        with Session(self.engine) as session:
            row = session.get(AgencyComponentRow, component_id)
            if row is None:
                return None
            return _to_agency_component(row)

    def add_webform_submission(
        self,
        *,
        webform_id: str,
        data: dict[str, Any],
    ) -> WebformSubmissionView:
        with Session(self.engine) as session:
            row = WebformSubmissionRow(
                webform_id=webform_id,
                data_json=json.dumps(data, ensure_ascii=False, sort_keys=True),
                created_at=to_db_datetime(utc_now()),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_webform_submission(row)

    def load_webform_submission(self, submission_id: int) -> WebformSubmissionView | None:
        with Session(self.engine) as session:
            row = session.get(WebformSubmissionRow, submission_id)
            if row is None:
                return None
            return _to_webform_submission(row)

    def delete_webform_submission(self, submission_id: int) -> bool:
        """Delete the original form submission; False when it is already gone."""

        with Session(self.engine) as session:
            row = session.get(WebformSubmissionRow, submission_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def create_request(self, payload: FoiaRequestCreate) -> FoiaRequest:
        """Persist a queued FOIA request."""

        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            row = FoiaRequestRow(
                agency_component_id=payload.agency_component_id,
                webform_submission_id=payload.webform_submission_id,
                request_status=RequestStatus.QUEUED.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_foia_request(row)

    def load_request(self, request_id: int) -> FoiaRequest | None:
        with Session(self.engine) as session:
            row = session.get(FoiaRequestRow, request_id)
            if row is None:
                return None
            return _to_foia_request(row)

    def save_request(self, request: FoiaRequest) -> None:
        """Write back every workflow field of the request."""

        with Session(self.engine) as session:
            row = session.get(FoiaRequestRow, request.request_id)
            if row is None:
                raise RequestNotFoundError(request.request_id)
            row.webform_submission_id = request.webform_submission_id
            row.request_status = request.request_status.value
            row.submission_method = request.submission_method
            row.submission_time = (
                to_db_datetime(request.submission_time)
                if request.submission_time is not None
                else None
            )
            row.response_code = request.response_code
            row.error_code = request.error_code
            row.error_message = request.error_message
            row.error_description = request.error_description
            row.case_management_id = request.case_management_id
            row.tracking_number = request.tracking_number
            row.submission_failures = request.submission_failures
            row.updated_at = to_db_datetime(utc_now())
            session.add(row)
            session.commit()
            request.updated_at = to_utc_aware_datetime(row.updated_at)

    def list_requests(
        self,
        *,
        status: RequestStatus | None = None,
        limit: int = 50,
    ) -> list[FoiaRequest]:
        with Session(self.engine) as session:
            statement = (
                select(FoiaRequestRow)
                .order_by(col(FoiaRequestRow.updated_at).desc())
                .limit(limit)
            )
            if status is not None:
                statement = statement.where(FoiaRequestRow.request_status == status.value)
            rows = session.exec(statement).all()
        return [_to_foia_request(row) for row in rows]

    def enqueue(self, *, request_id: int, run_after: datetime | None = None) -> QueueItem:
        """Queue one delivery of a request."""

        now = utc_now()
        with Session(self.engine) as session:
            if session.get(FoiaRequestRow, request_id) is None:
                raise RequestNotFoundError(request_id)
            row = SubmissionQueueItem(
                request_id=request_id,
                status=QueueItemStatus.READY.value,
                deliveries=0,
                run_after=to_db_datetime(run_after or now),
                created_at=to_db_datetime(now),
                updated_at=to_db_datetime(now),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_queue_item(row)

    def claim_next_item(self, *, worker_id: str) -> QueueItem | None:
        """Atomically claim one item ready for delivery."""

        while True:
            now = to_db_datetime(utc_now())
            with Session(self.engine) as session:
                candidate = session.exec(
                    select(SubmissionQueueItem)
                    .where(
                        SubmissionQueueItem.status == QueueItemStatus.READY.value,
                        SubmissionQueueItem.run_after <= now,
                    )
                    .order_by(
                        col(SubmissionQueueItem.run_after).asc(),
                        col(SubmissionQueueItem.created_at).asc(),
                    )
                    .limit(1),
                ).one_or_none()
                if candidate is None:
                    return None
                candidate_id = candidate.item_id
                deliveries = candidate.deliveries

                result = session.exec(
                    sa_update(SubmissionQueueItem)
                    .where(
                        col(SubmissionQueueItem.item_id) == candidate_id,
                        col(SubmissionQueueItem.status) == QueueItemStatus.READY.value,
                    )
                    .values(
                        status=QueueItemStatus.CLAIMED.value,
                        deliveries=deliveries + 1,
                        claimed_at=now,
                        worker_id=worker_id,
                        updated_at=now,
                    ),
                )
                if result.rowcount != 1:
                    session.rollback()
                    continue
                session.commit()

                claimed = session.exec(
                    select(SubmissionQueueItem).where(
                        SubmissionQueueItem.item_id == candidate_id,
                    ),
                ).one()
                return _to_queue_item(claimed)

    def complete_item(self, *, item_id: int) -> bool:
        """Acknowledge a claimed item."""

        return self._finish_claimed_item(
            item_id=item_id,
            values={"status": QueueItemStatus.DONE.value, "last_error": None},
        )

    def release_item(self, *, item_id: int, run_after: datetime, error: str | None) -> bool:
        """Hand a claimed item back to the queue for redelivery after `run_after`."""

        return self._finish_claimed_item(
            item_id=item_id,
            values={
                "status": QueueItemStatus.READY.value,
                "run_after": to_db_datetime(run_after),
                "claimed_at": None,
                "worker_id": None,
                "last_error": error,
            },
        )

    def dead_letter_item(self, *, item_id: int, error: str) -> bool:
        """Park a claimed item that keeps failing outside the submission policy."""

        return self._finish_claimed_item(
            item_id=item_id,
            values={"status": QueueItemStatus.DEAD.value, "last_error": error},
        )

    def recover_stale_claims(self, *, stale_after: timedelta) -> int:
        """Release items whose worker vanished mid-delivery."""

        now = utc_now()
        cutoff = to_db_datetime(now - stale_after)
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(SubmissionQueueItem)
                .where(
                    col(SubmissionQueueItem.status) == QueueItemStatus.CLAIMED.value,
                    col(SubmissionQueueItem.claimed_at) <= cutoff,
                )
                .values(
                    status=QueueItemStatus.READY.value,
                    run_after=to_db_datetime(now),
                    claimed_at=None,
                    worker_id=None,
                    last_error="Recovered stale claim.",
                    updated_at=to_db_datetime(now),
                ),
            )
            session.commit()
            return result.rowcount or 0

    def get_queue_item(self, *, item_id: int) -> QueueItem | None:
        with Session(self.engine) as session:
            row = session.get(SubmissionQueueItem, item_id)
            if row is None:
                return None
            return _to_queue_item(row)

    def list_queue_items(
        self,
        *,
        status: QueueItemStatus | None = None,
        request_id: int | None = None,
        limit: int = 50,
    ) -> list[QueueItem]:
        with Session(self.engine) as session:
            statement = (
                select(SubmissionQueueItem)
                .order_by(col(SubmissionQueueItem.created_at).desc())
                .limit(limit)
            )
            if status is not None:
                statement = statement.where(SubmissionQueueItem.status == status.value)
            if request_id is not None:
                statement = statement.where(SubmissionQueueItem.request_id == request_id)
            rows = session.exec(statement).all()
        return [_to_queue_item(row) for row in rows]

    def _finish_claimed_item(self, *, item_id: int, values: dict[str, object]) -> bool:
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(SubmissionQueueItem)
                .where(
                    col(SubmissionQueueItem.item_id) == item_id,
                    col(SubmissionQueueItem.status) == QueueItemStatus.CLAIMED.value,
                )
                .values(**values, updated_at=to_db_datetime(utc_now())),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True


def _to_agency_component(row: AgencyComponentRow) -> AgencyComponent:
    return AgencyComponent(
        component_id=row.component_id or 0,
        title=row.title,
        submission_method=row.submission_method,
        api_url=row.api_url,
        api_secret_token=row.api_secret_token,
        submission_email=row.submission_email,
    )


def _to_webform_submission(row: WebformSubmissionRow) -> WebformSubmissionView:
    data: dict[str, Any] = {}
    if row.data_json:
        parsed = json.loads(row.data_json)
        if isinstance(parsed, dict):
            data = parsed
    return WebformSubmissionView(
        submission_id=row.submission_id or 0,
        webform_id=row.webform_id,
        data=data,
        created_at=to_utc_aware_datetime(row.created_at),
    )


def _to_foia_request(row: FoiaRequestRow) -> FoiaRequest:
    return FoiaRequest(
        request_id=row.request_id or 0,
        agency_component_id=row.agency_component_id,
        webform_submission_id=row.webform_submission_id,
        request_status=RequestStatus(row.request_status),
        submission_method=row.submission_method,
        submission_time=(
            to_utc_aware_datetime(row.submission_time)
            if row.submission_time is not None
            else None
        ),
        response_code=row.response_code,
        error_code=row.error_code,
        error_message=row.error_message,
        error_description=row.error_description,
        case_management_id=row.case_management_id,
        tracking_number=row.tracking_number,
        submission_failures=row.submission_failures,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )


def _to_queue_item(row: SubmissionQueueItem) -> QueueItem:
    return QueueItem(
        item_id=row.item_id or 0,
        request_id=row.request_id,
        status=QueueItemStatus(row.status),
        deliveries=row.deliveries,
        run_after=to_utc_aware_datetime(row.run_after),
        claimed_at=(
            to_utc_aware_datetime(row.claimed_at) if row.claimed_at is not None else None
        ),
        worker_id=row.worker_id,
        last_error=row.last_error,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )
