"""SQLModel ORM tables for submission storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text
from sqlmodel import Field, SQLModel


class AgencyComponentRow(SQLModel, table=True):
    __tablename__ = "agency_components"  # type: ignore[bad-override]

    component_id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    submission_method: str = Field(index=True)
    api_url: str | None = None
    api_secret_token: str | None = None
    submission_email: str | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class WebformSubmissionRow(SQLModel, table=True):
    __tablename__ = "webform_submissions"  # type: ignore[bad-override]

    submission_id: int | None = Field(default=None, primary_key=True)
    webform_id: str = Field(index=True)
    data_json: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class FoiaRequestRow(SQLModel, table=True):
    __tablename__ = "foia_requests"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_foia_requests_status", "request_status", "updated_at"),)

    request_id: int | None = Field(default=None, primary_key=True)
    agency_component_id: int = Field(
        sa_column=Column(
            ForeignKey("agency_components.component_id"),
            nullable=False,
            index=True,
        ),
    )
    # Plain column: the webform submission is deleted while the request lives on.
    webform_submission_id: int | None = Field(default=None, sa_column=Column(Integer))
    request_status: str = Field(index=True)
    submission_method: str = ""
    submission_time: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True)),
    )
    response_code: str | None = None
    error_code: str | None = None
    error_message: str | None = Field(default=None, sa_column=Column(Text))
    error_description: str | None = Field(default=None, sa_column=Column(Text))
    case_management_id: str | None = None
    tracking_number: str | None = None
    submission_failures: int = Field(default=0)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class SubmissionQueueItem(SQLModel, table=True):
    __tablename__ = "submission_queue"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_submission_queue_ready", "status", "run_after", "created_at"),)

    item_id: int | None = Field(default=None, primary_key=True)
    request_id: int = Field(
        sa_column=Column(
            ForeignKey("foia_requests.request_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    status: str = Field(index=True)
    deliveries: int = Field(default=0)
    run_after: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    claimed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    worker_id: str | None = Field(default=None, index=True)
    last_error: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
