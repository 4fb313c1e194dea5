"""Create agency components, webform submissions, FOIA requests and submission queue."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "agency_components",
        sa.Column("component_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("submission_method", sa.String(), nullable=False),
        sa.Column("api_url", sa.String(), nullable=True),
        sa.Column("api_secret_token", sa.String(), nullable=True),
        sa.Column("submission_email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("component_id"),
    )
    op.create_index("ix_agency_components_title", "agency_components", ["title"])
    op.create_index(
        "ix_agency_components_submission_method",
        "agency_components",
        ["submission_method"],
    )

    op.create_table(
        "webform_submissions",
        sa.Column("submission_id", sa.Integer(), nullable=False),
        sa.Column("webform_id", sa.String(), nullable=False),
        sa.Column("data_json", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("submission_id"),
    )
    op.create_index("ix_webform_submissions_webform_id", "webform_submissions", ["webform_id"])

    op.create_table(
        "foia_requests",
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("agency_component_id", sa.Integer(), nullable=False),
        sa.Column("webform_submission_id", sa.Integer(), nullable=True),
        sa.Column("request_status", sa.String(), nullable=False),
        sa.Column("submission_method", sa.String(), nullable=False, server_default=""),
        sa.Column("submission_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("response_code", sa.String(), nullable=True),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_description", sa.Text(), nullable=True),
        sa.Column("case_management_id", sa.String(), nullable=True),
        sa.Column("tracking_number", sa.String(), nullable=True),
        sa.Column("submission_failures", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["agency_component_id"], ["agency_components.component_id"]),
        sa.PrimaryKeyConstraint("request_id"),
    )
    op.create_index(
        "ix_foia_requests_agency_component_id",
        "foia_requests",
        ["agency_component_id"],
    )
    op.create_index("ix_foia_requests_request_status", "foia_requests", ["request_status"])
    op.create_index(
        "idx_foia_requests_status",
        "foia_requests",
        ["request_status", "updated_at"],
    )

    op.create_table(
        "submission_queue",
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("deliveries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("run_after", sa.DateTime(timezone=True), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("worker_id", sa.String(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["request_id"],
            ["foia_requests.request_id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("item_id"),
    )
    op.create_index("ix_submission_queue_request_id", "submission_queue", ["request_id"])
    op.create_index("ix_submission_queue_status", "submission_queue", ["status"])
    op.create_index("ix_submission_queue_worker_id", "submission_queue", ["worker_id"])
    op.create_index(
        "idx_submission_queue_ready",
        "submission_queue",
        ["status", "run_after", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("submission_queue")
    op.drop_table("foia_requests")
    op.drop_table("webform_submissions")
    op.drop_table("agency_components")
