"""Initial report engine schema

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")
IN_FLIGHT = sa.text("status IN ('pending', 'processing')")


def upgrade() -> None:
    # Check if tables already exist and skip if so
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "report_records" in existing_tables:
        return

    # Versioned report records
    op.create_table(
        "report_records",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("version", sa.Integer),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("payload", JSONType),
        sa.Column("generated_at", sa.DateTime(timezone=True)),
        sa.Column("generation_duration_seconds", sa.Float),
        sa.Column("model_identifier", sa.Text),
        sa.Column("source_hash", sa.String(64)),
        sa.Column("source_input_ids", JSONType),
        sa.Column("viewed_at", sa.DateTime(timezone=True)),
        sa.Column("error_code", sa.String(32)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("subject", "kind", "version", name="uq_report_records_version"),
    )
    op.create_index(
        "idx_report_records_subject_kind_status", "report_records", ["subject", "kind", "status"]
    )
    # At most one pending/processing record per (subject, kind)
    op.create_index(
        "uq_report_records_in_flight",
        "report_records",
        ["subject", "kind"],
        unique=True,
        postgresql_where=IN_FLIGHT,
        sqlite_where=IN_FLIGHT,
    )

    # Durable generation queue
    op.create_table(
        "report_jobs",
        sa.Column("job_id", sa.Uuid, primary_key=True),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column(
            "record_id",
            sa.Uuid,
            sa.ForeignKey("report_records.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="queued"),
        sa.Column("attempts", sa.Integer, server_default="0"),
        sa.Column("last_error", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("claimed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("idx_report_jobs_status", "report_jobs", ["status"])
    op.create_index("idx_report_jobs_record_id", "report_jobs", ["record_id"])

    # Form answers read by the database input collector
    op.create_table(
        "form_submissions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("form_id", sa.String(64), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("data", JSONType, nullable=False),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("changed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_form_submissions_form_subject", "form_submissions", ["form_id", "subject"])


def downgrade() -> None:
    op.drop_table("form_submissions")
    op.drop_table("report_jobs")
    op.drop_table("report_records")
