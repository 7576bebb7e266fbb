"""Initial submission pipeline schema.

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16

Creates the versioned submission table, its append-only status and message
history, scraped occurrences, the reference tables (style schemas, security
schemas, EML source transforms), applied security rules and artifacts.
"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "20261016_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created() -> sa.Column:
    return sa.Column(
        "create_date",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    op.create_table(
        "submission",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.Uuid(), nullable=False),
        sa.Column("source", sa.String(length=300), nullable=False),
        sa.Column("input_key", sa.String(length=1000), nullable=True),
        sa.Column("input_file_name", sa.String(length=300), nullable=True),
        sa.Column("eml_source", sa.Text(), nullable=True),
        sa.Column("darwin_core_source", sa.Text(), nullable=True),
        sa.Column("security_review_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "event_timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("end_timestamp", sa.DateTime(timezone=True), nullable=True),
        _created(),
    )
    op.create_index(
        "ix_submission_uuid_end_timestamp", "submission", ["uuid", "end_timestamp"]
    )
    # At most one current version per package
    op.create_index(
        "uq_submission_uuid_current",
        "submission",
        ["uuid"],
        unique=True,
        postgresql_where=sa.text("end_timestamp IS NULL"),
    )

    op.create_table(
        "submission_status",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer(),
            sa.ForeignKey("submission.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status_type", sa.String(length=100), nullable=False),
        sa.Column(
            "event_timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_submission_status_submission_event",
        "submission_status",
        ["submission_id", "event_timestamp"],
    )

    op.create_table(
        "submission_message",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_status_id",
            sa.Integer(),
            sa.ForeignKey("submission_status.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("message_type", sa.String(length=100), nullable=False),
        sa.Column("message_class", sa.String(length=50), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column(
            "event_timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_submission_message_submission_status_id",
        "submission_message",
        ["submission_status_id"],
    )

    op.create_table(
        "occurrence",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer(),
            sa.ForeignKey("submission.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("taxon_id", sa.String(length=300), nullable=True),
        sa.Column("life_stage", sa.String(length=300), nullable=True),
        sa.Column("sex", sa.String(length=300), nullable=True),
        sa.Column("event_date", sa.String(length=300), nullable=True),
        sa.Column("vernacular_name", sa.String(length=300), nullable=True),
        sa.Column("individual_count", sa.Integer(), nullable=True),
        sa.Column("organism_quantity", sa.Float(), nullable=True),
        sa.Column("organism_quantity_type", sa.String(length=300), nullable=True),
        sa.Column("geography", sa.Text(), nullable=True),
        _created(),
    )
    op.create_index("ix_occurrence_submission_id", "occurrence", ["submission_id"])

    op.create_table(
        "style_schema",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("version", sa.String(length=50), nullable=False),
        sa.Column("definition", postgresql.JSONB(), nullable=False),
        _created(),
        sa.UniqueConstraint("name", "version", name="uq_style_schema_name_version"),
    )

    op.create_table(
        "security_schema",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=300), nullable=False, unique=True),
        sa.Column("definition", postgresql.JSONB(), nullable=False),
        _created(),
    )

    op.create_table(
        "source_transform",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("source", sa.String(length=300), nullable=False),
        sa.Column("eml_version", sa.String(length=50), nullable=True),
        sa.Column("stylesheet_key", sa.String(length=1024), nullable=False),
        _created(),
        sa.UniqueConstraint("source", "eml_version", name="uq_source_transform_source_version"),
    )

    op.create_table(
        "submission_security_rule",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer(),
            sa.ForeignKey("submission.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "security_schema_id",
            sa.Integer(),
            sa.ForeignKey("security_schema.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rule_name", sa.String(length=300), nullable=False),
        _created(),
    )
    op.create_index(
        "ix_submission_security_rule_submission_id",
        "submission_security_rule",
        ["submission_id"],
    )

    op.create_table(
        "artifact",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "submission_id",
            sa.Integer(),
            sa.ForeignKey("submission.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("uuid", sa.Uuid(), nullable=False, unique=True),
        sa.Column("key", sa.String(length=1000), nullable=True),
        sa.Column("file_name", sa.String(length=300), nullable=False),
        sa.Column("file_type", sa.String(length=300), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        _created(),
    )
    op.create_index("ix_artifact_submission_id", "artifact", ["submission_id"])


def downgrade() -> None:
    op.drop_index("ix_artifact_submission_id", table_name="artifact")
    op.drop_table("artifact")
    op.drop_index(
        "ix_submission_security_rule_submission_id", table_name="submission_security_rule"
    )
    op.drop_table("submission_security_rule")
    op.drop_table("source_transform")
    op.drop_table("security_schema")
    op.drop_table("style_schema")
    op.drop_index("ix_occurrence_submission_id", table_name="occurrence")
    op.drop_table("occurrence")
    op.drop_index("ix_submission_message_submission_status_id", table_name="submission_message")
    op.drop_table("submission_message")
    op.drop_index("ix_submission_status_submission_event", table_name="submission_status")
    op.drop_table("submission_status")
    op.drop_index("uq_submission_uuid_current", table_name="submission")
    op.drop_index("ix_submission_uuid_end_timestamp", table_name="submission")
    op.drop_table("submission")
