"""Submission ORM: one version of an uploaded data package.

Rows for the same ``uuid`` form a version history. At most one of them is
current (``end_timestamp IS NULL``); re-ingesting retires the current row and
inserts a new one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from biohub.db.session import Base


class Submission(Base):
    """Versioned submission record keyed by the durable package uuid."""

    __tablename__ = "submission"

    __table_args__ = (Index("ix_submission_uuid_end_timestamp", "uuid", "end_timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    source: Mapped[str] = mapped_column(String(300), nullable=False)
    input_key: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    input_file_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    eml_source: Mapped[str | None] = mapped_column(Text, nullable=True)
    darwin_core_source: Mapped[str | None] = mapped_column(Text, nullable=True)
    security_review_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    event_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    end_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    create_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
