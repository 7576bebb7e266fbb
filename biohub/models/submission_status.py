"""SubmissionStatus and SubmissionMessage ORM: append-only processing history."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from biohub.db.session import Base


class SubmissionStatus(Base):
    """One state entered by a submission. Latest by (event_timestamp, id) is current."""

    __tablename__ = "submission_status"

    __table_args__ = (
        Index("ix_submission_status_submission_event", "submission_id", "event_timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("submission.id", ondelete="CASCADE"),
        nullable=False,
    )
    status_type: Mapped[str] = mapped_column(String(100), nullable=False)
    event_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    messages: Mapped[list["SubmissionMessage"]] = relationship(
        "SubmissionMessage",
        back_populates="status",
        order_by="SubmissionMessage.id",
    )


class SubmissionMessage(Base):
    """A typed message attached to the status it explains."""

    __tablename__ = "submission_message"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_status_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("submission_status.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    message_type: Mapped[str] = mapped_column(String(100), nullable=False)
    message_class: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    status: Mapped["SubmissionStatus"] = relationship("SubmissionStatus", back_populates="messages")
