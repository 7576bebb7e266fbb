"""Occurrence ORM: one scraped observation row. Insert-only."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from biohub.db.session import Base


class Occurrence(Base):
    __tablename__ = "occurrence"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("submission.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    taxon_id: Mapped[str | None] = mapped_column(String(300), nullable=True)
    life_stage: Mapped[str | None] = mapped_column(String(300), nullable=True)
    sex: Mapped[str | None] = mapped_column(String(300), nullable=True)
    event_date: Mapped[str | None] = mapped_column(String(300), nullable=True)
    vernacular_name: Mapped[str | None] = mapped_column(String(300), nullable=True)
    individual_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    organism_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    organism_quantity_type: Mapped[str | None] = mapped_column(String(300), nullable=True)
    # EWKT, always SRID 4326: "SRID=4326;POINT(lon lat)"
    geography: Mapped[str | None] = mapped_column(Text, nullable=True)
    create_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
