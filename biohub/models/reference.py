"""Reference tables: validation style schemas, security schemas, EML transforms."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from biohub.db.session import Base
from biohub.models.types import JSONType


class StyleSchema(Base):
    """Validation rules for a DwC archive, stored as a JSON definition."""

    __tablename__ = "style_schema"

    __table_args__ = (UniqueConstraint("name", "version", name="uq_style_schema_name_version"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    definition: Mapped[dict] = mapped_column(JSONType, nullable=False)
    create_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )


class SecuritySchema(Base):
    """Named list of security rules evaluated against submission content."""

    __tablename__ = "security_schema"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False, unique=True)
    definition: Mapped[dict] = mapped_column(JSONType, nullable=False)
    create_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )


class SourceTransform(Base):
    """Object storage key of the EML-to-JSON stylesheet for a source system.

    ``eml_version`` NULL marks the default stylesheet for the source.
    """

    __tablename__ = "source_transform"

    __table_args__ = (
        UniqueConstraint("source", "eml_version", name="uq_source_transform_source_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(String(300), nullable=False)
    eml_version: Mapped[str | None] = mapped_column(String(50), nullable=True)
    stylesheet_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    create_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
