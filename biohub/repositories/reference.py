"""Reference table repository: style schemas, security schemas, EML source transforms."""

from __future__ import annotations

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from biohub.errors import ApiExecuteSQLError
from biohub.models.reference import SecuritySchema, SourceTransform, StyleSchema


def _missing(operation: str, detail: str) -> list[str]:
    return [f"ValidationRepository->{operation}", detail]


def insert_style_schema(db: Session, name: str, version: str, definition: dict) -> int:
    style_id = db.execute(
        insert(StyleSchema)
        .values(name=name, version=version, definition=definition)
        .returning(StyleSchema.id)
    ).scalar_one_or_none()
    if style_id is None:
        raise ApiExecuteSQLError(
            "Failed to insert style schema",
            _missing("insert_style_schema", "rowCount was null or undefined, expected rowCount = 1"),
        )
    return style_id


def get_style_schema_by_style_id(db: Session, style_id: int) -> StyleSchema:
    """Return the style schema row. Raises ApiExecuteSQLError when absent."""
    row = db.get(StyleSchema, style_id)
    if row is None:
        raise ApiExecuteSQLError(
            "Failed to get style schema",
            _missing("get_style_schema_by_style_id", f"no style schema with id {style_id}"),
        )
    return row


def find_style_schema(db: Session, name: str, version: str) -> StyleSchema | None:
    return db.execute(
        select(StyleSchema).where(StyleSchema.name == name, StyleSchema.version == version)
    ).scalar_one_or_none()


def insert_security_schema(db: Session, name: str, definition: dict) -> int:
    schema_id = db.execute(
        insert(SecuritySchema).values(name=name, definition=definition).returning(SecuritySchema.id)
    ).scalar_one_or_none()
    if schema_id is None:
        raise ApiExecuteSQLError(
            "Failed to insert security schema",
            [
                "SecurityRepository->insert_security_schema",
                "rowCount was null or undefined, expected rowCount = 1",
            ],
        )
    return schema_id


def get_security_schema(db: Session, security_schema_id: int) -> SecuritySchema | None:
    return db.get(SecuritySchema, security_schema_id)


def find_security_schema(db: Session, name: str) -> SecuritySchema | None:
    return db.execute(
        select(SecuritySchema).where(SecuritySchema.name == name)
    ).scalar_one_or_none()


def insert_source_transform(
    db: Session, source: str, stylesheet_key: str, eml_version: str | None = None
) -> int:
    transform_id = db.execute(
        insert(SourceTransform)
        .values(source=source, eml_version=eml_version, stylesheet_key=stylesheet_key)
        .returning(SourceTransform.id)
    ).scalar_one_or_none()
    if transform_id is None:
        raise ApiExecuteSQLError(
            "Failed to insert source transform",
            [
                "SourceTransformRepository->insert_source_transform",
                "rowCount was null or undefined, expected rowCount = 1",
            ],
        )
    return transform_id


def get_source_transform(
    db: Session, source: str, eml_version: str | None = None
) -> SourceTransform | None:
    """Stylesheet for ``source`` matching ``eml_version``, else the source default (NULL version)."""
    if eml_version is not None:
        exact = db.execute(
            select(SourceTransform).where(
                SourceTransform.source == source,
                SourceTransform.eml_version == eml_version,
            )
        ).scalar_one_or_none()
        if exact is not None:
            return exact
    return db.execute(
        select(SourceTransform).where(
            SourceTransform.source == source,
            SourceTransform.eml_version.is_(None),
        )
    ).scalar_one_or_none()


def list_source_transform_sources(db: Session) -> list[str]:
    """Distinct source system identifiers that have a registered transform."""
    return list(
        db.execute(
            select(SourceTransform.source).distinct().order_by(SourceTransform.source)
        ).scalars()
    )
