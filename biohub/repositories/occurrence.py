"""Occurrence repository. Insert-only."""

from __future__ import annotations

from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session

from biohub.errors import ApiExecuteSQLError
from biohub.models.occurrence import Occurrence
from biohub.schemas.occurrence import ScrapedOccurrence

_INSERT_FIELDS = (
    "taxon_id",
    "life_stage",
    "sex",
    "event_date",
    "vernacular_name",
    "individual_count",
    "organism_quantity",
    "organism_quantity_type",
    "geography",
)


def insert_occurrence(db: Session, submission_id: int, occurrence: ScrapedOccurrence) -> int:
    """Insert one occurrence row and return its id."""
    values = occurrence.model_dump(include=set(_INSERT_FIELDS))
    occurrence_id = db.execute(
        insert(Occurrence).values(submission_id=submission_id, **values).returning(Occurrence.id)
    ).scalar_one_or_none()
    if occurrence_id is None:
        raise ApiExecuteSQLError(
            "Failed to insert occurrence record",
            [
                "OccurrenceRepository->insert_occurrence",
                "rowCount was null or undefined, expected rowCount = 1",
            ],
        )
    return occurrence_id


def list_occurrences_for_submission(db: Session, submission_id: int) -> list[Occurrence]:
    return list(
        db.execute(
            select(Occurrence)
            .where(Occurrence.submission_id == submission_id)
            .order_by(Occurrence.id.asc())
        ).scalars()
    )


def count_occurrences_for_submission(db: Session, submission_id: int) -> int:
    return db.execute(
        select(func.count()).select_from(Occurrence).where(Occurrence.submission_id == submission_id)
    ).scalar_one()
