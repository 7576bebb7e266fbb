"""Security repository: rules applied to a submission at its last review."""

from __future__ import annotations

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from biohub.models.security import SubmissionSecurityRule


def replace_submission_security_rules(
    db: Session, submission_id: int, security_schema_id: int, rule_names: list[str]
) -> list[str]:
    """Replace the applied rules for a submission with ``rule_names``.

    Rules no longer matching are removed; matching ones are re-inserted so the
    table always mirrors the latest review.
    """
    db.execute(
        delete(SubmissionSecurityRule).where(SubmissionSecurityRule.submission_id == submission_id)
    )
    unique_names = list(dict.fromkeys(rule_names))
    if unique_names:
        db.execute(
            insert(SubmissionSecurityRule),
            [
                {
                    "submission_id": submission_id,
                    "security_schema_id": security_schema_id,
                    "rule_name": name,
                }
                for name in unique_names
            ],
        )
    return unique_names


def list_submission_security_rules(db: Session, submission_id: int) -> list[str]:
    return list(
        db.execute(
            select(SubmissionSecurityRule.rule_name)
            .where(SubmissionSecurityRule.submission_id == submission_id)
            .order_by(SubmissionSecurityRule.id.asc())
        ).scalars()
    )
