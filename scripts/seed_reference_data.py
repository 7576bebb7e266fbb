#!/usr/bin/env python3
"""Seed the reference tables a fresh database needs before intake works.

Usage:
    python scripts/seed_reference_data.py [--source BIOHUB]

Inserts the packaged default style schema, a default security schema and the
default EML stylesheet for the source system. The stylesheet is uploaded to
the configured object store and registered by key. Rows that already exist are
left untouched, so the script is safe to re-run. Exits 0 on success, 1 on
failure.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from biohub.clients.storage import get_object_store
from biohub.config import get_settings
from biohub.db.session import SessionLocal, transaction
from biohub.repositories.reference import (
    find_security_schema,
    find_style_schema,
    get_source_transform,
    insert_security_schema,
    insert_style_schema,
)
from biohub.services.eml.transform import load_default_stylesheet, register_stylesheet
from biohub.services.validation.loader import load_default_style_schema

DEFAULT_SECURITY_SCHEMA = {
    "name": "BioHub default security",
    "rules": [
        {
            "name": "Sensitive species",
            "description": "Occurrences of species whose locations are withheld from the public",
            "worksheet": "occurrence",
            "field": "associatedTaxa",
            "values": ["M-ORAM", "M-URAR", "B-SPOW"],
        },
        {
            "name": "Restricted data generalization",
            "description": "Rows flagged by the submitter as restricted",
            "worksheet": "occurrence",
            "field": "informationWithheld",
            "values": ["restricted"],
        },
    ],
}


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--source", default=get_settings().default_source)
    args = parser.parse_args()

    style = load_default_style_schema()
    db = SessionLocal()
    try:
        with transaction(db):
            existing = find_style_schema(db, style["name"], style["version"])
            style_id = existing.id if existing else insert_style_schema(
                db, style["name"], style["version"], style
            )
            existing = find_security_schema(db, DEFAULT_SECURITY_SCHEMA["name"])
            security_id = existing.id if existing else insert_security_schema(
                db, DEFAULT_SECURITY_SCHEMA["name"], DEFAULT_SECURITY_SCHEMA
            )
            existing = get_source_transform(db, args.source)
            transform_id = existing.id if existing else register_stylesheet(
                db, get_object_store(), args.source, load_default_stylesheet()
            )
        print(
            f"style_schema_id={style_id} "
            f"security_schema_id={security_id} "
            f"source_transform_id={transform_id} "
            f"source={args.source}"
        )
        return 0
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
