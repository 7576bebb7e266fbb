"""Flatten a DWCArchive into the JSON document stored on the submission."""

from __future__ import annotations

import json

from biohub.dwc.archive import DWCArchive


def normalize_dwc_archive(archive: DWCArchive) -> str:
    """Return ``{role: [row dicts]}`` for every present worksheet, as JSON text."""
    document = {
        role.value: archive.worksheet(role).get_row_dicts()
        for role in archive.present_roles()
    }
    return json.dumps(document)
