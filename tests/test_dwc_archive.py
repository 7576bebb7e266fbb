"""
DWCArchive tests: worksheet classification and CSV access.
"""

from __future__ import annotations

import json

import pytest

from biohub.dwc import normalize_dwc_archive
from biohub.dwc.archive import CSVWorksheet, DWCArchive, WorksheetRole
from biohub.errors import ApiClientError
from biohub.media.parser import MediaFile
from tests.dwca_builder import EML_XML, build_archive, with_members


def test_classifies_worksheets_eml_and_unknown_files() -> None:
    archive = build_archive(with_members(meta_xml="<archive/>", **{"notes_txt": "hello"}))
    assert archive.present_roles() == [
        WorksheetRole.EVENT,
        WorksheetRole.OCCURRENCE,
        WorksheetRole.TAXON,
    ]
    assert archive.eml is not None
    assert archive.meta is not None
    assert [f.name for f in archive.unclassified] == ["notes.txt"]
    assert archive.eml_text() == EML_XML


def test_worksheet_names_are_case_and_extension_insensitive() -> None:
    archive = build_archive({"Event.CSV": "id\nev-1\n", "eml.xml": EML_XML})
    worksheet = archive.worksheet(WorksheetRole.EVENT)
    assert worksheet is not None
    assert worksheet.get_rows() == [["ev-1"]]


def test_duplicate_role_keeps_first_and_reports_rest() -> None:
    archive = build_archive({"event.txt": "id\nfirst\n", "event.csv": "id\nsecond\n"})
    assert archive.worksheet(WorksheetRole.EVENT).get_rows() == [["first"]]
    assert [f.name for f in archive.unclassified] == ["event.csv"]


def test_metadata_only_archive() -> None:
    archive = build_archive({"eml.xml": EML_XML})
    assert archive.is_metadata_only()
    assert archive.present_roles() == []


def test_from_media_rejects_non_archive() -> None:
    with pytest.raises(ApiClientError) as exc_info:
        DWCArchive.from_media(MediaFile(name="eml.xml", mimetype="application/xml", data=b"<x/>"))
    assert exc_info.value.message == "Media is not a valid DwC Archive File"

    with pytest.raises(ApiClientError):
        DWCArchive.from_media(None)


def test_csv_worksheet_skips_blank_rows_and_strips_bom() -> None:
    data = "\ufeffid, name \n\n1,moose\n , \n2,elk\n".encode()
    worksheet = CSVWorksheet("taxon", MediaFile(name="taxon.txt", mimetype="text/plain", data=data))
    assert worksheet.get_headers() == ["id", "name"]
    assert worksheet.get_rows() == [["1", "moose"], ["2", "elk"]]
    assert worksheet.get_header_index("name") == 1
    assert worksheet.get_header_index("missing") is None


def test_get_cell_handles_short_rows_and_blanks() -> None:
    assert CSVWorksheet.get_cell(["a", " b "], 1) == "b"
    assert CSVWorksheet.get_cell(["a"], 3) is None
    assert CSVWorksheet.get_cell(["a", "  "], 1) is None
    assert CSVWorksheet.get_cell(["a"], None) is None


def test_row_dicts_pad_short_rows() -> None:
    data = b"id,sex,lifeStage\n1,male\n"
    worksheet = CSVWorksheet("occurrence", MediaFile(name="o.txt", mimetype="text/plain", data=data))
    assert worksheet.get_row_dicts() == [{"id": "1", "sex": "male", "lifeStage": ""}]


def test_normalize_dwc_archive_lists_present_worksheets_in_role_order() -> None:
    document = json.loads(normalize_dwc_archive(build_archive()))
    assert list(document) == ["event", "occurrence", "taxon"]
    assert document["taxon"] == [
        {"id": "ev-1", "vernacularName": "moose"},
        {"id": "ev-2", "vernacularName": "moose calf"},
    ]
    assert document["event"][0]["verbatimCoordinates"] == "9N 500000 6100000"
