"""EML (Ecological Metadata Language) to JSON via XSLT.

Stylesheets live in object storage. ``source_transform`` maps a source system
and EML version to the stylesheet key, falling back to the source default.
The stylesheet shipped with the package is what
``scripts/seed_reference_data.py`` uploads and registers as that default.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from lxml import etree
from sqlalchemy.orm import Session

from biohub.clients.storage import ObjectStore, generate_stylesheet_key
from biohub.errors import ApiClientError, ApiGeneralError
from biohub.repositories.reference import get_source_transform, insert_source_transform

logger = logging.getLogger(__name__)

DEFAULT_STYLESHEET_PATH = Path(__file__).parent / "stylesheets" / "eml_to_json.xsl"

_EML_VERSION_PATTERN = re.compile(r"eml-(\d+(?:\.\d+)*)/?$")

# No network or DTD access while parsing submitted XML
_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)


@lru_cache(maxsize=1)
def load_default_stylesheet() -> str:
    """Return the packaged EML-to-JSON stylesheet text."""
    return DEFAULT_STYLESHEET_PATH.read_text(encoding="utf-8")


def parse_eml(eml_text: str | bytes) -> etree._Element:
    data = eml_text.encode("utf-8") if isinstance(eml_text, str) else eml_text
    try:
        return etree.fromstring(data, _PARSER)
    except etree.XMLSyntaxError as exc:
        raise ApiClientError("The eml source is not valid XML", [str(exc)]) from exc


def get_eml_version(eml_text: str | bytes) -> str | None:
    """EML version from the root namespace, e.g. ``eml://ecoinformatics.org/eml-2.1.1`` -> ``2.1.1``."""
    root = parse_eml(eml_text)
    namespace = etree.QName(root).namespace
    if not namespace:
        return None
    match = _EML_VERSION_PATTERN.search(namespace)
    return match.group(1) if match else None


@lru_cache(maxsize=32)
def _compile_stylesheet(stylesheet: str) -> etree.XSLT:
    try:
        return etree.XSLT(etree.fromstring(stylesheet.encode("utf-8"), _PARSER))
    except (etree.XMLSyntaxError, etree.XSLTParseError) as exc:
        raise ApiGeneralError("The transformation stylesheet is not valid", [str(exc)]) from exc


def transform_eml_to_json(eml_text: str | bytes, stylesheet: str) -> dict[str, Any]:
    """Apply ``stylesheet`` to the EML document and parse its text output as a JSON object.

    Raises:
        ApiClientError: the EML is not well-formed XML.
        ApiGeneralError: the stylesheet is invalid, produced nothing, or did not
            produce a JSON object.
    """
    document = parse_eml(eml_text)
    transform = _compile_stylesheet(stylesheet)
    try:
        result = transform(document)
    except etree.XSLTApplyError as exc:
        raise ApiGeneralError("Failed to transform eml with stylesheet", [str(exc)]) from exc

    output = str(result).strip()
    if not output:
        raise ApiGeneralError(
            "Failed to transform eml with stylesheet",
            [str(entry) for entry in transform.error_log] or ["stylesheet produced no output"],
        )
    try:
        parsed = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ApiGeneralError("Failed to transform eml with stylesheet", [str(exc)]) from exc
    if not isinstance(parsed, dict):
        raise ApiGeneralError(
            "Failed to transform eml with stylesheet", ["stylesheet output is not a JSON object"]
        )
    return parsed


def register_stylesheet(
    db: Session,
    storage: ObjectStore,
    source: str,
    stylesheet: str,
    eml_version: str | None = None,
) -> int:
    """Upload ``stylesheet`` and map ``source``/``eml_version`` to it. Returns the source_transform id."""
    key = generate_stylesheet_key(source, eml_version, DEFAULT_STYLESHEET_PATH.name)
    storage.put_object(key, stylesheet.encode("utf-8"), content_type="application/xslt+xml")
    return insert_source_transform(db, source, key, eml_version)


def get_stylesheet_for_source(
    db: Session, source: str, eml_version: str | None, storage: ObjectStore
) -> str:
    transform = get_source_transform(db, source, eml_version)
    if transform is None:
        raise ApiGeneralError(
            "The transformation stylesheet is not available",
            [f"source={source}", f"eml_version={eml_version}"],
        )
    stored = storage.get_object(transform.stylesheet_key)
    if stored is None:
        raise ApiGeneralError(
            "The transformation stylesheet is not available",
            [f"key={transform.stylesheet_key}"],
        )
    return stored.body.decode("utf-8")


def transform_submission_eml(
    db: Session, source: str, eml_text: str | None, storage: ObjectStore
) -> dict[str, Any]:
    """Resolve the stylesheet for ``source`` and the document's EML version, then transform."""
    if not eml_text:
        raise ApiGeneralError("The eml source is not available")
    eml_version = get_eml_version(eml_text)
    stylesheet = get_stylesheet_for_source(db, source, eml_version, storage)
    logger.debug("Transforming EML %s for source %s", eml_version, source)
    return transform_eml_to_json(eml_text, stylesheet)
