"""Packaged default style schema loader."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from biohub.schemas.validation import StyleSchemaDefinition

_DEFAULT_STYLE_SCHEMA_PATH = Path(__file__).parent / "default_style_schema.yaml"


@lru_cache(maxsize=1)
def load_default_style_schema() -> dict[str, Any]:
    """Load and validate the packaged default style schema.

    Returns:
        The schema as a plain dict, ready to store in ``style_schema.definition``.

    Raises:
        FileNotFoundError: If the YAML file is missing.
        ValueError: If the YAML is malformed or does not describe a valid schema.
    """
    try:
        with _DEFAULT_STYLE_SCHEMA_PATH.open() as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Default style schema YAML is malformed: {exc}") from exc
    try:
        StyleSchemaDefinition.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Default style schema is invalid: {exc}") from exc
    return data
