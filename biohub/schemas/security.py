"""Security DTOs: security schema definition and classification result."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from biohub.models.enums import SecurityStatus


class SecurityRule(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    worksheet: str = Field(..., min_length=1)
    field: str = Field(..., min_length=1)
    values: list[str] = Field(..., min_length=1)


class SecuritySchemaDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    rules: list[SecurityRule] = Field(default_factory=list)


class SecurityResult(BaseModel):
    """Outcome of a security review. ``success`` is False when review could not run."""

    model_config = ConfigDict(extra="forbid")

    secure: bool = False
    applied_rules: list[str] = Field(default_factory=list)
    success: bool = True
    errors: list[str] = Field(default_factory=list)


class SecurityStatusRead(BaseModel):
    model_config = ConfigDict(extra="forbid")

    submission_id: int
    status: SecurityStatus
    applied_rules: list[str] = Field(default_factory=list)
