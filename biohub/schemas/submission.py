"""Submission DTOs: read models for records, status history and the job queue."""

from __future__ import annotations

from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from biohub.models.enums import SubmissionMessageClass, SubmissionMessageType, SubmissionStatusType


class SubmissionRecordInsert(BaseModel):
    """Values for a new submission row."""

    model_config = ConfigDict(extra="forbid")

    uuid: UUID
    source: str = Field(..., min_length=1, max_length=300)
    input_file_name: str | None = Field(None, max_length=300)
    input_key: str | None = Field(None, max_length=1000)
    eml_source: str | None = None
    darwin_core_source: str | None = None


class SubmissionRead(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: int
    uuid: UUID
    source: str
    input_key: str | None = None
    input_file_name: str | None = None
    eml_source: str | None = None
    darwin_core_source: str | None = None
    security_review_timestamp: datetime | None = None
    event_timestamp: datetime
    end_timestamp: datetime | None = None
    create_date: datetime


class SubmissionStatusRead(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: int
    submission_id: int
    status_type: SubmissionStatusType
    event_timestamp: datetime


class SubmissionMessageRead(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: int
    submission_status_id: int
    message_type: SubmissionMessageType
    message_class: SubmissionMessageClass
    message: str | None = None
    event_timestamp: datetime


class SubmissionMessageCreate(BaseModel):
    """A message to attach to a status as it is recorded."""

    model_config = ConfigDict(extra="forbid")

    message_type: SubmissionMessageType
    message: str | None = None
    message_class: SubmissionMessageClass = SubmissionMessageClass.ERROR


class SubmissionWithStatusRead(BaseModel):
    """Current submission with its latest status (None before the first status)."""

    model_config = ConfigDict(extra="forbid")

    submission: SubmissionRead
    status: SubmissionStatusType | None = None


class SubmissionHistoryRead(BaseModel):
    """Status history with messages, oldest first."""

    model_config = ConfigDict(extra="forbid")

    submission_id: int
    package_id: UUID
    current_status: SubmissionStatusType | None = None
    statuses: list[SubmissionStatusRead] = Field(default_factory=list)
    messages: list[SubmissionMessageRead] = Field(default_factory=list)


class SubmissionJobQueueItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    submission_id: int
    package_id: UUID
    status: SubmissionStatusType
    next_step: str
    status_timestamp: datetime


class IntakeResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_package_id: UUID
    submission_id: int
