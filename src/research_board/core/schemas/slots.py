"""Pydantic schemas for slot applications and assignments."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from research_board.core.schemas.common import blank_to_none


class ApplicationCreate(BaseModel):
    """Payload for a student applying to an open slot.

    Attributes:
        student_id: The applicant's student profile id.
        note: Optional cover note to the project owners.
    """

    student_id: uuid.UUID
    note: Optional[str] = Field(default=None, max_length=4000)

    @field_validator("note", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)


class AssignmentCreate(BaseModel):
    """Payload for assigning a student to a slot directly (admin path)."""

    student_id: uuid.UUID
    note: Optional[str] = Field(default=None, max_length=4000)

    @field_validator("note", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)


class WithdrawRequest(BaseModel):
    student_id: uuid.UUID


class ApplicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slot_id: uuid.UUID
    student_id: uuid.UUID
    status: str
    note: Optional[str]
    cv_url_snapshot: Optional[str]
    submitted_at: datetime
    decided_at: Optional[datetime]
    decided_by_user_id: Optional[uuid.UUID]


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slot_id: uuid.UUID
    student_id: uuid.UUID
    assigned_at: datetime
    note: Optional[str]


class AuditEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    action: str
    context: Optional[str]
    created_at: datetime
