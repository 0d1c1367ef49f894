"""Pydantic schemas for specialty boards."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from research_board.core.schemas.common import require_text


class SpecialtyCreate(BaseModel):
    """Payload for creating a specialty board.

    Attributes:
        name: Unique display name.
        slug: Unique lower-case routing key, e.g. ``"rad-onc"``.
        display_order: Ascending sort key on the board listing.
        is_active: Whether the board is listed.
    """

    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    display_order: int = 0
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return require_text(v)


class SpecialtyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    display_order: int
    is_active: bool


class SpecialtySummary(BaseModel):
    """A board entry on the landing listing.

    Attributes:
        specialty: The specialty row.
        project_count: Number of *active* projects on the board.
        open_slot_count: Number of ``open`` slots across those active projects.
    """

    specialty: SpecialtyRead
    project_count: int = Field(default=0, ge=0)
    open_slot_count: int = Field(default=0, ge=0)
