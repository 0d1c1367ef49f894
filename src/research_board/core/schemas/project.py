"""Pydantic request/response schemas for projects and their children.

Request schemas are the store boundary: services validate every payload
through them before touching the database, so the normalisation rules live
here rather than in route handlers:

- ``deliverables``: comma-separated text or a list; entries trimmed,
  empties dropped, order preserved.
- ``description``, ``irb_number``, ``start_date``, ``target_date``: blank
  input becomes ``None`` (stored as NULL).
- Enumerated fields only accept their enum values.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from research_board.core.models.project import (
    IrbStatus,
    MilestoneStatus,
    ProjectStatus,
    ResourceType,
)
from research_board.core.models.users import ResearcherPosition
from research_board.core.schemas.common import blank_to_none, require_text, split_deliverables

# ---------------------------------------------------------------------------
# Project request schemas
# ---------------------------------------------------------------------------


class ProjectCreate(BaseModel):
    """Payload for creating a project on a specialty board.

    Attributes:
        title: Required, non-blank.
        description: Optional free text.
        deliverables: Comma-separated string or list of strings.
        irb_status: Defaults to ``pending``.
        irb_number: Optional IRB protocol number.
        start_date: Optional ISO date.
        target_date: Optional ISO date.
        progress_pct: 0-100, defaults to 0.
        status: Defaults to ``draft``.
        owner_position: When set, the creating user is registered as an
            owner of the new project with this position.
    """

    model_config = ConfigDict(use_enum_values=True)

    title: str
    description: Optional[str] = None
    deliverables: list[str] = Field(default_factory=list)
    irb_status: IrbStatus = IrbStatus.PENDING
    irb_number: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    progress_pct: float = Field(default=0, ge=0, le=100)
    status: ProjectStatus = ProjectStatus.DRAFT
    owner_position: Optional[ResearcherPosition] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return require_text(v)

    @field_validator("description", "irb_number", "start_date", "target_date", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        """Coerce empty or whitespace-only strings to None."""
        return blank_to_none(v)

    @field_validator("deliverables", mode="before")
    @classmethod
    def normalise_deliverables(cls, v: object) -> object:
        return split_deliverables(v)


class ProjectUpdate(BaseModel):
    """Payload for partially updating a project.

    Only fields explicitly present in the payload are applied; services read
    it with ``model_dump(exclude_unset=True)``.  ``specialty_id``,
    ``status`` and ``created_at`` are not updatable here and are rejected
    as unknown fields.
    """

    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    deliverables: Optional[list[str]] = None
    irb_status: Optional[IrbStatus] = None
    irb_number: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    progress_pct: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("must not be blank")
        return require_text(v)

    @field_validator("description", "irb_number", "start_date", "target_date", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)

    @field_validator("deliverables", mode="before")
    @classmethod
    def normalise_deliverables(cls, v: object) -> object:
        return split_deliverables(v)

    @field_validator("irb_status", "progress_pct")
    @classmethod
    def not_null(cls, v: object) -> object:
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


# ---------------------------------------------------------------------------
# Child request schemas
# ---------------------------------------------------------------------------


class SlotCreate(BaseModel):
    """Payload for adding an open slot to a project."""

    role_name: str
    est_hours: int = Field(..., ge=0)
    description: Optional[str] = None

    @field_validator("role_name")
    @classmethod
    def role_not_blank(cls, v: str) -> str:
        return require_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)


class MilestoneCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str
    status: MilestoneStatus = MilestoneStatus.TODO
    due_date: Optional[date] = None
    order_index: int = 0
    completion_pct: float = Field(default=0, ge=0, le=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return require_text(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)


class MilestoneUpdate(BaseModel):
    """Partial milestone update; omitted fields keep their stored values."""

    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    name: Optional[str] = None
    status: Optional[MilestoneStatus] = None
    due_date: Optional[date] = None
    order_index: Optional[int] = None
    completion_pct: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("must not be blank")
        return require_text(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)


class ResourceCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: ResourceType
    url: str = Field(..., max_length=2000)
    label: Optional[str] = None

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        return require_text(v)

    @field_validator("label", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return blank_to_none(v)


class OwnerCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: uuid.UUID
    owner_position: ResearcherPosition


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ProjectRead(BaseModel):
    """Full representation of a persisted project."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    specialty_id: uuid.UUID
    title: str
    description: Optional[str]
    deliverables: list[str]
    irb_status: str
    irb_number: Optional[str]
    start_date: Optional[date]
    target_date: Optional[date]
    progress_pct: float
    status: str
    created_at: datetime

    @field_validator("deliverables", mode="before")
    @classmethod
    def null_to_empty(cls, v: object) -> object:
        return [] if v is None else v


class ProjectSummary(BaseModel):
    """A project card on a specialty board.

    Invariant: ``0 <= open_slots <= total_slots``.
    """

    project: ProjectRead
    total_slots: int = Field(default=0, ge=0)
    open_slots: int = Field(default=0, ge=0)


class SlotRead(BaseModel):
    """A slot as shown on the project page.

    ``assigned_student_id`` is only populated for callers allowed to see who
    holds the slot; everyone else sees ``has_assignment`` alone.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    role_name: str
    est_hours: int
    status: str
    description: Optional[str]
    has_assignment: bool = False
    assigned_student_id: Optional[uuid.UUID] = None


class MilestoneRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    status: str
    due_date: Optional[date]
    order_index: int
    completion_pct: float


class ResourceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    type: str
    url: str
    label: Optional[str]


class OwnerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    owner_position: str


class ProjectDetailRead(BaseModel):
    """The project page: the project with its slots, milestones and resources.

    Milestones are ordered by ``order_index``; slots and resources carry no
    order guarantee.
    """

    project: ProjectRead
    slots: list[SlotRead]
    milestones: list[MilestoneRead]
    resources: list[ResourceRead]


class CreatedResponse(BaseModel):
    id: uuid.UUID
