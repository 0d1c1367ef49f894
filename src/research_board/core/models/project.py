"""Project ORM models.

A project is a research initiative on one specialty board.  It owns four
kinds of child rows, all removed by ON DELETE CASCADE when the project is
deleted:

- ProjectOwner:     researchers responsible for the project (many-to-many with users)
- ProjectSlot:      open roles students can apply for (see ``slots.py``)
- ProjectMilestone: ordered progress checkpoints
- ProjectResource:  links to protocols, SOPs, shared drives, REDCap, papers
"""

from __future__ import annotations

import enum
import uuid
from datetime import date
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from research_board.core.models.base import (
    Base,
    CreatedAtMixin,
    StringList,
    UUIDPrimaryKeyMixin,
)

if TYPE_CHECKING:
    from research_board.core.models.slots import ProjectSlot
    from research_board.core.models.specialty import Specialty
    from research_board.core.models.users import User


class IrbStatus(str, enum.Enum):
    """Institutional Review Board approval state."""

    APPROVED = "approved"
    PENDING = "pending"
    EXEMPT = "exempt"
    NOT_NEEDED = "not_needed"


class ProjectStatus(str, enum.Enum):
    """Publication state of a project.

    Only ``active`` projects appear on specialty boards and count towards
    board totals.
    """

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class MilestoneStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class ResourceType(str, enum.Enum):
    PROTOCOL = "protocol"
    SOP = "sop"
    DRIVE = "drive"
    REDCAP = "redcap"
    PUBLICATION = "publication"
    OTHER = "other"


class Project(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """A research initiative listed on a specialty board.

    Attributes:
        specialty_id: Board this project belongs to.  Never changed by updates.
        title: Required display title.
        description: Free text; NULL when unset (never an empty string).
        deliverables: Ordered list of expected outputs (abstract, poster, ...).
        irb_status: One of :class:`IrbStatus`.
        irb_number: Protocol number; NULL when unset.
        start_date: Planned start; NULL when unset.
        target_date: Planned completion; NULL when unset.
        progress_pct: Overall progress, 0-100.
        status: One of :class:`ProjectStatus`; new projects are drafts.
    """

    __tablename__ = "projects"
    __table_args__ = (
        sa.CheckConstraint(
            "progress_pct >= 0 AND progress_pct <= 100",
            name="ck_projects_progress_pct_range",
        ),
        sa.Index("ix_projects_specialty_status", "specialty_id", "status"),
    )

    specialty_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("specialties.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(sa.Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    deliverables: Mapped[Optional[list[str]]] = mapped_column(StringList, nullable=True)
    irb_status: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=IrbStatus.PENDING.value,
    )
    irb_number: Mapped[Optional[str]] = mapped_column(sa.String(100), nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    target_date: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    progress_pct: Mapped[float] = mapped_column(
        sa.Numeric(5, 2, asdecimal=False),
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    status: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=ProjectStatus.DRAFT.value,
        server_default=sa.text("'draft'"),
    )

    # Relationships
    specialty: Mapped[Specialty] = relationship("Specialty", back_populates="projects")
    owners: Mapped[list[ProjectOwner]] = relationship(
        "ProjectOwner",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    slots: Mapped[list[ProjectSlot]] = relationship(
        "ProjectSlot",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    milestones: Mapped[list[ProjectMilestone]] = relationship(
        "ProjectMilestone",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProjectMilestone.order_index",
    )
    resources: Mapped[list[ProjectResource]] = relationship(
        "ProjectResource",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} title={self.title!r} status={self.status!r}>"


class ProjectOwner(UUIDPrimaryKeyMixin, Base):
    """Link row between a project and one of its responsible researchers."""

    __tablename__ = "project_owners"

    project_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_position: Mapped[str] = mapped_column(sa.String(20), nullable=False)

    project: Mapped[Project] = relationship("Project", back_populates="owners")
    user: Mapped[User] = relationship("User", back_populates="owned_projects")


class ProjectMilestone(UUIDPrimaryKeyMixin, Base):
    """An ordered progress checkpoint (IRB approval, chart review, ...)."""

    __tablename__ = "project_milestones"
    __table_args__ = (
        sa.CheckConstraint(
            "completion_pct >= 0 AND completion_pct <= 100",
            name="ck_project_milestones_completion_pct_range",
        ),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=MilestoneStatus.TODO.value,
        server_default=sa.text("'todo'"),
    )
    due_date: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    order_index: Mapped[int] = mapped_column(
        sa.Integer,
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    completion_pct: Mapped[float] = mapped_column(
        sa.Numeric(5, 2, asdecimal=False),
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )

    project: Mapped[Project] = relationship("Project", back_populates="milestones")


class ProjectResource(UUIDPrimaryKeyMixin, Base):
    """A reference link attached to a project."""

    __tablename__ = "project_resources"

    project_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    url: Mapped[str] = mapped_column(sa.Text, nullable=False)
    label: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    project: Mapped[Project] = relationship("Project", back_populates="resources")
