"""Slot, application and assignment ORM models.

Lifecycle of a slot::

    open ─────(application accepted / direct assignment)─────▶ assigned
    assigned ─(assignment row deleted)───────────────────────▶ open
    open ─────(closed by an owner)───────────────────────────▶ closed

A slot has at most one :class:`SlotAssignment`.  The UNIQUE constraint on
``slot_assignments.slot_id`` is what prevents two concurrent acceptors from
both assigning the slot; application code must not weaken it.  Likewise a
student holds at most one ``submitted`` application per slot, enforced by
the partial unique index ``uq_slot_applications_pending``.

Assignments also disappear through ``ON DELETE CASCADE`` from
``student_profiles``, which the ORM never sees.  The
``trg_slot_assignments_reopen_slot`` trigger puts such a slot back to
``open`` so its status keeps matching assignment presence.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from research_board.core.models.base import Base, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from research_board.core.models.project import Project
    from research_board.core.models.users import StudentProfile


class SlotStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    CLOSED = "closed"


class ApplicationStatus(str, enum.Enum):
    """State of a student's application to a slot.

    Only ``submitted`` applications can be decided or withdrawn; the other
    three states are terminal.
    """

    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class ProjectSlot(UUIDPrimaryKeyMixin, Base):
    """A role on a project that one student can fill (chart review, statistics, ...)."""

    __tablename__ = "project_slots"
    __table_args__ = (
        sa.Index("ix_project_slots_project_status", "project_id", "status"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    role_name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    est_hours: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=SlotStatus.OPEN.value,
        server_default=sa.text("'open'"),
    )
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    project: Mapped[Project] = relationship("Project", back_populates="slots")
    applications: Mapped[list[SlotApplication]] = relationship(
        "SlotApplication",
        back_populates="slot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    assignment: Mapped[Optional[SlotAssignment]] = relationship(
        "SlotAssignment",
        back_populates="slot",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<ProjectSlot id={self.id} role={self.role_name!r} status={self.status!r}>"


class SlotApplication(UUIDPrimaryKeyMixin, Base):
    """A student's request to fill a slot.

    ``cv_url_snapshot`` freezes the student's CV link at submission time so
    later profile edits do not change what the owner reviewed.
    """

    __tablename__ = "slot_applications"
    __table_args__ = (
        sa.Index(
            "uq_slot_applications_pending",
            "slot_id",
            "student_id",
            unique=True,
            postgresql_where=sa.text("status = 'submitted'"),
            sqlite_where=sa.text("status = 'submitted'"),
        ),
    )

    slot_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("project_slots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=ApplicationStatus.SUBMITTED.value,
        server_default=sa.text("'submitted'"),
    )
    note: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    cv_url_snapshot: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=sa.func.now(),
    )
    decided_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=True,
    )
    decided_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    slot: Mapped[ProjectSlot] = relationship("ProjectSlot", back_populates="applications")
    student: Mapped[StudentProfile] = relationship(
        "StudentProfile",
        back_populates="applications",
    )

    def __repr__(self) -> str:
        return (
            f"<SlotApplication id={self.id} slot_id={self.slot_id} "
            f"status={self.status!r}>"
        )


class SlotAssignment(UUIDPrimaryKeyMixin, Base):
    """The binding of one student to one slot."""

    __tablename__ = "slot_assignments"
    __table_args__ = (
        sa.UniqueConstraint("slot_id", name="uq_slot_assignments_slot_id"),
    )

    slot_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("project_slots.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=sa.func.now(),
    )
    note: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    slot: Mapped[ProjectSlot] = relationship("ProjectSlot", back_populates="assignment")
    student: Mapped[StudentProfile] = relationship(
        "StudentProfile",
        back_populates="assignments",
    )

    def __repr__(self) -> str:
        return f"<SlotAssignment slot_id={self.slot_id} student_id={self.student_id}>"


# ---------------------------------------------------------------------------
# Slot re-opening trigger
# ---------------------------------------------------------------------------

REOPEN_SLOT_TRIGGER = "trg_slot_assignments_reopen_slot"

_REOPEN_SLOT_UPDATE = (
    "UPDATE project_slots SET status = 'open' "
    "WHERE id = OLD.slot_id AND status = 'assigned'"
)

REOPEN_SLOT_DDL_SQLITE = (
    f"CREATE TRIGGER {REOPEN_SLOT_TRIGGER} AFTER DELETE ON slot_assignments "
    f"FOR EACH ROW BEGIN {_REOPEN_SLOT_UPDATE}; END",
)

REOPEN_SLOT_DDL_POSTGRESQL = (
    "CREATE OR REPLACE FUNCTION reopen_slot_after_unassign() RETURNS trigger AS $$ "
    f"BEGIN {_REOPEN_SLOT_UPDATE}; RETURN OLD; END; $$ LANGUAGE plpgsql",
    f"CREATE TRIGGER {REOPEN_SLOT_TRIGGER} AFTER DELETE ON slot_assignments "
    "FOR EACH ROW EXECUTE FUNCTION reopen_slot_after_unassign()",
)

for _dialect, _statements in (
    ("sqlite", REOPEN_SLOT_DDL_SQLITE),
    ("postgresql", REOPEN_SLOT_DDL_POSTGRESQL),
):
    for _statement in _statements:
        event.listen(
            SlotAssignment.__table__,
            "after_create",
            sa.DDL(_statement).execute_if(dialect=_dialect),
        )
