"""User and profile ORM models.

Covers:
- User: the identity record mirrored from the external auth provider.
- ResearcherProfile: attending / fellow / resident / senior student details.
- StudentProfile: volunteer student details used when applying to slots.

Authentication itself lives outside this system; ``User`` rows exist so
that owners, applications and audit events can reference a person.
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
    from research_board.core.models.audit import AuditEvent
    from research_board.core.models.project import ProjectOwner
    from research_board.core.models.slots import SlotApplication, SlotAssignment


class UserRole(str, enum.Enum):
    """Account role.  Fixed when the user row is created."""

    ADMIN = "admin"
    OWNER = "owner"
    STUDENT = "student"


class ResearcherPosition(str, enum.Enum):
    """Training level of a researcher; also used for project owner positions."""

    ATTENDING = "attending"
    FELLOW = "fellow"
    RESIDENT = "resident"
    SENIOR_STUDENT = "senior_student"


class User(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """A person known to the board.

    ``email`` is the institutional address and is unique across the system.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        sa.String(320),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    role: Mapped[str] = mapped_column(sa.String(20), nullable=False)

    # Relationships
    researcher_profiles: Mapped[list[ResearcherProfile]] = relationship(
        "ResearcherProfile",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    student_profiles: Mapped[list[StudentProfile]] = relationship(
        "StudentProfile",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    owned_projects: Mapped[list[ProjectOwner]] = relationship(
        "ProjectOwner",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    audit_events: Mapped[list[AuditEvent]] = relationship(
        "AuditEvent",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"


class ResearcherProfile(UUIDPrimaryKeyMixin, Base):
    """Researcher details for a user who owns or mentors projects.

    By convention a user has at most one researcher profile; the schema
    does not enforce it.
    """

    __tablename__ = "researcher_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    specialty: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(sa.String(200), nullable=True)
    institution: Mapped[Optional[str]] = mapped_column(
        sa.String(200),
        nullable=True,
        default="UM/JMH",
        server_default=sa.text("'UM/JMH'"),
    )
    irb_training_exp: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    mentorship_focus: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    biosketch_url: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    user: Mapped[User] = relationship("User", back_populates="researcher_profiles")

    def __repr__(self) -> str:
        return f"<ResearcherProfile id={self.id} user_id={self.user_id} position={self.position!r}>"


class StudentProfile(UUIDPrimaryKeyMixin, Base):
    """Volunteer student details.  Applications and assignments point here."""

    __tablename__ = "student_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year_program: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    skills: Mapped[Optional[list[str]]] = mapped_column(StringList, nullable=True)
    interests: Mapped[Optional[list[str]]] = mapped_column(StringList, nullable=True)
    weekly_hours: Mapped[Optional[str]] = mapped_column(sa.String(50), nullable=True)
    availability: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    irb_training_exp: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    cv_url: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    portfolio_url: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    user: Mapped[User] = relationship("User", back_populates="student_profiles")
    applications: Mapped[list[SlotApplication]] = relationship(
        "SlotApplication",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    assignments: Mapped[list[SlotAssignment]] = relationship(
        "SlotAssignment",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<StudentProfile id={self.id} user_id={self.user_id}>"
