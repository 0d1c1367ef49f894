"""Audit event ORM model.

Audit events are append-only: the application inserts them and never
updates or deletes them.  They disappear only when the acting user is
deleted (ON DELETE CASCADE).
"""

from __future__ import annotations

import enum
import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from research_board.core.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from research_board.core.models.users import User


class AuditAction(str, enum.Enum):
    APPLY_SLOT = "apply_slot"
    ACCEPT_APP = "accept_app"
    REJECT_APP = "reject_app"
    CREATE_PROJECT = "create_project"
    UPDATE_MILESTONE = "update_milestone"
    ASSIGN_STUDENT = "assign_student"


class AuditEvent(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """One accountable action taken by a user.

    ``context`` is a short free-text description naming the affected rows,
    e.g. ``"project=<uuid>"``.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        sa.Index("ix_audit_events_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    context: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    user: Mapped[User] = relationship("User", back_populates="audit_events")

    def __repr__(self) -> str:
        return f"<AuditEvent user_id={self.user_id} action={self.action!r}>"
