"""Specialty ORM model.

A specialty is a research board (e.g. Radiation Oncology, Medical Oncology)
grouping the projects of one clinical domain.  Specialties are addressed
externally by ``slug``, which must stay stable once published.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from research_board.core.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from research_board.core.models.project import Project


class Specialty(UUIDPrimaryKeyMixin, Base):
    """A top-level research board.

    Attributes:
        name: Unique display name.
        slug: Unique routing key.
        display_order: Ascending sort key for board listings.
        is_active: Inactive specialties are hidden from listings.

    Relationships:
        projects: Projects on this board.  Deleting the specialty deletes
            them (ON DELETE CASCADE).
    """

    __tablename__ = "specialties"

    name: Mapped[str] = mapped_column(sa.String(200), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(
        sa.String(100),
        unique=True,
        nullable=False,
        index=True,
    )
    display_order: Mapped[int] = mapped_column(
        sa.Integer,
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean,
        nullable=False,
        default=True,
        server_default=sa.true(),
    )

    projects: Mapped[list[Project]] = relationship(
        "Project",
        back_populates="specialty",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Specialty id={self.id} slug={self.slug!r} order={self.display_order}>"
