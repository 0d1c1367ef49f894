"""Specialty board listing and lookup.

The landing listing shows every active specialty with two counts:

    project_count   = active projects on the board
    open_slot_count = 'open' slots on those active projects

Both counts come from one ``GROUP BY specialty_id`` query each, so the
listing costs three round trips however many boards exist.  A board with
no active projects simply has no row in either aggregate and reports 0/0.

The listing is a read path used to render the landing page: when the store
is unreachable it logs the failure and returns an empty list instead of
raising.  Callers that need to tell "no boards" from "store down" should
use :meth:`SpecialtyService.get_by_slug` or watch the log.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.core.database import coerce_id, translate_store_errors
from research_board.core.exceptions import NotFoundError, StoreUnavailableError
from research_board.core.models.project import Project, ProjectStatus
from research_board.core.models.slots import ProjectSlot, SlotStatus
from research_board.core.models.specialty import Specialty
from research_board.core.schemas.common import parse_payload
from research_board.core.schemas.specialty import (
    SpecialtyCreate,
    SpecialtyRead,
    SpecialtySummary,
)

logger = structlog.get_logger(__name__)


class SpecialtyService:
    """Reads and creates specialty boards.

    Stateless apart from the session; create one per unit of work.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_active_with_counts(self) -> list[SpecialtySummary]:
        """Return active specialties in ``display_order`` with their counts.

        Returns:
            One :class:`SpecialtySummary` per active specialty, ascending by
            ``display_order`` (ties broken by name).  An empty list when the
            store is unavailable.
        """
        try:
            async with translate_store_errors(self.session):
                specialties = await self._active_specialties()
                project_counts = await self._active_project_counts()
                open_slot_counts = await self._open_slot_counts()
        except StoreUnavailableError:
            logger.warning("specialty_listing_store_unavailable")
            return []

        return [
            SpecialtySummary(
                specialty=SpecialtyRead.model_validate(specialty),
                project_count=project_counts.get(specialty.id, 0),
                open_slot_count=open_slot_counts.get(specialty.id, 0),
            )
            for specialty in specialties
        ]

    async def _active_specialties(self) -> list[Specialty]:
        stmt = (
            select(Specialty)
            .where(Specialty.is_active.is_(True))
            .order_by(Specialty.display_order.asc(), Specialty.name.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _active_project_counts(self) -> dict[uuid.UUID, int]:
        stmt = (
            select(Project.specialty_id, func.count(Project.id))
            .where(Project.status == ProjectStatus.ACTIVE.value)
            .group_by(Project.specialty_id)
        )
        result = await self.session.execute(stmt)
        return {specialty_id: int(count) for specialty_id, count in result.all()}

    async def _open_slot_counts(self) -> dict[uuid.UUID, int]:
        # Only slots of active projects count towards a board's total.
        stmt = (
            select(Project.specialty_id, func.count(ProjectSlot.id))
            .select_from(ProjectSlot)
            .join(Project, ProjectSlot.project_id == Project.id)
            .where(Project.status == ProjectStatus.ACTIVE.value)
            .where(ProjectSlot.status == SlotStatus.OPEN.value)
            .group_by(Project.specialty_id)
        )
        result = await self.session.execute(stmt)
        return {specialty_id: int(count) for specialty_id, count in result.all()}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_by_slug(self, slug: str) -> Specialty:
        """Return the specialty addressed by *slug*.

        Raises:
            NotFoundError: If no specialty has this slug.
        """
        async with translate_store_errors(self.session):
            result = await self.session.execute(
                select(Specialty).where(Specialty.slug == slug)
            )
        specialty = result.scalar_one_or_none()
        if specialty is None:
            raise NotFoundError("Specialty", slug)
        return specialty

    async def get(self, specialty_id: uuid.UUID) -> Specialty:
        """Return the specialty with *specialty_id*.

        Raises:
            NotFoundError: If it does not exist.
        """
        async with translate_store_errors(self.session):
            specialty = await self.session.get(Specialty, coerce_id("Specialty", specialty_id))
        if specialty is None:
            raise NotFoundError("Specialty", specialty_id)
        return specialty

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(self, fields: SpecialtyCreate | Mapping[str, Any]) -> Specialty:
        """Insert a specialty board and commit.

        Raises:
            ValidationError: If the payload is invalid.
            ConflictError: If the name or slug is already taken.
        """
        data = parse_payload(SpecialtyCreate, fields)
        specialty = Specialty(**data.model_dump())
        async with translate_store_errors(self.session):
            self.session.add(specialty)
            await self.session.commit()
        logger.info("specialty_created", specialty_id=str(specialty.id), slug=specialty.slug)
        return specialty
