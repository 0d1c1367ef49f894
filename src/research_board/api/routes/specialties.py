"""Specialty board routes.

Routes:
    GET    /                        — active boards with project / open-slot counts
    POST   /                        — create a board (admin)
    GET    /{slug}/projects         — active projects on a board with slot stats
    POST   /{slug}/projects         — create a project on a board (owner or admin)

Request bodies are passed to the services as plain mappings; the services
validate them and raise the board's ``ValidationError`` on bad input.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.api.dependencies import get_caller, get_db, require_admin
from research_board.core.models.users import User, UserRole
from research_board.core.project_service import ProjectService
from research_board.core.schemas.project import CreatedResponse, ProjectSummary
from research_board.core.schemas.specialty import SpecialtyRead, SpecialtySummary
from research_board.core.specialty_service import SpecialtyService

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=list[SpecialtySummary])
async def list_specialties(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[SpecialtySummary]:
    """List active specialty boards in display order with their counts.

    Returns an empty list, not an error, when the store is unavailable.
    """
    return await SpecialtyService(db).list_active_with_counts()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SpecialtyRead)
async def create_specialty(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
    payload: Annotated[dict[str, Any], Body()],
) -> SpecialtyRead:
    specialty = await SpecialtyService(db).create(payload)
    logger.info("specialties.create", slug=specialty.slug, admin_id=str(admin.id))
    return SpecialtyRead.model_validate(specialty)


@router.get("/{slug}/projects", response_model=list[ProjectSummary])
async def list_board_projects(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ProjectSummary]:
    """List the active projects on the board addressed by *slug*.

    Raises:
        NotFoundError: If no board has this slug (rendered as 404).
    """
    specialty = await SpecialtyService(db).get_by_slug(slug)
    return await ProjectService(db).list_active_projects(specialty.id)


@router.post("/{slug}/projects", status_code=status.HTTP_201_CREATED, response_model=CreatedResponse)
async def create_board_project(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> CreatedResponse:
    """Create a project on the board and return its id.

    Only researchers (role ``owner``) and admins may create projects.
    """
    if caller.role not in (UserRole.OWNER.value, UserRole.ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only project owners and admins may create projects.",
        )
    specialty = await SpecialtyService(db).get_by_slug(slug)
    project_id = await ProjectService(db).create_project(specialty.id, payload, caller.id)
    return CreatedResponse(id=project_id)
