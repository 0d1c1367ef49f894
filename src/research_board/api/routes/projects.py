"""Project routes.

Routes:
    GET    /{project_id}              — project page (slots, milestones, resources)
    PATCH  /{project_id}              — partial update (owner or admin)
    DELETE /{project_id}              — delete with all children (admin)
    POST   /{project_id}/slots        — add an open slot (owner or admin)
    POST   /{project_id}/milestones   — add a milestone (owner or admin)
    POST   /{project_id}/resources    — add a resource link (owner or admin)
    POST   /{project_id}/owners       — register another owner (owner or admin)

Assignee visibility:
    Every caller sees whether a slot is filled.  Only admins and the
    project's owners see which student holds it.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.api.dependencies import (
    can_manage_project,
    ensure_project_manager,
    get_caller,
    get_db,
    get_optional_caller,
    require_admin,
)
from research_board.core.models.users import User
from research_board.core.project_service import ProjectService
from research_board.core.schemas.project import (
    MilestoneRead,
    OwnerRead,
    ProjectDetailRead,
    ProjectRead,
    ResourceRead,
    SlotRead,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------


async def _managed_service(
    db: AsyncSession,
    project_id: uuid.UUID,
    caller: User,
) -> ProjectService:
    """Return a service after checking the project exists and *caller* manages it."""
    service = ProjectService(db)
    await service.get_project(project_id)
    await ensure_project_manager(service, project_id, caller)
    return service


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


@router.get("/{project_id}", response_model=ProjectDetailRead)
async def get_project(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[Optional[User], Depends(get_optional_caller)],
) -> ProjectDetailRead:
    """Return the project page."""
    service = ProjectService(db)
    detail = await service.get_project_detail(project_id)
    include_assignees = caller is not None and await can_manage_project(
        service, project_id, caller
    )
    return detail.to_read(include_assignees=include_assignees)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> ProjectRead:
    """Apply a partial update.  Fields absent from the body are left alone."""
    service = await _managed_service(db, project_id, caller)
    project = await service.update_project(project_id, payload)
    return ProjectRead.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
) -> Response:
    await ProjectService(db).delete_project(project_id)
    logger.info("projects.delete", project_id=str(project_id), admin_id=str(admin.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------


@router.post("/{project_id}/slots", status_code=status.HTTP_201_CREATED, response_model=SlotRead)
async def add_slot(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> SlotRead:
    service = await _managed_service(db, project_id, caller)
    slot = await service.add_slot(project_id, payload)
    return SlotRead.model_validate(slot)


@router.post(
    "/{project_id}/milestones",
    status_code=status.HTTP_201_CREATED,
    response_model=MilestoneRead,
)
async def add_milestone(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> MilestoneRead:
    service = await _managed_service(db, project_id, caller)
    milestone = await service.add_milestone(project_id, payload)
    return MilestoneRead.model_validate(milestone)


@router.post(
    "/{project_id}/resources",
    status_code=status.HTTP_201_CREATED,
    response_model=ResourceRead,
)
async def add_resource(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> ResourceRead:
    service = await _managed_service(db, project_id, caller)
    resource = await service.add_resource(project_id, payload)
    return ResourceRead.model_validate(resource)


@router.post("/{project_id}/owners", status_code=status.HTTP_201_CREATED, response_model=OwnerRead)
async def add_owner(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> OwnerRead:
    """Register another user as an owner of the project."""
    service = await _managed_service(db, project_id, caller)
    owner = await service.add_owner(project_id, payload)
    return OwnerRead.model_validate(owner)
