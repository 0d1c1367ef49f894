"""Milestone routes.

Routes:
    PATCH  /{milestone_id}   — partial milestone update (project owner or admin)
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.api.dependencies import ensure_project_manager, get_caller, get_db
from research_board.core.models.users import User
from research_board.core.project_service import ProjectService
from research_board.core.schemas.project import MilestoneRead

router = APIRouter()


@router.patch("/{milestone_id}", response_model=MilestoneRead)
async def update_milestone(
    milestone_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> MilestoneRead:
    """Update a milestone's name, status, due date, order or completion.

    The change is recorded as an ``update_milestone`` audit event
    attributed to the caller.
    """
    service = ProjectService(db)
    milestone = await service.get_milestone(milestone_id)
    await ensure_project_manager(service, milestone.project_id, caller)
    milestone = await service.update_milestone(milestone_id, payload, caller.id)
    return MilestoneRead.model_validate(milestone)
