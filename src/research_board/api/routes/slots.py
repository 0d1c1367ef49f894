"""Slot routes.

Routes:
    GET    /{slot_id}/applications  — applications for the slot (project owner or admin)
    POST   /{slot_id}/applications  — a student applies to an open slot
    POST   /{slot_id}/assignment    — assign a student directly (admin)
    POST   /{slot_id}/close         — close an open slot (project owner or admin)
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.api.dependencies import (
    ensure_acting_for_student,
    ensure_project_manager,
    get_caller,
    get_db,
    require_admin,
)
from research_board.core.application_service import ApplicationService
from research_board.core.models.users import User
from research_board.core.project_service import ProjectService
from research_board.core.schemas.common import parse_payload
from research_board.core.schemas.project import SlotRead
from research_board.core.schemas.slots import (
    ApplicationCreate,
    ApplicationRead,
    AssignmentCreate,
    AssignmentRead,
)

router = APIRouter()


@router.get("/{slot_id}/applications", response_model=list[ApplicationRead])
async def list_slot_applications(
    slot_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
) -> list[ApplicationRead]:
    service = ApplicationService(db)
    slot = await service.get_slot(slot_id)
    await ensure_project_manager(ProjectService(db), slot.project_id, caller)
    applications = await service.list_for_slot(slot_id)
    return [ApplicationRead.model_validate(a) for a in applications]


@router.post(
    "/{slot_id}/applications",
    status_code=status.HTTP_201_CREATED,
    response_model=ApplicationRead,
)
async def apply_to_slot(
    slot_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> ApplicationRead:
    """Submit an application on behalf of the caller's student profile.

    Admins may apply on behalf of any student.
    """
    data = parse_payload(ApplicationCreate, payload)
    service = ApplicationService(db)
    student = await service.get_student(data.student_id)
    ensure_acting_for_student(student, caller)
    application = await service.apply(slot_id, data.student_id, caller.id, note=data.note)
    return ApplicationRead.model_validate(application)


@router.post(
    "/{slot_id}/assignment",
    status_code=status.HTTP_201_CREATED,
    response_model=AssignmentRead,
)
async def assign_to_slot(
    slot_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_admin)],
    payload: Annotated[dict[str, Any], Body()],
) -> AssignmentRead:
    """Assign a student without an application.  409 if the slot is taken."""
    data = parse_payload(AssignmentCreate, payload)
    assignment = await ApplicationService(db).assign_student(
        slot_id, data.student_id, admin.id, note=data.note
    )
    return AssignmentRead.model_validate(assignment)


@router.post("/{slot_id}/close", response_model=SlotRead)
async def close_slot(
    slot_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
) -> SlotRead:
    """Close the slot; its pending applications are rejected.  409 unless open."""
    service = ProjectService(db)
    slot = await ApplicationService(db).get_slot(slot_id)
    await ensure_project_manager(service, slot.project_id, caller)
    slot = await service.close_slot(slot_id, caller.id)
    return SlotRead.model_validate(slot)
