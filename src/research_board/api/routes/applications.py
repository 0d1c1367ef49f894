"""Application decision routes.

Routes:
    POST   /{application_id}/accept    — accept and assign (project owner or admin)
    POST   /{application_id}/reject    — reject (project owner or admin)
    POST   /{application_id}/withdraw  — withdraw (the applicant, or admin)

Deciding on an application already decided, or on a slot that is no
longer open, answers 409.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.api.dependencies import (
    ensure_acting_for_student,
    ensure_project_manager,
    get_caller,
    get_db,
)
from research_board.core.application_service import ApplicationService
from research_board.core.models.users import User
from research_board.core.project_service import ProjectService
from research_board.core.schemas.common import parse_payload
from research_board.core.schemas.slots import ApplicationRead, AssignmentRead, WithdrawRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _decider_service(
    db: AsyncSession,
    application_id: uuid.UUID,
    caller: User,
) -> ApplicationService:
    """Return a service after checking *caller* manages the application's project."""
    service = ApplicationService(db)
    application = await service.get_application(application_id)
    slot = await service.get_slot(application.slot_id)
    await ensure_project_manager(ProjectService(db), slot.project_id, caller)
    return service


@router.post("/{application_id}/accept", response_model=AssignmentRead)
async def accept_application(
    application_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
) -> AssignmentRead:
    """Accept the application; competing submitted applications are rejected."""
    service = await _decider_service(db, application_id, caller)
    assignment = await service.accept(application_id, caller.id)
    return AssignmentRead.model_validate(assignment)


@router.post("/{application_id}/reject", response_model=ApplicationRead)
async def reject_application(
    application_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
) -> ApplicationRead:
    service = await _decider_service(db, application_id, caller)
    application = await service.reject(application_id, caller.id)
    return ApplicationRead.model_validate(application)


@router.post("/{application_id}/withdraw", response_model=ApplicationRead)
async def withdraw_application(
    application_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    payload: Annotated[dict[str, Any], Body()],
) -> ApplicationRead:
    """Withdraw a submitted application.

    The body names the student profile acting; it must be the applicant's.
    """
    data = parse_payload(WithdrawRequest, payload)
    service = ApplicationService(db)
    student = await service.get_student(data.student_id)
    ensure_acting_for_student(student, caller)
    application = await service.withdraw(application_id, data.student_id)
    logger.info("applications.withdraw", application_id=str(application_id))
    return ApplicationRead.model_validate(application)
