"""Caller-scoped user routes.

Routes:
    GET    /me/audit-events   — the caller's own audit trail, newest first
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.api.dependencies import get_caller, get_db
from research_board.config.settings import get_settings
from research_board.core.audit_service import AuditService
from research_board.core.models.users import User
from research_board.core.schemas.slots import AuditEventRead

router = APIRouter()


@router.get("/me/audit-events", response_model=list[AuditEventRead])
async def my_audit_events(
    db: Annotated[AsyncSession, Depends(get_db)],
    caller: Annotated[User, Depends(get_caller)],
    limit: Annotated[int, Query(ge=1)] = 50,
) -> list[AuditEventRead]:
    """Return up to *limit* of the caller's audit events.

    *limit* is capped at ``Settings.audit_listing_limit``.
    """
    limit = min(limit, get_settings().audit_listing_limit)
    events = await AuditService(db).list_for_user(caller.id, limit=limit)
    return [AuditEventRead.model_validate(e) for e in events]
