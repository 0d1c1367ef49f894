"""Append-only audit trail.

Every accountable mutation (creating a project, applying to or deciding on
a slot, assigning a student, updating a milestone) records one
:class:`AuditEvent` attributed to the acting user.

``record()`` only adds the row to the session; it does not flush or
commit.  The calling service commits it together with the change it
describes, so an event exists if and only if its change was persisted.
There is no update or delete API.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.core.database import translate_store_errors
from research_board.core.models.audit import AuditAction, AuditEvent

logger = structlog.get_logger(__name__)


class AuditService:
    """Writes and reads audit events.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def record(
        self,
        actor_id: uuid.UUID,
        action: AuditAction,
        context: Optional[str] = None,
    ) -> AuditEvent:
        """Stage an audit event in the current transaction.

        Args:
            actor_id: User who performed the action.
            action: What was done.
            context: Short description naming the affected rows.

        Returns:
            The pending :class:`AuditEvent`.
        """
        audit_event = AuditEvent(
            user_id=actor_id,
            action=AuditAction(action).value,
            context=context,
        )
        self.session.add(audit_event)
        logger.info(
            "audit_event_staged",
            actor_id=str(actor_id),
            action=audit_event.action,
            context=context,
        )
        return audit_event

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 100) -> list[AuditEvent]:
        """Return the user's most recent audit events, newest first."""
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.user_id == user_id)
            .order_by(AuditEvent.created_at.desc(), AuditEvent.id)
            .limit(limit)
        )
        async with translate_store_errors(self.session):
            result = await self.session.execute(stmt)
        return list(result.scalars().all())
