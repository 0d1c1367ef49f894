"""Slot applications and assignments.

Application lifecycle::

    submitted ──accept──▶ accepted   (creates the slot's assignment)
        │ ├────reject──▶ rejected
        │ └──withdraw──▶ withdrawn
        └─(another application for the same slot accepted)──▶ rejected

Accepting is one transaction: the application is marked accepted, the
:class:`SlotAssignment` is inserted, the slot becomes ``assigned``, every
other still-submitted application for that slot is rejected, and the
``accept_app`` / ``assign_student`` audit events are staged.  Either all of
it commits or none of it does.

Concurrency: two owners accepting different applications for the same slot
at the same time both pass the in-transaction status checks, but only one
INSERT into ``slot_assignments`` can satisfy the UNIQUE(slot_id)
constraint.  The loser's transaction is rolled back and surfaces as
:class:`ConflictError`.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.core.audit_service import AuditService
from research_board.core.database import coerce_id, translate_store_errors
from research_board.core.exceptions import ConflictError, NotFoundError, ValidationError
from research_board.core.models.audit import AuditAction
from research_board.core.models.base import utcnow
from research_board.core.models.slots import (
    ApplicationStatus,
    ProjectSlot,
    SlotApplication,
    SlotAssignment,
    SlotStatus,
)
from research_board.core.models.users import StudentProfile

logger = structlog.get_logger(__name__)


class ApplicationService:
    """Student applications to slots and the resulting assignments.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
            Each public method commits once on success and rolls back on
            a constraint violation.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.audit = AuditService(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_slot(self, slot_id: uuid.UUID) -> ProjectSlot:
        async with translate_store_errors(self.session):
            slot = await self.session.get(ProjectSlot, coerce_id("ProjectSlot", slot_id))
        if slot is None:
            raise NotFoundError("ProjectSlot", slot_id)
        return slot

    async def get_student(self, student_id: uuid.UUID) -> StudentProfile:
        async with translate_store_errors(self.session):
            student = await self.session.get(
                StudentProfile, coerce_id("StudentProfile", student_id)
            )
        if student is None:
            raise NotFoundError("StudentProfile", student_id)
        return student

    async def get_application(self, application_id: uuid.UUID) -> SlotApplication:
        """Return the application with *application_id*.

        Raises:
            NotFoundError: If it does not exist.
        """
        async with translate_store_errors(self.session):
            application = await self.session.get(
                SlotApplication, coerce_id("SlotApplication", application_id)
            )
        if application is None:
            raise NotFoundError("SlotApplication", application_id)
        return application

    async def list_for_slot(self, slot_id: uuid.UUID) -> list[SlotApplication]:
        """Return every application for the slot, oldest first."""
        slot = await self.get_slot(slot_id)
        stmt = (
            select(SlotApplication)
            .where(SlotApplication.slot_id == slot.id)
            .order_by(SlotApplication.submitted_at.asc(), SlotApplication.id)
        )
        async with translate_store_errors(self.session):
            result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    async def apply(
        self,
        slot_id: uuid.UUID,
        student_id: uuid.UUID,
        actor_id: uuid.UUID,
        note: Optional[str] = None,
    ) -> SlotApplication:
        """Submit an application for an open slot.

        The student's current CV link is copied into ``cv_url_snapshot``.

        Raises:
            NotFoundError: If the slot or the student profile does not exist.
            ConflictError: If the slot is not open, or the student already
                has a submitted application for it.
        """
        slot = await self.get_slot(slot_id)
        if slot.status != SlotStatus.OPEN.value:
            raise ConflictError(f"Slot {slot_id} is not open (status={slot.status})")
        student = await self.get_student(student_id)

        async with translate_store_errors(self.session):
            pending = await self.session.execute(
                select(SlotApplication.id)
                .where(SlotApplication.slot_id == slot.id)
                .where(SlotApplication.student_id == student.id)
                .where(SlotApplication.status == ApplicationStatus.SUBMITTED.value)
            )
        if pending.first() is not None:
            raise ConflictError(
                f"Student {student_id} already has a pending application for slot {slot_id}"
            )

        application = SlotApplication(
            slot_id=slot.id,
            student_id=student.id,
            status=ApplicationStatus.SUBMITTED.value,
            note=note.strip() if note and note.strip() else None,
            cv_url_snapshot=student.cv_url,
        )
        async with translate_store_errors(self.session):
            self.session.add(application)
            await self.session.flush()
            self.audit.record(
                actor_id,
                AuditAction.APPLY_SLOT,
                context=f"application={application.id} slot={slot_id}",
            )
            await self.session.commit()

        logger.info(
            "application_submitted",
            application_id=str(application.id),
            slot_id=str(slot_id),
            student_id=str(student_id),
        )
        return application

    # ------------------------------------------------------------------
    # Deciding
    # ------------------------------------------------------------------

    async def accept(
        self,
        application_id: uuid.UUID,
        decided_by: uuid.UUID,
    ) -> SlotAssignment:
        """Accept a submitted application and assign its student to the slot.

        Competing submitted applications for the same slot are rejected in
        the same transaction.

        Raises:
            NotFoundError: If the application does not exist.
            ConflictError: If the application was already decided, the slot
                is no longer open, or another acceptor won the race.
        """
        application = await self.get_application(application_id)
        if application.status != ApplicationStatus.SUBMITTED.value:
            raise ConflictError(
                f"Application {application_id} is already {application.status}"
            )
        slot = await self.get_slot(application.slot_id)
        if slot.status != SlotStatus.OPEN.value:
            raise ConflictError(f"Slot {slot.id} is not open (status={slot.status})")

        decided_at = utcnow()
        application.status = ApplicationStatus.ACCEPTED.value
        application.decided_at = decided_at
        application.decided_by_user_id = decided_by
        slot.status = SlotStatus.ASSIGNED.value
        assignment = SlotAssignment(
            slot_id=slot.id,
            student_id=application.student_id,
            note=application.note,
        )

        async with translate_store_errors(self.session):
            self.session.add(assignment)
            await self.session.flush()
            competing = await self.session.execute(
                update(SlotApplication)
                .where(SlotApplication.slot_id == slot.id)
                .where(SlotApplication.id != application.id)
                .where(SlotApplication.status == ApplicationStatus.SUBMITTED.value)
                .values(
                    status=ApplicationStatus.REJECTED.value,
                    decided_at=decided_at,
                    decided_by_user_id=decided_by,
                )
                .execution_options(synchronize_session="fetch")
            )
            self.audit.record(
                decided_by,
                AuditAction.ACCEPT_APP,
                context=f"application={application.id} slot={slot.id}",
            )
            self.audit.record(
                decided_by,
                AuditAction.ASSIGN_STUDENT,
                context=f"slot={slot.id} student={application.student_id}",
            )
            await self.session.commit()

        logger.info(
            "application_accepted",
            application_id=str(application.id),
            slot_id=str(slot.id),
            competing_rejected=competing.rowcount or 0,
        )
        return assignment

    async def reject(
        self,
        application_id: uuid.UUID,
        decided_by: uuid.UUID,
    ) -> SlotApplication:
        """Reject a submitted application.

        Raises:
            NotFoundError: If the application does not exist.
            ConflictError: If it was already decided or withdrawn.
        """
        application = await self.get_application(application_id)
        if application.status != ApplicationStatus.SUBMITTED.value:
            raise ConflictError(
                f"Application {application_id} is already {application.status}"
            )
        application.status = ApplicationStatus.REJECTED.value
        application.decided_at = utcnow()
        application.decided_by_user_id = decided_by

        async with translate_store_errors(self.session):
            self.audit.record(
                decided_by,
                AuditAction.REJECT_APP,
                context=f"application={application.id} slot={application.slot_id}",
            )
            await self.session.commit()

        logger.info("application_rejected", application_id=str(application_id))
        return application

    async def withdraw(
        self,
        application_id: uuid.UUID,
        student_id: uuid.UUID,
    ) -> SlotApplication:
        """Withdraw a submitted application on behalf of its applicant.

        Raises:
            NotFoundError: If the application does not exist.
            ValidationError: If *student_id* is not the applicant.
            ConflictError: If the application is no longer submitted.
        """
        application = await self.get_application(application_id)
        if str(application.student_id) != str(student_id):
            raise ValidationError("only the applicant may withdraw", field="student_id")
        if application.status != ApplicationStatus.SUBMITTED.value:
            raise ConflictError(
                f"Application {application_id} is already {application.status}"
            )
        application.status = ApplicationStatus.WITHDRAWN.value
        async with translate_store_errors(self.session):
            await self.session.commit()
        logger.info("application_withdrawn", application_id=str(application_id))
        return application

    # ------------------------------------------------------------------
    # Direct assignment
    # ------------------------------------------------------------------

    async def assign_student(
        self,
        slot_id: uuid.UUID,
        student_id: uuid.UUID,
        actor_id: uuid.UUID,
        note: Optional[str] = None,
    ) -> SlotAssignment:
        """Assign a student to a slot without an application.

        Used by administrators.  The slot must still be ``open``; the
        UNIQUE(slot_id) constraint rejects a second assignment even when
        two callers pass that check concurrently.

        Raises:
            NotFoundError: If the slot or student profile does not exist.
            ConflictError: If the slot is not open or already has an
                assignment.
        """
        slot = await self.get_slot(slot_id)
        if slot.status != SlotStatus.OPEN.value:
            raise ConflictError(f"Slot {slot_id} is not open (status={slot.status})")
        student = await self.get_student(student_id)

        assignment = SlotAssignment(slot_id=slot.id, student_id=student.id, note=note)
        slot.status = SlotStatus.ASSIGNED.value

        async with translate_store_errors(self.session):
            self.session.add(assignment)
            await self.session.flush()
            self.audit.record(
                actor_id,
                AuditAction.ASSIGN_STUDENT,
                context=f"slot={slot_id} student={student_id}",
            )
            await self.session.commit()

        logger.info(
            "student_assigned",
            slot_id=str(slot_id),
            student_id=str(student_id),
        )
        return assignment
