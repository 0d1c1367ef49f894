"""Foreign-key cascade behaviour of the schema.

Deleting a specialty board removes its projects and, through them, every
slot, application and assignment.  Deleting a user removes their audit
history and owner links but keeps decided applications with a NULL
decider.  Deleting a student who holds a slot puts the slot back to open.
"""

from __future__ import annotations

from sqlalchemy import delete, func, select

from research_board.core.application_service import ApplicationService
from research_board.core.models.audit import AuditEvent
from research_board.core.models.project import Project, ProjectOwner
from research_board.core.models.slots import ProjectSlot, SlotApplication, SlotAssignment
from research_board.core.models.specialty import Specialty
from research_board.core.models.users import User
from research_board.core.project_service import ProjectService
from tests.factories import ProjectPayloadFactory, SlotPayloadFactory


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


async def test_deleting_specialty_removes_projects_and_slots(
    session_factory, specialty, owner_user, student_profile
) -> None:
    async with session_factory() as session:
        service = ProjectService(session)
        project_id = await service.create_project(
            specialty.id, ProjectPayloadFactory.build(), owner_user.id
        )
        slot = await service.add_slot(project_id, SlotPayloadFactory.build())
        await service.add_slot(project_id, SlotPayloadFactory.build())
    async with session_factory() as session:
        await ApplicationService(session).apply(slot.id, student_profile.id, owner_user.id)

    async with session_factory() as session:
        await session.execute(delete(Specialty).where(Specialty.id == specialty.id))
        await session.commit()

    async with session_factory() as session:
        assert await _count(session, Project) == 0
        assert await _count(session, ProjectSlot) == 0
        assert await _count(session, SlotApplication) == 0


async def test_deleting_decider_keeps_application(
    session_factory, specialty, owner_user, student_profile
) -> None:
    async with session_factory() as session:
        service = ProjectService(session)
        project_id = await service.create_project(
            specialty.id,
            ProjectPayloadFactory.build(owner_position="fellow"),
            owner_user.id,
        )
        slot = await service.add_slot(project_id, SlotPayloadFactory.build())
    async with session_factory() as session:
        application = await ApplicationService(session).apply(
            slot.id, student_profile.id, student_profile.user_id
        )
    async with session_factory() as session:
        await ApplicationService(session).accept(application.id, owner_user.id)

    async with session_factory() as session:
        await session.execute(delete(User).where(User.id == owner_user.id))
        await session.commit()

    async with session_factory() as session:
        row = await session.get(SlotApplication, application.id)
        assert row.status == "accepted"
        assert row.decided_by_user_id is None
        assert await _count(session, SlotAssignment) == 1
        assert await _count(session, ProjectOwner) == 0
        remaining = await session.scalar(
            select(func.count(AuditEvent.id)).where(AuditEvent.user_id == owner_user.id)
        )
        assert remaining == 0


async def test_deleting_assigned_student_reopens_slot(
    session_factory, specialty, owner_user, admin_user, student_user, student_profile
) -> None:
    async with session_factory() as session:
        service = ProjectService(session)
        project_id = await service.create_project(
            specialty.id, ProjectPayloadFactory.build(), owner_user.id
        )
        slot = await service.add_slot(project_id, SlotPayloadFactory.build())
    async with session_factory() as session:
        await ApplicationService(session).assign_student(
            slot.id, student_profile.id, admin_user.id
        )

    async with session_factory() as session:
        await session.execute(delete(User).where(User.id == student_user.id))
        await session.commit()

    async with session_factory() as session:
        assert await _count(session, SlotAssignment) == 0
        row = await session.get(ProjectSlot, slot.id)
        assert row.status == "open"
        [summary] = await ProjectService(session).list_active_projects(specialty.id)
        assert (summary.total_slots, summary.open_slots) == (1, 1)
