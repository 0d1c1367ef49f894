"""Integration tests for ProjectService: creation, update, detail, children."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import event, func, select

from research_board.core.application_service import ApplicationService
from research_board.core.exceptions import ConflictError, NotFoundError, ValidationError
from research_board.core.models.audit import AuditAction, AuditEvent
from research_board.core.models.project import Project, ProjectMilestone, ProjectOwner
from research_board.core.models.slots import ProjectSlot, SlotApplication, SlotAssignment
from research_board.core.project_service import ProjectService
from tests.factories import MilestonePayloadFactory, ProjectPayloadFactory, SlotPayloadFactory


async def _create(session_factory, specialty, actor, **fields) -> uuid.UUID:
    async with session_factory() as session:
        return await ProjectService(session).create_project(specialty.id, fields, actor.id)


async def _detail(session_factory, project_id):
    async with session_factory() as session:
        return await ProjectService(session).get_project_detail(project_id)


# ---------------------------------------------------------------------------
# create_project
# ---------------------------------------------------------------------------


class TestCreateProject:
    async def test_deliverables_are_normalised(self, session_factory, specialty, owner_user) -> None:
        project_id = await _create(
            session_factory, specialty, owner_user, title="T", deliverables=" a , b ,, c "
        )

        detail = await _detail(session_factory, project_id)

        assert detail.project.deliverables == ["a", "b", "c"]

    async def test_blank_optionals_stored_as_null(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(
            session_factory,
            specialty,
            owner_user,
            title="T",
            irb_number="",
            description="  ",
            target_date="",
        )

        async with session_factory() as session:
            project = await session.get(Project, project_id)

        assert project.irb_number is None
        assert project.description is None
        assert project.target_date is None

    async def test_defaults_to_draft_and_pending_irb(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")

        detail = await _detail(session_factory, project_id)

        assert detail.project.status == "draft"
        assert detail.project.irb_status == "pending"
        assert detail.project.progress_pct == 0

    async def test_records_audit_event(self, session_factory, specialty, owner_user) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")

        async with session_factory() as session:
            events = (
                await session.execute(select(AuditEvent).where(AuditEvent.user_id == owner_user.id))
            ).scalars().all()

        assert [e.action for e in events] == [AuditAction.CREATE_PROJECT.value]
        assert str(project_id) in events[0].context

    async def test_owner_position_registers_creator(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(
            session_factory, specialty, owner_user, title="T", owner_position="attending"
        )

        async with session_factory() as session:
            assert await ProjectService(session).is_owner(project_id, owner_user.id)

    async def test_invalid_payload_writes_nothing(
        self, session_factory, specialty, owner_user
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await _create(session_factory, specialty, owner_user, title="T", irb_status="maybe")

        assert exc_info.value.field == "irb_status"
        async with session_factory() as session:
            assert await session.scalar(select(func.count(Project.id))) == 0
            assert await session.scalar(select(func.count(AuditEvent.id))) == 0

    async def test_unknown_specialty_raises_not_found(self, session_factory, owner_user) -> None:
        async with session_factory() as session:
            with pytest.raises(NotFoundError) as exc_info:
                await ProjectService(session).create_project(
                    uuid.uuid4(), {"title": "T"}, owner_user.id
                )

        assert exc_info.value.entity == "Specialty"


# ---------------------------------------------------------------------------
# update_project
# ---------------------------------------------------------------------------


class TestUpdateProject:
    async def test_update_is_idempotent_and_partial(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(
            session_factory, specialty, owner_user, **ProjectPayloadFactory.build()
        )
        before = (await _detail(session_factory, project_id)).project

        for _ in range(2):
            async with session_factory() as session:
                await ProjectService(session).update_project(project_id, {"title": "X"})

        after = (await _detail(session_factory, project_id)).project
        assert after.title == "X"
        for name in ("description", "deliverables", "irb_status", "irb_number", "status"):
            assert getattr(after, name) == getattr(before, name)

    async def test_blank_irb_number_clears_it(self, session_factory, specialty, owner_user) -> None:
        project_id = await _create(
            session_factory, specialty, owner_user, title="T", irb_number="2026-001"
        )

        async with session_factory() as session:
            project = await ProjectService(session).update_project(
                project_id, {"irb_number": "", "start_date": "2026-02-01"}
            )

        assert project.irb_number is None
        assert project.start_date == date(2026, 2, 1)

    async def test_specialty_cannot_be_changed(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")

        async with session_factory() as session:
            with pytest.raises(ValidationError):
                await ProjectService(session).update_project(
                    project_id, {"specialty_id": str(uuid.uuid4())}
                )

    async def test_unknown_project_raises_not_found(self, session_factory) -> None:
        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await ProjectService(session).update_project(uuid.uuid4(), {"title": "X"})

    async def test_malformed_ids_raise_not_found(self, session_factory, owner_user) -> None:
        async with session_factory() as session:
            service = ProjectService(session)
            with pytest.raises(NotFoundError):
                await service.update_project("nonexistent-id", {"title": "X"})
            with pytest.raises(NotFoundError) as exc_info:
                await service.create_project("no-such-board", {"title": "T"}, owner_user.id)

        assert exc_info.value.entity == "Specialty"


# ---------------------------------------------------------------------------
# get_project_detail
# ---------------------------------------------------------------------------


class TestProjectDetail:
    async def test_unknown_id_raises_not_found(self, session_factory) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await _detail(session_factory, uuid.uuid4())

        assert exc_info.value.entity == "Project"

    async def test_non_uuid_id_raises_not_found(self, session_factory) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await _detail(session_factory, "nonexistent-id")

        assert exc_info.value.entity == "Project"
        assert exc_info.value.key == "nonexistent-id"

    async def test_string_id_resolves(self, session_factory, specialty, owner_user) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")

        detail = await _detail(session_factory, str(project_id))

        assert detail.project.id == project_id

    async def test_milestones_ordered_by_order_index(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")
        async with session_factory() as session:
            service = ProjectService(session)
            for index in (3, 1, 2):
                await service.add_milestone(
                    project_id, MilestonePayloadFactory.build(order_index=index)
                )

        detail = await _detail(session_factory, project_id)

        assert [m.order_index for m in detail.milestones] == [1, 2, 3]

    async def test_assignees_hidden_unless_requested(
        self, session_factory, specialty, owner_user, student_profile
    ) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")
        async with session_factory() as session:
            slot = await ProjectService(session).add_slot(project_id, SlotPayloadFactory.build())
        async with session_factory() as session:
            session.add(SlotAssignment(slot_id=slot.id, student_id=student_profile.id))
            await session.commit()

        detail = await _detail(session_factory, project_id)
        public = detail.to_read()
        managed = detail.to_read(include_assignees=True)

        assert public.slots[0].has_assignment is True
        assert public.slots[0].assigned_student_id is None
        assert managed.slots[0].assigned_student_id == student_profile.id

    async def test_query_count_does_not_grow_with_slots(
        self, engine, session_factory, specialty, owner_user
    ) -> None:
        small = await _create(session_factory, specialty, owner_user, title="Small")
        large = await _create(session_factory, specialty, owner_user, title="Large")
        async with session_factory() as session:
            service = ProjectService(session)
            await service.add_slot(small, SlotPayloadFactory.build())
            for _ in range(8):
                await service.add_slot(large, SlotPayloadFactory.build())

        statements: list[str] = []

        def _count(conn, cursor, statement, parameters, context, executemany) -> None:
            statements.append(statement)

        event.listen(engine.sync_engine, "before_cursor_execute", _count)
        try:
            await _detail(session_factory, small)
            small_count = len(statements)
            statements.clear()
            await _detail(session_factory, large)
            large_count = len(statements)
        finally:
            event.remove(engine.sync_engine, "before_cursor_execute", _count)

        assert small_count == large_count
        assert large_count <= 5


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------


class TestChildren:
    async def test_add_slot_starts_open(self, session_factory, specialty, owner_user) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")

        async with session_factory() as session:
            slot = await ProjectService(session).add_slot(
                project_id, {"role_name": "Statistician", "est_hours": 20, "description": ""}
            )

        assert slot.status == "open"
        assert slot.description is None

    async def test_add_child_to_unknown_project(self, session_factory) -> None:
        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await ProjectService(session).add_slot(uuid.uuid4(), SlotPayloadFactory.build())

    async def test_add_resource_validates_type(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")

        async with session_factory() as session:
            with pytest.raises(ValidationError) as exc_info:
                await ProjectService(session).add_resource(
                    project_id, {"type": "video", "url": "https://example.edu"}
                )

        assert exc_info.value.field == "type"

    async def test_add_owner(self, session_factory, specialty, owner_user, admin_user) -> None:
        project_id = await _create(session_factory, specialty, admin_user, title="T")

        async with session_factory() as session:
            service = ProjectService(session)
            await service.add_owner(
                project_id, {"user_id": str(owner_user.id), "owner_position": "resident"}
            )
            assert await service.is_owner(project_id, owner_user.id)
            assert not await service.is_owner(project_id, admin_user.id)

    async def test_update_milestone_records_audit(
        self, session_factory, specialty, owner_user
    ) -> None:
        project_id = await _create(session_factory, specialty, owner_user, title="T")
        async with session_factory() as session:
            milestone = await ProjectService(session).add_milestone(
                project_id, {"name": "IRB approval"}
            )

        async with session_factory() as session:
            updated = await ProjectService(session).update_milestone(
                milestone.id, {"status": "done", "completion_pct": 100}, owner_user.id
            )

        assert updated.status == "done"
        assert updated.name == "IRB approval"
        async with session_factory() as session:
            actions = (
                await session.execute(
                    select(AuditEvent.action).where(AuditEvent.user_id == owner_user.id)
                )
            ).scalars().all()
        assert AuditAction.UPDATE_MILESTONE.value in actions

    async def test_update_unknown_milestone(self, session_factory, owner_user) -> None:
        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await ProjectService(session).update_milestone(
                    uuid.uuid4(), {"status": "done"}, owner_user.id
                )
            with pytest.raises(NotFoundError) as exc_info:
                await ProjectService(session).update_milestone(
                    "nonexistent-id", {"status": "done"}, owner_user.id
                )

        assert exc_info.value.entity == "ProjectMilestone"


# ---------------------------------------------------------------------------
# close_slot
# ---------------------------------------------------------------------------


class TestCloseSlot:
    async def _open_slot(self, session_factory, specialty, owner_user) -> ProjectSlot:
        project_id = await _create(session_factory, specialty, owner_user, title="T")
        async with session_factory() as session:
            return await ProjectService(session).add_slot(project_id, SlotPayloadFactory.build())

    async def test_close_rejects_pending_applications(
        self, session_factory, specialty, owner_user, student_profile
    ) -> None:
        slot = await self._open_slot(session_factory, specialty, owner_user)
        async with session_factory() as session:
            application = await ApplicationService(session).apply(
                slot.id, student_profile.id, student_profile.user_id
            )

        async with session_factory() as session:
            closed = await ProjectService(session).close_slot(slot.id, owner_user.id)

        assert closed.status == "closed"
        async with session_factory() as session:
            row = await session.get(SlotApplication, application.id)
        assert row.status == "rejected"
        assert row.decided_by_user_id == owner_user.id
        assert row.decided_at is not None

    async def test_closed_slot_takes_no_applications(
        self, session_factory, specialty, owner_user, student_profile
    ) -> None:
        slot = await self._open_slot(session_factory, specialty, owner_user)
        async with session_factory() as session:
            await ProjectService(session).close_slot(slot.id, owner_user.id)

        async with session_factory() as session:
            with pytest.raises(ConflictError):
                await ApplicationService(session).apply(
                    slot.id, student_profile.id, student_profile.user_id
                )
            with pytest.raises(ConflictError):
                await ProjectService(session).close_slot(slot.id, owner_user.id)

    async def test_assigned_slot_cannot_be_closed(
        self, session_factory, specialty, owner_user, admin_user, student_profile
    ) -> None:
        slot = await self._open_slot(session_factory, specialty, owner_user)
        async with session_factory() as session:
            await ApplicationService(session).assign_student(
                slot.id, student_profile.id, admin_user.id
            )

        async with session_factory() as session:
            with pytest.raises(ConflictError):
                await ProjectService(session).close_slot(slot.id, owner_user.id)

    async def test_unknown_slot(self, session_factory, owner_user) -> None:
        async with session_factory() as session:
            with pytest.raises(NotFoundError) as exc_info:
                await ProjectService(session).close_slot("nonexistent-id", owner_user.id)

        assert exc_info.value.entity == "ProjectSlot"


# ---------------------------------------------------------------------------
# delete_project
# ---------------------------------------------------------------------------


class TestDeleteProject:
    async def test_children_are_removed(
        self, session_factory, specialty, owner_user, student_profile
    ) -> None:
        project_id = await _create(
            session_factory, specialty, owner_user, title="T", owner_position="attending"
        )
        async with session_factory() as session:
            service = ProjectService(session)
            slot = await service.add_slot(project_id, SlotPayloadFactory.build())
            await service.add_milestone(project_id, MilestonePayloadFactory.build())
        async with session_factory() as session:
            session.add(SlotAssignment(slot_id=slot.id, student_id=student_profile.id))
            await session.commit()

        async with session_factory() as session:
            await ProjectService(session).delete_project(project_id)

        async with session_factory() as session:
            for model in (Project, ProjectSlot, ProjectMilestone, ProjectOwner, SlotAssignment):
                assert await session.scalar(select(func.count()).select_from(model)) == 0
            # audit history outlives the project
            assert await session.scalar(select(func.count(AuditEvent.id))) == 1
