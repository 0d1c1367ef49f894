"""Project listing, detail retrieval and mutation.

Read paths
----------
- ``list_active_projects``: active projects on one board with per-project
  ``total_slots`` / ``open_slots``.  Slot stats for all listed projects come
  from a single grouped query.
- ``get_project_detail``: the project page.  Slots, milestones, resources
  and the slot→assignment map are fetched with a fixed number of queries;
  assignments are looked up for the whole slot-id set in one ``IN`` query.

Write paths
-----------
Every mutation validates its payload through the request schemas in
:mod:`research_board.core.schemas.project` (which own the deliverable and
blank-to-NULL normalisation), applies the change, stages any audit event
and commits once.  Errors always propagate to the caller.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import case, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.core.audit_service import AuditService
from research_board.core.database import coerce_id, translate_store_errors
from research_board.core.exceptions import ConflictError, NotFoundError
from research_board.core.models.audit import AuditAction
from research_board.core.models.base import utcnow
from research_board.core.models.project import (
    Project,
    ProjectMilestone,
    ProjectOwner,
    ProjectResource,
    ProjectStatus,
)
from research_board.core.models.slots import (
    ApplicationStatus,
    ProjectSlot,
    SlotApplication,
    SlotAssignment,
    SlotStatus,
)
from research_board.core.models.specialty import Specialty
from research_board.core.schemas.common import parse_payload
from research_board.core.schemas.project import (
    MilestoneCreate,
    MilestoneRead,
    MilestoneUpdate,
    OwnerCreate,
    ProjectCreate,
    ProjectDetailRead,
    ProjectRead,
    ProjectSummary,
    ProjectUpdate,
    ResourceCreate,
    ResourceRead,
    SlotCreate,
    SlotRead,
)

logger = structlog.get_logger(__name__)


@dataclass
class ProjectDetail:
    """Everything the project page needs, as loaded ORM rows.

    Attributes:
        project: The project.
        slots: All slots of the project, in no particular order.
        milestones: Milestones ascending by ``order_index``.
        resources: All resources, in no particular order.
        assignments_by_slot: Slot id → its assignment, for assigned slots only.
    """

    project: Project
    slots: list[ProjectSlot] = field(default_factory=list)
    milestones: list[ProjectMilestone] = field(default_factory=list)
    resources: list[ProjectResource] = field(default_factory=list)
    assignments_by_slot: dict[uuid.UUID, SlotAssignment] = field(default_factory=dict)

    def to_read(self, *, include_assignees: bool = False) -> ProjectDetailRead:
        """Serialise for a caller.

        Args:
            include_assignees: Expose which student holds each assigned
                slot.  The caller decides who may see this.
        """
        slots: list[SlotRead] = []
        for slot in self.slots:
            assignment = self.assignments_by_slot.get(slot.id)
            slot_read = SlotRead.model_validate(slot)
            slot_read.has_assignment = assignment is not None
            if include_assignees and assignment is not None:
                slot_read.assigned_student_id = assignment.student_id
            slots.append(slot_read)
        return ProjectDetailRead(
            project=ProjectRead.model_validate(self.project),
            slots=slots,
            milestones=[MilestoneRead.model_validate(m) for m in self.milestones],
            resources=[ResourceRead.model_validate(r) for r in self.resources],
        )


class ProjectService:
    """Project queries and mutations.

    Args:
        session: An open :class:`sqlalchemy.ext.asyncio.AsyncSession`.
            The service commits on it after each successful mutation.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.audit = AuditService(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_project(self, project_id: uuid.UUID) -> Project:
        """Return the project with *project_id*.

        Raises:
            NotFoundError: If it does not exist.
        """
        async with translate_store_errors(self.session):
            project = await self.session.get(Project, coerce_id("Project", project_id))
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def get_milestone(self, milestone_id: uuid.UUID) -> ProjectMilestone:
        async with translate_store_errors(self.session):
            milestone = await self.session.get(
                ProjectMilestone, coerce_id("ProjectMilestone", milestone_id)
            )
        if milestone is None:
            raise NotFoundError("ProjectMilestone", milestone_id)
        return milestone

    async def is_owner(self, project_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Return whether *user_id* is listed as an owner of the project."""
        stmt = select(
            exists().where(
                ProjectOwner.project_id == project_id,
                ProjectOwner.user_id == user_id,
            )
        )
        async with translate_store_errors(self.session):
            result = await self.session.execute(stmt)
        return bool(result.scalar())

    # ------------------------------------------------------------------
    # Board listing
    # ------------------------------------------------------------------

    async def list_active_projects(self, specialty_id: uuid.UUID) -> list[ProjectSummary]:
        """Return the board's active projects with their slot statistics.

        Args:
            specialty_id: Board to list.

        Returns:
            One :class:`ProjectSummary` per active project, oldest first.
            Projects without slots report ``0 / 0``.
        """
        stmt = (
            select(Project)
            .where(Project.specialty_id == specialty_id)
            .where(Project.status == ProjectStatus.ACTIVE.value)
            .order_by(Project.created_at.asc(), Project.title.asc())
        )
        async with translate_store_errors(self.session):
            result = await self.session.execute(stmt)
            projects = list(result.scalars().all())
            stats = await self._slot_stats([p.id for p in projects])

        summaries = []
        for project in projects:
            total, open_ = stats.get(project.id, (0, 0))
            summaries.append(
                ProjectSummary(
                    project=ProjectRead.model_validate(project),
                    total_slots=total,
                    open_slots=open_,
                )
            )
        return summaries

    async def _slot_stats(
        self, project_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, tuple[int, int]]:
        """Return ``{project_id: (total_slots, open_slots)}`` in one query."""
        if not project_ids:
            return {}
        open_flag = case((ProjectSlot.status == SlotStatus.OPEN.value, 1), else_=0)
        stmt = (
            select(
                ProjectSlot.project_id,
                func.count(ProjectSlot.id),
                func.coalesce(func.sum(open_flag), 0),
            )
            .where(ProjectSlot.project_id.in_(project_ids))
            .group_by(ProjectSlot.project_id)
        )
        result = await self.session.execute(stmt)
        return {
            project_id: (int(total), int(open_))
            for project_id, total, open_ in result.all()
        }

    # ------------------------------------------------------------------
    # Project page
    # ------------------------------------------------------------------

    async def get_project_detail(self, project_id: uuid.UUID) -> ProjectDetail:
        """Load the project page.

        Raises:
            NotFoundError: If the project does not exist.
        """
        project = await self.get_project(project_id)

        async with translate_store_errors(self.session):
            slots_result = await self.session.execute(
                select(ProjectSlot).where(ProjectSlot.project_id == project.id)
            )
            slots = list(slots_result.scalars().all())

            milestones_result = await self.session.execute(
                select(ProjectMilestone)
                .where(ProjectMilestone.project_id == project.id)
                .order_by(ProjectMilestone.order_index.asc(), ProjectMilestone.name.asc())
            )
            milestones = list(milestones_result.scalars().all())

            resources_result = await self.session.execute(
                select(ProjectResource).where(ProjectResource.project_id == project.id)
            )
            resources = list(resources_result.scalars().all())

            assignments_by_slot: dict[uuid.UUID, SlotAssignment] = {}
            if slots:
                assignments_result = await self.session.execute(
                    select(SlotAssignment).where(
                        SlotAssignment.slot_id.in_([s.id for s in slots])
                    )
                )
                for assignment in assignments_result.scalars().all():
                    assignments_by_slot[assignment.slot_id] = assignment

        return ProjectDetail(
            project=project,
            slots=slots,
            milestones=milestones,
            resources=resources,
            assignments_by_slot=assignments_by_slot,
        )

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    async def create_project(
        self,
        specialty_id: uuid.UUID,
        fields: ProjectCreate | Mapping[str, Any],
        actor_id: uuid.UUID,
    ) -> uuid.UUID:
        """Create a project on a board and return its id.

        The creating user is recorded in a ``create_project`` audit event
        and, when ``owner_position`` is given, as a project owner.  Both are
        committed together with the project.

        Raises:
            ValidationError: If the payload is invalid (blank title, unknown
                IRB status, malformed date, ...).
            NotFoundError: If the specialty does not exist.
        """
        data = parse_payload(ProjectCreate, fields)

        async with translate_store_errors(self.session):
            specialty = await self.session.get(Specialty, coerce_id("Specialty", specialty_id))
        if specialty is None:
            raise NotFoundError("Specialty", specialty_id)

        values = data.model_dump(exclude={"owner_position"})
        project = Project(id=uuid.uuid4(), specialty_id=specialty.id, **values)

        async with translate_store_errors(self.session):
            self.session.add(project)
            if data.owner_position is not None:
                self.session.add(
                    ProjectOwner(
                        project_id=project.id,
                        user_id=actor_id,
                        owner_position=data.owner_position,
                    )
                )
            self.audit.record(
                actor_id,
                AuditAction.CREATE_PROJECT,
                context=f"project={project.id} specialty={specialty_id}",
            )
            await self.session.commit()

        logger.info(
            "project_created",
            project_id=str(project.id),
            specialty_id=str(specialty_id),
            status=project.status,
        )
        return project.id

    async def update_project(
        self,
        project_id: uuid.UUID,
        fields: ProjectUpdate | Mapping[str, Any],
    ) -> Project:
        """Apply a partial update and return the stored project.

        Only fields present in *fields* change.  ``specialty_id``,
        ``status`` and ``created_at`` cannot be changed here.

        Raises:
            ValidationError: If the payload is invalid.
            NotFoundError: If the project does not exist.
        """
        data = parse_payload(ProjectUpdate, fields)
        project = await self.get_project(project_id)

        changes = data.model_dump(exclude_unset=True)
        for name, value in changes.items():
            setattr(project, name, value)

        async with translate_store_errors(self.session):
            await self.session.commit()

        logger.info(
            "project_updated",
            project_id=str(project_id),
            fields=sorted(changes),
        )
        return project

    async def delete_project(self, project_id: uuid.UUID) -> None:
        """Delete a project; its slots, applications, assignments,
        milestones, resources and owner links go with it.

        Raises:
            NotFoundError: If the project does not exist.
        """
        project = await self.get_project(project_id)
        async with translate_store_errors(self.session):
            await self.session.delete(project)
            await self.session.commit()
        logger.info("project_deleted", project_id=str(project_id))

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    async def add_slot(
        self,
        project_id: uuid.UUID,
        fields: SlotCreate | Mapping[str, Any],
    ) -> ProjectSlot:
        """Add an open slot to the project."""
        data = parse_payload(SlotCreate, fields)
        project = await self.get_project(project_id)
        slot = ProjectSlot(
            project_id=project.id,
            status=SlotStatus.OPEN.value,
            **data.model_dump(),
        )
        async with translate_store_errors(self.session):
            self.session.add(slot)
            await self.session.commit()
        logger.info("slot_added", project_id=str(project_id), slot_id=str(slot.id))
        return slot

    async def close_slot(self, slot_id: uuid.UUID, actor_id: uuid.UUID) -> ProjectSlot:
        """Close an open slot so it takes no further applications.

        Applications still ``submitted`` for the slot are rejected in the
        same commit, with *actor_id* as the decider.

        Raises:
            NotFoundError: If the slot does not exist.
            ConflictError: If the slot is already assigned or closed.
        """
        async with translate_store_errors(self.session):
            slot = await self.session.get(ProjectSlot, coerce_id("ProjectSlot", slot_id))
        if slot is None:
            raise NotFoundError("ProjectSlot", slot_id)
        if slot.status != SlotStatus.OPEN.value:
            raise ConflictError(f"Slot {slot_id} is not open (status={slot.status})")

        slot.status = SlotStatus.CLOSED.value
        async with translate_store_errors(self.session):
            rejected = await self.session.execute(
                update(SlotApplication)
                .where(SlotApplication.slot_id == slot.id)
                .where(SlotApplication.status == ApplicationStatus.SUBMITTED.value)
                .values(
                    status=ApplicationStatus.REJECTED.value,
                    decided_at=utcnow(),
                    decided_by_user_id=actor_id,
                )
                .execution_options(synchronize_session="fetch")
            )
            await self.session.commit()

        logger.info(
            "slot_closed",
            slot_id=str(slot.id),
            applications_rejected=rejected.rowcount or 0,
        )
        return slot

    async def add_milestone(
        self,
        project_id: uuid.UUID,
        fields: MilestoneCreate | Mapping[str, Any],
    ) -> ProjectMilestone:
        data = parse_payload(MilestoneCreate, fields)
        project = await self.get_project(project_id)
        milestone = ProjectMilestone(project_id=project.id, **data.model_dump())
        async with translate_store_errors(self.session):
            self.session.add(milestone)
            await self.session.commit()
        return milestone

    async def add_resource(
        self,
        project_id: uuid.UUID,
        fields: ResourceCreate | Mapping[str, Any],
    ) -> ProjectResource:
        data = parse_payload(ResourceCreate, fields)
        project = await self.get_project(project_id)
        resource = ProjectResource(project_id=project.id, **data.model_dump())
        async with translate_store_errors(self.session):
            self.session.add(resource)
            await self.session.commit()
        return resource

    async def add_owner(
        self,
        project_id: uuid.UUID,
        fields: OwnerCreate | Mapping[str, Any],
    ) -> ProjectOwner:
        """Register a user as an owner of the project.

        Raises:
            NotFoundError: If the project does not exist.
            ConflictError: If the user does not exist.
        """
        data = parse_payload(OwnerCreate, fields)
        project = await self.get_project(project_id)
        owner = ProjectOwner(project_id=project.id, **data.model_dump())
        async with translate_store_errors(self.session):
            self.session.add(owner)
            await self.session.commit()
        return owner

    async def update_milestone(
        self,
        milestone_id: uuid.UUID,
        fields: MilestoneUpdate | Mapping[str, Any],
        actor_id: uuid.UUID,
    ) -> ProjectMilestone:
        """Apply a partial milestone update and record ``update_milestone``.

        Raises:
            ValidationError: If the payload is invalid.
            NotFoundError: If the milestone does not exist.
        """
        data = parse_payload(MilestoneUpdate, fields)
        milestone = await self.get_milestone(milestone_id)

        changes = data.model_dump(exclude_unset=True)
        for name, value in changes.items():
            setattr(milestone, name, value)

        async with translate_store_errors(self.session):
            self.audit.record(
                actor_id,
                AuditAction.UPDATE_MILESTONE,
                context=f"milestone={milestone_id} project={milestone.project_id}",
            )
            await self.session.commit()

        logger.info(
            "milestone_updated",
            milestone_id=str(milestone_id),
            fields=sorted(changes),
        )
        return milestone
