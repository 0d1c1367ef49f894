"""SQLAlchemy ORM models for the research board.

All models are imported here so that:
1. Alembic autogenerate can discover them via Base.metadata.
2. Application code can do `from research_board.core.models import Project`
   without knowing which sub-module a model lives in.
3. SQLAlchemy's relationship resolution finds all mapper targets at
   import time, avoiding "mapper not yet configured" errors.
"""

from __future__ import annotations

from research_board.core.models.base import (
    Base,
    CreatedAtMixin,
    StringList,
    UUIDPrimaryKeyMixin,
)
from research_board.core.models.audit import AuditAction, AuditEvent
from research_board.core.models.project import (
    IrbStatus,
    MilestoneStatus,
    Project,
    ProjectMilestone,
    ProjectOwner,
    ProjectResource,
    ProjectStatus,
    ResourceType,
)
from research_board.core.models.slots import (
    ApplicationStatus,
    ProjectSlot,
    SlotApplication,
    SlotAssignment,
    SlotStatus,
)
from research_board.core.models.specialty import Specialty
from research_board.core.models.users import (
    ResearcherPosition,
    ResearcherProfile,
    StudentProfile,
    User,
    UserRole,
)

__all__ = [
    # Base
    "Base",
    "CreatedAtMixin",
    "StringList",
    "UUIDPrimaryKeyMixin",
    # Users
    "User",
    "UserRole",
    "ResearcherPosition",
    "ResearcherProfile",
    "StudentProfile",
    # Boards
    "Specialty",
    # Projects
    "Project",
    "ProjectStatus",
    "IrbStatus",
    "ProjectOwner",
    "ProjectMilestone",
    "MilestoneStatus",
    "ProjectResource",
    "ResourceType",
    # Slots
    "ProjectSlot",
    "SlotStatus",
    "SlotApplication",
    "ApplicationStatus",
    "SlotAssignment",
    # Audit
    "AuditEvent",
    "AuditAction",
]
