"""Factory Boy model factories for test data generation.

Available factories
-------------------
UserFactory              — user dict (role 'owner')
AdminUserFactory         — admin user dict
StudentProfileFactory    — student profile dict
SpecialtyFactory         — specialty board dict
ProjectPayloadFactory    — project creation payload (active)
SlotPayloadFactory       — slot creation payload
MilestonePayloadFactory  — milestone creation payload
"""

from __future__ import annotations

from tests.factories.projects import (
    MilestonePayloadFactory,
    ProjectPayloadFactory,
    SlotPayloadFactory,
    SpecialtyFactory,
)
from tests.factories.users import AdminUserFactory, StudentProfileFactory, UserFactory

__all__ = [
    "AdminUserFactory",
    "MilestonePayloadFactory",
    "ProjectPayloadFactory",
    "SlotPayloadFactory",
    "SpecialtyFactory",
    "StudentProfileFactory",
    "UserFactory",
]
