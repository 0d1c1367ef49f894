"""Initial schema: users, profiles, boards, projects, slots and audit trail.

Creates the complete research board schema in FK-dependency order:

1. users                 — identity mirrored from the auth provider
2. researcher_profiles   — researcher details (FK → users)
3. student_profiles      — volunteer student details (FK → users)
4. specialties           — top-level boards
5. projects              — research initiatives (FK → specialties)
6. project_owners        — project ↔ researcher links (FK → projects, users)
7. project_slots         — student roles on a project (FK → projects)
8. slot_applications     — student requests for a slot (FK → project_slots, student_profiles, users)
9. slot_assignments      — one student per slot (FK → project_slots, student_profiles)
10. project_milestones   — ordered checkpoints (FK → projects)
11. project_resources    — reference links (FK → projects)
12. audit_events         — append-only action log (FK → users)

Every child FK is ON DELETE CASCADE, so deleting a specialty removes its
projects and, transitively, their slots, applications, assignments,
milestones, resources and owner links.

UNIQUE(slot_assignments.slot_id) is what makes double assignment of a slot
impossible under concurrent acceptors.  Do not drop it.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


# ---------------------------------------------------------------------------
# upgrade
# ---------------------------------------------------------------------------

def upgrade() -> None:
    """Create all tables and indexes."""

    # ------------------------------------------------------------------
    # 1. users
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        _created_at(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ------------------------------------------------------------------
    # 2. researcher_profiles
    # ------------------------------------------------------------------
    op.create_table(
        "researcher_profiles",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.String(20), nullable=False),
        sa.Column("specialty", sa.String(200), nullable=False),
        sa.Column("department", sa.String(200), nullable=True),
        sa.Column("institution", sa.String(200), nullable=True, server_default=sa.text("'UM/JMH'")),
        sa.Column("irb_training_exp", sa.Date, nullable=True),
        sa.Column("mentorship_focus", sa.Text, nullable=True),
        sa.Column("biosketch_url", sa.Text, nullable=True),
    )
    op.create_index("ix_researcher_profiles_user_id", "researcher_profiles", ["user_id"])

    # ------------------------------------------------------------------
    # 3. student_profiles
    # ------------------------------------------------------------------
    op.create_table(
        "student_profiles",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("year_program", sa.String(100), nullable=False),
        sa.Column("skills", JSONB, nullable=True),
        sa.Column("interests", JSONB, nullable=True),
        sa.Column("weekly_hours", sa.String(50), nullable=True),
        sa.Column("availability", sa.Text, nullable=True),
        sa.Column("irb_training_exp", sa.Date, nullable=True),
        sa.Column("cv_url", sa.Text, nullable=True),
        sa.Column("portfolio_url", sa.Text, nullable=True),
    )
    op.create_index("ix_student_profiles_user_id", "student_profiles", ["user_id"])

    # ------------------------------------------------------------------
    # 4. specialties
    # ------------------------------------------------------------------
    op.create_table(
        "specialties",
        _uuid_pk(),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("display_order", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_specialties_slug", "specialties", ["slug"], unique=True)

    # ------------------------------------------------------------------
    # 5. projects
    # ------------------------------------------------------------------
    op.create_table(
        "projects",
        _uuid_pk(),
        sa.Column(
            "specialty_id",
            sa.UUID(),
            sa.ForeignKey("specialties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("deliverables", JSONB, nullable=True),
        sa.Column("irb_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("irb_number", sa.String(100), nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("target_date", sa.Date, nullable=True),
        sa.Column("progress_pct", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'draft'")),
        _created_at(),
        sa.CheckConstraint(
            "progress_pct >= 0 AND progress_pct <= 100",
            name="ck_projects_progress_pct_range",
        ),
    )
    op.create_index("ix_projects_specialty_status", "projects", ["specialty_id", "status"])

    # ------------------------------------------------------------------
    # 6. project_owners
    # ------------------------------------------------------------------
    op.create_table(
        "project_owners",
        _uuid_pk(),
        sa.Column("project_id", sa.UUID(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_position", sa.String(20), nullable=False),
    )
    op.create_index("ix_project_owners_project_id", "project_owners", ["project_id"])
    op.create_index("ix_project_owners_user_id", "project_owners", ["user_id"])

    # ------------------------------------------------------------------
    # 7. project_slots
    # ------------------------------------------------------------------
    op.create_table(
        "project_slots",
        _uuid_pk(),
        sa.Column("project_id", sa.UUID(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_name", sa.Text, nullable=False),
        sa.Column("est_hours", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'open'")),
        sa.Column("description", sa.Text, nullable=True),
    )
    op.create_index("ix_project_slots_project_status", "project_slots", ["project_id", "status"])

    # ------------------------------------------------------------------
    # 8. slot_applications
    # ------------------------------------------------------------------
    op.create_table(
        "slot_applications",
        _uuid_pk(),
        sa.Column(
            "slot_id",
            sa.UUID(),
            sa.ForeignKey("project_slots.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "student_id",
            sa.UUID(),
            sa.ForeignKey("student_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'submitted'")),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("cv_url_snapshot", sa.Text, nullable=True),
        sa.Column(
            "submitted_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("decided_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "decided_by_user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_slot_applications_slot_id", "slot_applications", ["slot_id"])
    op.create_index("ix_slot_applications_student_id", "slot_applications", ["student_id"])

    # ------------------------------------------------------------------
    # 9. slot_assignments
    # ------------------------------------------------------------------
    op.create_table(
        "slot_assignments",
        _uuid_pk(),
        sa.Column(
            "slot_id",
            sa.UUID(),
            sa.ForeignKey("project_slots.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "student_id",
            sa.UUID(),
            sa.ForeignKey("student_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "assigned_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("note", sa.Text, nullable=True),
        sa.UniqueConstraint("slot_id", name="uq_slot_assignments_slot_id"),
    )
    op.create_index("ix_slot_assignments_student_id", "slot_assignments", ["student_id"])

    # ------------------------------------------------------------------
    # 10. project_milestones
    # ------------------------------------------------------------------
    op.create_table(
        "project_milestones",
        _uuid_pk(),
        sa.Column("project_id", sa.UUID(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'todo'")),
        sa.Column("due_date", sa.Date, nullable=True),
        sa.Column("order_index", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("completion_pct", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint(
            "completion_pct >= 0 AND completion_pct <= 100",
            name="ck_project_milestones_completion_pct_range",
        ),
    )
    op.create_index("ix_project_milestones_project_id", "project_milestones", ["project_id"])

    # ------------------------------------------------------------------
    # 11. project_resources
    # ------------------------------------------------------------------
    op.create_table(
        "project_resources",
        _uuid_pk(),
        sa.Column("project_id", sa.UUID(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("label", sa.Text, nullable=True),
    )
    op.create_index("ix_project_resources_project_id", "project_resources", ["project_id"])

    # ------------------------------------------------------------------
    # 12. audit_events
    # ------------------------------------------------------------------
    op.create_table(
        "audit_events",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("context", sa.Text, nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_events_user_created", "audit_events", ["user_id", "created_at"])


# ---------------------------------------------------------------------------
# downgrade
# ---------------------------------------------------------------------------

def downgrade() -> None:
    """Drop all tables created by this migration in reverse dependency order."""
    op.drop_table("audit_events")
    op.drop_table("project_resources")
    op.drop_table("project_milestones")
    op.drop_table("slot_assignments")
    op.drop_table("slot_applications")
    op.drop_table("project_slots")
    op.drop_table("project_owners")
    op.drop_table("projects")
    op.drop_table("specialties")
    op.drop_table("student_profiles")
    op.drop_table("researcher_profiles")
    op.drop_table("users")
