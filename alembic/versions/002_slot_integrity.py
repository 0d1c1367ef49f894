"""Slot integrity: one pending application per student and slot, slot re-opening.

1. ``uq_slot_applications_pending``: partial unique index on
   ``slot_applications (slot_id, student_id)`` over ``status = 'submitted'``,
   so two concurrent ``apply`` calls cannot both leave a pending row.
2. ``trg_slot_assignments_reopen_slot``: when an assignment row is deleted
   (including by the ``student_profiles`` cascade), an ``assigned`` slot
   goes back to ``open``.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from research_board.core.models.slots import (
    REOPEN_SLOT_DDL_POSTGRESQL,
    REOPEN_SLOT_DDL_SQLITE,
    REOPEN_SLOT_TRIGGER,
)

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PENDING = sa.text("status = 'submitted'")


def upgrade() -> None:
    op.create_index(
        "uq_slot_applications_pending",
        "slot_applications",
        ["slot_id", "student_id"],
        unique=True,
        postgresql_where=_PENDING,
        sqlite_where=_PENDING,
    )

    dialect = op.get_context().dialect.name
    statements = REOPEN_SLOT_DDL_POSTGRESQL if dialect == "postgresql" else REOPEN_SLOT_DDL_SQLITE
    for statement in statements:
        op.execute(statement)


def downgrade() -> None:
    if op.get_context().dialect.name == "postgresql":
        op.execute(f"DROP TRIGGER IF EXISTS {REOPEN_SLOT_TRIGGER} ON slot_assignments")
        op.execute("DROP FUNCTION IF EXISTS reopen_slot_after_unassign()")
    else:
        op.execute(f"DROP TRIGGER IF EXISTS {REOPEN_SLOT_TRIGGER}")
    op.drop_index("uq_slot_applications_pending", table_name="slot_applications")
