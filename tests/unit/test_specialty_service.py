"""Unit tests for SpecialtyService.

Tests use a mocked AsyncSession so they run without any database.  They
cover how the three listing queries are merged into summaries and the
fail-closed behaviour when the store is unreachable.

The same listing against a real SQLite database is exercised in
tests/integration/test_board_listing.py.
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from research_board.core.exceptions import ConflictError, NotFoundError, StoreUnavailableError
from research_board.core.specialty_service import SpecialtyService


# ---------------------------------------------------------------------------
# Mock session factory
# ---------------------------------------------------------------------------


def _specialty(name: str, slug: str, display_order: int) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        slug=slug,
        display_order=display_order,
        is_active=True,
    )


def _make_mock_session(
    specialties: list[SimpleNamespace],
    project_counts: list[tuple[uuid.UUID, int]],
    open_slot_counts: list[tuple[uuid.UUID, int]],
) -> MagicMock:
    """Build a mock AsyncSession whose execute() replays the listing queries.

    ``list_active_with_counts()`` executes, in order:
    1. SELECT specialties           → scalars().all()
    2. COUNT projects per specialty → all()
    3. COUNT open slots per board   → all()
    """
    specialties_result = MagicMock()
    specialties_result.scalars.return_value.all.return_value = specialties
    projects_result = MagicMock()
    projects_result.all.return_value = project_counts
    slots_result = MagicMock()
    slots_result.all.return_value = open_slot_counts

    session = MagicMock()
    session.execute = AsyncMock(side_effect=[specialties_result, projects_result, slots_result])
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


def _unreachable_session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock(
        side_effect=OperationalError("SELECT 1", {}, ConnectionRefusedError("refused"))
    )
    session.rollback = AsyncMock()
    return session


# ---------------------------------------------------------------------------
# list_active_with_counts()
# ---------------------------------------------------------------------------


class TestListActiveWithCounts:
    async def test_counts_are_attached_per_specialty(self) -> None:
        rad = _specialty("Radiation Oncology", "radiation-oncology", 1)
        med = _specialty("Medical Oncology", "medical-oncology", 2)
        session = _make_mock_session(
            [rad, med],
            project_counts=[(rad.id, 3), (med.id, 1)],
            open_slot_counts=[(rad.id, 5)],
        )

        summaries = await SpecialtyService(session).list_active_with_counts()

        assert [s.specialty.slug for s in summaries] == ["radiation-oncology", "medical-oncology"]
        assert (summaries[0].project_count, summaries[0].open_slot_count) == (3, 5)
        assert (summaries[1].project_count, summaries[1].open_slot_count) == (1, 0)

    async def test_board_without_projects_reports_zero(self) -> None:
        empty = _specialty("Pathology", "pathology", 1)
        session = _make_mock_session([empty], project_counts=[], open_slot_counts=[])

        summaries = await SpecialtyService(session).list_active_with_counts()

        assert len(summaries) == 1
        assert summaries[0].project_count == 0
        assert summaries[0].open_slot_count == 0

    async def test_three_queries_regardless_of_board_count(self) -> None:
        boards = [_specialty(f"Board {i}", f"board-{i}", i) for i in range(25)]
        session = _make_mock_session(boards, project_counts=[], open_slot_counts=[])

        await SpecialtyService(session).list_active_with_counts()

        assert session.execute.await_count == 3

    async def test_store_unavailable_returns_empty_list(self) -> None:
        """The landing listing fails closed instead of raising."""
        summaries = await SpecialtyService(_unreachable_session()).list_active_with_counts()

        assert summaries == []


# ---------------------------------------------------------------------------
# Lookups and creation
# ---------------------------------------------------------------------------


class TestLookups:
    async def test_get_by_slug_missing_raises_not_found(self) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        with pytest.raises(NotFoundError) as exc_info:
            await SpecialtyService(session).get_by_slug("no-such-board")

        assert exc_info.value.entity == "Specialty"
        assert exc_info.value.key == "no-such-board"

    async def test_get_by_slug_store_unavailable_propagates(self) -> None:
        """Only the listing fails closed; lookups report the outage."""
        with pytest.raises(StoreUnavailableError):
            await SpecialtyService(_unreachable_session()).get_by_slug("radiation-oncology")


class TestCreate:
    async def test_duplicate_slug_becomes_conflict(self) -> None:
        session = MagicMock()
        session.add = MagicMock()
        session.commit = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        )
        session.rollback = AsyncMock()

        with pytest.raises(ConflictError):
            await SpecialtyService(session).create({"name": "Radiology", "slug": "radiology"})

        session.rollback.assert_awaited_once()
