#!/usr/bin/env python
"""Seed the default specialty boards.

Run after the database has been initialised (Alembic migrations applied)
so the landing page has boards to show.

Usage::

    python scripts/seed_specialties.py

Environment variables (via .env or shell)::

    DATABASE_URL   Async SQLAlchemy URL of the board database.

Idempotent: boards whose slug already exists are left untouched, so the
script can be re-run after adding entries to ``DEFAULT_SPECIALTIES``.

Exit codes:
    0 — Success (boards created or already present).
    1 — Database unavailable or a board could not be created.
"""

from __future__ import annotations

import asyncio
import os
import sys

# Ensure the src layout is on sys.path when running as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)

DEFAULT_SPECIALTIES: list[tuple[str, str]] = [
    ("Orthopaedic Oncology", "orthopaedic-oncology"),
    ("Medical Oncology", "medical-oncology"),
    ("Radiation Oncology", "radiation-oncology"),
    ("Surgical Oncology", "surgical-oncology"),
    ("Pediatric Oncology", "pediatric-oncology"),
    ("Musculoskeletal Pathology", "pathology"),
    ("Musculoskeletal Radiology", "radiology"),
]
"""(name, slug) pairs in board display order."""


async def seed(session_factory) -> tuple[list[str], list[str]]:  # type: ignore[no-untyped-def]
    """Create every missing default board.

    Args:
        session_factory: An ``async_sessionmaker`` for the target database.

    Returns:
        ``(created_slugs, skipped_slugs)``.
    """
    from sqlalchemy import select  # noqa: PLC0415

    from research_board.core.database import translate_store_errors  # noqa: PLC0415
    from research_board.core.models.specialty import Specialty  # noqa: PLC0415
    from research_board.core.specialty_service import SpecialtyService  # noqa: PLC0415

    created: list[str] = []
    skipped: list[str] = []
    async with session_factory() as session:
        async with translate_store_errors(session):
            result = await session.execute(select(Specialty.slug))
        existing = set(result.scalars().all())
        service = SpecialtyService(session)
        for display_order, (name, slug) in enumerate(DEFAULT_SPECIALTIES, start=1):
            if slug in existing:
                skipped.append(slug)
                continue
            await service.create(
                {"name": name, "slug": slug, "display_order": display_order}
            )
            created.append(slug)
    return created, skipped


async def _seed_from_settings() -> None:
    """Seed the database named by the application settings.

    Raises:
        SystemExit: With code 1 if the store is unavailable or a board
            conflicts with an existing one.
    """
    from research_board.config.settings import get_settings  # noqa: PLC0415
    from research_board.core.database import (  # noqa: PLC0415
        build_engine,
        build_session_factory,
    )
    from research_board.core.exceptions import ResearchBoardError  # noqa: PLC0415
    from research_board.core.logging_config import configure_logging  # noqa: PLC0415

    settings = get_settings()
    configure_logging(settings.log_level)
    engine = build_engine(settings.database_url, echo=settings.database_echo)
    try:
        created, skipped = await seed(build_session_factory(engine))
    except ResearchBoardError as exc:
        print(f"[seed_specialties] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        await engine.dispose()

    for slug in created:
        print(f"[seed_specialties] Created board '{slug}'.")
    if skipped:
        print(f"[seed_specialties] Already present: {', '.join(skipped)}")
    print("[seed_specialties] Done.")


def main() -> None:
    """Entry point for the seed script."""
    asyncio.run(_seed_from_settings())


if __name__ == "__main__":
    main()
