"""FastAPI dependency injection providers.

Provides the per-request database session, the calling user and the
role / ownership guards shared by the route modules.

Authentication happens upstream: the auth proxy sets the header named by
``Settings.caller_id_header`` (``X-User-Id`` by default) to the user's
UUID.  This module only resolves that id to a ``User`` row.

Dependency hierarchy::

    get_db              — one AsyncSession per request
    get_optional_caller — None when no caller header is sent
    get_caller          — requires a known user id in the caller header
    require_admin       — additionally requires role='admin'
"""

from __future__ import annotations

import uuid
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from research_board.config.settings import get_settings
from research_board.core.database import translate_store_errors
from research_board.core.models.users import StudentProfile, User, UserRole
from research_board.core.project_service import ProjectService

# ---------------------------------------------------------------------------
# Database session
# ---------------------------------------------------------------------------


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` from the factory built at startup.

    The factory lives on ``app.state.session_factory`` (see the lifespan in
    ``api/main.py``).  Services commit their own work; the session is
    closed when the request finishes.

    Yields:
        An open ``AsyncSession``.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


async def get_optional_caller(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[User]:
    """Return the calling ``User``, or ``None`` when the header is absent.

    Used on public read routes where the caller only widens what is shown
    (e.g. assignee identity on the project page).

    Raises:
        HTTPException 401: If the header is present but malformed or names
            no known user.
    """
    header_name = get_settings().caller_id_header
    raw = request.headers.get(header_name)
    if not raw:
        return None
    return await _resolve_caller(db, header_name, raw)


async def get_caller(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the caller header to a ``User``.

    Returns:
        The calling ``User``.

    Raises:
        HTTPException 401: If the header is missing, is not a UUID, or
            names no known user.
    """
    header_name = get_settings().caller_id_header
    raw = request.headers.get(header_name)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header_name} header.",
        )
    return await _resolve_caller(db, header_name, raw)


async def _resolve_caller(db: AsyncSession, header_name: str, raw: str) -> User:
    try:
        user_id = uuid.UUID(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Malformed {header_name} header.",
        ) from None

    async with translate_store_errors(db):
        user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user.",
        )
    return user


async def require_admin(
    caller: Annotated[User, Depends(get_caller)],
) -> User:
    """Require a caller with ``role='admin'``.

    Raises:
        HTTPException 403: If the caller is not an admin.
    """
    if caller.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required.",
        )
    return caller


# ---------------------------------------------------------------------------
# Ownership guards
# ---------------------------------------------------------------------------


async def can_manage_project(
    service: ProjectService,
    project_id: uuid.UUID,
    caller: User,
) -> bool:
    """Return whether *caller* is an admin or an owner of the project."""
    if caller.role == UserRole.ADMIN.value:
        return True
    return await service.is_owner(project_id, caller.id)


async def ensure_project_manager(
    service: ProjectService,
    project_id: uuid.UUID,
    caller: User,
) -> None:
    """Raise HTTP 403 unless *caller* may manage the project.

    Call after the project has been looked up, so a missing project
    reports 404 rather than 403.

    Raises:
        HTTPException 403: If the caller is neither admin nor owner.
    """
    if not await can_manage_project(service, project_id, caller):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to manage this project.",
        )


def ensure_acting_for_student(student: StudentProfile, caller: User) -> None:
    """Raise HTTP 403 unless *caller* is the student's own user or an admin.

    Raises:
        HTTPException 403: If the caller acts for someone else.
    """
    if caller.role == UserRole.ADMIN.value:
        return
    if student.user_id != caller.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You may only act on your own student profile.",
        )
