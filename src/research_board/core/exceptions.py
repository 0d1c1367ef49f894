"""Application-wide exception hierarchy for the research board.

All custom exceptions subclass ``ResearchBoardError``, enabling
consistent error handling and structured logging across the application.
Services raise them; the HTTP layer maps each kind to a status code.

Hierarchy::

    ResearchBoardError
    ├── NotFoundError          (entity, key)
    ├── ValidationError        (field, reason)
    ├── ConflictError
    └── StoreUnavailableError
"""

from __future__ import annotations

from typing import Any


class ResearchBoardError(Exception):
    """Base class for all research board exceptions.

    ``kind`` is a stable machine-readable name used in API error bodies.
    """

    kind: str = "error"


class NotFoundError(ResearchBoardError):
    """Raised when a lookup by id or slug yields no row.

    Args:
        entity: Model name that was looked up (e.g. ``"Project"``).
        key: The id or slug that did not match.
    """

    kind = "not_found"

    def __init__(self, entity: str, key: Any) -> None:
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class ValidationError(ResearchBoardError):
    """Raised when input is missing a required field, uses a value outside
    an enumerated set, or carries a malformed date.

    Not to be confused with :class:`pydantic.ValidationError`; services
    convert the pydantic error into this one at the store boundary.

    Args:
        reason: Human-readable description of the problem.
        field: Name of the offending field, when a single one is at fault.
    """

    kind = "validation_error"

    def __init__(self, reason: str, field: str | None = None) -> None:
        msg = f"Invalid {field}: {reason}" if field else reason
        super().__init__(msg)
        self.field = field
        self.reason = reason


class ConflictError(ResearchBoardError):
    """Raised when a write would violate a uniqueness or state invariant,
    e.g. a second assignment for the same slot or accepting an application
    that was already decided.
    """

    kind = "conflict"


class StoreUnavailableError(ResearchBoardError):
    """Raised when the relational store cannot be reached or times out.

    The data layer never retries; read-only aggregate listings catch this
    and return an empty result, write paths let it propagate.
    """

    kind = "store_unavailable"
