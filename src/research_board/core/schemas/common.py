"""Shared field normalisers for request schemas.

These run as ``mode="before"`` validators so that form-style input
(empty strings, comma-separated lists) is normalised before pydantic type
coercion.  The rule they enforce: optional text and date fields are stored
as NULL when blank, never as empty strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic

from research_board.core.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound=pydantic.BaseModel)


def parse_payload(schema: type[SchemaT], payload: SchemaT | Mapping[str, Any]) -> SchemaT:
    """Validate *payload* against *schema* at the store boundary.

    Already-built schema instances pass through untouched.  Mappings are
    validated, and a :class:`pydantic.ValidationError` is re-raised as the
    board's own :class:`ValidationError` naming the first offending field.
    Fields the mapping leaves out stay unset, so partial-update schemas
    keep their ``exclude_unset`` semantics.
    """
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(dict(payload))
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(first["msg"], field=field) from exc


def blank_to_none(value: Any) -> Any:
    """Coerce empty or whitespace-only strings to None; strip other strings."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def split_deliverables(value: Any) -> Any:
    """Normalise deliverables into an ordered list of non-empty strings.

    Accepts a comma-separated string (as typed into a form) or a list of
    strings.  Each entry is trimmed and empty entries are discarded;
    ``None`` and ``""`` both become an empty list.

    Examples::

        >>> split_deliverables(" a , b ,, c ")
        ['a', 'b', 'c']
        >>> split_deliverables(["poster", "  ", " manuscript"])
        ['poster', 'manuscript']
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple)):
        # Non-string entries are passed through for pydantic to reject.
        return [
            item.strip() if isinstance(item, str) else item
            for item in value
            if not isinstance(item, str) or item.strip()
        ]
    return value


def require_text(value: str) -> str:
    """Strip *value* and reject it when nothing is left."""
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped
