"""structlog setup shared by the API, the scripts and the tests.

``configure_logging(level)`` installs one stdout handler on the root
logger whose formatter is a ``structlog.stdlib.ProcessorFormatter``.
structlog loggers and plain ``logging`` loggers (SQLAlchemy, uvicorn)
therefore pass through the same processors and renderer:

- ``DEBUG``: coloured console lines for local work.
- anything else: one JSON object per line.

Services log like this::

    logger = structlog.get_logger(__name__)
    logger.info("application_accepted", application_id=str(app.id))

The request middleware in ``api/main.py`` stores the caller's user id in
``caller_id_var``; every record written while that request runs carries it
as ``caller_id``.  Values of keys that name contact details, CV links or
credentials are replaced with ``[REDACTED]``.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

caller_id_var: ContextVar[str | None] = ContextVar("caller_id", default=None)

REDACTED = "[REDACTED]"

_SENSITIVE_KEY_PARTS = (
    "email",
    "cv_url",
    "portfolio_url",
    "biosketch",
    "token",
    "password",
    "authorization",
)

# Libraries that are chatty at INFO; kept at WARNING outside DEBUG.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


def _redact_pii(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Mask sensitive values at the top level and one dict level down."""
    for key, value in list(event_dict.items()):
        if _is_sensitive(key):
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: REDACTED if _is_sensitive(k) else v for k, v in value.items()
            }
    return event_dict


def _add_caller_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    caller_id = caller_id_var.get()
    if caller_id is not None:
        event_dict.setdefault("caller_id", caller_id)
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _add_caller_id,
        _redact_pii,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog and stdlib logging to stdout at *log_level*.

    Records carry ``timestamp``, ``level``, ``logger`` and ``event``.
    Calling it again replaces the handler instead of adding a second one.

    Args:
        log_level: Standard level name, case-insensitive.  Unknown names
            mean INFO.
    """
    level_name = log_level.upper()
    console = level_name == "DEBUG"
    pre_chain = _pre_chain()

    renderer: Processor = (
        structlog.dev.ConsoleRenderer(colors=True)
        if console
        else structlog.processors.JSONRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET if console else logging.WARNING)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
