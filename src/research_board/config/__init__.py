"""Configuration package for the research board.

Re-exports the settings symbols so that callers can write::

    from research_board.config import get_settings
"""

from __future__ import annotations

from research_board.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
