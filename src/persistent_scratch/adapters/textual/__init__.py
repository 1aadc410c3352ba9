"""Textual host for persistent scratch buffers.

The runnable app lives in ``persistent_scratch.adapters.textual.app`` and is
imported lazily so the adapter can be used without a terminal.
"""

from .controller import (
    PROJECT_MARKERS,
    TextualScratchAdapter,
    TextualUIHooks,
    find_project_name,
)

__all__ = [
    "PROJECT_MARKERS",
    "TextualScratchAdapter",
    "TextualUIHooks",
    "find_project_name",
]
