"""Buffer lifecycle: restore on first access, flush on close and on events."""

from .controller import (
    FLUSH_HOOK_KEY,
    BufferFactory,
    ModeSupplier,
    ScratchController,
    build_controller,
    display_name,
)
from .scratch_mode import ScratchMode

__all__ = [
    "FLUSH_HOOK_KEY",
    "BufferFactory",
    "ModeSupplier",
    "ScratchController",
    "ScratchMode",
    "build_controller",
    "display_name",
]
