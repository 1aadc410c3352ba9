"""Scratch buffer abstractions shared by the engine and host adapters."""

from .buffer import CloseHook, ScratchBuffer, Transaction
from .document import BufferDocument
from .state import BufferState, Location
from .sync import BufferMirror, BufferSync, BufferValidationError
from .validation import clamp_offset, ensure_offset

__all__ = [
    "BufferDocument",
    "BufferState",
    "Location",
    "ScratchBuffer",
    "CloseHook",
    "Transaction",
    "BufferMirror",
    "BufferSync",
    "BufferValidationError",
    "clamp_offset",
    "ensure_offset",
]
