"""Adapter boundary types for syncing scratch buffers with host widgets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from .state import Location


@dataclass(slots=True)
class BufferMirror:
    """Host-friendly snapshot describing the current buffer state."""

    name: str
    text: str
    cursor_offset: int
    mode_id: str
    version: int = 0
    attributes: dict[str, str] = field(default_factory=dict)


class BufferSync(Protocol):
    """How adapters exchange data with the buffer layer."""

    def pull_buffer(self) -> Optional[BufferMirror]:
        """Return the buffer snapshot the host should render, if any."""
        ...

    def push_host_edit(self, text: str, location: Location) -> None:
        """Submit the host widget's current text and (row, col) cursor."""
        ...


class BufferValidationError(RuntimeError):
    """Raised when a host supplies an out-of-range cursor position."""

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset
