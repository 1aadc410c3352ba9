"""Cursor, mode, and change tracking state for scratch buffers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

Location = Tuple[int, int]  # (row, column), used by line-oriented hosts


@dataclass(slots=True)
class BufferState:
    """Per-buffer state persisted next to the text (except the directory)."""

    cursor_offset: int = 0
    mode_id: str = "fundamental"
    working_directory: Optional[str] = None
    last_change_tick: int = 0

    def set_cursor(self, offset: int) -> None:
        self.cursor_offset = offset

    def set_mode(self, mode_id: str) -> None:
        self.mode_id = mode_id
