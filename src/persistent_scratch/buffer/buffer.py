"""In-memory scratch buffer combining document, state, and close hooks."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Callable, ContextManager, Dict, Optional

from persistent_scratch.runtime import telemetry

from .document import BufferDocument
from .state import BufferState, Location
from .sync import BufferMirror, BufferValidationError
from .validation import clamp_offset, ensure_offset

CloseHook = Callable[["ScratchBuffer"], None]


class ScratchBuffer:
    """Editable text owned by the host's editing surface.

    The persistence engine reads ``text``/``cursor_offset``/``mode_id`` when
    flushing and replaces them wholesale through ``load`` when restoring.
    ``close`` runs every registered close hook synchronously before the
    buffer is marked dead.
    """

    def __init__(
        self,
        *,
        name: str = "default",
        document: Optional[BufferDocument] = None,
        state: Optional[BufferState] = None,
    ) -> None:
        self.name = name
        self.document = document or BufferDocument()
        self.state = state or BufferState()
        self._close_hooks: Dict[str, CloseHook] = {}
        self._live = True
        self._closing = False

    @classmethod
    def from_text(
        cls, text: str, *, name: str = "default", mode_id: str = "fundamental"
    ) -> "ScratchBuffer":
        return cls(
            name=name,
            document=BufferDocument.from_text(text),
            state=BufferState(mode_id=mode_id),
        )

    @property
    def text(self) -> str:
        return self.document.text()

    @property
    def cursor_offset(self) -> int:
        return self.state.cursor_offset

    @property
    def mode_id(self) -> str:
        return self.state.mode_id

    @property
    def working_directory(self) -> Optional[str]:
        return self.state.working_directory

    @property
    def is_live(self) -> bool:
        return self._live

    @property
    def modified(self) -> bool:
        return self.document.dirty

    def mirror(self, *, attributes: Optional[dict[str, str]] = None) -> BufferMirror:
        return BufferMirror(
            name=self.name,
            text=self.text,
            cursor_offset=self.cursor_offset,
            mode_id=self.mode_id,
            version=self.document.version,
            attributes=dict(attributes or {}),
        )

    # Host-side editing ---------------------------------------------------

    def set_text(self, text: str, *, cursor_offset: Optional[int] = None) -> None:
        self._check_live()
        with Transaction(self, "set_text"):
            self.document = self.document.replace_text(text)
            offset = len(text) if cursor_offset is None else cursor_offset
            self.state.set_cursor(ensure_offset(text, offset))
            self.state.last_change_tick = self.document.version

    def insert_text(self, text: str, *, offset: Optional[int] = None) -> None:
        current = self.text
        position = ensure_offset(
            current, self.cursor_offset if offset is None else offset
        )
        self.set_text(
            current[:position] + text + current[position:],
            cursor_offset=position + len(text),
        )

    def move_cursor(self, offset: int) -> None:
        self._check_live()
        self.state.set_cursor(ensure_offset(self.text, offset))

    def set_mode(self, mode_id: str) -> None:
        self._check_live()
        if not mode_id:
            raise ValueError("mode_id cannot be empty")
        self.state.set_mode(mode_id)

    def set_working_directory(self, directory: Optional[str]) -> None:
        self.state.working_directory = directory

    # Persistence-side access ---------------------------------------------

    def load(self, text: str, cursor_offset: int, mode_id: str) -> None:
        """Replace text, cursor and mode wholesale, leaving the buffer clean."""

        self._check_live()
        with Transaction(self, "load"):
            self.document = self.document.replace_text(text, dirty=False)
            self.state.set_cursor(clamp_offset(text, cursor_offset))
            self.state.set_mode(mode_id)
            self.state.last_change_tick = self.document.version

    def mark_saved(self) -> None:
        self.document.mark_clean()

    # Location helpers for line-oriented hosts ----------------------------

    def location_for_offset(self, offset: int) -> Location:
        return _location_from_offset(self.document, clamp_offset(self.text, offset))

    def offset_for_location(self, location: Location) -> int:
        return _offset_for_location(self.document, location)

    # Close contract -------------------------------------------------------

    def add_close_hook(self, key: str, hook: CloseHook) -> None:
        """Register ``hook`` under ``key``; re-registering a key replaces it."""

        self._close_hooks[key] = hook

    def remove_close_hook(self, key: str) -> None:
        self._close_hooks.pop(key, None)

    def has_close_hook(self, key: str) -> bool:
        return key in self._close_hooks

    def close(self) -> None:
        """Run close hooks in registration order, then release the buffer.

        Hooks see a live buffer. A hook that raises aborts the close and the
        buffer stays live.
        """

        if not self._live or self._closing:
            return
        self._closing = True
        try:
            with telemetry.span(
                name="buffer::close",
                component="buffer",
                metadata={"buffer": self.name},
            ):
                for hook in list(self._close_hooks.values()):
                    hook(self)
            self._live = False
            self._close_hooks.clear()
        finally:
            self._closing = False

    def _check_live(self) -> None:
        if not self._live:
            raise RuntimeError(f"Scratch buffer '{self.name}' is closed")

    def __repr__(self) -> str:
        state = "live" if self._live else "closed"
        return (
            f"ScratchBuffer(name={self.name!r}, mode={self.mode_id!r}, "
            f"length={self.document.length}, {state})"
        )


class Transaction(AbstractContextManager["Transaction"]):
    def __init__(self, buffer: ScratchBuffer, label: str) -> None:
        self.buffer = buffer
        self.label = label
        self._span_cm: Optional[ContextManager[object]] = None

    def __enter__(self) -> "Transaction":
        self._span_cm = telemetry.span(
            name=f"buffer::{self.label}",
            component=True,
            metadata={"buffer": self.buffer.name},
        )
        self._span_cm.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc, tb)
        return False


def _offset_for_location(document: BufferDocument, location: Location) -> int:
    row, col = location
    if row < 0 or row >= document.line_count:
        raise BufferValidationError(f"Row {row} out of range")
    if col < 0 or col > len(document.get_line(row)):
        raise BufferValidationError(f"Column {col} out of range")
    lines = document.snapshot()
    offset = 0
    for i in range(row):
        offset += len(lines[i]) + 1  # newline
    return offset + col


def _location_from_offset(document: BufferDocument, offset: int) -> Location:
    lines = document.snapshot()
    running = 0
    for row, line in enumerate(lines):
        line_len = len(line)
        if offset <= running + line_len:
            return (row, offset - running)
        running += line_len + 1
    return (len(lines) - 1, len(lines[-1]))
