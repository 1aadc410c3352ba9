"""Textual-facing host that keeps a TextArea and scratch buffers in sync."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from persistent_scratch import commands
from persistent_scratch.buffer import BufferMirror, Location, ScratchBuffer
from persistent_scratch.events import EventBus, TriggerEvent
from persistent_scratch.host import ScratchProvider
from persistent_scratch.lifecycle import ScratchController, ScratchMode

PROJECT_MARKERS = (".git", ".hg", "pyproject.toml", "setup.py")


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


def _decline(_prompt: str) -> bool:
    return False


def _cancel(_names: Sequence[str]) -> Optional[str]:
    return None


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_buffer: Callable[[BufferMirror], None]
    update_status: Callable[[str], None] = _noop
    confirm: Callable[[str], bool] = _decline
    pick_record: Callable[[Sequence[str]], Optional[str]] = _cancel
    log: Callable[[str], None] = _noop


def find_project_name(context: object | None) -> Optional[str]:
    """Name of the nearest enclosing directory carrying a project marker."""

    if context is None:
        return None
    start = Path(str(context)).expanduser().resolve()
    for directory in (start, *start.parents):
        if any((directory / marker).exists() for marker in PROJECT_MARKERS):
            return directory.name or None
    return None


class TextualScratchAdapter:
    """Implements ``ScratchHost`` for a single-TextArea Textual app.

    The widget pushes edits and cursor moves in; the adapter pushes
    ``BufferMirror`` snapshots out through ``hooks.update_buffer``.
    """

    def __init__(
        self,
        controller: ScratchController,
        hooks: TextualUIHooks,
        *,
        project_resolver: Callable[[object | None], Optional[str]] = find_project_name,
    ) -> None:
        self.controller = controller
        self.hooks = hooks
        self.events = EventBus()
        self.scratch_provider: Optional[ScratchProvider] = None
        self._project_resolver = project_resolver
        self._current: Optional[ScratchBuffer] = None
        self.mode = ScratchMode(controller, self)
        self.mode.enable()

    # ScratchHost ----------------------------------------------------------

    def current_buffer(self) -> Optional[ScratchBuffer]:
        if self._current is not None and not self._current.is_live:
            self._current = None
        return self._current

    def show_buffer(self, buffer: ScratchBuffer, *, same_window: bool = False) -> None:
        del same_window  # single surface
        if buffer is not self._current:
            self.events.emit(TriggerEvent.VISIBLE_BUFFER_CHANGED, buffer)
        self._current = buffer
        self._log_state("show ->", name=buffer.name)
        self._refresh_buffer()

    def resolve_project(self, context: object | None) -> Optional[str]:
        return self._project_resolver(context)

    def confirm(self, prompt: str) -> bool:
        return bool(self.hooks.confirm(prompt))

    def pick_record(self, names: Sequence[str]) -> Optional[str]:
        return self.hooks.pick_record(names)

    def notify(self, message: str, *, error: bool = False) -> None:
        self.hooks.update_status(f"error: {message}" if error else message)

    # Widget -> engine -----------------------------------------------------

    def push_host_edit(self, text: str, location: Location) -> None:
        buffer = self.current_buffer()
        if buffer is None:
            return
        if text == buffer.text and location == self.cursor_location():
            return
        if text != buffer.text:
            buffer.set_text(text)
        buffer.move_cursor(buffer.offset_for_location(location))

    def push_cursor(self, location: Location) -> None:
        buffer = self.current_buffer()
        if buffer is not None:
            buffer.move_cursor(buffer.offset_for_location(location))

    def cursor_location(self) -> Location:
        buffer = self.current_buffer()
        if buffer is None:
            return (0, 0)
        return buffer.location_for_offset(buffer.cursor_offset)

    def pull_buffer(self) -> Optional[BufferMirror]:
        buffer = self.current_buffer()
        return buffer.mirror() if buffer is not None else None

    # Commands -------------------------------------------------------------

    def open_default(self, *, discard: bool = False) -> commands.CommandResult:
        if discard or self.scratch_provider is None:
            result = commands.open_scratch(self.controller, self, discard=discard)
        else:
            self.show_buffer(self.scratch_provider())
            result = commands.CommandResult(
                ok=True, status="opened", buffer=self._current
            )
        return self._report(result)

    def open_project(
        self, project: object | None, *, discard: bool = False
    ) -> commands.CommandResult:
        return self._report(
            commands.open_project_scratch(
                self.controller, self, project, discard=discard
            )
        )

    def save(self) -> commands.CommandResult:
        return self._report(commands.save_scratch(self.controller, self))

    def revert(self) -> commands.CommandResult:
        result = self._report(commands.revert_scratch(self.controller, self))
        self._refresh_buffer()
        return result

    def delete_record(self, name: Optional[str] = None) -> commands.CommandResult:
        return self._report(commands.delete_scratch_record(self.controller, self, name))

    def delete_all_records(self) -> commands.CommandResult:
        return self._report(commands.delete_all_scratch_records(self.controller, self))

    # Lifecycle ------------------------------------------------------------

    def focus_changed(self) -> None:
        self.events.emit(TriggerEvent.FOCUS_CHANGED)

    def session_attached(self) -> None:
        self.events.emit(TriggerEvent.SESSION_ATTACH)

    def shutdown(self) -> None:
        self.events.emit(TriggerEvent.SHUTDOWN)
        self.controller.close_all()
        self.mode.disable()
        self._current = None

    # Internals ------------------------------------------------------------

    def _report(self, result: commands.CommandResult) -> commands.CommandResult:
        self._log_state("command <-", status=result.status, message=result.message)
        if result.ok:
            self.hooks.update_status(result.message or result.status)
        return result

    def _refresh_buffer(self) -> None:
        mirror = self.pull_buffer()
        if mirror is not None:
            self.hooks.update_buffer(mirror)

    def _log_state(self, prefix: str, **fields: object) -> None:
        buffer = self.current_buffer()
        snapshot: dict[str, object] = {
            "buffer": buffer.name if buffer else None,
            "mode": buffer.mode_id if buffer else None,
            "live": self.controller.live_names(),
        }
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix] + [f"{key}={value!r}" for key, value in snapshot.items()]
        self.hooks.log(" ".join(parts))


__all__ = [
    "PROJECT_MARKERS",
    "TextualScratchAdapter",
    "TextualUIHooks",
    "find_project_name",
]
