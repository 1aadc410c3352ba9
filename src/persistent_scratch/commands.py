"""User-facing scratch commands built on the controller and host prompts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.errors import RecordWriteError
from persistent_scratch.host import ScratchHost
from persistent_scratch.lifecycle import ScratchController
from persistent_scratch.runtime import telemetry

LOGGER_NAME = "persistent_scratch.commands"


@dataclass(slots=True)
class CommandResult:
    """Outcome of a scratch command."""

    ok: bool
    status: str = "ok"
    message: Optional[str] = None
    buffer: Optional[ScratchBuffer] = None


def open_scratch(
    controller: ScratchController,
    host: ScratchHost,
    *,
    discard: bool = False,
    project: object | None = None,
    same_window: bool = False,
    default_mode: Optional[str] = None,
    working_directory: Optional[str] = None,
) -> CommandResult:
    """Open the scratch buffer for ``project`` (or the default one) and show it.

    A project context the host cannot resolve falls back to the default
    scratch buffer.
    """

    name = None
    if project is not None:
        name = host.resolve_project(project)
    _note_current(controller, host)
    buffer = controller.get_or_create(
        name,
        discard=discard,
        default_mode=default_mode,
        working_directory=working_directory,
    )
    host.show_buffer(buffer, same_window=same_window)
    return CommandResult(ok=True, status="opened", buffer=buffer)


def open_project_scratch(
    controller: ScratchController,
    host: ScratchHost,
    project: object | None,
    *,
    discard: bool = False,
    same_window: bool = False,
    default_mode: Optional[str] = None,
) -> CommandResult:
    name = host.resolve_project(project)
    if not name:
        message = "Not inside a project"
        host.notify(message, error=True)
        return CommandResult(ok=False, status="no_project", message=message)
    _note_current(controller, host)
    buffer = controller.get_or_create(
        name,
        discard=discard,
        default_mode=default_mode,
        working_directory=project if isinstance(project, str) else None,
    )
    host.show_buffer(buffer, same_window=same_window)
    return CommandResult(ok=True, status="opened", buffer=buffer)


def save_scratch(controller: ScratchController, host: ScratchHost) -> CommandResult:
    """Flush the current buffer right away."""

    name = _current_scratch_name(controller, host)
    if name is None:
        return _not_scratch(host)
    if not controller.flush(name):
        message = f"Could not save scratch buffer '{name}'"
        host.notify(message, error=True)
        return CommandResult(ok=False, status="write_failed", message=message)
    return CommandResult(ok=True, status="saved", message=f"Saved '{name}'")


def revert_scratch(controller: ScratchController, host: ScratchHost) -> CommandResult:
    """Replace the current scratch buffer's text with its saved record."""

    name = _current_scratch_name(controller, host)
    if name is None:
        return _not_scratch(host)
    if not controller.restore(name):
        message = f"No saved state for '{name}'"
        host.notify(message)
        return CommandResult(ok=False, status="no_record", message=message)
    buffer = controller.get_live(name)
    return CommandResult(ok=True, status="reverted", buffer=buffer)


def delete_scratch_record(
    controller: ScratchController,
    host: ScratchHost,
    name: Optional[str] = None,
) -> CommandResult:
    """Delete one saved record, asking the host to pick one if ``name`` is unset."""

    if name is None:
        names = controller.store.names()
        if not names:
            message = "No saved scratch records"
            host.notify(message)
            return CommandResult(ok=False, status="empty", message=message)
        name = host.pick_record(names)
        if name is None:
            return CommandResult(ok=False, status="cancelled")

    try:
        removed = controller.remove_record(name)
    except RecordWriteError as exc:
        return _write_failed(host, exc)
    if not removed:
        message = f"No saved record for '{name}'"
        host.notify(message)
        return CommandResult(ok=False, status="not_found", message=message)
    message = f"Deleted scratch record '{name}'"
    host.notify(message)
    return CommandResult(ok=True, status="deleted", message=message)


def delete_all_scratch_records(
    controller: ScratchController, host: ScratchHost
) -> CommandResult:
    names = controller.store.names()
    if not names:
        return CommandResult(ok=True, status="empty", message="Nothing to delete")
    if not host.confirm(f"Delete all {len(names)} saved scratch records?"):
        return CommandResult(ok=False, status="declined")
    try:
        removed = controller.remove_all_records()
    except RecordWriteError as exc:
        return _write_failed(host, exc)
    message = f"Deleted {len(removed)} scratch record(s)"
    host.notify(message)
    return CommandResult(ok=True, status="deleted", message=message)


def _note_current(controller: ScratchController, host: ScratchHost) -> None:
    current = host.current_buffer()
    if current is not None and current.is_live:
        controller.note_active(current)


def _current_scratch_name(
    controller: ScratchController, host: ScratchHost
) -> Optional[str]:
    current = host.current_buffer()
    if current is None:
        return None
    return controller.name_of(current)


def _not_scratch(host: ScratchHost) -> CommandResult:
    message = "Current buffer is not a scratch buffer"
    host.notify(message, error=True)
    return CommandResult(ok=False, status="not_scratch", message=message)


def _write_failed(host: ScratchHost, exc: RecordWriteError) -> CommandResult:
    telemetry.record_event(
        "commands.write_failed",
        level="error",
        data={"name": exc.name, "path": exc.path, "error": str(exc)},
        logger_name=LOGGER_NAME,
    )
    message = str(exc)
    host.notify(message, error=True)
    return CommandResult(ok=False, status="write_failed", message=message)


__all__ = [
    "CommandResult",
    "delete_all_scratch_records",
    "delete_scratch_record",
    "open_project_scratch",
    "open_scratch",
    "revert_scratch",
    "save_scratch",
]
