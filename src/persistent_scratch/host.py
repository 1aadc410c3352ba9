"""Protocol describing the host application around the scratch engine."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.events import EventBus

ScratchProvider = Callable[[], ScratchBuffer]


class ScratchHost(Protocol):
    """Collaborators the engine relies on but never implements itself.

    ``scratch_provider`` is the host's native "create the default scratch
    buffer" entry point; ``ScratchMode`` swaps it while enabled.
    """

    events: EventBus
    scratch_provider: Optional[ScratchProvider]

    def current_buffer(self) -> Optional[ScratchBuffer]:
        """Return the buffer the user is looking at, if any."""
        ...

    def show_buffer(self, buffer: ScratchBuffer, *, same_window: bool = False) -> None:
        """Display ``buffer``, reusing the current surface when asked to."""
        ...

    def resolve_project(self, context: object | None) -> Optional[str]:
        """Turn a project context (path, handle, ...) into a stable name."""
        ...

    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question."""
        ...

    def pick_record(self, names: Sequence[str]) -> Optional[str]:
        """Let the user choose one saved record; ``None`` means cancelled."""
        ...

    def notify(self, message: str, *, error: bool = False) -> None:
        """Show a short message to the user."""
        ...


__all__ = ["ScratchHost", "ScratchProvider"]
