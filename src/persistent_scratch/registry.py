"""Registry of scratch buffers currently open in the host."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.runtime.telemetry import span


@dataclass(slots=True)
class RegistryStats:
    """Lightweight snapshot describing registry state."""

    live_count: int
    names: tuple[str, ...]


class BufferRegistry:
    """Maps logical names to live ``ScratchBuffer`` handles.

    Not persisted: a new process starts empty and entries appear as buffers
    are requested. Entries whose buffer has been closed behind the
    registry's back are treated as absent and dropped on lookup.
    """

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._buffers: Dict[str, ScratchBuffer] = {}
        self._logger_name = logger_name
        self._revision = 0

    def revision(self) -> int:
        return self._revision

    def get_live(self, name: str) -> Optional[ScratchBuffer]:
        buffer = self._buffers.get(name)
        if buffer is None:
            return None
        if not buffer.is_live:
            self._drop(name)
            return None
        return buffer

    def is_tracked(self, name: str) -> bool:
        return self.get_live(name) is not None

    def track(self, name: str, buffer: ScratchBuffer) -> None:
        with span(
            "registry::track",
            logger_name=self._logger_name,
            component="registry",
            metadata={"name": name},
        ) as handle:
            previous = self._buffers.get(name)
            if previous is not None and previous is not buffer:
                handle.add_metadata("replaced", True)
            self._buffers[name] = buffer
            self._touch()

    def untrack(self, name: str, buffer: Optional[ScratchBuffer] = None) -> bool:
        """Forget ``name``; with ``buffer`` given, only if it is the tracked one."""

        current = self._buffers.get(name)
        if current is None:
            return False
        if buffer is not None and current is not buffer:
            return False
        with span(
            "registry::untrack",
            logger_name=self._logger_name,
            component="registry",
            metadata={"name": name},
        ):
            self._drop(name)
        return True

    def name_of(self, buffer: ScratchBuffer) -> Optional[str]:
        for name, tracked in self._buffers.items():
            if tracked is buffer:
                return name if buffer.is_live else None
        return None

    def all_live(self) -> List[Tuple[str, ScratchBuffer]]:
        """Snapshot of live entries; callers re-check liveness before use."""

        return [
            (name, buffer)
            for name, buffer in list(self._buffers.items())
            if buffer.is_live
        ]

    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.all_live())

    def stats(self) -> RegistryStats:
        names = self.names()
        return RegistryStats(live_count=len(names), names=tuple(sorted(names)))

    def __len__(self) -> int:
        return len(self.all_live())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_tracked(name)

    def _drop(self, name: str) -> None:
        if self._buffers.pop(name, None) is not None:
            self._touch()

    def _touch(self) -> None:
        self._revision += 1


__all__ = ["BufferRegistry", "RegistryStats"]
