"""Text storage backing a scratch buffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence


@dataclass(slots=True)
class BufferDocument:
    """Immutable-ish text storage built on a simple list-of-lines model.

    Scratch buffers are small, so every edit produces a new document with a
    bumped ``version`` instead of patching lines in place.
    """

    _lines: List[str] = field(default_factory=lambda: [""])
    version: int = 0
    dirty: bool = False

    @classmethod
    def from_text(cls, text: str, *, version: int = 0) -> "BufferDocument":
        # split("\n") keeps a trailing empty line and leaves "\r" untouched,
        # so text() reproduces the input exactly.
        return cls(_lines=text.split("\n"), version=version, dirty=False)

    def snapshot(self) -> Sequence[str]:
        """Return the current lines without exposing internal mutability."""

        return tuple(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines)

    def replace_text(self, text: str, *, dirty: bool = True) -> "BufferDocument":
        """Return a new document holding ``text`` with the version bumped."""

        updated = BufferDocument.from_text(text, version=self.version + 1)
        updated.dirty = dirty
        return updated

    def mark_clean(self) -> None:
        self.dirty = False

    @property
    def length(self) -> int:
        return sum(len(line) for line in self._lines) + len(self._lines) - 1

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]
