"""Exception types raised by the scratch persistence engine."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ScratchError(RuntimeError):
    """Base class for scratch engine failures."""

    def __init__(self, message: str, *, name: Optional[str] = None) -> None:
        super().__init__(message)
        self.name = name


class RecordDecodeError(ScratchError, ValueError):
    """Raised when a record is absent, truncated or not a well-formed triple."""


class RecordStoreError(ScratchError):
    """Raised when the record directory cannot be read from or written to."""

    def __init__(
        self,
        message: str,
        *,
        name: Optional[str] = None,
        path: Optional[Path] = None,
    ) -> None:
        super().__init__(message, name=name)
        self.path = path


class RecordReadError(RecordStoreError):
    """I/O failure while reading an existing record."""


class RecordWriteError(RecordStoreError):
    """I/O failure while writing or deleting a record."""


__all__ = [
    "ScratchError",
    "RecordDecodeError",
    "RecordStoreError",
    "RecordReadError",
    "RecordWriteError",
]
