"""One-file-per-name record storage under a configured directory."""

from __future__ import annotations

import os
import tempfile
import threading
import weakref
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

from persistent_scratch.errors import RecordReadError, RecordWriteError
from persistent_scratch.runtime.telemetry import record_event, span

LOGGER_NAME = "persistent_scratch.store"


def _fsync_dir(dir_path: Path) -> None:
    """Best-effort directory fsync to persist rename/unlink metadata."""
    try:
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY
        fd = os.open(str(dir_path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        # Some platforms/filesystems do not support directory fsync.
        pass


class RecordStore:
    """Maps logical names to ``<name><suffix>`` files under ``root``.

    Names are percent-encoded with no safe characters, so project identifiers
    containing path separators still address a single file directly under
    the root: ``"my project"`` is stored as ``my%20project.scratch``.

    ``delete_all`` removes every file carrying the suffix, including ones
    whose stem is not in canonical encoding. Per-name locks are held weakly
    and disappear once no operation is using them.
    """

    def __init__(
        self, root_directory: os.PathLike[str] | str, *, suffix: str = ".scratch"
    ) -> None:
        if not suffix.startswith("."):
            raise ValueError(f"suffix must start with '.', got '{suffix}'")
        self.root = Path(root_directory).expanduser()
        self.suffix = suffix
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def path_for(self, name: str) -> Path:
        if not name:
            raise ValueError("record name cannot be empty")
        return self.root / f"{quote(name, safe='')}{self.suffix}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def names(self) -> List[str]:
        """Return the sorted names that currently have a record."""

        return sorted(
            self._name_for(path) for path in self._record_paths()
        )

    def read(self, name: str) -> Optional[bytes]:
        """Return the stored bytes, or ``None`` when no record exists."""

        path = self.path_for(name)
        with self._lock_for(name), span(
            "store::read",
            logger_name=LOGGER_NAME,
            component="store",
            metadata={"record": name},
        ) as handle:
            try:
                data = path.read_bytes()
            except FileNotFoundError:
                handle.add_metadata("found", False)
                return None
            except OSError as exc:
                raise RecordReadError(
                    f"Cannot read scratch record '{name}': {exc}", name=name, path=path
                ) from exc
            handle.add_metadata("bytes", len(data))
            return data

    def write(self, name: str, data: bytes) -> None:
        """Replace the record for ``name`` via a temp file and rename.

        A failed write leaves any previous record untouched.
        """

        path = self.path_for(name)
        with self._lock_for(name), span(
            "store::write",
            logger_name=LOGGER_NAME,
            component="store",
            metadata={"record": name, "bytes": len(data)},
        ):
            try:
                self._atomic_write(path, data)
            except OSError as exc:
                raise RecordWriteError(
                    f"Cannot write scratch record '{name}': {exc}", name=name, path=path
                ) from exc

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        with span(
            "store::delete",
            logger_name=LOGGER_NAME,
            component="store",
            metadata={"record": name},
        ):
            if not self._unlink(name, path):
                return False
            _fsync_dir(path.parent)
            return True

    def delete_all(self) -> List[str]:
        """Remove every record carrying this store's suffix; return their names."""

        removed: List[str] = []
        with span(
            "store::delete_all", logger_name=LOGGER_NAME, component="store"
        ) as handle:
            for path in self._record_paths():
                name = self._name_for(path)
                if self._unlink(name, path):
                    removed.append(name)
            if removed:
                _fsync_dir(self.root)
            handle.add_metadata("removed", len(removed))
        record_event(
            "store.delete_all",
            data={"root": self.root, "removed": len(removed)},
            logger_name=LOGGER_NAME,
        )
        return removed

    def _record_paths(self) -> List[Path]:
        if not self.root.is_dir():
            return []
        return [path for path in self.root.glob(f"*{self.suffix}") if path.is_file()]

    def _name_for(self, path: Path) -> str:
        return unquote(path.name[: -len(self.suffix)])

    def _unlink(self, name: str, path: Path) -> bool:
        with self._lock_for(name):
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as exc:
                raise RecordWriteError(
                    f"Cannot delete scratch record '{name}': {exc}",
                    name=name,
                    path=path,
                ) from exc
            return True

    def _atomic_write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())

            os.replace(tmp_path, path)
            _fsync_dir(path.parent)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock


__all__ = ["RecordStore"]
