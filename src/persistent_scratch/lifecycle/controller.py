"""Lifecycle controller: get-or-create, flush, and restore of scratch buffers."""

from __future__ import annotations

import os
from typing import Callable, Dict, List, Optional

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.errors import (
    RecordDecodeError,
    RecordReadError,
    RecordWriteError,
)
from persistent_scratch.events import TriggerEvent
from persistent_scratch.persistence import Record, RecordStore, decode, encode_buffer
from persistent_scratch.registry import BufferRegistry
from persistent_scratch.runtime import telemetry
from persistent_scratch.runtime.config import InitialModePolicy, ScratchConfig

LOGGER_NAME = "persistent_scratch.lifecycle"
FLUSH_HOOK_KEY = "persistent_scratch.flush"

BufferFactory = Callable[[str], ScratchBuffer]
ModeSupplier = Callable[[], Optional[str]]


def display_name(name: str, *, default_name: str = "default") -> str:
    """Buffer title a host shows for the scratch destination ``name``."""

    if name == default_name:
        return "*scratch*"
    return f"*scratch ({name})*"


class ScratchController:
    """Owns the registry and moves buffers between memory and the store.

    Every public operation runs synchronously to completion. Missing or
    corrupt records never fail ``get_or_create``; write failures during a
    flush are logged and handed to ``config.on_write_failure`` hooks
    instead of being raised.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        registry: Optional[BufferRegistry] = None,
        config: Optional[ScratchConfig] = None,
        buffer_factory: Optional[BufferFactory] = None,
        mode_supplier: Optional[ModeSupplier] = None,
    ) -> None:
        self.store = store
        self.config = config or ScratchConfig(
            root_directory=store.root, suffix=store.suffix
        )
        self.registry = registry or BufferRegistry(
            logger_name="persistent_scratch.registry"
        )
        self._buffer_factory = buffer_factory or self._default_buffer
        self._mode_supplier = mode_supplier
        self._last_active_mode: Optional[str] = None

    # Buffer access --------------------------------------------------------

    def get_or_create(
        self,
        name: Optional[str] = None,
        *,
        discard: bool = False,
        default_mode: Optional[str] = None,
        working_directory: Optional[os.PathLike[str] | str] = None,
    ) -> ScratchBuffer:
        """Return the live buffer for ``name``, restoring or creating it.

        An already-live buffer is returned untouched unless ``discard`` is
        set, in which case it is emptied in place. ``discard`` never touches
        the on-disk record; the next flush overwrites it.
        """

        name = name or self.config.default_name
        with telemetry.span(
            "lifecycle::get_or_create",
            logger_name=LOGGER_NAME,
            component="lifecycle",
            metadata={"name": name, "discard": discard},
        ) as handle:
            live = self.registry.get_live(name)
            if live is not None and not discard:
                handle.add_metadata("reused", True)
                return live

            mode = default_mode or self.resolve_initial_mode()
            buffer = live if live is not None else self._buffer_factory(name)
            if discard:
                buffer.load("", 0, mode)
            else:
                handle.add_metadata("restored", self._load_into(name, buffer, mode))

            if working_directory is not None:
                buffer.set_working_directory(os.fspath(working_directory))

            self.registry.track(name, buffer)
            buffer.add_close_hook(
                FLUSH_HOOK_KEY, lambda closing: self._handle_close(name, closing)
            )
            self._run_created_hooks(name, buffer)
            return buffer

    def get_live(self, name: Optional[str] = None) -> Optional[ScratchBuffer]:
        return self.registry.get_live(name or self.config.default_name)

    def is_live(self, name: Optional[str] = None) -> bool:
        return self.get_live(name) is not None

    def live_names(self) -> tuple[str, ...]:
        return self.registry.names()

    def name_of(self, buffer: ScratchBuffer) -> Optional[str]:
        return self.registry.name_of(buffer)

    # Persistence ----------------------------------------------------------

    def flush(self, name: Optional[str] = None) -> bool:
        """Write the live buffer for ``name`` to its record.

        Returns ``False`` when nothing is live under ``name`` or the record
        could not be encoded or written.
        """

        name = name or self.config.default_name
        buffer = self.registry.get_live(name)
        if buffer is None:
            return False
        try:
            data = encode_buffer(buffer)
        except (TypeError, ValueError) as exc:
            self._report_write_failure(
                name,
                RecordWriteError(
                    f"Cannot encode scratch record '{name}': {exc}",
                    name=name,
                    path=self.store.path_for(name),
                ),
            )
            return False
        try:
            self.store.write(name, data)
        except RecordWriteError as exc:
            self._report_write_failure(name, exc)
            return False
        buffer.mark_saved()
        return True

    def flush_all(self) -> Dict[str, bool]:
        """Flush every buffer still live when visited; no ordering across names."""

        results: Dict[str, bool] = {}
        with telemetry.span(
            "lifecycle::flush_all", logger_name=LOGGER_NAME, component="lifecycle"
        ) as handle:
            for name, buffer in self.registry.all_live():
                if name in results or self.registry.get_live(name) is not buffer:
                    continue
                results[name] = self.flush(name)
            handle.add_metadata("flushed", sum(results.values()))
            handle.add_metadata("failed", len(results) - sum(results.values()))
        return results

    def restore(self, name: Optional[str] = None) -> bool:
        """Re-apply the saved record over the live buffer, dropping edits."""

        name = name or self.config.default_name
        buffer = self.registry.get_live(name)
        if buffer is None:
            return False
        record = self._read_record(name)
        if record is None:
            return False
        buffer.load(record.content, record.cursor_offset, record.mode_id)
        telemetry.record_event(
            "lifecycle.restore", data={"name": name}, logger_name=LOGGER_NAME
        )
        return True

    def remove_record(self, name: str) -> bool:
        return self.store.delete(name)

    def remove_all_records(self) -> List[str]:
        return self.store.delete_all()

    def close_all(self) -> None:
        """Close every live buffer; each one flushes through its close hook."""

        for _name, buffer in self.registry.all_live():
            buffer.close()

    # Host signals ---------------------------------------------------------

    def handle_event(
        self, event: TriggerEvent | str, payload: object | None = None
    ) -> Dict[str, bool]:
        del payload
        event = TriggerEvent(event)
        telemetry.record_event(
            "lifecycle.trigger",
            level="debug",
            data={"trigger": event.value},
            logger_name=LOGGER_NAME,
        )
        return self.flush_all()

    def note_active(self, buffer: ScratchBuffer) -> None:
        """Remember ``buffer``'s mode for the inherit mode policy."""

        self._last_active_mode = buffer.mode_id

    def resolve_initial_mode(self) -> str:
        policy = self.config.initial_mode_policy
        if policy is InitialModePolicy.FIXED and self.config.fixed_mode:
            return self.config.fixed_mode
        if policy is InitialModePolicy.INHERIT:
            inherited = (
                self._mode_supplier() if self._mode_supplier else None
            ) or self._last_active_mode
            if inherited:
                return inherited
        return self.config.fallback_mode

    # Internals ------------------------------------------------------------

    def _default_buffer(self, name: str) -> ScratchBuffer:
        return ScratchBuffer(
            name=display_name(name, default_name=self.config.default_name)
        )

    def _load_into(self, name: str, buffer: ScratchBuffer, fallback_mode: str) -> bool:
        record = self._read_record(name)
        if record is None:
            buffer.load("", 0, fallback_mode)
            return False
        # The saved mode wins over the caller's default.
        buffer.load(record.content, record.cursor_offset, record.mode_id)
        return True

    def _read_record(self, name: str) -> Optional[Record]:
        try:
            data = self.store.read(name)
        except RecordReadError as exc:
            telemetry.record_event(
                "lifecycle.read_failed",
                level="warning",
                data={"name": name, "error": str(exc)},
                logger_name=LOGGER_NAME,
            )
            return None
        if data is None:
            return None
        try:
            return decode(data)
        except RecordDecodeError as exc:
            telemetry.record_event(
                "lifecycle.corrupt_record",
                level="warning",
                data={
                    "name": name,
                    "path": self.store.path_for(name),
                    "error": str(exc),
                },
                logger_name=LOGGER_NAME,
            )
            return None

    def _handle_close(self, name: str, buffer: ScratchBuffer) -> None:
        if self.registry.get_live(name) is not buffer:
            return
        self.flush(name)
        self.registry.untrack(name, buffer)

    def _run_created_hooks(self, name: str, buffer: ScratchBuffer) -> None:
        for hook in self.config.on_buffer_created:
            try:
                hook(buffer)
            except Exception as exc:
                telemetry.record_event(
                    "lifecycle.created_hook_failed",
                    level="error",
                    data={"name": name, "hook": repr(hook), "error": repr(exc)},
                    logger_name=LOGGER_NAME,
                )

    def _report_write_failure(self, name: str, exc: RecordWriteError) -> None:
        telemetry.record_event(
            "lifecycle.write_failed",
            level="error",
            data={"name": name, "path": exc.path, "error": str(exc)},
            logger_name=LOGGER_NAME,
        )
        for hook in self.config.on_write_failure:
            try:
                hook(name, exc)
            except Exception as hook_exc:
                telemetry.record_event(
                    "lifecycle.failure_hook_failed",
                    level="error",
                    data={"name": name, "hook": repr(hook), "error": repr(hook_exc)},
                    logger_name=LOGGER_NAME,
                )


def build_controller(
    config: Optional[ScratchConfig] = None, **kwargs: object
) -> ScratchController:
    """Wire a store, registry and controller from ``config``.

    Defaults to ``ScratchConfig.from_env()``.
    """

    config = config or ScratchConfig.from_env()
    store = RecordStore(config.root_directory, suffix=config.suffix)
    return ScratchController(store, config=config, **kwargs)  # type: ignore[arg-type]


__all__ = [
    "BufferFactory",
    "FLUSH_HOOK_KEY",
    "ModeSupplier",
    "ScratchController",
    "build_controller",
    "display_name",
]
