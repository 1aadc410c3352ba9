"""Global switch routing the host's scratch entry point through the engine."""

from __future__ import annotations

from typing import Dict, Optional

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.events import EventCallback, TriggerEvent
from persistent_scratch.host import ScratchHost, ScratchProvider
from persistent_scratch.runtime import telemetry

from .controller import LOGGER_NAME, ScratchController


class ScratchMode:
    """While enabled, scratch requests restore from disk and events flush.

    Enabling swaps ``host.scratch_provider`` for one backed by the
    controller and subscribes a flush to every ``TriggerEvent``. Disabling
    puts the previous provider back. Both directions are idempotent.
    """

    def __init__(self, controller: ScratchController, host: ScratchHost) -> None:
        self.controller = controller
        self.host = host
        self._previous_provider: Optional[ScratchProvider] = None
        self._callbacks: Dict[TriggerEvent, EventCallback] = {}
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        if self._enabled:
            return
        self._previous_provider = self.host.scratch_provider
        self.host.scratch_provider = self.provide_scratch
        for event in TriggerEvent:
            callback = self._make_callback(event)
            self._callbacks[event] = callback
            self.host.events.subscribe(event, callback)
        self._enabled = True
        telemetry.record_event("scratch_mode.enabled", logger_name=LOGGER_NAME)

    def disable(self) -> None:
        if not self._enabled:
            return
        for event, callback in self._callbacks.items():
            self.host.events.unsubscribe(event, callback)
        self._callbacks.clear()
        self.host.scratch_provider = self._previous_provider
        self._previous_provider = None
        self._enabled = False
        telemetry.record_event("scratch_mode.disabled", logger_name=LOGGER_NAME)

    def toggle(self) -> bool:
        if self._enabled:
            self.disable()
        else:
            self.enable()
        return self._enabled

    def provide_scratch(self) -> ScratchBuffer:
        return self.controller.get_or_create()

    def _make_callback(self, event: TriggerEvent) -> EventCallback:
        def _flush(payload: object) -> None:
            self.controller.handle_event(event, payload)

        return _flush


__all__ = ["ScratchMode"]
