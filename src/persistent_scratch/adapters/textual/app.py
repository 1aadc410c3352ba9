"""Executable Textual app hosting persistent scratch buffers."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Optional, Sequence

try:  # pragma: no cover - imported only when the app is run
    from textual import events
    from textual.app import App, ComposeResult
    from textual.widgets import Footer, Header, Static, TextArea
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use persistent_scratch.adapters.textual.app"
    ) from exc

from persistent_scratch.buffer import BufferMirror
from persistent_scratch.lifecycle import build_controller
from persistent_scratch.runtime.config import InitialModePolicy, ScratchConfig

from .controller import TextualScratchAdapter, TextualUIHooks


def language_for_mode(mode_id: str, available: Sequence[str]) -> Optional[str]:
    """TextArea language for ``mode_id``; ``None`` renders plain text."""

    language = mode_id.removesuffix("-mode")
    return language if language in available else None


class ScratchApp(App[None]):
    """Single-pane scratch editor that survives restarts."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#scratch-view {
		height: 1fr;
		border: round $accent;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+s", "save", "Save"),
        ("ctrl+r", "revert", "Revert"),
        ("ctrl+d", "open_default", "Default scratch"),
        ("ctrl+p", "open_project", "Project scratch"),
        ("ctrl+n", "discard", "Clear"),
        ("ctrl+k", "delete_record", "Delete record"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self, *, config: ScratchConfig, project: Optional[str] = None
    ) -> None:
        super().__init__()
        self.config = config
        self._project = project
        self.adapter: TextualScratchAdapter | None = None
        self._editor: TextArea | None = None
        self._status_widget: Static | None = None
        self._syncing = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self._editor = TextArea("", id="scratch-view")
        yield self._editor
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    def on_mount(self) -> None:
        controller = build_controller(self.config, mode_supplier=self._editor_mode)
        hooks = TextualUIHooks(
            update_buffer=self._update_buffer,
            update_status=self._update_status,
            log=self.log.info,
        )
        self.adapter = TextualScratchAdapter(controller, hooks)
        self.adapter.session_attached()
        if self._project:
            self.adapter.open_project(self._project)
        else:
            self.adapter.open_default()

    def on_unmount(self) -> None:
        if self.adapter:
            self.adapter.shutdown()

    def on_app_blur(self, event: events.AppBlur) -> None:
        del event
        if self.adapter:
            self.adapter.focus_changed()

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if self.adapter and not self._syncing:
            area = event.text_area
            self.adapter.push_host_edit(area.text, area.cursor_location)

    def on_text_area_selection_changed(self, event: TextArea.SelectionChanged) -> None:
        if self.adapter and not self._syncing:
            self.adapter.push_cursor(event.text_area.cursor_location)

    def action_save(self) -> None:
        if self.adapter:
            self.adapter.save()

    def action_revert(self) -> None:
        if self.adapter:
            self.adapter.revert()

    def action_open_default(self) -> None:
        if self.adapter:
            self.adapter.open_default()

    def action_open_project(self) -> None:
        if self.adapter:
            self.adapter.open_project(self._project or os.getcwd())

    def action_discard(self) -> None:
        if not self.adapter:
            return
        current = self.adapter.current_buffer()
        name = self.adapter.controller.name_of(current) if current else None
        if name is None or name == self.config.default_name:
            self.adapter.open_default(discard=True)
        else:
            self.adapter.open_project(self._project or os.getcwd(), discard=True)

    def action_delete_record(self) -> None:
        if not self.adapter:
            return
        current = self.adapter.current_buffer()
        name = self.adapter.controller.name_of(current) if current else None
        if name is not None:
            self.adapter.delete_record(name)

    def _editor_mode(self) -> Optional[str]:
        if self._editor is None or self._editor.language is None:
            return None
        return self._editor.language

    def _update_buffer(self, mirror: BufferMirror) -> None:
        if self._editor is None:
            return
        self._syncing = True
        try:
            if self._editor.text != mirror.text:
                self._editor.load_text(mirror.text)
            self._editor.language = language_for_mode(
                mirror.mode_id, sorted(self._editor.available_languages)
            )
            if self.adapter:
                self._editor.cursor_location = self.adapter.cursor_location()
        finally:
            self._syncing = False
        self.title = mirror.name

    def _update_status(self, status: str) -> None:
        if self._status_widget:
            self._status_widget.update(status)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Persistent scratch buffers.")
    parser.add_argument(
        "--dir",
        type=Path,
        default=None,
        help="Directory holding scratch records (default: $PERSISTENT_SCRATCH_DIR)",
    )
    parser.add_argument(
        "--project",
        default=None,
        help="Open the scratch buffer of the project containing this path",
    )
    parser.add_argument(
        "--mode-policy",
        choices=[policy.value for policy in InitialModePolicy],
        default=None,
        help="How new scratch buffers pick their mode",
    )
    parser.add_argument(
        "--fixed-mode",
        default=None,
        help="Mode used by the 'fixed' policy",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    overrides: dict[str, object] = {}
    if args.dir is not None:
        overrides["root_directory"] = args.dir
    if args.mode_policy is not None:
        overrides["initial_mode_policy"] = InitialModePolicy(args.mode_policy)
    if args.fixed_mode is not None:
        overrides["fixed_mode"] = args.fixed_mode
    config = ScratchConfig.from_env(**overrides)
    ScratchApp(config=config, project=args.project).run()


if __name__ == "__main__":  # pragma: no cover - manual run
    main()
