from pathlib import Path
from typing import List, Optional

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.errors import RecordWriteError
from persistent_scratch.events import TriggerEvent
from persistent_scratch.lifecycle import (
    FLUSH_HOOK_KEY,
    ScratchController,
    build_controller,
)
from persistent_scratch.lifecycle import controller as controller_module
from persistent_scratch.persistence import Record, RecordStore, decode, encode
from persistent_scratch.registry import BufferRegistry
from persistent_scratch.runtime.config import InitialModePolicy, ScratchConfig


def make_controller(
    root: Path,
    *,
    store: Optional[RecordStore] = None,
    **config_overrides: object,
) -> ScratchController:
    config = ScratchConfig(root_directory=root, suffix=".rec", **config_overrides)
    store = store or RecordStore(config.root_directory, suffix=config.suffix)
    return ScratchController(store, config=config, registry=BufferRegistry())


def restart(controller: ScratchController) -> ScratchController:
    """Simulate a new process: same directory, empty registry."""

    return ScratchController(
        RecordStore(controller.store.root, suffix=controller.store.suffix),
        config=controller.config,
    )


def test_restore_after_restart(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.store.write("proj-a", encode(Record("hello", 5, "text")))

    fresh = restart(controller)
    buffer = fresh.get_or_create("proj-a", default_mode="fundamental")

    assert buffer.text == "hello"
    assert buffer.cursor_offset == 5
    assert buffer.mode_id == "text"
    assert fresh.registry.is_tracked("proj-a")


def test_missing_record_gives_empty_buffer_without_file(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)

    buffer = controller.get_or_create("nonexistent-project", default_mode="markdown")

    assert buffer.text == ""
    assert buffer.cursor_offset == 0
    assert buffer.mode_id == "markdown"
    assert not controller.store.exists("nonexistent-project")

    assert controller.flush("nonexistent-project") is True
    assert controller.store.exists("nonexistent-project")


def test_live_buffer_is_never_restored_implicitly(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("unsaved edits")
    controller.store.write("proj-a", encode(Record("on disk", 0, "text")))

    again = controller.get_or_create("proj-a", default_mode="python")

    assert again is buffer
    assert again.text == "unsaved edits"
    assert again.mode_id == "fundamental"


def test_discard_empties_buffer_but_keeps_record(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    saved = encode(Record("keep me", 4, "text"))
    controller.store.write("proj-a", saved)

    buffer = controller.get_or_create("proj-a", discard=True, default_mode="org")

    assert buffer.text == ""
    assert buffer.mode_id == "org"
    assert controller.store.read("proj-a") == saved

    controller.flush("proj-a")
    assert decode(controller.store.read("proj-a")) == Record("", 0, "org")


def test_discard_reuses_live_buffer(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("draft")

    again = controller.get_or_create("proj-a", discard=True)

    assert again is buffer
    assert again.text == ""
    assert len(controller.registry) == 1


def test_corrupt_record_falls_back_to_empty(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.store.write("proj-a", b'{"format": "persistent-scratch", "cont')

    buffer = controller.get_or_create("proj-a", default_mode="text")

    assert buffer.text == ""
    assert buffer.mode_id == "text"
    assert controller.restore("proj-a") is False


def test_unreadable_record_falls_back_to_empty(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.store.path_for("proj-a").mkdir(parents=True)

    buffer = controller.get_or_create("proj-a", default_mode="text")

    assert buffer.text == ""


def test_default_name_is_used_without_a_name(tmp_path: Path) -> None:
    controller = make_controller(tmp_path, default_name="home")

    buffer = controller.get_or_create()

    assert controller.name_of(buffer) == "home"
    assert buffer.name == "*scratch*"
    assert controller.get_or_create("proj").name == "*scratch (proj)*"


def test_working_directory_is_applied_but_not_persisted(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)

    buffer = controller.get_or_create("proj-a", working_directory=tmp_path)
    controller.flush("proj-a")

    assert buffer.working_directory == str(tmp_path)
    assert b"working" not in controller.store.read("proj-a")
    assert str(tmp_path).encode() not in controller.store.read("proj-a")


def test_flush_twice_is_byte_identical(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("stable")

    controller.flush("proj-a")
    first = controller.store.path_for("proj-a").read_bytes()
    controller.flush("proj-a")
    second = controller.store.path_for("proj-a").read_bytes()

    assert first == second


def test_flush_without_live_buffer_is_noop(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)

    assert controller.flush("ghost") is False
    assert controller.store.names() == []


def test_flush_marks_buffer_saved(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("x")

    controller.flush("proj-a")

    assert buffer.modified is False


def test_flush_all_visits_each_live_buffer(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.get_or_create("a").insert_text("alpha")
    controller.get_or_create("b").insert_text("beta")
    closed = controller.get_or_create("c")
    closed.close()
    controller.store.delete("c")

    results = controller.flush_all()

    assert results == {"a": True, "b": True}
    assert controller.store.names() == ["a", "b"]


def test_close_flushes_then_untracks(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("bye")
    assert buffer.has_close_hook(FLUSH_HOOK_KEY)

    buffer.close()

    assert not controller.registry.is_tracked("proj-a")
    assert decode(controller.store.read("proj-a")).content == "bye"

    reopened = controller.get_or_create("proj-a")
    assert reopened is not buffer
    assert reopened.text == "bye"


def test_restore_reverts_live_buffer(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("saved")
    controller.flush("proj-a")
    buffer.insert_text(" and then some")

    assert controller.restore("proj-a") is True
    assert buffer.text == "saved"
    assert buffer.cursor_offset == 5


def test_restore_requires_live_buffer_and_record(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.store.write("proj-a", encode(Record("x", 0, "text")))

    assert controller.restore("proj-a") is False
    controller.get_or_create("proj-b")
    assert controller.restore("proj-b") is False


def test_remove_record_does_not_need_live_buffer(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.store.write("proj-a", b"x")
    controller.store.write("proj-b", b"y")

    assert controller.remove_record("proj-a") is True
    assert controller.remove_record("proj-a") is False
    assert controller.remove_all_records() == ["proj-b"]


def test_write_failure_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("")
    failures: List[tuple[str, RecordWriteError]] = []
    controller = make_controller(
        blocker, on_write_failure=(lambda name, exc: failures.append((name, exc)),)
    )
    buffer = controller.get_or_create("proj-a")
    buffer.insert_text("precious")

    assert controller.flush("proj-a") is False
    assert controller.flush_all() == {"proj-a": False}
    assert [name for name, _ in failures] == ["proj-a", "proj-a"]
    assert buffer.modified is True

    buffer.close()
    assert buffer.is_live is False


def test_flush_all_saves_text_with_lone_surrogates(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.get_or_create("a").insert_text("bad \udcff byte")
    controller.get_or_create("b").insert_text("ok")

    assert controller.flush_all() == {"a": True, "b": True}
    assert decode(controller.store.read("a")).content == "bad \udcff byte"
    assert decode(controller.store.read("b")).content == "ok"
    assert restart(controller).get_or_create("a").text == "bad \udcff byte"


def test_encode_failure_is_reported_and_other_buffers_still_flush(
    tmp_path: Path, monkeypatch
) -> None:
    failures: List[tuple[str, RecordWriteError]] = []
    controller = make_controller(
        tmp_path, on_write_failure=(lambda name, exc: failures.append((name, exc)),)
    )
    broken = controller.get_or_create("a")
    broken.insert_text("cannot encode")
    controller.get_or_create("b").insert_text("ok")

    def encode_or_fail(buffer: ScratchBuffer) -> bytes:
        if buffer is broken:
            raise ValueError("unencodable")
        return encode(Record.from_buffer(buffer))

    monkeypatch.setattr(controller_module, "encode_buffer", encode_or_fail)

    assert controller.flush_all() == {"a": False, "b": True}
    assert controller.store.read("a") is None
    assert decode(controller.store.read("b")).content == "ok"
    assert [name for name, _ in failures] == ["a"]
    assert failures[0][1].path == controller.store.path_for("a")
    assert broken.modified is True


def test_created_hooks_run_and_failures_are_contained(tmp_path: Path) -> None:
    seen: List[ScratchBuffer] = []

    def broken(_buffer: ScratchBuffer) -> None:
        raise RuntimeError("hook bug")

    controller = make_controller(tmp_path, on_buffer_created=(broken, seen.append))

    buffer = controller.get_or_create("proj-a")

    assert seen == [buffer]
    controller.get_or_create("proj-a")
    assert seen == [buffer]


def test_handle_event_flushes_everything(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.get_or_create("a").insert_text("1")

    assert controller.handle_event(TriggerEvent.SHUTDOWN) == {"a": True}
    assert controller.handle_event("focus-changed") == {"a": True}


def test_close_all_flushes_every_buffer(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.get_or_create("a").insert_text("1")
    controller.get_or_create("b").insert_text("2")

    controller.close_all()

    assert controller.live_names() == ()
    assert controller.store.names() == ["a", "b"]


def test_fixed_mode_policy(tmp_path: Path) -> None:
    controller = make_controller(
        tmp_path, initial_mode_policy=InitialModePolicy.FIXED, fixed_mode="org"
    )

    assert controller.get_or_create("a").mode_id == "org"
    assert controller.get_or_create("b", default_mode="python").mode_id == "python"


def test_inherit_mode_policy_uses_last_active_buffer(tmp_path: Path) -> None:
    controller = make_controller(tmp_path, initial_mode_policy="inherit")
    assert controller.get_or_create("a").mode_id == "fundamental"

    controller.note_active(ScratchBuffer.from_text("", mode_id="rust"))

    assert controller.get_or_create("b").mode_id == "rust"


def test_inherit_mode_policy_prefers_supplier(tmp_path: Path) -> None:
    config = ScratchConfig(
        root_directory=tmp_path, initial_mode_policy=InitialModePolicy.INHERIT
    )
    controller = ScratchController(
        RecordStore(tmp_path), config=config, mode_supplier=lambda: "lisp"
    )

    assert controller.get_or_create().mode_id == "lisp"


def test_saved_mode_wins_over_requested_default(tmp_path: Path) -> None:
    controller = make_controller(tmp_path)
    controller.store.write("a", encode(Record("", 0, "text")))

    assert controller.get_or_create("a", default_mode="python").mode_id == "text"


def test_build_controller_wires_store_from_config(tmp_path: Path) -> None:
    config = ScratchConfig(root_directory=tmp_path / "s", suffix=".rec")

    controller = build_controller(config)

    assert controller.store.root == tmp_path / "s"
    assert controller.store.suffix == ".rec"
    assert controller.config is config


def test_independent_controllers_do_not_share_state(tmp_path: Path) -> None:
    first = make_controller(tmp_path / "one")
    second = make_controller(tmp_path / "two")

    first.get_or_create("a")

    assert second.live_names() == ()
