from typing import List

import pytest

from persistent_scratch.buffer import BufferValidationError, ScratchBuffer


def test_from_text_preserves_exact_text() -> None:
    text = "first\n\nthird\n"
    buffer = ScratchBuffer.from_text(text)

    assert buffer.text == text
    assert buffer.document.line_count == 4
    assert buffer.document.length == len(text)


def test_insert_text_moves_cursor_and_marks_dirty() -> None:
    buffer = ScratchBuffer.from_text("held")
    buffer.move_cursor(3)

    buffer.insert_text("lo wor")

    assert buffer.text == "hello word"
    assert buffer.cursor_offset == 9
    assert buffer.modified is True


def test_move_cursor_rejects_out_of_range() -> None:
    buffer = ScratchBuffer.from_text("abc")

    with pytest.raises(BufferValidationError):
        buffer.move_cursor(4)


def test_load_replaces_state_and_clamps_cursor() -> None:
    buffer = ScratchBuffer.from_text("old text")
    buffer.insert_text("!")

    buffer.load("new", 10, "python")

    assert buffer.text == "new"
    assert buffer.cursor_offset == 3
    assert buffer.mode_id == "python"
    assert buffer.modified is False


def test_location_offset_conversion() -> None:
    buffer = ScratchBuffer.from_text("ab\ncde\n")

    assert buffer.offset_for_location((1, 2)) == 5
    assert buffer.location_for_offset(5) == (1, 2)
    assert buffer.location_for_offset(len(buffer.text)) == (2, 0)
    with pytest.raises(BufferValidationError):
        buffer.offset_for_location((1, 9))


def test_close_runs_hooks_while_live_then_releases() -> None:
    buffer = ScratchBuffer.from_text("x")
    seen: List[tuple[str, bool]] = []
    buffer.add_close_hook("first", lambda b: seen.append(("first", b.is_live)))
    buffer.add_close_hook("second", lambda b: seen.append(("second", b.is_live)))

    buffer.close()
    buffer.close()

    assert seen == [("first", True), ("second", True)]
    assert buffer.is_live is False
    with pytest.raises(RuntimeError):
        buffer.insert_text("y")


def test_close_hook_keys_replace_each_other() -> None:
    buffer = ScratchBuffer()
    calls: List[str] = []
    buffer.add_close_hook("flush", lambda _b: calls.append("old"))
    buffer.add_close_hook("flush", lambda _b: calls.append("new"))

    buffer.close()

    assert calls == ["new"]


def test_failing_close_hook_keeps_buffer_live() -> None:
    buffer = ScratchBuffer()

    def explode(_buffer: ScratchBuffer) -> None:
        raise OSError("cannot flush")

    buffer.add_close_hook("flush", explode)

    with pytest.raises(OSError):
        buffer.close()
    assert buffer.is_live is True
