import json

import pytest

from persistent_scratch.buffer import ScratchBuffer
from persistent_scratch.errors import RecordDecodeError
from persistent_scratch.persistence import Record, decode, encode, encode_buffer


def make_payload(**overrides: object) -> bytes:
    payload: dict[str, object] = {
        "format": "persistent-scratch",
        "version": 1,
        "content": "hello",
        "cursor": 5,
        "mode": "text",
    }
    payload.update(overrides)
    return json.dumps(payload).encode("utf-8")


@pytest.mark.parametrize(
    "record",
    [
        Record(content="", cursor_offset=0, mode_id="fundamental"),
        Record(content="hello", cursor_offset=5, mode_id="text"),
        Record(content="line one\nline two\r\n\ttab", cursor_offset=9, mode_id="python"),
        Record(content="café ☃ \U0001f600", cursor_offset=3, mode_id="markdown"),
        Record(content='{"not": "json inside"}', cursor_offset=0, mode_id="json"),
        Record(content="bad \udcff byte", cursor_offset=4, mode_id="text"),
    ],
)
def test_decode_reverses_encode(record: Record) -> None:
    assert decode(encode(record)) == record


def test_encode_is_deterministic() -> None:
    record = Record(content="same", cursor_offset=2, mode_id="text")

    assert encode(record) == encode(Record("same", 2, "text"))


def test_encode_buffer_reads_live_state() -> None:
    buffer = ScratchBuffer.from_text("abc", mode_id="python")
    buffer.move_cursor(1)

    assert decode(encode_buffer(buffer)) == Record("abc", 1, "python")


def test_decode_clamps_offset_past_end() -> None:
    record = decode(make_payload(content="abc", cursor=42))

    assert record.cursor_offset == 3
    assert record.content == "abc"


def test_decode_clamps_negative_offset() -> None:
    assert decode(make_payload(cursor=-7)).cursor_offset == 0


@pytest.mark.parametrize(
    "data",
    [
        None,
        b"",
        b"\xff\xfe\x00",
        b'{"format": "persistent-scratch", "version": 1, "content": "hel',
        b"[1, 2, 3]",
        b"not json at all",
    ],
)
def test_decode_rejects_malformed_bytes(data: bytes | None) -> None:
    with pytest.raises(RecordDecodeError):
        decode(data)


@pytest.mark.parametrize(
    "overrides",
    [
        {"format": "something-else"},
        {"version": 99},
        {"content": 12},
        {"cursor": "5"},
        {"cursor": True},
        {"mode": None},
        {"mode": ""},
    ],
)
def test_decode_rejects_bad_fields(overrides: dict[str, object]) -> None:
    with pytest.raises(RecordDecodeError):
        decode(make_payload(**overrides))


def test_decode_rejects_missing_field() -> None:
    payload = json.loads(make_payload())
    del payload["mode"]

    with pytest.raises(RecordDecodeError, match="missing 'mode'"):
        decode(json.dumps(payload).encode("utf-8"))


def test_decode_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        decode(b"{}")


def test_encode_escapes_non_ascii_text() -> None:
    data = encode(Record(content="café \udcff", cursor_offset=0, mode_id="text"))

    assert data.isascii()
    assert decode(data).content == "café \udcff"
