"""Serialization of one scratch buffer's persisted state."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

from persistent_scratch.buffer.validation import clamp_offset
from persistent_scratch.errors import RecordDecodeError

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from persistent_scratch.buffer import ScratchBuffer

FORMAT_TAG = "persistent-scratch"
FORMAT_VERSION = 1


@dataclass(frozen=True, slots=True)
class Record:
    """The persisted triple: text, cursor offset and mode identifier."""

    content: str
    cursor_offset: int
    mode_id: str

    @classmethod
    def from_buffer(cls, buffer: "ScratchBuffer") -> "Record":
        return cls(
            content=buffer.text,
            cursor_offset=buffer.cursor_offset,
            mode_id=buffer.mode_id,
        )


def encode(record: Record) -> bytes:
    """Serialize ``record`` to ASCII-escaped JSON.

    Non-ASCII text, lone surrogates included, is written as ``\\u`` escapes
    so any ``str`` content encodes.

    Keys are sorted and separators fixed, so equal records always encode to
    identical bytes.
    """

    payload = {
        "format": FORMAT_TAG,
        "version": FORMAT_VERSION,
        "content": record.content,
        "cursor": record.cursor_offset,
        "mode": record.mode_id,
    }
    return json.dumps(
        payload, ensure_ascii=True, sort_keys=True, separators=(",", ":")
    ).encode("ascii")


def encode_buffer(buffer: "ScratchBuffer") -> bytes:
    return encode(Record.from_buffer(buffer))


def decode(data: Optional[bytes]) -> Record:
    """Parse ``data`` back into a ``Record`` with the cursor clamped.

    Raises ``RecordDecodeError`` for missing, truncated or malformed input.
    """

    if not data:
        raise RecordDecodeError("Record is empty")
    try:
        payload = json.loads(data.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise RecordDecodeError(f"Record is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RecordDecodeError(f"Record is not well-formed: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise RecordDecodeError("Record must be a JSON object")
    if payload.get("format") != FORMAT_TAG:
        raise RecordDecodeError(f"Unknown record format {payload.get('format')!r}")
    if payload.get("version") != FORMAT_VERSION:
        raise RecordDecodeError(
            f"Unsupported record version {payload.get('version')!r}"
        )

    content = _field(payload, "content", str)
    cursor = _field(payload, "cursor", int)
    mode_id = _field(payload, "mode", str)
    if not mode_id:
        raise RecordDecodeError("Record mode cannot be empty")
    return Record(
        content=content,
        cursor_offset=clamp_offset(content, cursor),
        mode_id=mode_id,
    )


def _field(payload: Mapping[str, Any], key: str, kind: type) -> Any:
    if key not in payload:
        raise RecordDecodeError(f"Record is missing '{key}'")
    value = payload[key]
    # bool is an int subclass; a boolean cursor is still malformed.
    if not isinstance(value, kind) or isinstance(value, bool):
        raise RecordDecodeError(
            f"Record field '{key}' must be {kind.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


__all__ = [
    "FORMAT_TAG",
    "FORMAT_VERSION",
    "Record",
    "decode",
    "encode",
    "encode_buffer",
]
