"""Record codec and on-disk storage for scratch buffers."""

from .codec import FORMAT_TAG, FORMAT_VERSION, Record, decode, encode, encode_buffer
from .store import RecordStore

__all__ = [
    "FORMAT_TAG",
    "FORMAT_VERSION",
    "Record",
    "RecordStore",
    "decode",
    "encode",
    "encode_buffer",
]
