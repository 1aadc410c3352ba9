"""Persistent per-project scratch buffers for editor hosts."""

__all__ = [
    "adapters",
    "buffer",
    "commands",
    "errors",
    "events",
    "host",
    "lifecycle",
    "persistence",
    "registry",
    "runtime",
]

__version__ = "0.1.0"
