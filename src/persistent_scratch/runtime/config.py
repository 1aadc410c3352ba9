"""Scratch engine configuration and constants."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from persistent_scratch.buffer import ScratchBuffer
    from persistent_scratch.errors import RecordWriteError

ENV_PREFIX = "PERSISTENT_SCRATCH_"

DEFAULT_NAME = "default"
DEFAULT_SUFFIX = ".scratch"
FALLBACK_MODE = "fundamental"

BufferCreatedHook = Callable[["ScratchBuffer"], None]
WriteFailureHook = Callable[[str, "RecordWriteError"], None]


class InitialModePolicy(str, Enum):
    """How a fresh scratch buffer picks its editing mode."""

    INHERIT = "inherit"  # mode of the last active buffer
    FIXED = "fixed"
    DEFAULT = "default"


def default_root_directory(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    data_home = env.get("XDG_DATA_HOME")
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return base / "persistent-scratch"


@dataclass
class ScratchConfig:
    """Options recognised by the scratch controller."""

    root_directory: Path = field(default_factory=default_root_directory)
    default_name: str = DEFAULT_NAME
    suffix: str = DEFAULT_SUFFIX
    initial_mode_policy: InitialModePolicy = InitialModePolicy.DEFAULT
    fixed_mode: Optional[str] = None
    fallback_mode: str = FALLBACK_MODE
    on_buffer_created: Tuple[BufferCreatedHook, ...] = ()
    on_write_failure: Tuple[WriteFailureHook, ...] = ()

    def __post_init__(self) -> None:
        self.root_directory = Path(self.root_directory).expanduser()
        self.initial_mode_policy = InitialModePolicy(self.initial_mode_policy)
        self.on_buffer_created = tuple(self.on_buffer_created)
        self.on_write_failure = tuple(self.on_write_failure)
        if not self.default_name:
            raise ValueError("default_name cannot be empty")
        if not self.suffix.startswith(".") or len(self.suffix) < 2:
            raise ValueError(f"suffix must look like '.ext', got '{self.suffix}'")
        if not self.fallback_mode:
            raise ValueError("fallback_mode cannot be empty")
        if self.initial_mode_policy is InitialModePolicy.FIXED and not self.fixed_mode:
            raise ValueError("fixed_mode is required by the 'fixed' mode policy")

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: object
    ) -> "ScratchConfig":
        """Build a config from ``PERSISTENT_SCRATCH_*`` variables.

        Keyword ``overrides`` win over the environment.
        """

        env = os.environ if environ is None else environ

        def read(name: str) -> Optional[str]:
            value = env.get(f"{ENV_PREFIX}{name}")
            return value if value else None

        values: dict[str, object] = {}
        root = read("DIR")
        values["root_directory"] = (
            Path(root) if root else default_root_directory(env)
        )
        for key, env_name in (
            ("default_name", "DEFAULT_NAME"),
            ("suffix", "SUFFIX"),
            ("fixed_mode", "FIXED_MODE"),
            ("fallback_mode", "FALLBACK_MODE"),
        ):
            raw = read(env_name)
            if raw is not None:
                values[key] = raw
        policy = read("MODE_POLICY")
        if policy is not None:
            try:
                values["initial_mode_policy"] = InitialModePolicy(policy.lower())
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_PREFIX}MODE_POLICY must be one of "
                    f"{[p.value for p in InitialModePolicy]}, got '{policy}'"
                ) from exc
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


__all__ = [
    "BufferCreatedHook",
    "DEFAULT_NAME",
    "DEFAULT_SUFFIX",
    "FALLBACK_MODE",
    "InitialModePolicy",
    "ScratchConfig",
    "WriteFailureHook",
    "default_root_directory",
]
