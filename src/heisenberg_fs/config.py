"""Engine configuration — the fixed limits of a mount.

Every limit in the filesystem is fixed for the lifetime of an engine:
how many files the table holds, how many bytes each file can hold, how
long a name may be.  ``EngineConfig`` bundles them so a bridge can build
one engine per mount from a single value.

The defaults match the classic heisenbergfs limits (256 files of 256
bytes, 36-character names).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

DEFAULT_MAX_FILES = 256
DEFAULT_MAX_FILE_SIZE = 256
DEFAULT_MAX_NAME_LENGTH = 36
DEFAULT_LOG_CAPACITY = 1024
DEFAULT_ROOT_MODE = 0o755


@dataclass(frozen=True)
class EngineConfig:
    """Limits and options for one filesystem engine.

    Attributes:
        max_files: Capacity of the file table.
        max_file_size: Capacity of each file's data buffer in bytes.
        max_name_length: Longest accepted file name.
        log_capacity: Most log entries kept before the oldest are dropped.
        root_mode: Permission bits reported for the root directory.

    """

    max_files: int = DEFAULT_MAX_FILES
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_name_length: int = DEFAULT_MAX_NAME_LENGTH
    log_capacity: int = DEFAULT_LOG_CAPACITY
    root_mode: int = DEFAULT_ROOT_MODE

    def __post_init__(self) -> None:
        """Reject limits that would make the engine unusable.

        Raises:
            ValueError: If any limit is not a positive integer.

        """
        for name in ("max_files", "max_file_size", "max_name_length", "log_capacity"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                msg = f"{name} must be a positive integer, got {value!r}"
                raise ValueError(msg)

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> EngineConfig:
        """Build a config from a plain mapping (parsed JSON, env, ...).

        Args:
            values: Field names to values; missing fields keep defaults.

        Raises:
            ValueError: If *values* contains unknown keys.

        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            msg = f"Unexpected config keys: {unknown}"
            raise ValueError(msg)
        return cls(**values)
