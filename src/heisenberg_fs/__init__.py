"""heisenberg-fs — a flat in-memory filesystem where looking changes things.

Every file remembers the last operation that observed it.  Stat, list,
open, read, write: each one moves the file's observation state, and
moves that the usual shell commands never make are flagged as anomalies.

The engine is meant to sit behind a kernel bridge (FUSE or similar) that
forwards each callback as a request and returns the result or errno.
"""

from heisenberg_fs.config import EngineConfig
from heisenberg_fs.dispatch import EngineError, ErrorKind, RequestHandler, RequestKind
from heisenberg_fs.engine import FilesystemEngine, RootAttributes
from heisenberg_fs.identity import Identity, fixed_identity, process_identity
from heisenberg_fs.observation import ObservationState, Operation, Transition, next_state
from heisenberg_fs.record import FileAttributes, FileRecord
from heisenberg_fs.table import FileTable

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "EngineError",
    "ErrorKind",
    "FileAttributes",
    "FileRecord",
    "FileTable",
    "FilesystemEngine",
    "Identity",
    "ObservationState",
    "Operation",
    "RequestHandler",
    "RequestKind",
    "RootAttributes",
    "Transition",
    "fixed_identity",
    "next_state",
    "process_identity",
]
