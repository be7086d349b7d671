"""Request dispatch — the gateway between a kernel bridge and the engine.

A filesystem bridge (FUSE or anything shaped like it) receives callbacks
from the kernel: getattr, create, open, read, and so on.  It turns each
one into a request and hands it to the engine through a single entry
point, then returns the result or a negated errno to the kernel.

1. ``RequestKind`` — an enum of every request the engine accepts.

2. ``ErrorKind`` / ``EngineError`` — the only exception a bridge ever
   sees.  The engine catches its internal exceptions (``OutOfRangeError``,
   ``DuplicateNameError`` ...) and re-raises them as ``EngineError`` with
   a kind and the matching errno.

3. ``dispatch_request()`` — routes a request kind plus keyword arguments
   to the engine method that serves it.

4. ``RequestHandler`` — the protocol a bridge holds on to.  The engine
   implements it; one engine per mount is passed to the bridge
   explicitly.
"""

from __future__ import annotations

import errno
from enum import IntEnum, StrEnum
from typing import Any, Protocol


class RequestKind(IntEnum):
    """Enumerate every request a bridge can make.

    The numbering groups namespace requests before per-file requests.
    """

    # Namespace requests
    LIST = 1
    STAT = 2
    CREATE = 3
    MKDIR = 4

    # Per-file requests
    OPEN = 10
    SET_TIMES = 11
    WRITE = 12
    READ = 13
    TRUNCATE = 14
    RELEASE = 15


class ErrorKind(StrEnum):
    """The external error taxonomy, each kind tied to one errno."""

    NOT_FOUND = "not_found"
    DUPLICATE_NAME = "duplicate_name"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    OUT_OF_RANGE = "out_of_range"
    INVALID_NAME = "invalid_name"
    INVALID_ARGUMENT = "invalid_argument"
    NOT_SUPPORTED = "not_supported"

    @property
    def errno(self) -> int:
        """Return the errno a bridge reports (negated) to the kernel."""
        return _ERRNO_FOR_KIND[self]


_ERRNO_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: errno.ENOENT,
    ErrorKind.DUPLICATE_NAME: errno.EEXIST,
    ErrorKind.CAPACITY_EXCEEDED: errno.ENOSPC,
    ErrorKind.OUT_OF_RANGE: errno.EIO,
    ErrorKind.INVALID_NAME: errno.EINVAL,
    ErrorKind.INVALID_ARGUMENT: errno.EINVAL,
    ErrorKind.NOT_SUPPORTED: errno.EOPNOTSUPP,
}


class EngineError(Exception):
    """Raised when a request fails.

    This is the only exception a bridge should ever see from the engine.
    Internal exceptions are caught and wrapped.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        """Create an error of *kind* with a human-readable *message*."""
        super().__init__(message)
        self.kind = kind

    @property
    def errno(self) -> int:
        """Return the errno for this error's kind."""
        return self.kind.errno


class RequestHandler(Protocol):
    """What a bridge needs from the engine: one call per request."""

    def handle(self, kind: RequestKind, **kwargs: Any) -> Any:
        """Serve a request and return its result.

        Raises:
            EngineError: If the request fails.

        """
        ...


def dispatch_request(engine: Any, kind: RequestKind, **kwargs: Any) -> Any:
    """Route a request to the engine method that serves it.

    Arguments are checked before the engine is called, so a bad argument
    never reaches a file and never perturbs its observation state.

    Args:
        engine: The engine serving this mount.
        kind: What the bridge is asking for.
        **kwargs: Arguments specific to the request.

    Returns:
        The request result (type depends on the request).

    Raises:
        EngineError: If the request fails, the kind is unknown, or a
            required argument is missing or of the wrong type.

    """
    handlers: dict[RequestKind, Any] = {
        RequestKind.LIST: _req_list,
        RequestKind.STAT: _req_stat,
        RequestKind.CREATE: _req_create,
        RequestKind.MKDIR: _req_mkdir,
        RequestKind.OPEN: _req_open,
        RequestKind.SET_TIMES: _req_set_times,
        RequestKind.WRITE: _req_write,
        RequestKind.READ: _req_read,
        RequestKind.TRUNCATE: _req_truncate,
        RequestKind.RELEASE: _req_release,
    }

    handler = handlers.get(kind)
    if handler is None:
        msg = f"Unknown request: {kind}"
        raise EngineError(ErrorKind.NOT_SUPPORTED, msg)

    try:
        return handler(engine, _Arguments(kwargs))
    except _ArgumentError as e:
        msg = f"{e} for {RequestKind(kind).name}"
        raise EngineError(ErrorKind.INVALID_ARGUMENT, msg) from e


# -- Argument checking --------------------------------------------------------


_REQUIRED: Any = object()
_BYTES_LIKE = (bytes, bytearray, memoryview)


class _ArgumentError(Exception):
    """A request argument is missing or has the wrong type."""


class _Arguments:
    """Typed access to a request's keyword arguments."""

    def __init__(self, kwargs: dict[str, Any]) -> None:
        self._kwargs = kwargs

    def _get(self, key: str, default: Any, expected: tuple[type, ...], label: str) -> Any:
        if key not in self._kwargs:
            if default is _REQUIRED:
                msg = f"Missing argument: {key}"
                raise _ArgumentError(msg)
            return default
        value = self._kwargs[key]
        # bool is an int subclass but never a valid offset, size or time.
        if isinstance(value, bool) or not isinstance(value, expected):
            msg = f"Argument {key} must be {label}, not {type(value).__name__}"
            raise _ArgumentError(msg)
        return value

    def path(self, default: Any = _REQUIRED) -> str:
        return self._get("path", default, (str,), "a str")

    def integer(self, key: str, default: Any = _REQUIRED) -> int:
        return self._get(key, default, (int,), "an int")

    def time(self, key: str) -> float:
        return self._get(key, _REQUIRED, (int, float), "a number")

    def data(self) -> bytes:
        return bytes(self._get("data", _REQUIRED, _BYTES_LIKE, "bytes"))


# -- Namespace request handlers ----------------------------------------------


def _req_list(engine: Any, args: _Arguments) -> list[str]:
    """List the root directory."""
    return engine.list_dir(args.path(default="/"))


def _req_stat(engine: Any, args: _Arguments) -> Any:
    """Stat a file or the root."""
    return engine.stat(args.path())


def _req_create(engine: Any, args: _Arguments) -> Any:
    """Create a file owned by the caller."""
    path, mode = args.path(), args.integer("mode")
    return engine.create(path, mode)


def _req_mkdir(engine: Any, args: _Arguments) -> None:
    """Refuse to create a directory."""
    path, mode = args.path(), args.integer("mode", default=0o755)
    engine.mkdir(path, mode)


# -- Per-file request handlers -----------------------------------------------


def _req_open(engine: Any, args: _Arguments) -> None:
    """Open a file."""
    engine.open(args.path())


def _req_set_times(engine: Any, args: _Arguments) -> None:
    """Set both timestamps of a file."""
    path = args.path()
    access_time, modify_time = args.time("access_time"), args.time("modify_time")
    engine.set_times(path, access_time, modify_time)


def _req_write(engine: Any, args: _Arguments) -> int:
    """Write bytes at an offset."""
    path, offset, data = args.path(), args.integer("offset"), args.data()
    return engine.write(path, offset, data)


def _req_read(engine: Any, args: _Arguments) -> bytes:
    """Read up to a length of bytes at an offset."""
    path, offset, max_length = args.path(), args.integer("offset"), args.integer("max_length")
    return engine.read(path, offset, max_length)


def _req_truncate(engine: Any, args: _Arguments) -> None:
    """Set a file's logical size."""
    path, new_size = args.path(), args.integer("new_size")
    engine.truncate(path, new_size)


def _req_release(engine: Any, args: _Arguments) -> None:
    """Release a file handle."""
    engine.release(args.path())
