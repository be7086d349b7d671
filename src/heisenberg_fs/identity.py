"""Caller identity — who owns the files a request creates.

A kernel bridge knows which user made each request (FUSE exposes it as
the request context).  The engine needs exactly two numbers from it when
a file is created: the caller's ``uid`` and ``gid``.

**Identity** — a frozen ``(uid, gid)`` pair.

**IdentityProvider** — any zero-argument callable returning an
    ``Identity``.  The engine calls it once per create, so a bridge can
    hand in a function that reads its current request context.

**process_identity** — the default provider: the uid/gid of the
    running process, which is what a single-user mount sees anyway.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass

ROOT_UID = 0
ROOT_GID = 0


@dataclass(frozen=True)
class Identity:
    """A caller's user and group ids."""

    uid: int
    gid: int

    @property
    def is_root(self) -> bool:
        """Return True for the superuser."""
        return self.uid == ROOT_UID

    def __repr__(self) -> str:
        """Return a readable representation."""
        return f"Identity(uid={self.uid}, gid={self.gid})"


IdentityProvider = Callable[[], Identity]


def process_identity() -> Identity:
    """Return the identity of the running process.

    Platforms without ``getuid`` (Windows) report root.
    """
    if not hasattr(os, "getuid"):
        return Identity(uid=ROOT_UID, gid=ROOT_GID)
    return Identity(uid=os.getuid(), gid=os.getgid())


def fixed_identity(uid: int, gid: int) -> IdentityProvider:
    """Return a provider that always reports the same identity.

    Useful for bridges that serve a single user, and for tests.
    """
    identity = Identity(uid=uid, gid=gid)

    def provider() -> Identity:
        return identity

    return provider
