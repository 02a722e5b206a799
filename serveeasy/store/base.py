"""
Document store interface.

A path-addressed JSON tree (``tickets/TICKET-1/status``) with the three
primitives the scheduling core needs: point and batch reads, equality
queries on a child field, and atomic multi-path writes. ``transaction``
adds a read-check-write that either applies all of its writes against
the snapshot it was shown or none of them.

In production this would be backed by a hosted realtime document database;
``InMemoryStore`` implements the same contract for development and tests.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from serveeasy.errors import StoreError

# Snapshot of the requested paths -> writes to apply (None deletes)
TransactionHandler = Callable[[dict[str, Any]], Mapping[str, Any]]

_INVALID_KEY_RE = re.compile(r"[.$#\[\]/]")


def split_path(path: str) -> list[str]:
    """Split a store path into keys, rejecting empty paths and illegal characters."""
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise StoreError(f"Invalid store path {path!r}")
    for part in parts:
        if not is_valid_key(part):
            raise StoreError(f"Invalid key {part!r} in path {path!r}")
    return parts


def is_valid_key(key: str) -> bool:
    return bool(key) and not _INVALID_KEY_RE.search(key)


def check_disjoint(paths: Iterable[str]) -> None:
    """Reject write sets where one path is an ancestor of another."""
    split = sorted(tuple(split_path(p)) for p in paths)
    for left, right in zip(split, split[1:]):
        if right[: len(left)] == left:
            raise StoreError(
                f"Path {'/'.join(left)} is an ancestor of {'/'.join(right)} in the same write"
            )


class DocumentStore(ABC):
    """Async key-value document store shared by all requests."""

    @abstractmethod
    async def get(self, path: str) -> Any:
        """Return the value at ``path``, or None when absent."""

    @abstractmethod
    async def get_many(self, paths: Iterable[str]) -> dict[str, Any]:
        """Read several paths in one round trip."""

    @abstractmethod
    async def query(self, path: str, child: str, equal_to: Any) -> dict[str, Any]:
        """Return the children of ``path`` whose ``child`` field equals ``equal_to``."""

    @abstractmethod
    async def update(self, writes: Mapping[str, Any]) -> None:
        """Apply a multi-path write atomically. A None value deletes the path."""

    @abstractmethod
    async def transaction(self, read_paths: Iterable[str], handler: TransactionHandler) -> dict[str, Any]:
        """
        Run ``handler`` against a consistent snapshot and commit its writes.

        The handler may raise to abort; nothing is written in that case and
        the exception propagates. Returns the writes that were applied.
        """

    @abstractmethod
    def generate_key(self) -> str:
        """Return a new unique child key."""

    async def close(self) -> None:
        """Release backend resources."""
