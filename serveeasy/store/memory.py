"""In-memory ``DocumentStore`` backend for development, demos and tests."""

import asyncio
import copy
import json
import logging
import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from serveeasy.store.base import DocumentStore, TransactionHandler, check_disjoint, split_path

logger = logging.getLogger(__name__)


class InMemoryStore(DocumentStore):
    """
    Nested-dict document tree guarded by a single asyncio lock.

    Every call yields to the event loop before touching the tree, so
    concurrent requests interleave between steps the way they would
    against a remote store.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._root: dict[str, Any] = copy.deepcopy(dict(initial)) if initial else {}
        self._lock = asyncio.Lock()

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryStore":
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        logger.info("Seeded in-memory store from %s (%d top-level keys)", path, len(data))
        return cls(data)

    # ------------------------------------------------------------------ #
    # Tree helpers (caller holds the lock)
    # ------------------------------------------------------------------ #

    def _read(self, path: str) -> Any:
        node: Any = self._root
        for key in split_path(path):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return copy.deepcopy(node)

    def _write(self, path: str, value: Any) -> None:
        keys = split_path(path)
        if value is None:
            self._delete(keys)
            return
        node = self._root
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        node[keys[-1]] = value

    def _delete(self, keys: list[str]) -> None:
        trail = [self._root]
        for key in keys[:-1]:
            child = trail[-1].get(key)
            if not isinstance(child, dict):
                return
            trail.append(child)
        trail[-1].pop(keys[-1], None)
        # Empty parents disappear, as in a realtime document tree
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(keys[depth - 1], None)

    def _apply(self, writes: Mapping[str, Any]) -> None:
        check_disjoint(writes.keys())
        prepared = [(path, copy.deepcopy(value)) for path, value in writes.items()]
        for path, value in prepared:
            self._write(path, value)

    # ------------------------------------------------------------------ #
    # DocumentStore API
    # ------------------------------------------------------------------ #

    async def get(self, path: str) -> Any:
        await asyncio.sleep(0)
        async with self._lock:
            return self._read(path)

    async def get_many(self, paths: Iterable[str]) -> dict[str, Any]:
        await asyncio.sleep(0)
        async with self._lock:
            return {path: self._read(path) for path in paths}

    async def query(self, path: str, child: str, equal_to: Any) -> dict[str, Any]:
        await asyncio.sleep(0)
        async with self._lock:
            node = self._read(path)
        if not isinstance(node, dict):
            return {}
        return {
            key: value for key, value in node.items()
            if isinstance(value, dict) and value.get(child) == equal_to
        }

    async def update(self, writes: Mapping[str, Any]) -> None:
        await asyncio.sleep(0)
        async with self._lock:
            self._apply(writes)

    async def transaction(self, read_paths: Iterable[str], handler: TransactionHandler) -> dict[str, Any]:
        await asyncio.sleep(0)
        async with self._lock:
            snapshot = {path: self._read(path) for path in read_paths}
            writes = dict(handler(snapshot))
            self._apply(writes)
            return writes

    def generate_key(self) -> str:
        # Time-ordered prefix keeps children in creation order
        return f"{time.time_ns():x}{uuid.uuid4().hex[:8]}"

    def dump(self) -> dict[str, Any]:
        """Deep copy of the whole tree, for inspection."""
        return copy.deepcopy(self._root)
