"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Synchronous string-keyed storage and the flat cache backend built on it.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path

from ..errors import FlatStorageError
from ..types import CachedRow, parse_row

logger = logging.getLogger("productcache.backends.flat")


class FlatStorage:
    """
    Flat string-to-string store, optionally persisted to one JSON file.

    Without a path the store lives in process memory only. With a path every
    write rewrites the file atomically, so values survive process restarts the
    same way the consent flag must.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._items: dict[str, str] | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._items is not None:
            return self._items
        items: dict[str, str] = {}
        if self._path is not None and self._path.exists():
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
            except (OSError, ValueError) as exc:
                raise FlatStorageError(f"Cannot read flat store {self._path}") from exc
            if not isinstance(raw, dict):
                raise FlatStorageError(f"Flat store {self._path} is not a JSON object")
            items = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        self._items = items
        return items

    def _flush(self, items: dict[str, str]) -> None:
        if self._path is None:
            return
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(items, ensure_ascii=True), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            raise FlatStorageError(f"Cannot write flat store {self._path}") from exc

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = dict(self._load())
            items[key] = value
            self._flush(items)
            self._items = items

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._load()
            if key not in items:
                return
            items = dict(items)
            items.pop(key)
            self._flush(items)
            self._items = items

    def remove_items(self, keys: list[str]) -> int:
        """Remove several keys with one write; returns how many existed."""
        with self._lock:
            items = dict(self._load())
            removed = 0
            for key in keys:
                if items.pop(key, None) is not None:
                    removed += 1
            if removed:
                self._flush(items)
                self._items = items
            return removed

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._load().keys())


@dataclass(slots=True)
class FlatCacheBackend:
    """Cache backend storing JSON rows in `FlatStorage` under a key prefix."""

    storage: FlatStorage
    prefix: str = "productcache:"
    backend_id: str = "flat"

    def storage_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> CachedRow | None:
        storage_key = self.storage_key(key)
        blob = self.storage.get_item(storage_key)
        if blob is None:
            return None
        row = parse_row(blob, key=key)
        if row is None:
            logger.warning("Dropping malformed flat cache entry %s", key)
            self.storage.remove_item(storage_key)
        return row

    async def set(self, row: CachedRow) -> None:
        self.storage.set_item(self.storage_key(row.key), row.to_json())

    async def delete(self, key: str) -> None:
        self.storage.remove_item(self.storage_key(key))

    async def keys(self) -> list[str]:
        return [
            name[len(self.prefix):]
            for name in self.storage.keys()
            if name.startswith(self.prefix)
        ]

    def clear_now(self) -> int:
        """Remove every prefixed entry synchronously; other keys are kept."""
        names = [name for name in self.storage.keys() if name.startswith(self.prefix)]
        return self.storage.remove_items(names)

    async def clear(self) -> int:
        return self.clear_now()
