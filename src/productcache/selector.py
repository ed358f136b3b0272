"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Backend selection: memoized structured-store open plus per-call flat fallback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .backends.base import StructuredStore
from .backends.flat import FlatCacheBackend
from .types import CachedRow

logger = logging.getLogger("productcache.selector")

T = TypeVar("T")

StructuredFactory = Callable[[], StructuredStore | None]


async def await_with_timeout(awaitable: Awaitable[T], timeout_s: float | None) -> T:
    """Await value with optional timeout."""
    if timeout_s is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout_s)


class BackendSelector:
    """
    Open the structured store at most once and memoize the outcome.

    Concurrent callers of `initialize` share one in-flight open. The outcome is
    either the opened store or `None`, meaning callers use the flat store.
    """

    def __init__(
        self,
        factory: StructuredFactory | None,
        *,
        open_timeout_s: float | None = 5.0,
    ) -> None:
        self._factory = factory
        self._open_timeout_s = open_timeout_s
        self._lock = asyncio.Lock()
        self._resolved = False
        self._handle: StructuredStore | None = None
        self._unsupported = False
        self.open_attempts = 0

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def unsupported(self) -> bool:
        """True once initialization found no structured store configured."""
        return self._unsupported

    @property
    def handle(self) -> StructuredStore | None:
        return self._handle

    async def initialize(self) -> StructuredStore | None:
        if self._resolved:
            return self._handle
        async with self._lock:
            if self._resolved:
                return self._handle
            self._handle = await self._open()
            self._resolved = True
            return self._handle

    async def _open(self) -> StructuredStore | None:
        if self._factory is None:
            self._unsupported = True
            return None
        self.open_attempts += 1
        try:
            store = self._factory()
        except Exception as exc:
            logger.warning("Structured cache store unavailable, using flat store: %s", exc)
            return None
        if store is None:
            self._unsupported = True
            logger.debug("No structured cache store configured, using flat store")
            return None

        try:
            await await_with_timeout(store.open(), self._open_timeout_s)
        except (asyncio.TimeoutError, TimeoutError):
            logger.warning(
                "Structured cache store did not open within %.2fs, using flat store",
                self._open_timeout_s,
            )
            await _close_quietly(store)
            return None
        except Exception as exc:
            logger.warning("Structured cache store failed to open, using flat store: %s", exc)
            await _close_quietly(store)
            return None

        logger.info("Opened structured cache store %s", store.backend_id)
        return store

    async def close(self) -> None:
        handle = self._handle
        self._handle = None
        self._resolved = False
        self._unsupported = False
        if handle is not None:
            await _close_quietly(handle)


async def _close_quietly(store: StructuredStore) -> None:
    try:
        await store.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing %s: %s", store.backend_id, exc)


class FallbackCache:
    """
    Route each operation to the structured store first, then the flat store.

    A structured failure only affects the call that hit it; the next call
    tries the structured store again. Reads that miss in the structured store
    also consult the flat store, which may hold rows written during an earlier
    fallback.
    """

    backend_id = "fallback"

    def __init__(self, selector: BackendSelector, flat: FlatCacheBackend) -> None:
        self._selector = selector
        self._flat = flat

    @property
    def flat(self) -> FlatCacheBackend:
        return self._flat

    @property
    def selector(self) -> BackendSelector:
        return self._selector

    async def get(self, key: str) -> CachedRow | None:
        primary = await self._selector.initialize()
        if primary is not None:
            try:
                row = await primary.get(key)
            except Exception as exc:
                logger.warning("Structured cache read failed for %s, trying flat store: %s", key, exc)
            else:
                if row is not None:
                    return row
        try:
            return await self._flat.get(key)
        except Exception as exc:
            logger.warning("Flat cache read failed for %s: %s", key, exc)
            return None

    async def set(self, row: CachedRow) -> None:
        primary = await self._selector.initialize()
        if primary is not None:
            try:
                await primary.set(row)
                logger.debug("Cached %s in %s", row.key, primary.backend_id)
                return
            except Exception as exc:
                logger.warning("Structured cache write failed for %s, trying flat store: %s", row.key, exc)
        try:
            await self._flat.set(row)
            logger.debug("Cached %s in flat store", row.key)
        except Exception as exc:
            logger.error("Error caching %s in flat store: %s", row.key, exc)

    async def delete(self, key: str) -> None:
        primary = await self._selector.initialize()
        if primary is not None:
            try:
                await primary.delete(key)
            except Exception as exc:
                logger.warning("Structured cache delete failed for %s: %s", key, exc)
        try:
            await self._flat.delete(key)
        except Exception as exc:
            logger.warning("Flat cache delete failed for %s: %s", key, exc)

    async def keys(self) -> list[str]:
        out: list[str] = []
        primary = await self._selector.initialize()
        if primary is not None:
            try:
                out.extend(await primary.keys())
            except Exception as exc:
                logger.warning("Structured cache key listing failed: %s", exc)
        try:
            flat_keys = await self._flat.keys()
        except Exception as exc:
            logger.warning("Flat cache key listing failed: %s", exc)
            flat_keys = []
        seen = set(out)
        out.extend(key for key in flat_keys if key not in seen)
        return out

    async def clear_structured(self) -> int:
        primary = await self._selector.initialize()
        if primary is None:
            return 0
        try:
            cleared = await primary.clear()
        except Exception as exc:
            logger.warning("Error clearing structured cache: %s", exc)
            return 0
        logger.info("Cleared %d structured cache entries", cleared)
        return cleared

    async def try_clear_structured(self) -> bool:
        """
        Clear the structured collection, reporting whether it is now empty.

        `True` also when no structured store is configured; `False` when one
        is configured but could not be opened or cleared.
        """
        primary = await self._selector.initialize()
        if primary is None:
            return self._selector.unsupported
        try:
            cleared = await primary.clear()
        except Exception as exc:
            logger.warning("Error clearing structured cache: %s", exc)
            return False
        logger.info("Cleared %d structured cache entries", cleared)
        return True

    def clear_flat_now(self) -> int:
        try:
            cleared = self._flat.clear_now()
        except Exception as exc:
            logger.warning("Error clearing flat cache: %s", exc)
            return 0
        logger.info("Cleared %d flat cache entries", cleared)
        return cleared

    async def clear(self) -> int:
        return await self.clear_structured() + self.clear_flat_now()
