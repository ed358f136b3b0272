"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Consent-gated, expiring product cache over the structured/flat backend pair.

Quick start::

    from productcache import ProductCache, ProductCacheSettings

    cache = ProductCache.from_settings(ProductCacheSettings.from_env())
    cache.consent.set_permission("accepted")

    products = await cache.get("shirts")
    if products is None:
        products = await fetch_products("shirts")
        await cache.set("shirts", products)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from .backends.base import CacheBackend, StructuredStore
from .backends.factory import create_flat_storage, create_structured_store
from .backends.flat import FlatCacheBackend, FlatStorage
from .consent import ConsentManager
from .selector import BackendSelector, FallbackCache, StructuredFactory
from .settings import ProductCacheSettings
from .types import CACHE_TTL_MS, PURGE_PENDING_KEY, CachedRow, JSONValue, now_ms

logger = logging.getLogger("productcache.cache")


class ProductCache:
    """
    Product list cache with lazy one-hour expiry.

    Nothing here raises to the caller: every failure degrades to a cache miss
    or a dropped write.
    """

    def __init__(
        self,
        storage: FlatStorage,
        *,
        structured: StructuredFactory | StructuredStore | None = None,
        key_prefix: str = "productcache:",
        open_timeout_s: float | None = 5.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if structured is None or callable(structured):
            factory = structured
        else:
            store = structured

            def factory() -> StructuredStore | None:
                return store

        self._clock = clock
        self._storage = storage
        self._backends = FallbackCache(
            BackendSelector(factory, open_timeout_s=open_timeout_s),
            FlatCacheBackend(storage, prefix=key_prefix),
        )
        self.consent = ConsentManager(storage, on_reject=self._purge_after_reject, clock=clock)
        self._background: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: ProductCacheSettings,
        *,
        redis_client: Any | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> "ProductCache":
        return cls(
            create_flat_storage(settings),
            structured=lambda: create_structured_store(settings, redis_client=redis_client),
            key_prefix=settings.key_prefix,
            open_timeout_s=settings.open_timeout_s,
            clock=clock,
        )

    @property
    def backends(self) -> FallbackCache:
        return self._backends

    @property
    def flat(self) -> FlatCacheBackend:
        return self._backends.flat

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _purge_after_reject(self) -> None:
        self._backends.clear_flat_now()
        try:
            self._storage.set_item(PURGE_PENDING_KEY, str(self._clock()))
        except Exception as exc:
            logger.error("Error recording pending cache purge: %s", exc)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: the persisted marker makes the next async call,
            # in this process or a later one, finish the purge.
            return
        self._spawn(self._settle_purge())

    def _purge_pending(self) -> bool:
        try:
            return self._storage.get_item(PURGE_PENDING_KEY) is not None
        except Exception as exc:
            logger.debug("Pending purge marker unreadable: %s", exc)
            return False

    def _forget_pending_purge(self) -> None:
        try:
            self._storage.remove_item(PURGE_PENDING_KEY)
        except Exception as exc:
            logger.warning("Error removing pending cache purge marker: %s", exc)

    async def _settle_purge(self) -> None:
        if not self._purge_pending():
            return
        if await self._backends.try_clear_structured():
            self._forget_pending_purge()

    async def _delete_quietly(self, key: str) -> None:
        await self._backends.delete(key)
        logger.debug("Deleted expired cache entry %s", key)

    async def get(self, key: str) -> JSONValue | None:
        if not self.consent.has_permission():
            return None
        try:
            await self._settle_purge()
            row = await self._backends.get(key)
        except Exception as exc:
            logger.error("Error reading cache %s: %s", key, exc)
            return None
        if row is None:
            return None
        if row.is_fresh(self._clock(), ttl_ms=CACHE_TTL_MS):
            logger.debug("Loaded %s from cache", key)
            return row.data
        self._spawn(self._delete_quietly(key))
        return None

    async def set(self, key: str, data: JSONValue) -> None:
        if not self.consent.has_permission():
            return
        try:
            await self._settle_purge()
            row = CachedRow(key=key, data=data, timestamp=self._clock())
            await self._backends.set(row)
        except Exception as exc:
            logger.error("Error saving cache %s: %s", key, exc)

    async def delete(self, key: str) -> None:
        try:
            await self._backends.delete(key)
        except Exception as exc:
            logger.error("Error deleting cache %s: %s", key, exc)

    async def clear_all(self) -> None:
        try:
            structured_cleared = await self._backends.try_clear_structured()
            cleared = self._backends.clear_flat_now()
        except Exception as exc:
            logger.error("Error clearing caches: %s", exc)
            return
        if structured_cleared:
            self._forget_pending_purge()
        logger.info("Cleared %d flat product cache entries", cleared)

    async def clear_product_cache(self) -> bool:
        """Operator entry point: clear every cached product list."""
        await self.clear_all()
        logger.info("All product caches cleared successfully")
        return True

    async def purge_expired(self) -> int:
        """
        Delete stale and malformed rows from both backends.

        Reads normally expire entries lazily; this sweep is only for operators
        who want to reclaim space held by entries nobody reads any more.
        """
        removed = 0
        now = self._clock()
        primary = await self._backends.selector.initialize()
        for backend in (primary, self.flat):
            if backend is None:
                continue
            try:
                removed += await self._sweep_backend(backend, now)
            except Exception as exc:
                logger.error("Error sweeping %s cache: %s", backend.backend_id, exc)
        if removed:
            logger.info("Swept %d expired cache entries", removed)
        return removed

    async def _sweep_backend(self, backend: CacheBackend, now: int) -> int:
        removed = 0
        for key in await backend.keys():
            row = await backend.get(key)
            if row is not None and row.is_fresh(now, ttl_ms=CACHE_TTL_MS):
                continue
            # Malformed rows were already dropped by the backend read.
            if row is not None:
                await backend.delete(key)
            removed += 1
        return removed

    async def drain(self) -> None:
        """Wait for background purges and expired-entry deletes to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._backends.selector.close()
