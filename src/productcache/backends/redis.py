"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Redis-backed structured store for cached product rows.
"""

from __future__ import annotations

import logging
from typing import Any

from ..types import CachedRow, parse_row

logger = logging.getLogger("productcache.backends.redis")

SCHEMA_VERSION = "1"


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisStructuredStore:
    """
    Structured cache store using one Redis hash as the row collection.

    Uses:
    - Redis hash (``{prefix}:products``) mapping cache key to JSON row
    - Redis hash (``{prefix}:meta``) holding the schema version

    Requires ``redis.asyncio`` (``pip install redis``).

    Args:
        redis: An ``redis.asyncio.Redis`` client instance.
        prefix: Key prefix for namespacing.
    """

    backend_id = "redis"

    def __init__(self, redis: Any, *, prefix: str = "productcache") -> None:
        self._redis = redis
        self._prefix = prefix

    def _rows_key(self) -> str:
        """Redis hash key storing serialized cache rows."""
        return f"{self._prefix}:products"

    def _meta_key(self) -> str:
        """Redis hash key storing collection metadata."""
        return f"{self._prefix}:meta"

    async def open(self) -> None:
        """Check connectivity and create collection metadata on first open."""
        await self._redis.ping()
        created = await self._redis.hsetnx(self._meta_key(), "schema_version", SCHEMA_VERSION)
        if created:
            logger.info("Created product cache collection %s", self._rows_key())

    async def close(self) -> None:
        closer = getattr(self._redis, "aclose", None)
        if closer is not None:
            await closer()

    async def get(self, key: str) -> CachedRow | None:
        blob = await self._redis.hget(self._rows_key(), key)
        if blob is None:
            return None
        row = parse_row(blob, key=key)
        if row is None:
            logger.warning("Dropping malformed cache row %s", key)
            await self._redis.hdel(self._rows_key(), key)
        return row

    async def set(self, row: CachedRow) -> None:
        await self._redis.hset(self._rows_key(), row.key, row.to_json())

    async def delete(self, key: str) -> None:
        await self._redis.hdel(self._rows_key(), key)

    async def keys(self) -> list[str]:
        return [_text(item) for item in await self._redis.hkeys(self._rows_key())]

    async def clear(self) -> int:
        count = await self._redis.hlen(self._rows_key())
        await self._redis.delete(self._rows_key())
        return int(count or 0)
