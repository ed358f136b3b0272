"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for building cache backends from settings.
"""

from __future__ import annotations

from typing import Any

from ..errors import BackendUnavailableError
from ..settings import ProductCacheSettings
from .flat import FlatStorage
from .redis import RedisStructuredStore


def create_flat_storage(settings: ProductCacheSettings) -> FlatStorage:
    """Create the flat store, file-backed when `flat_path` is set."""
    return FlatStorage(settings.flat_path)


def create_structured_store(
    settings: ProductCacheSettings,
    *,
    redis_client: Any | None = None,
) -> RedisStructuredStore | None:
    """
    Create the structured store, or `None` when none is configured.

    Redis resolution:
    - Uses the provided `redis_client` when supplied.
    - Otherwise builds a client from `settings.redis_url`.
    - Without a URL the structured store is unsupported and `None` is returned.
    """
    client = redis_client
    if client is None:
        if not settings.structured_enabled:
            return None
        try:
            import redis.asyncio as redis
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise BackendUnavailableError(
                "Redis structured store requires `redis` to be installed."
            ) from exc
        client = redis.Redis.from_url(settings.redis_url)

    return RedisStructuredStore(client, prefix=settings.redis_prefix)
