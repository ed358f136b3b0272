"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Consent-gated product list cache with a structured store and flat fallback.

Quick start::

    from productcache import (
        get_cached_products,
        set_cache_permission,
        set_cached_products,
    )

    set_cache_permission("accepted")
    products = await get_cached_products("shirts")
    if products is None:
        products = await fetch_products("shirts")
        await set_cached_products("shirts", products)
"""

from .api import (
    clear_all_caches,
    clear_cache,
    clear_product_cache,
    configure_product_cache,
    delete_cached_products,
    get_cache_permission,
    get_cached_products,
    get_product_cache,
    has_cache_permission,
    reset_product_cache,
    set_cache_permission,
    set_cached_products,
    should_show_permission_dialog,
)
from .backends import (
    CacheBackend,
    FlatCacheBackend,
    FlatStorage,
    RedisStructuredStore,
    StructuredStore,
)
from .cache import ProductCache
from .consent import ConsentManager
from .errors import BackendUnavailableError, FlatStorageError, ProductCacheError
from .selector import BackendSelector, FallbackCache
from .settings import ProductCacheSettings
from .types import CACHE_TTL_MS, CachedRow, ConsentState, JSONValue

__all__ = [
    "CACHE_TTL_MS",
    "CachedRow",
    "ConsentState",
    "JSONValue",
    "ProductCacheError",
    "BackendUnavailableError",
    "FlatStorageError",
    "ProductCacheSettings",
    "CacheBackend",
    "StructuredStore",
    "FlatStorage",
    "FlatCacheBackend",
    "RedisStructuredStore",
    "BackendSelector",
    "FallbackCache",
    "ConsentManager",
    "ProductCache",
    "get_product_cache",
    "configure_product_cache",
    "reset_product_cache",
    "has_cache_permission",
    "get_cache_permission",
    "set_cache_permission",
    "should_show_permission_dialog",
    "get_cached_products",
    "set_cached_products",
    "delete_cached_products",
    "clear_cache",
    "clear_all_caches",
    "clear_product_cache",
]
