"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Process-wide default cache and the module-level functions the UI layer calls.
"""

from __future__ import annotations

from threading import Lock

from .cache import ProductCache
from .settings import ProductCacheSettings
from .types import ConsentState, JSONValue

_DEFAULT: ProductCache | None = None
_LOCK = Lock()


def get_product_cache() -> ProductCache:
    """
    Return the default cache, building it from the environment on first use.

    Environment values are read leniently: a malformed variable is logged and
    its default used, so the module-level functions never raise.
    """
    global _DEFAULT
    with _LOCK:
        if _DEFAULT is None:
            _DEFAULT = ProductCache.from_settings(ProductCacheSettings.from_env(strict=False))
        return _DEFAULT


def configure_product_cache(cache: ProductCache) -> None:
    """Replace the default cache used by the module-level functions."""
    global _DEFAULT
    with _LOCK:
        _DEFAULT = cache


def reset_product_cache() -> None:
    """Forget the default cache; the next call rebuilds it from the environment."""
    global _DEFAULT
    with _LOCK:
        _DEFAULT = None


def has_cache_permission() -> bool:
    return get_product_cache().consent.has_permission()


def get_cache_permission() -> ConsentState | None:
    return get_product_cache().consent.get_permission()


def set_cache_permission(permission: ConsentState) -> None:
    get_product_cache().consent.set_permission(permission)


def should_show_permission_dialog() -> bool:
    return get_product_cache().consent.should_prompt_for_consent()


async def get_cached_products(cache_key: str) -> JSONValue | None:
    return await get_product_cache().get(cache_key)


async def set_cached_products(cache_key: str, products: JSONValue) -> None:
    await get_product_cache().set(cache_key, products)


async def delete_cached_products(cache_key: str) -> None:
    await get_product_cache().delete(cache_key)


clear_cache = delete_cached_products


async def clear_all_caches() -> None:
    await get_product_cache().clear_all()


async def clear_product_cache() -> bool:
    return await get_product_cache().clear_product_cache()
