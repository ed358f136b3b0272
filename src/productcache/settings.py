"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Product cache settings and explicit environment loading.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .errors import ProductCacheError

logger = logging.getLogger("productcache.settings")


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def _env_float(name: str, default: str, *, strict: bool = True) -> float:
    raw = _env_first(name, default=default) or default
    try:
        return float(raw)
    except ValueError as exc:
        if strict:
            raise ProductCacheError(f"{name} must be a number, got {raw!r}") from exc
        logger.error("%s must be a number, got %r; using %s", name, raw, default)
        return float(default)


@dataclass(frozen=True, slots=True)
class ProductCacheSettings:
    """Explicit settings used to build the structured and flat stores."""

    redis_url: str | None = None
    redis_prefix: str = "productcache"
    flat_path: str | None = None
    key_prefix: str = "productcache:"
    open_timeout_s: float | None = 5.0

    def __post_init__(self) -> None:
        if not self.key_prefix:
            raise ProductCacheError("key_prefix must be non-empty")
        if self.open_timeout_s is not None and self.open_timeout_s <= 0:
            raise ProductCacheError("open_timeout_s must be > 0")

    @property
    def structured_enabled(self) -> bool:
        return bool(self.redis_url)

    @staticmethod
    def from_env(*, strict: bool = True) -> "ProductCacheSettings":
        """
        Load settings from `PRODUCTCACHE_*` environment variables.

        The structured store is enabled only when `PRODUCTCACHE_REDIS_URL` or
        `PRODUCTCACHE_REDIS_HOST` is set. A timeout of `0` disables the open
        timeout. With `strict=False` malformed values are logged and replaced
        by their defaults instead of raising `ProductCacheError`.
        """
        url = _env_first("PRODUCTCACHE_REDIS_URL")
        host = _env_first("PRODUCTCACHE_REDIS_HOST")
        if not url and host:
            port = _env_first("PRODUCTCACHE_REDIS_PORT", default="6379") or "6379"
            db = _env_first("PRODUCTCACHE_REDIS_DB", default="0") or "0"
            password = _env_first("PRODUCTCACHE_REDIS_PASSWORD", default="") or ""
            if password:
                url = f"redis://:{password}@{host}:{port}/{db}"
            else:
                url = f"redis://{host}:{port}/{db}"

        timeout = _env_float("PRODUCTCACHE_OPEN_TIMEOUT_S", "5", strict=strict)
        return ProductCacheSettings(
            redis_url=url,
            redis_prefix=_env_first("PRODUCTCACHE_REDIS_PREFIX", default="productcache")
            or "productcache",
            flat_path=_env_first("PRODUCTCACHE_FLAT_PATH"),
            key_prefix=_env_first("PRODUCTCACHE_KEY_PREFIX", default="productcache:")
            or "productcache:",
            open_timeout_s=timeout if timeout > 0 else None,
        )
