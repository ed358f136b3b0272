"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: backends/__init__.py.
"""

from .base import CacheBackend, StructuredStore
from .factory import create_flat_storage, create_structured_store
from .flat import FlatCacheBackend, FlatStorage
from .redis import RedisStructuredStore

__all__ = [
    "CacheBackend",
    "StructuredStore",
    "FlatStorage",
    "FlatCacheBackend",
    "RedisStructuredStore",
    "create_flat_storage",
    "create_structured_store",
]
