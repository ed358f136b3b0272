"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error types shared by cache backends and settings.
"""

from __future__ import annotations


class ProductCacheError(RuntimeError):
    """Base error for product cache configuration and backend failures."""


class BackendUnavailableError(ProductCacheError):
    """Raised when a storage backend cannot be opened or used."""


class FlatStorageError(BackendUnavailableError):
    """Raised when the flat key-value store cannot be read or written."""
