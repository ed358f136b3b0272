"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: backends/base.py.
"""

from __future__ import annotations

from typing import Protocol

from ..types import CachedRow


class CacheBackend(Protocol):
    """Protocol implemented by the structured and flat cache backends."""
    backend_id: str

    async def get(self, key: str) -> CachedRow | None: ...

    async def set(self, row: CachedRow) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> int: ...

    async def keys(self) -> list[str]: ...


class StructuredStore(CacheBackend, Protocol):
    """Asynchronous backend that needs an explicit open handshake."""

    async def open(self) -> None: ...

    async def close(self) -> None: ...
