"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared types, constants and the cached row model.
"""

from __future__ import annotations

import json
import time
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, ValidationError

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]

ConsentState = Literal["accepted", "rejected"]
CONSENT_VALUES: tuple[str, ...] = ("accepted", "rejected")

# Fixed freshness window for every cache key.
CACHE_TTL_MS = 60 * 60 * 1000

PERMISSION_KEY = "cache_permission"
PERMISSION_TIMESTAMP_KEY = "cache_permission_timestamp"
# Set on reject until the structured store has been cleared.
PURGE_PENDING_KEY = "cache_purge_pending"


def now_ms() -> int:
    """Return wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CachedRow(BaseModel):
    """One cached product query result with its write timestamp."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    data: Any
    timestamp: int = Field(ge=0)

    def age_ms(self, now: int) -> int:
        return now - self.timestamp

    def is_fresh(self, now: int, *, ttl_ms: int = CACHE_TTL_MS) -> bool:
        return self.age_ms(now) < ttl_ms

    def to_json(self) -> str:
        return json.dumps(
            {"key": self.key, "data": self.data, "timestamp": self.timestamp},
            ensure_ascii=True,
        )


def parse_row(blob: str | bytes | None, *, key: str | None = None) -> CachedRow | None:
    """
    Decode one serialized row, returning `None` for malformed input.

    Flat-store rows written without a `key` field are accepted when the
    caller supplies the key they were stored under.
    """
    if blob is None:
        return None
    try:
        raw = json.loads(blob)
    except (TypeError, ValueError):
        return None
    if not isinstance(raw, dict) or raw.get("data") is None:
        return None
    if key is not None and "key" not in raw:
        raw["key"] = key
    try:
        return CachedRow.model_validate(raw)
    except ValidationError:
        return None
