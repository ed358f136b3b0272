"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

User consent gate for client-side product caching.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .backends.flat import FlatStorage
from .types import (
    CONSENT_VALUES,
    PERMISSION_KEY,
    PERMISSION_TIMESTAMP_KEY,
    ConsentState,
    now_ms,
)

logger = logging.getLogger("productcache.consent")


class ConsentManager:
    """
    Persisted accept/reject decision gating every cache read and write.

    Storage failures never propagate: an unreadable flag means "no
    permission", and an unwritable flag leaves the previous decision in place.
    """

    def __init__(
        self,
        storage: FlatStorage,
        *,
        on_reject: Callable[[], None] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._storage = storage
        self._on_reject = on_reject
        self._clock = clock

    def _read(self, name: str) -> str | None:
        return self._storage.get_item(name)

    def has_permission(self) -> bool:
        try:
            return self._read(PERMISSION_KEY) == "accepted"
        except Exception as exc:
            logger.debug("Cache permission unreadable: %s", exc)
            return False

    def get_permission(self) -> ConsentState | None:
        try:
            value = self._read(PERMISSION_KEY)
        except Exception as exc:
            logger.debug("Cache permission unreadable: %s", exc)
            return None
        if value not in CONSENT_VALUES:
            return None
        return value  # type: ignore[return-value]

    def permission_timestamp(self) -> int | None:
        """Return when the current decision was recorded (epoch ms)."""
        try:
            raw = self._read(PERMISSION_TIMESTAMP_KEY)
        except Exception:
            return None
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def set_permission(self, value: ConsentState) -> None:
        if value not in CONSENT_VALUES:
            logger.error("Ignoring unknown cache permission value %r", value)
            return
        try:
            self._storage.set_item(PERMISSION_KEY, value)
            self._storage.set_item(PERMISSION_TIMESTAMP_KEY, str(self._clock()))
        except Exception as exc:
            logger.error("Error setting cache permission: %s", exc)
            return

        logger.info("Cache permission %s", value)
        if value == "rejected" and self._on_reject is not None:
            try:
                self._on_reject()
            except Exception as exc:
                logger.error("Error purging cache after rejection: %s", exc)

    def should_prompt_for_consent(self) -> bool:
        try:
            return not self._read(PERMISSION_KEY)
        except Exception as exc:
            logger.debug("Cache permission unreadable: %s", exc)
            return False
