"""In-memory site index store with the sync cooldown gate.

The whole "database": one dict of :class:`SiteIndex` objects keyed by site
key, plus one dict of last-sync times. Nothing survives a restart.

Replacement is a single dict assignment of an immutable SiteIndex, so a
reader on the event loop sees either the old entry or the new one, never
documents from one sync paired with the timestamp of another.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from sitechat.models.site import SiteIndex, SiteSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sitechat.models.site import Document

log = structlog.get_logger()


class SiteStore:
    """Process-local site index implementing SiteStoreProtocol."""

    def __init__(self, cooldown_seconds: float = 300) -> None:
        self._indexes: dict[str, SiteIndex] = {}
        self._last_sync: dict[str, float] = {}
        self.cooldown_seconds = cooldown_seconds

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def get(self, site_key: str) -> SiteIndex | None:
        return self._indexes.get(site_key)

    def has_documents(self, site_key: str) -> bool:
        entry = self._indexes.get(site_key)
        return entry is not None and len(entry.documents) > 0

    def replace(
        self,
        site_key: str,
        documents: Iterable[Document],
        base_url: str,
        *,
        updated_at: datetime | None = None,
    ) -> SiteIndex:
        """Swap in a new index for ``site_key``. No merge with the previous entry."""
        entry = SiteIndex(
            site_key=site_key,
            documents=tuple(documents),
            updated_at=updated_at or datetime.now(UTC),
            base_url=base_url,
        )
        self._indexes[site_key] = entry
        log.debug("site_index_replaced", site_key=site_key, count=len(entry.documents))
        return entry

    def site_keys(self) -> list[str]:
        return list(self._indexes)

    def summaries(self) -> list[SiteSummary]:
        return [
            SiteSummary(
                site_key=entry.site_key,
                count=len(entry.documents),
                updated_at=entry.updated_at,
                base_url=entry.base_url,
            )
            for entry in self._indexes.values()
        ]

    # ------------------------------------------------------------------
    # Sync cooldown
    # ------------------------------------------------------------------

    def should_sync(self, site_key: str, now: float | None = None) -> bool:
        """True if no sync was recorded or the cooldown window has elapsed."""
        last = self._last_sync.get(site_key)
        if last is None:
            return True
        current = time.monotonic() if now is None else now
        return current - last > self.cooldown_seconds

    def mark_synced(self, site_key: str, now: float | None = None) -> None:
        self._last_sync[site_key] = time.monotonic() if now is None else now
