"""Protocol interfaces for swappable components.

Handlers and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight fakes
- A shared backend (e.g. Redis) to replace the in-memory store without
  changing handler code
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    import httpx

    from sitechat.models.site import Document, SiteIndex, SiteSummary


class SiteStoreProtocol(Protocol):
    """Interface for the site index and its sync cooldown clock."""

    cooldown_seconds: float

    def get(self, site_key: str) -> SiteIndex | None: ...

    def has_documents(self, site_key: str) -> bool: ...

    def replace(
        self,
        site_key: str,
        documents: Iterable[Document],
        base_url: str,
        *,
        updated_at: datetime | None = None,
    ) -> SiteIndex: ...

    def site_keys(self) -> list[str]: ...

    def summaries(self) -> list[SiteSummary]: ...

    def should_sync(self, site_key: str, now: float | None = None) -> bool: ...

    def mark_synced(self, site_key: str, now: float | None = None) -> None: ...


class FetcherProtocol(Protocol):
    """Interface for the content API fetcher."""

    async def fetch(self, url: str) -> httpx.Response: ...
