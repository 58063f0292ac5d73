"""Background scheduler coroutine for refreshing already-indexed sites."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from sitechat.syncer import sync_site_once
from sitechat.urls import SiteUrl

if TYPE_CHECKING:
    from sitechat.state import AppState

log = structlog.get_logger()


async def refresh_indexed_sites(state: AppState) -> int:
    """Re-sync every indexed site whose cooldown has elapsed.

    Failures are logged and skipped. Returns the number of successful syncs.
    """
    refreshed = 0
    for site_key in state.store.site_keys():
        entry = state.store.get(site_key)
        if entry is None or not state.store.should_sync(site_key):
            continue
        try:
            await sync_site_once(state, SiteUrl.parse(entry.base_url), site_key)
            refreshed += 1
        except Exception:
            log.warning("site_refresh_failed", site_key=site_key, exc_info=True)
    return refreshed


async def run_site_refresh_scheduler(state: AppState) -> None:
    """Refresh indexed sites every ``sync.refresh_interval_minutes``; 0 disables."""
    interval_minutes = state.settings.sync.refresh_interval_minutes
    if interval_minutes <= 0:
        log.info("site_refresh_disabled")
        return

    while True:
        await asyncio.sleep(interval_minutes * 60)
        refreshed = await refresh_indexed_sites(state)
        log.info("site_refresh_complete", refreshed=refreshed)
