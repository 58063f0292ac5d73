"""Handler for POST /v1/site/sync.

Validates the request, resolves the site key and runs a sync immediately,
bypassing the cooldown. Sync failures propagate as SyncError so the caller
sees both upstream statuses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from sitechat.errors import ErrorCode, SiteChatError
from sitechat.models.chat import SyncRequest, SyncResult
from sitechat.resolver import resolve_site_key
from sitechat.syncer import sync_site_once
from sitechat.urls import SiteUrl

if TYPE_CHECKING:
    from sitechat.state import AppState


async def handle(payload: dict, state: AppState) -> dict:
    """Handle a manual site sync."""
    log = structlog.get_logger().bind(handler="site_sync")

    # Validate input
    try:
        request = SyncRequest.model_validate(payload)
        base_url = SiteUrl.parse(request.site_url)
    except ValueError as exc:
        raise SiteChatError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Provide 'siteUrl' as an absolute http(s) URL, e.g. https://example.com.",
            recoverable=False,
        ) from exc

    # Same key rules as chat, so a chat with these fields finds this index
    site_key = resolve_site_key(request.domain, request.site_id)

    log.info("handler_called", site_key=site_key, base_url=base_url.base)
    entry = await sync_site_once(state, base_url, site_key)

    result = SyncResult(site_key=site_key, count=len(entry.documents), updated_at=entry.updated_at)
    return result.model_dump(mode="json", by_alias=True)
