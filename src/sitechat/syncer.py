"""Content sync: fetch a site's pages and posts, clean them, swap the index.

The two collection requests run concurrently. Either one failing fails the
whole sync with a :class:`SyncError` carrying both upstream statuses, and
the previous index entry is left untouched.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from sitechat.errors import ErrorCode, SiteChatError, SyncError
from sitechat.models.site import Document
from sitechat.text import clean_html_to_text

if TYPE_CHECKING:
    from sitechat.models.site import SiteIndex
    from sitechat.state import AppState
    from sitechat.urls import SiteUrl

log = structlog.get_logger()

PAGES_PATH = "wp-json/wp/v2/pages"
POSTS_PATH = "wp-json/wp/v2/posts"
FIELD_PROJECTION = "id,link,title,content"
DEFAULT_TITLE = "Untitled"


def _rendered(value: Any) -> str:
    """Unwrap a ``{"rendered": ...}`` field; tolerate plain strings."""
    if isinstance(value, dict):
        rendered = value.get("rendered")
        return rendered if isinstance(rendered, str) else ""
    if isinstance(value, str):
        return value
    return ""


def build_document(item: dict[str, Any]) -> Document:
    """Map one content API item to a Document."""
    raw_id = item.get("id")
    return Document(
        id=raw_id if isinstance(raw_id, (int, str)) else "",
        title=clean_html_to_text(_rendered(item.get("title"))) or DEFAULT_TITLE,
        url=str(item.get("link") or ""),
        body=clean_html_to_text(_rendered(item.get("content"))),
    )


def build_documents(items: list[Any], min_body_chars: int = 40) -> list[Document]:
    """Map items to Documents in order, dropping bodies shorter than ``min_body_chars``."""
    documents: list[Document] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        document = build_document(item)
        if len(document.body) < min_body_chars:
            continue
        documents.append(document)
    return documents


def _status(outcome: httpx.Response | BaseException) -> int | None:
    return outcome.status_code if isinstance(outcome, httpx.Response) else None


def _decode_items(response: httpx.Response, collection: str) -> list[Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise SyncError(
            ErrorCode.UPSTREAM_INVALID_RESPONSE,
            f"Content API returned invalid JSON for {collection}",
        ) from exc
    if not isinstance(data, list):
        raise SyncError(
            ErrorCode.UPSTREAM_INVALID_RESPONSE,
            f"Content API returned a non-list payload for {collection}",
        )
    return data


async def sync_site(state: AppState, base_url: SiteUrl, site_key: str) -> SiteIndex:
    """Fetch pages and posts for ``base_url`` and replace the index for ``site_key``.

    Raises SyncError when either collection cannot be fetched, and
    SiteChatError(URL_NOT_ALLOWED) when the base URL is refused outright.
    """
    if state.fetcher is None:
        raise RuntimeError("Fetcher not initialized")

    settings = state.settings.sync
    sync_log = log.bind(site_key=site_key, base_url=base_url.base)
    params = {"per_page": settings.per_page, "_fields": FIELD_PROJECTION}
    pages_url = base_url.endpoint(PAGES_PATH, params)
    posts_url = base_url.endpoint(POSTS_PATH, params)

    sync_log.info("sync_started")
    try:
        # Both requests always run to completion so both statuses can be reported
        pages, posts = await asyncio.gather(
            state.fetcher.fetch(pages_url),
            state.fetcher.fetch(posts_url),
            return_exceptions=True,
        )
        for outcome in (pages, posts):
            if isinstance(outcome, SiteChatError):
                if outcome.code == ErrorCode.URL_NOT_ALLOWED:
                    raise outcome
                raise SyncError(
                    ErrorCode.UPSTREAM_FETCH_FAILED,
                    outcome.message,
                    pages_status=_status(pages),
                    posts_status=_status(posts),
                ) from outcome
            if isinstance(outcome, BaseException):
                raise outcome

        if not pages.is_success or not posts.is_success:
            raise SyncError(
                ErrorCode.UPSTREAM_STATUS,
                f"Content API returned HTTP {pages.status_code} (pages) "
                f"and HTTP {posts.status_code} (posts)",
                pages_status=pages.status_code,
                posts_status=posts.status_code,
                pages_body=pages.text,
                posts_body=posts.text,
            )

        items = _decode_items(pages, "pages") + _decode_items(posts, "posts")
    except SiteChatError as exc:
        sync_log.warning("sync_failed", code=exc.code, message=exc.message)
        if settings.mark_cooldown_on_failure:
            state.store.mark_synced(site_key)
        raise

    documents = build_documents(items, settings.min_body_chars)
    entry = state.store.replace(site_key, documents, base_url.base)
    state.store.mark_synced(site_key)

    sync_log.info(
        "sync_complete",
        fetched=len(items),
        indexed=len(entry.documents),
        dropped=len(items) - len(entry.documents),
    )
    return entry


def _forget_sync(state: AppState, site_key: str, task: asyncio.Task[SiteIndex]) -> None:
    inflight = state.inflight_syncs.get(site_key)
    if inflight is not None and inflight[1] is task:
        del state.inflight_syncs[site_key]
    if task.cancelled():
        return
    # Retrieved here so a failure with no remaining waiters is still consumed
    exc = task.exception()
    if exc is not None and not isinstance(exc, SiteChatError):
        log.error("sync_task_failed", site_key=site_key, exc_info=exc)


async def sync_site_once(state: AppState, base_url: SiteUrl, site_key: str) -> SiteIndex:
    """Run :func:`sync_site`, sharing one in-flight attempt per site key and base URL.

    Callers arriving while a sync for the same key and base URL is running
    await that attempt and receive its result or its exception. A running
    sync for the same key but another base URL is waited out (its outcome
    ignored) and then a fresh sync against ``base_url`` starts.
    """
    while site_key in state.inflight_syncs:
        running_base, running = state.inflight_syncs[site_key]
        if running_base == base_url.base:
            log.info("sync_coalesced", site_key=site_key)
            # Shielded so one cancelled waiter does not cancel the sync for the others
            return await asyncio.shield(running)
        log.info(
            "sync_waiting",
            site_key=site_key,
            running_base_url=running_base,
            base_url=base_url.base,
        )
        await asyncio.wait({running})

    task = asyncio.create_task(sync_site(state, base_url, site_key))
    state.inflight_syncs[site_key] = (base_url.base, task)
    task.add_done_callback(lambda done: _forget_sync(state, site_key, done))
    return await asyncio.shield(task)
