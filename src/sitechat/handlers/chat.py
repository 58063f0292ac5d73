"""Handler for POST /v1/chat.

Receives AppState, runs the reply pipeline (wake phrase, booking intent,
auto-sync on miss, retrieval) and returns a structured dict. No Starlette
imports; server.py handles the HTTP wiring.

Every branch produces exactly one reply. Sync failures here are logged and
absorbed; the visitor gets the "still learning" reply instead of an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from sitechat.errors import ErrorCode, SiteChatError
from sitechat.intent import has_booking_intent, is_wake_phrase
from sitechat.models.chat import Action, ChatReply, ChatRequest, ReplyMeta, Source
from sitechat.resolver import resolve_base_url, resolve_site_key
from sitechat.retrieval import search
from sitechat.syncer import sync_site_once

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from sitechat.models.site import Document
    from sitechat.state import AppState

BOOKING_REDIRECT_REPLY = "Sure! Opening the booking page for you now."
BOOKING_SETUP_NEEDED_REPLY = (
    "I'd love to help you book, but online booking hasn't been set up for this site yet. "
    "Please use the contact details on this page to get in touch."
)
STILL_LEARNING_REPLY = (
    "I'm still learning about this website. Try asking about a specific service or page, "
    "or check back in a few minutes."
)
ELLIPSIS = "…"


async def handle(payload: dict, state: AppState) -> dict:
    """Handle a chat message."""
    log = structlog.get_logger().bind(handler="chat")

    # Validate input
    try:
        request = ChatRequest.model_validate(payload)
    except ValueError as exc:
        raise SiteChatError(
            code=ErrorCode.INVALID_INPUT,
            message=str(exc),
            suggestion="Send a JSON object with a 'text' string (max 4000 chars).",
            recoverable=False,
        ) from exc

    site_key = resolve_site_key(request.domain, request.site_id)
    log = log.bind(site_key=site_key)
    state.chat_log.record(site_key, request.session_id, request.text, request.page_url)

    reply, branch = await _reply(request, site_key, state, log)
    log.info("chat_handled", branch=branch)
    return reply.model_dump(mode="json", by_alias=True, exclude_none=True)


async def _reply(
    request: ChatRequest,
    site_key: str,
    state: AppState,
    log: FilteringBoundLogger,
) -> tuple[ChatReply, str]:
    if is_wake_phrase(request.text):
        return ChatReply(reply_text=state.settings.chat.wake_reply), "wake"

    if has_booking_intent(request.text):
        if request.booking_url:
            return (
                ChatReply(
                    reply_text=BOOKING_REDIRECT_REPLY,
                    actions=[Action(url=request.booking_url)],
                ),
                "booking",
            )
        return ChatReply(reply_text=BOOKING_SETUP_NEEDED_REPLY), "booking_setup_needed"

    if not state.store.has_documents(site_key) and state.store.should_sync(site_key):
        await _auto_sync(request, site_key, state, log)

    index = state.store.get(site_key)
    updated_at = index.updated_at if index is not None else None
    results = search(request.text, index, top_k=state.settings.chat.top_k)

    if not results:
        meta = ReplyMeta(learned=False, site_key=site_key, updated_at=updated_at, found=0)
        return ChatReply(reply_text=STILL_LEARNING_REPLY, meta=meta), "still_learning"

    return (
        ChatReply(
            reply_text=_snippet(results[0], state.settings.chat.snippet_chars),
            sources=[Source(title=doc.title, url=doc.url) for doc in results],
            meta=ReplyMeta(
                learned=True,
                site_key=site_key,
                updated_at=updated_at,
                found=len(results),
            ),
        ),
        "answer",
    )


async def _auto_sync(
    request: ChatRequest,
    site_key: str,
    state: AppState,
    log: FilteringBoundLogger,
) -> None:
    """Attempt one sync for an unindexed site. Never raises."""
    base_url = resolve_base_url(request.site_url, request.page_url, request.domain)
    if base_url is None:
        log.debug("auto_sync_skipped", reason="no_base_url")
        return

    try:
        await sync_site_once(state, base_url, site_key)
    except SiteChatError as exc:
        log.warning(
            "auto_sync_failed",
            base_url=base_url.base,
            code=exc.code,
            message=exc.message,
            details=exc.details,
        )
    except Exception:
        log.error("auto_sync_unexpected_error", base_url=base_url.base, exc_info=True)


def _snippet(document: Document, limit: int) -> str:
    body = document.body
    if len(body) <= limit:
        return body
    return body[:limit].rstrip() + ELLIPSIS
