"""Integration tests for the chat handler.

Tests the full path: input validation → site key → intent → auto-sync →
retrieval → reply serialisation. Uses a real AppState; the content API is
mocked with respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
from structlog.testing import capture_logs

from sitechat.errors import ErrorCode, SiteChatError
from sitechat.handlers.chat import (
    BOOKING_REDIRECT_REPLY,
    BOOKING_SETUP_NEEDED_REPLY,
    STILL_LEARNING_REPLY,
    handle,
)
from sitechat.models.site import Document

if TYPE_CHECKING:
    import respx

    from sitechat.state import AppState

LONG = "<p>We service and repair boilers, radiators and underfloor heating systems.</p>"


def _mock_site(
    wp: respx.Router,
    host: str = "example.com",
    pages: httpx.Response | None = None,
    posts: httpx.Response | None = None,
) -> tuple[respx.Route, respx.Route]:
    pages_route = wp.get(host=host, path="/wp-json/wp/v2/pages").mock(
        return_value=pages or httpx.Response(200, json=[])
    )
    posts_route = wp.get(host=host, path="/wp-json/wp/v2/posts").mock(
        return_value=posts or httpx.Response(200, json=[])
    )
    return pages_route, posts_route


class TestWakeAndBooking:
    async def test_wake_phrase(self, app_state: AppState) -> None:
        result = await handle({"text": "hey jarvis"}, app_state)
        assert result == {"replyText": "How can I help you?"}

    async def test_wake_phrase_case_and_punctuation(self, app_state: AppState) -> None:
        result = await handle({"text": "Hey Jarvis!"}, app_state)
        assert result["replyText"] == "How can I help you?"

    async def test_booking_with_url(self, app_state: AppState) -> None:
        result = await handle(
            {"text": "I want to book an appointment", "bookingUrl": "https://x.test/book"},
            app_state,
        )
        assert result["replyText"] == BOOKING_REDIRECT_REPLY
        assert result["actions"] == [{"type": "open_url", "url": "https://x.test/book"}]
        assert "sources" not in result

    async def test_booking_without_url(self, app_state: AppState) -> None:
        result = await handle({"text": "can I schedule a consultation?"}, app_state)
        assert result == {"replyText": BOOKING_SETUP_NEEDED_REPLY}

    async def test_booking_short_circuits_sync(self, app_state: AppState, wp) -> None:
        pages_route, _ = _mock_site(wp)
        await handle({"text": "book me in", "domain": "example.com"}, app_state)
        assert pages_route.call_count == 0


class TestRetrieval:
    async def test_no_content_no_base_url(self, app_state: AppState, wp) -> None:
        result = await handle({"text": "do you fix boilers?"}, app_state)
        assert result["replyText"] == STILL_LEARNING_REPLY
        assert result["meta"] == {"learned": False, "siteKey": "default", "found": 0}
        assert len(wp.calls) == 0

    async def test_answers_from_indexed_documents(
        self, app_state: AppState, sample_documents: list[Document], wp
    ) -> None:
        app_state.store.replace("example.com", sample_documents, "https://example.com")

        result = await handle(
            {"text": "what price is boiler servicing", "domain": "www.example.com"}, app_state
        )

        assert result["replyText"] == sample_documents[2].body
        assert result["sources"] == [
            {"title": "Pricing", "url": "https://example.com/pricing/"},
            {"title": "Services", "url": "https://example.com/services/"},
        ]
        assert result["meta"]["learned"] is True
        assert result["meta"]["siteKey"] == "example.com"
        assert result["meta"]["found"] == 2
        assert "updatedAt" in result["meta"]
        # Already indexed: no sync
        assert len(wp.calls) == 0

    async def test_indexed_but_no_match(
        self, app_state: AppState, sample_documents: list[Document]
    ) -> None:
        app_state.store.replace("example.com", sample_documents, "https://example.com")
        result = await handle({"text": "telescopes", "domain": "example.com"}, app_state)
        assert result["replyText"] == STILL_LEARNING_REPLY
        assert result["meta"]["learned"] is False
        assert result["meta"]["updatedAt"] is not None

    async def test_snippet_truncated_with_ellipsis(self, app_state: AppState) -> None:
        body = "boiler " * 60
        app_state.store.replace(
            "example.com",
            [Document(id=1, title="Long", url="https://example.com/long", body=body)],
            "https://example.com",
        )
        result = await handle({"text": "boiler", "domain": "example.com"}, app_state)
        assert result["replyText"].endswith("…")
        assert len(result["replyText"]) <= 321
        assert result["replyText"].startswith("boiler boiler")


class TestAutoSync:
    async def test_syncs_on_miss_then_answers(self, app_state: AppState, wp, wp_item) -> None:
        _mock_site(
            wp,
            pages=httpx.Response(
                200, json=[wp_item(5, "Heating", LONG, "https://example.com/heating/")]
            ),
        )

        result = await handle(
            {"text": "do you repair radiators", "domain": "www.example.com"}, app_state
        )

        assert result["meta"]["learned"] is True
        assert result["sources"] == [{"title": "Heating", "url": "https://example.com/heating/"}]
        assert app_state.store.has_documents("example.com")

    async def test_base_url_from_page_url(self, app_state: AppState, wp, wp_item) -> None:
        pages_route, _ = _mock_site(
            wp,
            host="shop.example.org",
            pages=httpx.Response(200, json=[wp_item(1, "Heating", LONG, "https://x/")]),
        )

        result = await handle(
            {
                "text": "radiators",
                "siteId": "shop",
                "pageUrl": "https://shop.example.org/contact/?utm=1",
            },
            app_state,
        )

        assert pages_route.call_count == 1
        assert result["meta"]["siteKey"] == "shop"
        assert result["meta"]["learned"] is True

    async def test_explicit_site_url_preferred(self, app_state: AppState, wp) -> None:
        pages_route, _ = _mock_site(wp, host="cms.example.com")
        await handle(
            {
                "text": "radiators",
                "domain": "example.com",
                "siteUrl": "https://cms.example.com",
                "pageUrl": "https://example.com/contact",
            },
            app_state,
        )
        assert pages_route.call_count == 1

    async def test_sync_failure_is_swallowed_and_logged(self, app_state: AppState, wp) -> None:
        _mock_site(wp, pages=httpx.Response(500, text="Internal Server Error"))

        with capture_logs() as logs:
            result = await handle({"text": "radiators", "domain": "example.com"}, app_state)

        assert result["replyText"] == STILL_LEARNING_REPLY
        assert result["meta"]["learned"] is False
        failures = [e for e in logs if e["event"] == "auto_sync_failed"]
        assert len(failures) == 1
        assert failures[0]["details"]["pagesStatus"] == 500

    async def test_network_failure_is_swallowed(self, app_state: AppState, wp) -> None:
        wp.get(host="example.com").mock(side_effect=httpx.ConnectTimeout("timed out"))
        result = await handle({"text": "radiators", "domain": "example.com"}, app_state)
        assert result["meta"]["learned"] is False

    async def test_cooldown_suppresses_repeat_sync(self, app_state: AppState, wp) -> None:
        # Site syncs fine but has no usable content
        pages_route, _ = _mock_site(wp)

        await handle({"text": "radiators", "domain": "example.com"}, app_state)
        await handle({"text": "boilers", "domain": "example.com"}, app_state)

        assert pages_route.call_count == 1

    async def test_failed_sync_is_retried_on_next_message(self, app_state: AppState, wp) -> None:
        # Cooldown is only marked on success, so a failing site is retried
        pages_route, _ = _mock_site(wp, pages=httpx.Response(503))

        await handle({"text": "radiators", "domain": "example.com"}, app_state)
        await handle({"text": "boilers", "domain": "example.com"}, app_state)

        assert pages_route.call_count == 2

    async def test_failed_sync_throttled_when_configured(self, app_state: AppState, wp) -> None:
        app_state.settings.sync.mark_cooldown_on_failure = True
        pages_route, _ = _mock_site(wp, pages=httpx.Response(503))

        await handle({"text": "radiators", "domain": "example.com"}, app_state)
        await handle({"text": "boilers", "domain": "example.com"}, app_state)

        assert pages_route.call_count == 1


class TestChatLogAndValidation:
    async def test_every_message_is_logged(self, app_state: AppState) -> None:
        await handle(
            {"text": "hey jarvis", "domain": "Example.com", "sessionId": "abcdefghijklmnopqrstuvwxyz"},
            app_state,
        )
        await handle({"text": "book", "siteId": "Acme"}, app_state)

        entries = app_state.chat_log.entries()
        assert [e.site_key for e in entries] == ["example.com", "acme"]
        assert entries[0].session_id == "abcdefghijkl"

    async def test_invalid_text_type(self, app_state: AppState) -> None:
        with pytest.raises(SiteChatError) as exc_info:
            await handle({"text": ["not", "a", "string"]}, app_state)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert len(app_state.chat_log) == 0

    async def test_missing_text_treated_as_empty(self, app_state: AppState) -> None:
        result = await handle({}, app_state)
        assert result["replyText"] == STILL_LEARNING_REPLY

    async def test_null_text_treated_as_empty(self, app_state: AppState) -> None:
        result = await handle({"text": None}, app_state)
        assert result["replyText"] == STILL_LEARNING_REPLY
        assert app_state.chat_log.entries()[0].text == ""
