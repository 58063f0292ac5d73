"""Shared test fixtures for the sitechat test suite."""

from __future__ import annotations

from typing import Any

import pytest
import respx

from sitechat.config import Settings
from sitechat.models.site import Document
from sitechat.state import AppState, build_state

LONG_BODY = "We offer plumbing repairs, boiler servicing and emergency call-outs across town."


@pytest.fixture()
def settings() -> Settings:
    """Defaults, with the periodic refresh disabled."""
    return Settings(sync={"refresh_interval_minutes": 0})


@pytest.fixture()
def state(settings: Settings) -> AppState:
    """Fresh AppState without a network client."""
    return build_state(settings)


@pytest.fixture()
def sample_documents() -> list[Document]:
    return [
        Document(
            id=1,
            title="Services",
            url="https://example.com/services/",
            body="Plumbing repairs and boiler servicing for homes and businesses.",
        ),
        Document(
            id=2,
            title="About",
            url="https://example.com/about/",
            body="Family run since 1998. Our plumbing team covers the whole county.",
        ),
        Document(
            id=3,
            title="Pricing",
            url="https://example.com/pricing/",
            body="Call-out fees start at forty pounds. Boiler servicing is a fixed price.",
        ),
    ]


def _wp_item(item_id: int, title: str, content: str, link: str) -> dict[str, Any]:
    return {
        "id": item_id,
        "link": link,
        "title": {"rendered": title},
        "content": {"rendered": content, "protected": False},
    }


@pytest.fixture()
def wp_item():
    """Factory for a WordPress REST API item."""
    return _wp_item


@pytest.fixture()
def wp():
    """Active respx router for content API mocks; unmatched requests fail."""
    with respx.mock(assert_all_called=False) as router:
        yield router
