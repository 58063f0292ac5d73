"""Unit tests for sitechat.store."""

from __future__ import annotations

from datetime import UTC, datetime

from sitechat.models.site import Document
from sitechat.store import SiteStore

# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class TestSiteIndex:
    def test_get_missing(self) -> None:
        assert SiteStore().get("example.com") is None

    def test_replace_and_get(self, sample_documents: list[Document]) -> None:
        store = SiteStore()
        entry = store.replace("example.com", sample_documents, "https://example.com")
        assert store.get("example.com") is entry
        assert entry.documents == tuple(sample_documents)
        assert entry.base_url == "https://example.com"
        assert entry.updated_at <= datetime.now(UTC)

    def test_replace_is_wholesale(self, sample_documents: list[Document]) -> None:
        store = SiteStore()
        store.replace("example.com", sample_documents, "https://example.com")
        store.replace("example.com", sample_documents[:1], "https://example.com")
        entry = store.get("example.com")
        assert entry is not None
        assert len(entry.documents) == 1

    def test_replace_swaps_documents_and_timestamp_together(
        self, sample_documents: list[Document]
    ) -> None:
        store = SiteStore()
        first_at = datetime(2026, 1, 1, tzinfo=UTC)
        second_at = datetime(2026, 1, 2, tzinfo=UTC)
        store.replace("k", sample_documents, "https://a.test", updated_at=first_at)
        before = store.get("k")

        store.replace("k", sample_documents[:1], "https://b.test", updated_at=second_at)
        after = store.get("k")

        # The earlier reader still holds a consistent snapshot
        assert before is not None and after is not None
        assert (len(before.documents), before.updated_at, before.base_url) == (
            3,
            first_at,
            "https://a.test",
        )
        assert (len(after.documents), after.updated_at, after.base_url) == (
            1,
            second_at,
            "https://b.test",
        )

    def test_has_documents(self, sample_documents: list[Document]) -> None:
        store = SiteStore()
        assert not store.has_documents("k")
        store.replace("k", [], "https://example.com")
        assert not store.has_documents("k")
        store.replace("k", sample_documents, "https://example.com")
        assert store.has_documents("k")

    def test_summaries(self, sample_documents: list[Document]) -> None:
        store = SiteStore()
        store.replace("a.test", sample_documents, "https://a.test")
        store.replace("b.test", [], "https://b.test")
        summaries = {s.site_key: s for s in store.summaries()}
        assert summaries["a.test"].count == 3
        assert summaries["b.test"].count == 0
        assert store.site_keys() == ["a.test", "b.test"]


# ---------------------------------------------------------------------------
# Sync cooldown
# ---------------------------------------------------------------------------


class TestSyncCooldown:
    def test_never_synced(self) -> None:
        assert SiteStore().should_sync("k", now=0.0)

    def test_within_cooldown(self) -> None:
        store = SiteStore(cooldown_seconds=300)
        store.mark_synced("k", now=1000.0)
        assert not store.should_sync("k", now=1299.0)
        assert not store.should_sync("k", now=1300.0)

    def test_after_cooldown(self) -> None:
        store = SiteStore(cooldown_seconds=300)
        store.mark_synced("k", now=1000.0)
        assert store.should_sync("k", now=1300.5)

    def test_keys_are_independent(self) -> None:
        store = SiteStore(cooldown_seconds=300)
        store.mark_synced("a", now=0.0)
        assert store.should_sync("b", now=1.0)

    def test_default_clock(self) -> None:
        store = SiteStore(cooldown_seconds=300)
        store.mark_synced("k")
        assert not store.should_sync("k")
