"""Keyword-overlap retrieval over a site's indexed documents.

Pure business logic: receives a SiteIndex, returns ranked Documents. No
knowledge of AppState or I/O. Deliberately coarse: no stemming, no
weighting, no phrase matching.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sitechat.models.site import Document, SiteIndex

MIN_TOKEN_CHARS = 3
TOKEN_SCORE = 2


def tokenize(query: str) -> list[str]:
    """Lowercase, split on whitespace, drop tokens shorter than 3 chars."""
    return [token for token in query.lower().split() if len(token) >= MIN_TOKEN_CHARS]


def score_document(tokens: list[str], document: Document) -> int:
    """Two points per query token found anywhere in the lowercased body."""
    body = document.body.lower()
    return sum(TOKEN_SCORE for token in tokens if token in body)


def search(query: str, index: SiteIndex | None, top_k: int = 3) -> list[Document]:
    """Return up to ``top_k`` documents with a non-zero score, best first.

    Ties keep index order (``sorted`` is stable).
    """
    if index is None or not index.documents:
        return []
    tokens = tokenize(query)
    if not tokens:
        return []

    scored = [(score_document(tokens, document), document) for document in index.documents]
    ranked = sorted(
        (pair for pair in scored if pair[0] > 0),
        key=lambda pair: pair[0],
        reverse=True,
    )
    return [document for _score, document in ranked[:top_k]]
