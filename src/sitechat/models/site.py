from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    """One fetched page or post, cleaned to plain text."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    title: str = "Untitled"
    url: str
    body: str  # Plain text produced by clean_html_to_text


class SiteIndex(BaseModel):
    """Everything known about one site.

    Swapped into the store as a single object so documents, timestamp and
    base URL are always read together.
    """

    model_config = ConfigDict(frozen=True)

    site_key: str
    documents: tuple[Document, ...] = ()
    updated_at: datetime
    base_url: str


class SiteSummary(BaseModel):
    """Debug view of an indexed site."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    site_key: str
    count: int
    updated_at: datetime
    base_url: str
