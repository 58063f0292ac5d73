"""Site key and base URL resolution.

Pure business logic: receives raw request fields, returns a site key or
a :class:`SiteUrl`. Total: bad or missing input degrades to a fallback,
never an exception.
"""

from __future__ import annotations

from sitechat.urls import SiteUrl, origin_of

DEFAULT_SITE_KEY = "default"

_WWW_PREFIX = "www."


def normalise_domain(raw: str | None) -> str:
    """Normalise a domain for use as a site key.

    Steps (order matters):
      1. Trim whitespace and strip leading "www." labels (any case) until none remain
      2. Lowercase

    Repeating step 1 keeps ``normalise_domain("www." + d) == normalise_domain(d)``
    for every ``d``. Lowercasing last because str.lower() is context
    sensitive (Greek final sigma) and must see the same string either way.
    """
    domain = raw or ""
    while True:
        domain = domain.strip()
        if domain[: len(_WWW_PREFIX)].lower() != _WWW_PREFIX:
            return domain.lower()
        domain = domain[len(_WWW_PREFIX) :]


def resolve_site_key(domain: str | None = None, site_id: str | None = None) -> str:
    """Derive the key that partitions all per-site state.

    Normalised domain first, then the lowercased site id, then the default key.
    """
    normalised = normalise_domain(domain)
    if normalised:
        return normalised
    site = (site_id or "").strip().lower()
    if site:
        return site
    return DEFAULT_SITE_KEY


def resolve_base_url(
    site_url: str | None = None,
    page_url: str | None = None,
    domain: str | None = None,
) -> SiteUrl | None:
    """Pick the best available base URL for a content sync.

    Explicit site URL, else the origin of the page URL, else
    ``https://`` + normalised domain. Returns None when nothing usable
    is supplied.
    """
    if site_url:
        try:
            return SiteUrl.parse(site_url)
        except ValueError:
            pass  # fall through to the weaker hints

    origin = origin_of(page_url) if page_url else None
    if origin is not None:
        return origin

    normalised = normalise_domain(domain)
    if normalised:
        try:
            return SiteUrl.parse(f"https://{normalised}")
        except ValueError:
            return None
    return None
