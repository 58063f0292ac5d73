"""Typed site URL helper.

Every URL that reaches the content API passes through :class:`SiteUrl`
once, so scheme/host/path normalisation lives in one place and callers
never concatenate URL strings by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode, urlsplit

ALLOWED_SCHEMES: frozenset[str] = frozenset({"http", "https"})


@dataclass(frozen=True)
class SiteUrl:
    """A validated site base URL: scheme, lowercase host, optional port and path prefix."""

    scheme: str
    host: str
    port: int | None = None
    path: str = ""

    @classmethod
    def parse(cls, raw: str | None) -> SiteUrl:
        """Parse and normalise a base URL.

        A bare host (``example.com``) is treated as ``https://example.com``.
        Query strings and fragments are dropped, as is any trailing slash.
        Raises ValueError if the value is empty, uses a non-http(s) scheme,
        or has no host.
        """
        value = (raw or "").strip()
        if not value:
            raise ValueError("URL is empty")
        if "://" not in value:
            value = f"https://{value}"

        parts = urlsplit(value)
        scheme = parts.scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise ValueError(f"Unsupported URL scheme: {parts.scheme!r}")
        host = (parts.hostname or "").lower()
        if not host:
            raise ValueError(f"URL has no host: {raw!r}")
        port = parts.port  # raises ValueError on a malformed port

        return cls(scheme=scheme, host=host, port=port, path=parts.path.rstrip("/"))

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}" if self.port is not None else host

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.netloc}"

    @property
    def base(self) -> str:
        return f"{self.origin}{self.path}"

    def endpoint(self, path: str, params: dict[str, str | int] | None = None) -> str:
        """Join an API sub-path onto the base URL, with optional query parameters."""
        url = f"{self.base}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def __str__(self) -> str:
        return self.base


def origin_of(url: str | None) -> SiteUrl | None:
    """Return the scheme+host(+port) of a full URL, or None if it does not parse."""
    try:
        parsed = SiteUrl.parse(url)
    except ValueError:
        return None
    return SiteUrl(scheme=parsed.scheme, host=parsed.host, port=parsed.port)
