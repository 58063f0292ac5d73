"""HTTP fetcher for the remote content API.

All outbound requests during a sync go through a single Fetcher instance.
The Fetcher receives an httpx.AsyncClient via constructor injection; the
server lifespan owns the client lifecycle.

Unlike a page reader, the syncer needs upstream status codes for its
diagnostics, so :meth:`Fetcher.fetch` returns the final response whatever
its status and only raises for transport failures and refused URLs.
"""

from __future__ import annotations

import ipaddress
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlparse

import httpx
import structlog

from sitechat import __version__
from sitechat.errors import ErrorCode, SiteChatError

if TYPE_CHECKING:
    from sitechat.config import SyncSettings

log = structlog.get_logger()

PRIVATE_NETWORKS: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
]

_LOCAL_HOSTNAMES: frozenset[str] = frozenset({"localhost", "localhost.localdomain"})


def build_http_client(settings: SyncSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    timeout = settings.request_timeout_seconds if settings is not None else 20.0
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(timeout),
        headers={
            "User-Agent": f"sitechat/{__version__}",
            "Accept": "application/json",
        },
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=5,
        ),
    )


def is_url_allowed(url: str, *, block_private_hosts: bool = True) -> bool:
    """Check whether a URL may be fetched.

    Only http(s) is permitted. With ``block_private_hosts``, literal
    private/loopback IPs and ``localhost`` are refused.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    hostname = (parsed.hostname or "").lower()
    if not hostname:
        return False
    if not block_private_hosts:
        return True

    if hostname in _LOCAL_HOSTNAMES:
        return False
    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        return True  # hostname is a domain name, not an IP
    return not any(addr in net for net in PRIVATE_NETWORKS)


class Fetcher:
    """Content API fetcher with per-hop URL validation on redirects."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_redirects: int = 3,
        block_private_hosts: bool = True,
    ) -> None:
        self._client = client
        self._max_redirects = max_redirects
        self._block_private_hosts = block_private_hosts

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: SyncSettings) -> Fetcher:
        return cls(
            client,
            max_redirects=settings.max_redirects,
            block_private_hosts=settings.block_private_hosts,
        )

    async def fetch(self, url: str) -> httpx.Response:
        """GET a URL, following redirects manually.

        Returns the final non-redirect response regardless of status. Raises
        SiteChatError on refused URLs, redirect loops and network errors.
        """
        current_url = url

        try:
            for hop in range(self._max_redirects + 1):
                if not is_url_allowed(current_url, block_private_hosts=self._block_private_hosts):
                    log.warning("fetch_blocked", url=current_url, reason="private_or_invalid_host")
                    raise SiteChatError(
                        code=ErrorCode.URL_NOT_ALLOWED,
                        message=f"URL not allowed: {current_url}",
                        suggestion="Use a public http(s) site URL.",
                        recoverable=False,
                        status_code=400,
                    )

                response = await self._client.get(current_url)

                if response.is_redirect and "location" in response.headers:
                    if hop == self._max_redirects:
                        raise SiteChatError(
                            code=ErrorCode.UPSTREAM_FETCH_FAILED,
                            message=f"Too many redirects fetching {url}",
                            suggestion="Point the site URL at the final, canonical address.",
                            recoverable=False,
                            status_code=502,
                        )
                    current_url = urljoin(current_url, response.headers["location"])
                    continue

                log.debug(
                    "fetch_complete",
                    url=url,
                    status_code=response.status_code,
                    content_length=len(response.content),
                )
                return response

        except SiteChatError:
            raise
        except httpx.HTTPError as exc:
            raise SiteChatError(
                code=ErrorCode.UPSTREAM_FETCH_FAILED,
                message=f"Network error fetching {url}: {exc}",
                suggestion="The site may be temporarily unavailable.",
                recoverable=True,
                status_code=502,
            ) from exc

        # Unreachable but satisfies the type checker
        raise SiteChatError(
            code=ErrorCode.UPSTREAM_FETCH_FAILED,
            message="Redirect loop",
            suggestion="",
            recoverable=False,
            status_code=502,
        )
