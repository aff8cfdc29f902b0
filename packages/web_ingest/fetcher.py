from __future__ import annotations

import ipaddress
import logging
import re
import socket
from typing import List
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from retrieval_core.errors import BlockedUrlError, FetchError

_log = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")

BLOCKED_HOSTNAMES = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "0.0.0.0",
        "::1",
        "metadata.google.internal",
    }
)

MAX_REDIRECTS = 5

# Elements that only add navigation noise to the extracted text.
NOISE_TAGS = ["script", "style", "nav", "footer", "noscript"]


def _resolve_host(hostname: str) -> List[str]:
    """Every address the system resolver returns for `hostname`."""
    try:
        infos = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError) as exc:
        raise FetchError(f"Cannot resolve host {hostname}: {exc}") from exc
    return list(dict.fromkeys(info[4][0] for info in infos))


def _is_blocked_address(raw: str) -> bool:
    address = ipaddress.ip_address(raw.split("%", 1)[0])
    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
        or address.is_multicast
    )


def validate_url(url: str) -> str:
    """
    Reject URLs we must never fetch.

    Only http(s) is allowed, and the host may not be a known internal name.
    The host is resolved and rejected if any of its addresses is private,
    loopback, link-local, unspecified or reserved, which also catches numeric
    shorthands like `127.1` or `2130706433`.
    """
    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError as exc:
        raise BlockedUrlError(f"Invalid URL: {url}") from exc

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise BlockedUrlError(f"Blocked URL protocol: {parsed.scheme or '<none>'}:")

    if not hostname:
        raise BlockedUrlError(f"Invalid URL: {url}")
    if hostname in BLOCKED_HOSTNAMES:
        raise BlockedUrlError(f"Blocked URL: requests to {hostname} are not allowed")

    for address in _resolve_host(hostname):
        if _is_blocked_address(address):
            raise BlockedUrlError(
                f"Blocked URL: {hostname} resolves to private address {address}, requests are not allowed"
            )
    return url


def extract_text(html: str) -> str:
    """Return whitespace-collapsed body text with noise elements removed."""
    soup = BeautifulSoup(html, "html.parser")
    for el in soup(NOISE_TAGS):
        el.decompose()
    root = soup.body or soup
    return re.sub(r"\s+", " ", root.get_text(" ")).strip()


def _get_validated(client: httpx.Client, url: str) -> httpx.Response:
    """GET `url`, following redirects by hand so every hop is validated."""
    current = url
    for _ in range(MAX_REDIRECTS + 1):
        response = client.get(current, follow_redirects=False)
        if not response.is_redirect:
            return response
        target = str(response.url.join(response.headers["location"]))
        validate_url(target)
        _log.info("Following redirect %s -> %s", current, target)
        current = target
    raise FetchError(f"Failed to fetch URL: {url} (more than {MAX_REDIRECTS} redirects)")


def fetch_url_text(
    url: str,
    client: httpx.Client | None = None,
    timeout: float = 15.0,
    user_agent: str = "Mozilla/5.0",
) -> str:
    """Fetch a page and return its cleaned plain text."""
    validate_url(url)

    owns_client = client is None
    if client is None:
        client = httpx.Client(headers={"User-Agent": user_agent}, timeout=timeout)

    try:
        response = _get_validated(client, url)
    except httpx.HTTPError as exc:
        raise FetchError(f"Failed to fetch URL: {url} ({exc})") from exc
    finally:
        if owns_client:
            client.close()

    if not response.is_success:
        raise FetchError(f"Failed to fetch URL: {url} (status {response.status_code})")

    text = extract_text(response.text)
    _log.info("Fetched %s (%d chars of text)", url, len(text))
    return text


__all__ = ["validate_url", "extract_text", "fetch_url_text", "BLOCKED_HOSTNAMES", "MAX_REDIRECTS"]
