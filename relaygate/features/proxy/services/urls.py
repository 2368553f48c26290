"""
URL helpers for redirect (Location) rewriting.
"""

from __future__ import annotations

import logging
from typing import NamedTuple
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

REDIRECT_STATUS_CODES = frozenset({301, 302, 307, 308})


class UrlParts(NamedTuple):
    scheme: str = ""
    userinfo: str = ""
    host: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""


def split_url(url: str) -> UrlParts:
    """
    Split url into its parts. Never raises.

    host is the lower-cased hostname plus ":port" when a port is given. URLs
    without a scheme (relative or scheme-relative) get an empty host.
    """
    if not url or not isinstance(url, str):
        return UrlParts()
    try:
        parsed = urlsplit(url.strip())
        port = parsed.port
    except ValueError:
        return UrlParts()

    hostname = parsed.hostname or ""
    if not parsed.scheme or not hostname:
        return UrlParts(path=parsed.path, query=parsed.query, fragment=parsed.fragment)

    if ":" in hostname:
        hostname = f"[{hostname}]"
    host = f"{hostname}:{port}" if port is not None else hostname
    userinfo = parsed.netloc.rpartition("@")[0] if "@" in parsed.netloc else ""

    return UrlParts(
        scheme=parsed.scheme,
        userinfo=userinfo,
        host=host,
        path=parsed.path,
        query=parsed.query,
        fragment=parsed.fragment,
    )


def format_url(parts: UrlParts) -> str:
    url = ""
    if parts.scheme:
        url += f"{parts.scheme}:"
    if parts.host:
        url += "//"
        if parts.userinfo:
            url += f"{parts.userinfo}@"
        url += parts.host
    # An authority is always followed by at least "/"
    url += parts.path or ("/" if parts.host else "")
    if parts.query:
        url += f"?{parts.query}"
    if parts.fragment:
        url += f"#{parts.fragment}"
    return url


def rewrite_redirect_location(
    location: str,
    target: str,
    host: str | None = None,
    protocol: str | None = None,
) -> str:
    """
    Point a redirect at the proxy instead of the origin.

    Only touches locations on the target's own host; anything else (third
    party hosts, relative URLs, unparseable values) comes back unchanged.
    """
    parts = split_url(location)
    if not parts.host or parts.host != split_url(target).host:
        logger.debug(f"Location {location!r} does not point at target {target!r}; not rewriting")
        return location

    if host:
        parts = parts._replace(host=host)
    if protocol:
        parts = parts._replace(scheme=protocol.rstrip(":"))

    rewritten = format_url(parts)
    logger.debug(f"Rewrote Location {location!r} -> {rewritten!r}")
    return rewritten
