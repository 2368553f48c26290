"""
Set-Cookie domain rewriting.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping

from ..messages import HeaderValue

logger = logging.getLogger(__name__)

# Only the lower-case "domain=" token is recognised; the first one wins.
_DOMAIN_ATTRIBUTE = re.compile(r"(;\s*domain=)([^;]+)")


def resolve_cookie_domain(domain: str, rewrites: Mapping[str, str]) -> str | None:
    """Return the replacement for domain, or None if the cookie must stay as it is."""
    if domain in rewrites:
        return rewrites[domain]
    if "*" in rewrites:
        return rewrites["*"]
    return None


def rewrite_cookie_domain(set_cookie: HeaderValue, rewrites: Mapping[str, str]) -> HeaderValue:
    """
    Rewrite the domain attribute of one Set-Cookie value, or of each value in a list.

    An empty replacement removes the whole "; domain=..." segment.
    """
    if isinstance(set_cookie, list):
        return [rewrite_cookie_domain(value, rewrites) for value in set_cookie]

    def _replace(match: re.Match) -> str:
        prefix, previous_domain = match.group(1), match.group(2)
        new_domain = resolve_cookie_domain(previous_domain, rewrites)
        if new_domain is None:
            return match.group(0)
        logger.debug(f"Cookie domain {previous_domain!r} -> {new_domain!r}")
        if new_domain:
            return prefix + new_domain
        return ""

    return _DOMAIN_ATTRIBUTE.sub(_replace, set_cookie, count=1)
