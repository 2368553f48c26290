"""
Proxy options shared by every outgoing pass.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def normalize_cookie_domain_rewrite(value: Any) -> dict[str, str] | None:
    """
    Collapse the cookie domain setting into a mapping.

    - None           -> None (rewriting disabled)
    - "new.domain"   -> {"*": "new.domain"}
    - ""             -> {"*": ""} (strip every domain attribute)
    - {"a": "b"}     -> copy of the mapping
    """
    if value is None:
        return None
    if isinstance(value, str):
        return {"*": value}
    if isinstance(value, Mapping):
        return {str(k): "" if v is None else str(v) for k, v in value.items()}
    logger.warning(f"Ignoring cookie domain rewrite of unsupported type {type(value).__name__}")
    return None


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _parse_cookie_setting(raw: Any) -> Any:
    # Environment values arrive as strings; a JSON object selects per-domain rewriting.
    if not isinstance(raw, str) or not raw.lstrip().startswith("{"):
        return raw
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        logger.warning(f"PROXY_COOKIE_DOMAIN_REWRITE is not valid JSON ({e}); using it as a plain domain")
        return raw
    if not isinstance(parsed, dict):
        return raw
    return parsed


@dataclass(frozen=True)
class ProxyOptions:
    """Read-only per-proxy configuration. Safe to share between concurrent requests."""

    target: str = ""
    host_rewrite: str | None = None
    auto_rewrite: bool = False
    protocol_rewrite: str | None = None
    cookie_domain_rewrite: dict[str, str] | None = None

    @classmethod
    def create(
        cls,
        target: str = "",
        host_rewrite: str | None = None,
        auto_rewrite: bool = False,
        protocol_rewrite: str | None = None,
        cookie_domain_rewrite: str | Mapping[str, str] | None = None,
    ) -> "ProxyOptions":
        return cls(
            target=target or "",
            host_rewrite=host_rewrite or None,
            auto_rewrite=bool(auto_rewrite),
            protocol_rewrite=protocol_rewrite or None,
            cookie_domain_rewrite=normalize_cookie_domain_rewrite(cookie_domain_rewrite),
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ProxyOptions":
        """Build options from a Flask config (or any mapping) using the PROXY_* keys."""
        return cls.create(
            target=config.get("PROXY_TARGET") or "",
            host_rewrite=config.get("PROXY_HOST_REWRITE"),
            auto_rewrite=_parse_bool(config.get("PROXY_AUTO_REWRITE", False)),
            protocol_rewrite=config.get("PROXY_PROTOCOL_REWRITE"),
            cookie_domain_rewrite=_parse_cookie_setting(config.get("PROXY_COOKIE_DOMAIN_REWRITE")),
        )

    @property
    def rewrites_redirects(self) -> bool:
        return bool(self.host_rewrite or self.auto_rewrite or self.protocol_rewrite)
