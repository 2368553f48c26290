"""
Message objects handed to the outgoing passes.

The engine builds one ProxyRequest / UpstreamResponse / OutgoingResponse per
proxied exchange and throws them away once the response has been sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Protocol, Union

from requests.structures import CaseInsensitiveDict
from werkzeug.datastructures import Headers

# A header is either a single value or an ordered list of values (Set-Cookie).
HeaderValue = Union[str, list[str]]


@dataclass
class ProxyRequest:
    """The original client request, as far as the outgoing passes care."""

    http_version: str = "1.1"
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {str(k).lower(): v for k, v in (self.headers or {}).items()}

    def header(self, name: str) -> str | None:
        """Return a header value, or None when missing or empty."""
        value = self.headers.get(name.lower())
        return value or None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], headers: Iterable[tuple[str, str]]) -> "ProxyRequest":
        protocol = environ.get("SERVER_PROTOCOL", "")
        version = protocol.split("/", 1)[1] if "/" in protocol else ""
        return cls(http_version=version, headers={name: value for name, value in headers})


@dataclass
class UpstreamResponse:
    """Status and headers received from the proxied origin. Passes edit these in place."""

    status_code: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CaseInsensitiveDict):
            self.headers = CaseInsensitiveDict(self.headers or {})

    @classmethod
    def from_header_items(cls, status_code: int, items: Iterable[tuple[str, str]]) -> "UpstreamResponse":
        """Fold raw (name, value) pairs; repeated Set-Cookie lines become a list."""
        headers: CaseInsensitiveDict = CaseInsensitiveDict()
        for name, value in items:
            if name.lower() == "set-cookie":
                cookies = headers.get(name)
                if cookies is None:
                    headers[name] = [value]
                else:
                    cookies.append(value)
            elif name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value
        return cls(status_code=status_code, headers=headers)


class OutgoingResponse(Protocol):
    """What the passes may do to the response going back to the client."""

    def set_header(self, name: str, value: HeaderValue) -> None: ...

    def write_head(self, status_code: int) -> None: ...


class HeadersOutgoingResponse:
    """OutgoingResponse backed by werkzeug Headers, flushed later by the engine."""

    def __init__(self) -> None:
        self.headers = Headers()
        self.status_code: int | None = None

    def set_header(self, name: str, value: HeaderValue) -> None:
        if isinstance(value, list):
            self.headers.setlist(name, [str(v) for v in value])
        else:
            self.headers.set(name, str(value))

    def write_head(self, status_code: int) -> None:
        self.status_code = status_code
