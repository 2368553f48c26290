"""
Outgoing passes: rewrite an upstream response before it is relayed to the client.

Every pass takes (request, outgoing, upstream, options), mutates the upstream
headers or the outgoing response, and returns None. OUTGOING_PASSES fixes the
order they run in.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .messages import OutgoingResponse, ProxyRequest, UpstreamResponse
from .options import ProxyOptions
from .services.cookies import rewrite_cookie_domain
from .services.urls import REDIRECT_STATUS_CODES, rewrite_redirect_location

logger = logging.getLogger(__name__)

OutgoingPass = Callable[[ProxyRequest, OutgoingResponse, UpstreamResponse, ProxyOptions], None]


def remove_chunked(request: ProxyRequest, outgoing: OutgoingResponse, upstream: UpstreamResponse, options: ProxyOptions) -> None:
    """HTTP/1.0 clients cannot read chunked bodies."""
    if request.http_version == "1.0":
        upstream.headers.pop("transfer-encoding", None)


def set_connection(request: ProxyRequest, outgoing: OutgoingResponse, upstream: UpstreamResponse, options: ProxyOptions) -> None:
    """
    Pick the Connection header for the client.

    HTTP/1.0 always gets an explicit value (the client's own, else "close").
    Later versions only get one filled in when the origin did not send it.
    """
    if request.http_version == "1.0":
        upstream.headers["connection"] = request.header("connection") or "close"
    elif not upstream.headers.get("connection"):
        upstream.headers["connection"] = request.header("connection") or "keep-alive"


def set_redirect_host_rewrite(request: ProxyRequest, outgoing: OutgoingResponse, upstream: UpstreamResponse, options: ProxyOptions) -> None:
    location = upstream.headers.get("location")
    if not (options.rewrites_redirects and location and upstream.status_code in REDIRECT_STATUS_CODES):
        return

    host = None
    if options.host_rewrite:
        host = options.host_rewrite
    elif options.auto_rewrite:
        host = request.header("host")

    upstream.headers["location"] = rewrite_redirect_location(
        location,
        options.target,
        host=host,
        protocol=options.protocol_rewrite,
    )


def write_headers(request: ProxyRequest, outgoing: OutgoingResponse, upstream: UpstreamResponse, options: ProxyOptions) -> None:
    """Copy every upstream header onto the outgoing response."""
    cookie_rewrites = options.cookie_domain_rewrite
    for key, value in list(upstream.headers.items()):
        if value is None:
            continue
        if cookie_rewrites and key.lower() == "set-cookie":
            value = rewrite_cookie_domain(value, cookie_rewrites)
        outgoing.set_header(str(key).strip(), value)


def write_status_code(request: ProxyRequest, outgoing: OutgoingResponse, upstream: UpstreamResponse, options: ProxyOptions) -> None:
    outgoing.write_head(upstream.status_code)


OUTGOING_PASSES: tuple[OutgoingPass, ...] = (
    remove_chunked,
    set_connection,
    set_redirect_host_rewrite,
    write_headers,
    write_status_code,
)


def run_outgoing_passes(
    request: ProxyRequest,
    outgoing: OutgoingResponse,
    upstream: UpstreamResponse,
    options: Optional[ProxyOptions] = None,
) -> None:
    """Run every outgoing pass, in order, against one request/response pair."""
    if options is None:
        options = ProxyOptions()
    for outgoing_pass in OUTGOING_PASSES:
        outgoing_pass(request, outgoing, upstream, options)
