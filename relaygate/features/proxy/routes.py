"""
Proxy routes: forward the request to PROXY_TARGET and relay the answer.

The outgoing passes decide the headers and status; this module only does the
I/O around them.
"""

from __future__ import annotations

import logging
import traceback
from urllib.parse import urlsplit

import requests
from flask import Response, current_app, request
from urllib3.exceptions import MaxRetryError, ResponseError

from .blueprint import IS_PRODUCTION, bp
from .http_session import _SESSION
from .messages import HeadersOutgoingResponse, ProxyRequest, UpstreamResponse
from .options import ProxyOptions
from .passes import run_outgoing_passes

logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]

# Never forwarded upstream; requests sets Host and framing itself.
EXCLUDED_REQUEST_HEADERS = {"host", "content-length", "transfer-encoding", "connection", "keep-alive"}

# requests decodes and re-frames the body, so the origin's framing headers no longer apply.
EXCLUDED_RESPONSE_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}

# WSGI servers own the connection; these may not be handed to start_response.
HOP_BY_HOP_HEADERS = {"connection", "keep-alive", "proxy-authenticate", "proxy-authorization", "te", "trailers", "transfer-encoding", "upgrade"}


def get_proxy_options() -> ProxyOptions:
    options = current_app.extensions.get("relaygate.options")
    if options is None:
        options = ProxyOptions.from_config(current_app.config)
        current_app.extensions["relaygate.options"] = options
    return options


def build_target_url(target: str, path: str, query_string: bytes) -> str:
    url = f"{target.rstrip('/')}/{path}"
    if query_string:
        url += f"?{query_string.decode('latin-1')}"
    return url


def relay_headers(outgoing: HeadersOutgoingResponse) -> list[tuple[str, str]]:
    """Headers decided by the outgoing passes, minus those the WSGI server manages itself."""
    return [(name, value) for name, value in outgoing.headers.items() if name.lower() not in HOP_BY_HOP_HEADERS]


def read_upstream_headers(resp: requests.Response) -> list[tuple[str, str]]:
    """Raw header pairs from the origin, repeated headers kept apart."""
    try:
        return list(resp.raw.headers.iteritems())
    except (AttributeError, Exception) as e:
        logger.warning(f"Error reading raw upstream headers: {e}")
        try:
            return list(resp.headers.items())
        except Exception as e2:
            logger.error(f"Error reading upstream headers: {e2}")
            return []


def generate(resp: requests.Response, target_url: str):
    try:
        for chunk in resp.iter_content(chunk_size=8192):
            if chunk:
                yield chunk
    except Exception as e:
        logger.error(f"Error streaming content from {urlsplit(target_url).netloc}: {e}")
    finally:
        resp.close()


@bp.route("/", defaults={"path": ""}, methods=PROXY_METHODS)
@bp.route("/<path:path>", methods=PROXY_METHODS)
def proxy_path(path: str):
    """Proxy any request to the configured upstream origin."""
    options = get_proxy_options()
    if not options.target:
        logger.error("PROXY_TARGET is not configured; cannot proxy request")
        return "Proxy target is not configured.", 500

    target_url = build_target_url(options.target, path, request.query_string)

    try:
        if not IS_PRODUCTION:
            logger.debug(f"Proxy request: method={request.method} path=/{path} target={target_url}")

        headers = {}
        for name, value in request.headers:
            if name.lower() not in EXCLUDED_REQUEST_HEADERS:
                headers[name] = value

        headers["X-Forwarded-Host"] = request.host
        headers["X-Forwarded-Proto"] = "https" if request.is_secure else "http"
        if request.remote_addr:
            forwarded_for = request.headers.get("X-Forwarded-For")
            headers["X-Forwarded-For"] = f"{forwarded_for}, {request.remote_addr}" if forwarded_for else request.remote_addr

        timeout = current_app.config.get("PROXY_TIMEOUT", (75, 300))
        resp = _SESSION.request(
            method=request.method,
            url=target_url,
            headers=headers,
            data=request.get_data() or None,
            allow_redirects=False,
            stream=True,
            timeout=timeout,
        )

        try:
            upstream = UpstreamResponse.from_header_items(
                resp.status_code,
                [(name, value) for name, value in read_upstream_headers(resp) if name.lower() not in EXCLUDED_RESPONSE_HEADERS],
            )
            proxy_request = ProxyRequest.from_environ(request.environ, request.headers.items())
            outgoing = HeadersOutgoingResponse()

            run_outgoing_passes(proxy_request, outgoing, upstream, options)

            response = Response(generate(resp, target_url), status=outgoing.status_code, headers=relay_headers(outgoing))
            if "Content-Type" not in outgoing.headers:
                # Flask fills in a default; only relay a Content-Type the origin sent.
                response.headers.pop("Content-Type", None)
            return response
        except Exception:
            resp.close()
            raise

    except requests.exceptions.ConnectionError as e:
        logger.error(f"Connection error proxying to {target_url}: {e}")
        return "Upstream is not responding.", 503
    except requests.exceptions.Timeout as e:
        logger.error(f"Timeout error proxying to {target_url}: {e}")
        return "Request to upstream timed out.", 504
    except (ResponseError, MaxRetryError) as e:
        logger.error(f"Retry error proxying to {target_url}: {e}")
        return f"Error proxying request: {str(e)}", 502
    except requests.exceptions.RequestException as e:
        logger.error(f"Request error proxying to {target_url}: {e}")
        return f"Error proxying request: {str(e)}", 502
    except Exception as e:
        error_trace = traceback.format_exc()
        logger.error(f"Unexpected error proxying /{path}: {e}\n{error_trace}")
        return f"Internal proxy error: {str(e)}. Check server logs for details.", 500
