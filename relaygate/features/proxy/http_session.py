"""
HTTP session used to reach the upstream origin (connection pooling + retry).
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def create_proxy_session() -> requests.Session:
    """Create a requests session tuned for proxy traffic."""
    session = requests.Session()
    # Forward only what the client sent; no netrc or proxy settings from the environment.
    session.trust_env = False

    retry_strategy = Retry(
        total=1,
        backoff_factor=0.1,
        status_forcelist=[502, 503, 504],
        # Relay the upstream 5xx to the client once retries are spent.
        raise_on_status=False,
        redirect=False,
    )

    adapter = HTTPAdapter(pool_connections=10, pool_maxsize=20, max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


_SESSION = create_proxy_session()
