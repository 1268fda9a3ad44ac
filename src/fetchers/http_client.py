"""HTTP session factory with automatic retries and exponential backoff.

Creates a requests.Session for the title metadata API, pre-configured with:
- Honest User-Agent header (not browser impersonation)
- JSON Accept header, plus a bearer token when the API key is sent as a header
- Retry on transient HTTP errors (429, 5xx) with exponential backoff
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.config import ImdbConfig, NetflixConfig


def create_session(
    config: NetflixConfig,
    imdb_config: ImdbConfig | None = None,
) -> requests.Session:
    """Create an HTTP session with retry strategy and honest User-Agent.

    Uses urllib3's Retry to automatically retry failed requests with
    exponential backoff (1s, 2s, 4s). Only retries on safe GET requests
    and only for transient server errors or rate limiting. Retries are
    exhausted without raising so callers still see the final status.

    Args:
        config: Netflix configuration with user_agent and retry_count.
        imdb_config: When given with an api_key and auth_style "header",
            an Authorization header is added to every request.

    Returns:
        A requests.Session ready to use for all HTTP calls.
    """
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent
    session.headers["Accept"] = "application/json"
    if (
        imdb_config is not None
        and imdb_config.api_key
        and imdb_config.auth_style == "header"
    ):
        session.headers["Authorization"] = f"Bearer {imdb_config.api_key}"

    retry_strategy = Retry(
        total=config.retry_count,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session
