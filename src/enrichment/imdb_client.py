"""Client for the imdbapi.dev title metadata API.

Two lookups feed enrichment: a free-text title search and a fetch of the
full title record by IMDb id. Responses are returned as plain dicts; the
API adds fields over time and none of them are interpreted here.

The API key is optional. With IMDBAPI_AUTH_STYLE=header it travels as a
bearer token (set on the session, see http_client.create_session), with
IMDBAPI_AUTH_STYLE=query it is appended as ?apiKey=.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import requests

from src.config import ImdbConfig
from src.errors import InvalidIdentifier, RemoteError

logger = logging.getLogger(__name__)

TITLE_ID_PATTERN = re.compile(r"^tt\d{5,10}$", re.IGNORECASE)
MAX_BATCH_SIZE = 5


class ImdbClient:
    """Thin wrapper around the imdbapi.dev REST endpoints."""

    def __init__(
        self,
        session: requests.Session,
        config: ImdbConfig,
        timeout: int = 30,
    ) -> None:
        self._session = session
        self._config = config
        self._timeout = timeout
        self._base_url = config.base_url.rstrip("/")

    def _get(self, path: str, params: Optional[list[tuple[str, Any]]] = None) -> Any:
        query = [(k, v) for k, v in (params or []) if v not in (None, "")]
        if self._config.api_key and self._config.auth_style == "query":
            query.append(("apiKey", self._config.api_key))

        url = f"{self._base_url}/{path.lstrip('/')}"
        logger.debug("GET %s %s", url, [k for k, _ in query])
        response = self._session.get(url, params=query, timeout=self._timeout)
        if not response.ok:
            raise RemoteError(path, response.status_code, response.text)
        return response.json()

    def search(self, query: str, limit: Optional[int] = None) -> list[dict]:
        """Search titles by free text.

        Args:
            query: Title text to look for.
            limit: Maximum number of candidates the API should return.

        Returns:
            Candidate title dicts, best match first. Empty if none matched.

        Raises:
            ValueError: If query is blank.
            RemoteError: On a non-success HTTP status.
        """
        if not query or not query.strip():
            raise ValueError("query is required")
        payload = self._get(
            "/search/titles", [("query", query), ("limit", limit)]
        )
        return list((payload or {}).get("titles") or [])

    def fetch_by_id(self, title_id: str) -> dict:
        """Fetch the full record for one title.

        Raises:
            InvalidIdentifier: If title_id does not look like tt1234567.
                Raised before any request is sent.
            RemoteError: On a non-success HTTP status.
        """
        if not TITLE_ID_PATTERN.match(title_id or ""):
            raise InvalidIdentifier(
                f"title id must look like tt1234567, got '{title_id}'"
            )
        return self._get(f"/titles/{title_id}")

    def batch_get(self, title_ids: list[str]) -> list[dict]:
        """Fetch up to five titles in one request."""
        if not title_ids:
            raise ValueError("title_ids is required")
        if len(title_ids) > MAX_BATCH_SIZE:
            raise ValueError(
                f"at most {MAX_BATCH_SIZE} title ids per batch, got {len(title_ids)}"
            )
        for title_id in title_ids:
            if not TITLE_ID_PATTERN.match(title_id):
                raise InvalidIdentifier(
                    f"title id must look like tt1234567, got '{title_id}'"
                )
        payload = self._get(
            "/titles:batchGet", [("titleIds", tid) for tid in title_ids]
        )
        return list((payload or {}).get("titles") or [])
