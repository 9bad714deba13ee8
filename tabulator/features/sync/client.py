"""
HTTP client for the scores API.

Fetches full score snapshots for live views. The last ETag of each
competition is sent back as If-None-Match, so an unchanged ledger costs
a 304 and no parsing.
"""

import logging
from typing import Any, Optional

import aiohttp

from tabulator.config import settings
from tabulator.features.ledger import LedgerSnapshot
from tabulator.shared.exceptions import SnapshotFetchError

logger = logging.getLogger(__name__)


class ScoresClient:
    """Client for GET /api/v1/scores."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.client_timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None
        self._etags: dict[int, str] = {}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def _get(self, path: str, **kwargs) -> tuple[int, Any, Optional[str]]:
        """Make GET request; returns (status, JSON body or None, ETag)."""
        session = await self._get_session()
        url = f"{self.base_url}{path}"

        async with session.get(url, **kwargs) as resp:
            if resp.status == 304:
                return resp.status, None, resp.headers.get("ETag")
            try:
                data = await resp.json()
            except (aiohttp.ContentTypeError, ValueError):
                data = None
            if resp.status != 200:
                detail = data.get("detail", "Unknown error") if isinstance(data, dict) else "Unknown error"
                raise SnapshotFetchError(resp.status, str(detail))
            return resp.status, data, resp.headers.get("ETag")

    async def fetch_snapshot(self, competition_id: int) -> Optional[LedgerSnapshot]:
        """
        Fetch the score snapshot of a competition.

        Returns:
            The snapshot, or None if unchanged since the previous fetch

        Raises:
            SnapshotFetchError: Non-200/304 response or malformed body
            aiohttp.ClientError: Connection failures
        """
        headers = {}
        etag = self._etags.get(competition_id)
        if etag:
            headers["If-None-Match"] = etag

        status, data, new_etag = await self._get(
            "/api/v1/scores",
            params={"competitionId": str(competition_id)},
            headers=headers,
        )
        if status == 304:
            logger.debug(f"Scores of competition {competition_id} not modified")
            return None

        if not isinstance(data, list):
            raise SnapshotFetchError(status, "Expected a list of score rows")

        if new_etag:
            self._etags[competition_id] = new_etag
        return LedgerSnapshot.from_rows(competition_id, data)

    def forget(self, competition_id: int):
        """Drop the stored ETag so the next fetch returns a full snapshot."""
        self._etags.pop(competition_id, None)

    async def close(self):
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
