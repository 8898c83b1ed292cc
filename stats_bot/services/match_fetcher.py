"""
Match-detail fetcher.

Retrieves match pages from the external game platform. The platform rejects
requests without a browser-like User-Agent. Failures never propagate raw:
non-2xx responses, undecodable bodies and transport errors become
FetchFailedError. Nothing is retried.
"""

import asyncio
from typing import Dict, Iterable, Optional, Union

import aiohttp

from stats_bot.config import Config
from stats_bot.utils.ingestion_errors import FetchFailedError
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class MatchFetcher:
    """Fetches match-detail documents over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        user_agent: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.base_url = (base_url or Config.MATCH_BASE_URL).rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or Config.FETCH_TIMEOUT_SECONDS)
        self.headers = {
            'User-Agent': user_agent or Config.FETCH_USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        }
        self._session = session

    def match_url(self, match_id: int) -> str:
        return f"{self.base_url}/match/{match_id}"

    async def fetch(self, match_id: int, session: Optional[aiohttp.ClientSession] = None) -> str:
        """
        Fetch one match-detail document.

        Raises:
            FetchFailedError: on non-2xx status or any transport error
        """
        http = session or self._session
        if http is None:
            async with aiohttp.ClientSession(headers=self.headers) as owned:
                return await self.fetch(match_id, session=owned)

        url = self.match_url(match_id)
        try:
            async with http.get(url, headers=self.headers, timeout=self.timeout) as resp:
                if not 200 <= resp.status < 300:
                    logger.error(f"Failed to fetch match {match_id}: HTTP {resp.status}")
                    raise FetchFailedError(match_id, resp.status)
                return await resp.text()
        except FetchFailedError:
            raise
        except UnicodeDecodeError as e:
            logger.error(f"Undecodable body for match {match_id}: {e}")
            raise FetchFailedError(match_id, details="undecodable response body")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Transport error fetching match {match_id}: {e!r}")
            raise FetchFailedError(match_id, details=type(e).__name__)

    async def fetch_many(
        self,
        match_ids: Iterable[int]
    ) -> Dict[int, Union[str, FetchFailedError]]:
        """
        Fetch several matches concurrently.

        Returns:
            Mapping of match id -> document text, or the FetchFailedError for that id
        """
        match_ids = list(dict.fromkeys(match_ids))
        if not match_ids:
            return {}

        if self._session is not None:
            return await self._gather(match_ids, self._session)

        async with aiohttp.ClientSession(headers=self.headers) as session:
            return await self._gather(match_ids, session)

    async def _gather(self, match_ids, session) -> Dict[int, Union[str, FetchFailedError]]:
        async def _one(match_id):
            try:
                return await self.fetch(match_id, session=session)
            except FetchFailedError as e:
                return e

        documents = await asyncio.gather(*(_one(match_id) for match_id in match_ids))
        return dict(zip(match_ids, documents))
