"""Torznab indexer adapter (Jackett/Prowlarr style endpoints)."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List
from urllib.parse import urljoin

import aiohttp

from crossseed.__version__ import __version__
from crossseed.config import IndexerConfig
from crossseed.errors import ResolutionFailure, SearchFailure, UnsupportedCandidate
from crossseed.indexer.parsers import TorznabPayloadError, parse_capabilities, parse_search_results
from crossseed.indexer.protocols import IndexerClient
from crossseed.logger import CrossSeedLogger
from crossseed.models import CandidateRelease

DEFAULT_USER_AGENT = f"CrossSeed/{__version__}"
REDIRECT_STATUSES = {301, 302, 303, 307, 308}
MAGNET_PREFIX = "magnet:?"


def is_magnet(link: str) -> bool:
    return link.strip().lower().startswith(MAGNET_PREFIX)


class TorznabServiceAdapter(IndexerClient):
    """Search and download through a single Torznab endpoint."""

    def __init__(
        self,
        indexer: IndexerConfig,
        log: CrossSeedLogger,
        timeout: int = 30,
        max_concurrency: int = 4,
        max_redirects: int = 5,
    ):
        if not indexer.url:
            raise ValueError(f"Indexer '{indexer.name}' has no URL configured.")

        self.indexer = indexer
        self.log = log
        self.timeout = timeout
        self.max_redirects = max(0, int(max_redirects))
        self.api_url = indexer.url.rstrip("/")
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def get_capabilities(self) -> frozenset[str]:
        """Available search functions from ``t=caps``."""
        payload = await self._request({"t": "caps"})
        try:
            return parse_capabilities(payload, self.indexer.name)
        except TorznabPayloadError as exc:
            raise SearchFailure(str(exc)) from exc

    async def search(self, query: str) -> List[CandidateRelease]:
        """Free-text search; results keep the indexer's ranking."""
        payload = await self._request({"t": "search", "q": query})
        try:
            return parse_search_results(payload, self.indexer.name)
        except TorznabPayloadError as exc:
            raise SearchFailure(str(exc)) from exc

    async def download(self, link: str) -> bytes:
        """Fetch torrent bytes behind ``link``, following at most ``max_redirects`` hops."""
        url = link
        hops = 0
        session = await self._ensure_session()
        async with self._semaphore:
            while True:
                if is_magnet(url):
                    raise UnsupportedCandidate(f"{self.indexer.name} candidate is a magnet link: {url[:60]}")
                self.log.api_request("GET", url, {})
                request_start = time.time()
                try:
                    async with session.get(url, allow_redirects=False) as response:
                        if response.status in REDIRECT_STATUSES:
                            location = response.headers.get("Location")
                            if not location:
                                raise ResolutionFailure(
                                    f"{self.indexer.name} redirect ({response.status}) without a Location header"
                                )
                            hops += 1
                            if hops > self.max_redirects:
                                raise ResolutionFailure(
                                    f"{self.indexer.name} link exceeded {self.max_redirects} redirects"
                                )
                            url = location if is_magnet(location) else urljoin(url, location)
                            continue
                        if response.status >= 400:
                            raise ResolutionFailure(
                                f"{self.indexer.name} download failed: HTTP {response.status} {response.reason}"
                            )
                        data = await response.read()
                        elapsed_ms = (time.time() - request_start) * 1000
                        self.log.api_response(response.status, f"{len(data)} bytes", elapsed_ms)
                        return data
                except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
                    raise ResolutionFailure(f"{self.indexer.name} download failed: {exc}") from exc

    async def _request(self, params: Dict[str, Any]) -> str:
        query = dict(params)
        if self.indexer.api_key:
            query["apikey"] = self.indexer.api_key
        self.log.api_request("GET", self.api_url, query)
        request_start = time.time()

        async with self._semaphore:
            session = await self._ensure_session()
            try:
                async with session.get(self.api_url, params=query) as response:
                    text = await response.text()
                    if response.status >= 400:
                        raise SearchFailure(
                            f"{self.indexer.name} request failed: HTTP {response.status} {response.reason}"
                        )
                    elapsed_ms = (time.time() - request_start) * 1000
                    self.log.api_response(response.status, text, elapsed_ms)
                    return text
            except (asyncio.TimeoutError, aiohttp.ClientError) as exc:
                raise SearchFailure(f"{self.indexer.name} unreachable: {exc}") from exc

    async def _ensure_session(self) -> aiohttp.ClientSession:
        session = self._session
        if session is not None and not session.closed:
            return session

        async with self._session_lock:
            session = self._session
            if session is None or session.closed:
                timeout = aiohttp.ClientTimeout(total=self.timeout)
                self._session = aiohttp.ClientSession(
                    headers={"User-Agent": DEFAULT_USER_AGENT},
                    timeout=timeout,
                )
            return self._session

    async def close(self) -> None:
        """Close any open connections."""
        async with self._session_lock:
            session = self._session
            self._session = None
        if session is not None and not session.closed:
            await session.close()
