"""Configured indexers and their lazily created search clients."""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Sequence

from crossseed import codec
from crossseed.config import CrossSeedConfig, IndexerConfig
from crossseed.errors import ResolutionFailure
from crossseed.indexer.protocols import IndexerClient
from crossseed.indexer.torznab_client import TorznabServiceAdapter
from crossseed.logger import CrossSeedLogger
from crossseed.models import CandidateRelease, ResolvedCandidate

ClientFactory = Callable[[IndexerConfig], IndexerClient]


class IndexerEndpoint:
    """One configured indexer. Settings are fixed; the client is created on first use."""

    def __init__(
        self,
        config: IndexerConfig,
        log: CrossSeedLogger,
        client_factory: ClientFactory,
    ) -> None:
        self.config = config
        self.log = log
        self._client_factory = client_factory
        self._client: Optional[IndexerClient] = None
        self._capabilities: frozenset[str] = frozenset()
        self._client_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def url(self) -> str:
        return self.config.url

    @property
    def capabilities(self) -> frozenset[str]:
        return self._capabilities

    async def ensure_client(self) -> IndexerClient:
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                client = self._client_factory(self.config)
                self._capabilities = await client.get_capabilities()
                self.log.debug(f"{self.name} can search: {sorted(self._capabilities) or 'nothing reported'}")
                self._client = client
            return self._client

    async def search(self, query: str) -> Sequence[CandidateRelease]:
        client = await self.ensure_client()
        return await client.search(query)

    async def resolve(self, release: CandidateRelease) -> ResolvedCandidate:
        """Download and decode the release behind a search result."""
        client = await self.ensure_client()
        data = await client.download(release.link)
        try:
            descriptor = codec.decode(data)
        except ResolutionFailure as exc:
            raise ResolutionFailure(f"{self.name} result '{release.title}': {exc}") from exc
        return ResolvedCandidate(release=release, descriptor=descriptor)

    async def close(self) -> None:
        client = self._client
        self._client = None
        if client is not None:
            await client.close()


def build_endpoints(
    config: CrossSeedConfig,
    log: CrossSeedLogger,
    client_factory: Optional[ClientFactory] = None,
) -> List[IndexerEndpoint]:
    """One endpoint per enabled indexer, in configuration order."""

    def _torznab(indexer: IndexerConfig) -> IndexerClient:
        return TorznabServiceAdapter(
            indexer,
            log,
            timeout=config.request_timeout,
            max_concurrency=config.max_concurrency,
            max_redirects=config.max_redirects,
        )

    factory = client_factory or _torznab
    return [IndexerEndpoint(indexer, log, factory) for indexer in config.enabled_indexers()]
