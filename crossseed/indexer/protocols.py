"""Protocol definition for indexer search backends."""

from __future__ import annotations

from typing import Protocol, Sequence

from crossseed.models import CandidateRelease


class IndexerClient(Protocol):
    """Minimal indexer API used by the candidate matcher."""

    async def get_capabilities(self) -> frozenset[str]:
        ...

    async def search(self, query: str) -> Sequence[CandidateRelease]:
        ...

    async def download(self, link: str) -> bytes:
        ...

    async def close(self) -> None:
        ...
