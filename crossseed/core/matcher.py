"""Decide whether an indexer carries a genuine cross-seed for a local torrent."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from crossseed.client.protocols import DownloadClient
from crossseed.core import trackers
from crossseed.core.locks import FingerprintLocks
from crossseed.indexer.endpoint import IndexerEndpoint
from crossseed.logger import CrossSeedLogger
from crossseed.models import LocalTorrent, ResolvedCandidate

NO_RESULTS = "no results"
SAME_RELEASE = "same release"
ALREADY_CROSS_SEEDING = "already cross-seeding"
ALREADY_ON_TRACKERS = "already seeding to every tracker"
NOT_IN_CLIENT = "not in client"


@dataclass(frozen=True)
class MatchResult:
    candidate: Optional[ResolvedCandidate]
    reason: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.candidate is not None


class CandidateMatcher:
    """Searches one indexer by name and vets the top result."""

    def __init__(self, client: DownloadClient, log: CrossSeedLogger, locks: Optional[FingerprintLocks] = None) -> None:
        self.client = client
        self.log = log
        self.locks = locks or FingerprintLocks()

    async def match(self, local: LocalTorrent, indexer: IndexerEndpoint) -> Optional[ResolvedCandidate]:
        result = await self.evaluate(local, indexer)
        return result.candidate

    async def evaluate(self, local: LocalTorrent, indexer: IndexerEndpoint) -> MatchResult:
        """Return the candidate, or the reason it is not a cross-seed opportunity.

        Indexer ranking is trusted: only the first result is considered.
        Reads of the local record are taken under its fingerprint lock.
        """
        results = await indexer.search(local.name)
        if not results:
            return MatchResult(None, NO_RESULTS)

        candidate = await indexer.resolve(results[0])

        if candidate.fingerprint == local.fingerprint:
            self.log.debug(f"[{indexer.name}] Found '{local.name}' in its own indexer, skipping...")
            return MatchResult(None, SAME_RELEASE)

        if await self.client.find_by_fingerprint(candidate.fingerprint) is not None:
            self.log.debug(f"[{indexer.name}] Client already holds {candidate.fingerprint}, skipping...")
            return MatchResult(None, ALREADY_CROSS_SEEDING)

        offered = trackers.normalize(candidate.announce_groups)
        async with self.locks.hold(local.fingerprint):
            if await self.client.find_by_fingerprint(local.fingerprint) is None:
                return MatchResult(None, NOT_IN_CLIENT)
            configured = trackers.normalize(await self.client.get_trackers(local.fingerprint))
        if offered <= configured:
            self.log.debug(f"[{indexer.name}] Already seeding '{local.name}' to every tracker it offers")
            return MatchResult(None, ALREADY_ON_TRACKERS)

        return MatchResult(candidate)
