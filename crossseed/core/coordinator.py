"""Fan (torrent x indexer) units of work out and collect one outcome per unit."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from crossseed.client.protocols import DownloadClient
from crossseed.config import CrossSeedConfig
from crossseed.core.executor import ActionExecutor
from crossseed.core.locks import FingerprintLocks
from crossseed.core.matcher import NOT_IN_CLIENT, CandidateMatcher
from crossseed.errors import CrossSeedError, PartialMutationFailure
from crossseed.indexer.endpoint import IndexerEndpoint
from crossseed.logger import CrossSeedLogger
from crossseed.models import LocalTorrent, describe_action


class OutcomeStatus(str, Enum):
    NO_MATCH = "no_match"
    SKIPPED = "skipped"
    ACTED = "acted"
    FAILED = "failed"


@dataclass(frozen=True)
class UnitOutcome:
    torrent: str
    fingerprint: str
    indexer: str
    status: OutcomeStatus
    matched: bool = False
    action: Optional[str] = None
    reason: Optional[str] = None
    failure_kind: Optional[str] = None
    detail: Optional[str] = None
    new_fingerprint: Optional[str] = None


@dataclass
class RunReport:
    outcomes: List[UnitOutcome] = field(default_factory=list)

    @property
    def matches(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.matched]

    @property
    def actions(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.ACTED]

    @property
    def failures(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.status == OutcomeStatus.FAILED]

    @property
    def skipped(self) -> List[UnitOutcome]:
        return [o for o in self.outcomes if o.status in (OutcomeStatus.SKIPPED, OutcomeStatus.NO_MATCH)]


class ReconciliationCoordinator:
    """Runs the matcher then the executor for every (torrent, indexer) pair.

    Searches run concurrently up to ``max_concurrency``. Every read and
    mutation of one client record goes through a per-fingerprint lock.
    """

    def __init__(
        self,
        config: CrossSeedConfig,
        client: DownloadClient,
        log: CrossSeedLogger,
        matcher: Optional[CandidateMatcher] = None,
        executor: Optional[ActionExecutor] = None,
        locks: Optional[FingerprintLocks] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.log = log
        self.locks = locks or FingerprintLocks()
        self.matcher = matcher or CandidateMatcher(client, log, locks=self.locks)
        self.executor = executor or ActionExecutor(config, client, log)

    async def run(self, local_torrents: Sequence[LocalTorrent], indexers: Sequence[IndexerEndpoint]) -> RunReport:
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        units = [
            self._run_unit(semaphore, torrent, indexer)
            for torrent in local_torrents
            for indexer in indexers
        ]
        total = len(units)
        done = 0

        async def _tracked(unit) -> UnitOutcome:
            nonlocal done
            outcome = await unit
            done += 1
            self.log.status(f"[{done}/{total}] searches finished")
            return outcome

        self.log.info(f"Checking {len(local_torrents)} torrent(s) against {len(indexers)} indexer(s) ({total} searches)")
        try:
            outcomes = await asyncio.gather(*(_tracked(unit) for unit in units))
        finally:
            await self.executor.drain()
            self.log.clear_status()
        return RunReport(outcomes=list(outcomes))

    async def _run_unit(
        self,
        semaphore: asyncio.Semaphore,
        torrent: LocalTorrent,
        indexer: IndexerEndpoint,
    ) -> UnitOutcome:
        matched = False
        try:
            async with semaphore:
                self.log.info(f"[{indexer.name}] Checking \"{torrent.name}\"")
                async with self.locks.hold(torrent.fingerprint):
                    record = await self.client.find_by_fingerprint(torrent.fingerprint)
                if record is None:
                    self.log.warning(f"[{indexer.name}] '{torrent.name}' is not in the download client, skipping")
                    return self._outcome(torrent, indexer, OutcomeStatus.SKIPPED, reason=NOT_IN_CLIENT)
                result = await self.matcher.evaluate(torrent, indexer)
            if result.reason == NOT_IN_CLIENT:
                self.log.info(f"[{indexer.name}] '{torrent.name}' left the download client during the search, skipping")
                return self._outcome(torrent, indexer, OutcomeStatus.SKIPPED, reason=NOT_IN_CLIENT)
            if result.candidate is None:
                return self._outcome(torrent, indexer, OutcomeStatus.NO_MATCH, reason=result.reason)

            matched = True
            self.log.info(f"[{indexer.name}] Cross-seed found for '{torrent.name}': {result.candidate.release.title}")
            async with self.locks.hold(torrent.fingerprint):
                # A sibling unit may have replaced the record while we searched.
                record = await self.client.find_by_fingerprint(torrent.fingerprint)
                if record is None:
                    return self._outcome(torrent, indexer, OutcomeStatus.SKIPPED, matched=True, reason=NOT_IN_CLIENT)
                execution = await self.executor.run(torrent, record, result.candidate)

            if not execution.mutated:
                reason = getattr(execution.action, "reason", None)
                self.log.info(f"[{indexer.name}] Skipped ({reason}) '{torrent.name}'")
                return self._outcome(torrent, indexer, OutcomeStatus.SKIPPED, matched=True, reason=reason)
            return self._outcome(
                torrent,
                indexer,
                OutcomeStatus.ACTED,
                matched=True,
                action=describe_action(execution.action),
                detail=str(execution.path) if execution.path else None,
                new_fingerprint=execution.new_fingerprint,
            )
        except PartialMutationFailure as exc:
            self.log.critical(f"[{indexer.name}] Failed (partial-mutation) '{torrent.name}': {exc}")
            return self._failure(torrent, indexer, exc, matched)
        except CrossSeedError as exc:
            self.log.error(f"[{indexer.name}] Failed ({exc.kind}) '{torrent.name}': {exc}")
            return self._failure(torrent, indexer, exc, matched)
        except Exception as exc:
            self.log.error(f"[{indexer.name}] Failed (unexpected) '{torrent.name}': {type(exc).__name__}: {exc}")
            return self._outcome(
                torrent,
                indexer,
                OutcomeStatus.FAILED,
                matched=matched,
                failure_kind="unexpected",
                detail=f"{type(exc).__name__}: {exc}",
            )

    def _failure(self, torrent: LocalTorrent, indexer: IndexerEndpoint, exc: CrossSeedError, matched: bool) -> UnitOutcome:
        return self._outcome(
            torrent,
            indexer,
            OutcomeStatus.FAILED,
            matched=matched,
            failure_kind=exc.kind,
            detail=str(exc),
        )

    @staticmethod
    def _outcome(torrent: LocalTorrent, indexer: IndexerEndpoint, status: OutcomeStatus, **kwargs) -> UnitOutcome:
        return UnitOutcome(
            torrent=torrent.name,
            fingerprint=torrent.fingerprint,
            indexer=indexer.name,
            status=status,
            **kwargs,
        )
