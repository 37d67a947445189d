"""Turn a vetted candidate into the download-client mutation that starts seeding it."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from crossseed import codec
from crossseed.client.protocols import DownloadClient
from crossseed.config import CrossSeedConfig, TorrentMode
from crossseed.core import trackers
from crossseed.errors import ClientFailure, OutputFailure, PartialMutationFailure
from crossseed.logger import CrossSeedLogger
from crossseed.models import (
    ClientTorrentRecord,
    CrossSeedAction,
    InjectTrackers,
    LocalTorrent,
    MaterializeToFilesystem,
    ResolvedCandidate,
    Skip,
    UploadSecondary,
)

NOT_FINISHED = "not finished"
NOTHING_TO_ADD = "already cross-seeding"

_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_filename(name: str) -> str:
    cleaned = _UNSAFE_FILENAME.sub("_", name).strip().strip(".")
    return cleaned or "unnamed"


@dataclass(frozen=True)
class ExecutionResult:
    action: CrossSeedAction
    new_fingerprint: Optional[str] = None
    path: Optional[Path] = None

    @property
    def mutated(self) -> bool:
        return not isinstance(self.action, Skip)


class ActionExecutor:
    """State machine over (client state, injection mode, candidate privacy)."""

    def __init__(self, config: CrossSeedConfig, client: DownloadClient, log: CrossSeedLogger) -> None:
        self.config = config
        self.client = client
        self.log = log
        self._pending: set[asyncio.Task] = set()

    def decide(
        self,
        record: ClientTorrentRecord,
        candidate: ResolvedCandidate,
        existing_trackers: Sequence[str] = (),
    ) -> CrossSeedAction:
        """Pure decision; ``existing_trackers`` is the record's live list (InjectTrackers only)."""
        if not record.state.is_seeding:
            return Skip(NOT_FINISHED)

        mode = self.config.torrent_mode
        if mode == TorrentMode.INJECT_TRACKERS:
            merged = tuple(trackers.merge(existing_trackers, candidate.announce_groups))
            added = tuple(trackers.added_trackers(existing_trackers, merged))
            if not added:
                return Skip(NOTHING_TO_ADD)
            return InjectTrackers(merged=merged, added=added, private=candidate.private)
        if mode == TorrentMode.INJECT_FILE:
            return UploadSecondary(data=candidate.raw, name=candidate.name)
        return MaterializeToFilesystem(data=candidate.raw, name=candidate.name)

    async def run(
        self,
        local: LocalTorrent,
        record: ClientTorrentRecord,
        candidate: ResolvedCandidate,
    ) -> ExecutionResult:
        existing: Sequence[str] = ()
        if record.state.is_seeding and self.config.torrent_mode == TorrentMode.INJECT_TRACKERS:
            existing = await self.client.get_trackers(record.fingerprint)
        action = self.decide(record, candidate, existing)
        return await self.execute(action, local, record, candidate.release.indexer)

    async def execute(
        self,
        action: CrossSeedAction,
        local: LocalTorrent,
        record: ClientTorrentRecord,
        indexer_name: str = "",
    ) -> ExecutionResult:
        if isinstance(action, Skip):
            self.log.debug(f"'{local.name}': {action.reason}, skipping...")
            return ExecutionResult(action)

        if isinstance(action, InjectTrackers):
            if not action.private:
                self.log.debug("Adding trackers to torrent since they aren't private...")
                await self.client.add_trackers(record.fingerprint, action.added)
                self.log.info(f"Cross-seed injected {len(action.added)} tracker(s) into '{local.name}'")
                return ExecutionResult(action)

            self.log.debug("The found torrent is private, so we must remove the torrent and re-add it with the new trackers...")
            task = asyncio.ensure_future(self._replace(local, record, action))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            new_fingerprint = await asyncio.shield(task)
            return ExecutionResult(action, new_fingerprint=new_fingerprint)

        if isinstance(action, UploadSecondary):
            await self.client.add_torrent(
                action.data,
                self.config.torrent_category,
                self.config.torrent_tags,
                save_path=record.save_path,
            )
            self.log.info(f"Cross-seed added as a second torrent: '{action.name}'")
            return ExecutionResult(action)

        path = await self._materialize(action, indexer_name)
        self.log.info(f"Cross-seed written to {path}")
        return ExecutionResult(action, path=path)

    async def _replace(self, local: LocalTorrent, record: ClientTorrentRecord, action: InjectTrackers) -> str:
        # Encode first: an encode failure must leave the client untouched.
        replacement = codec.with_announces(local.descriptor, [list(action.merged)], private=True)
        category = record.category

        await self.client.remove_torrent(record.fingerprint, delete_data=False)
        self.log.debug("Re-uploading torrent to client...")
        try:
            await self.client.add_torrent(replacement.raw, category, record.tags, save_path=record.save_path)
        except ClientFailure as exc:
            self.log.critical(
                f"'{local.name}' ({record.fingerprint}) was removed from {self.client.name} "
                f"but re-adding it failed: {exc}"
            )
            await self._rescue(local.name, replacement.raw)
            raise PartialMutationFailure(
                f"removed but not re-added: {exc}",
                fingerprint=record.fingerprint,
                name=local.name,
                data=replacement.raw,
            ) from exc

        self.log.info(f"Cross-seed replaced '{local.name}' with {len(action.merged)} tracker(s) ({replacement.fingerprint})")
        return replacement.fingerprint

    async def _rescue(self, name: str, data: bytes) -> None:
        if self.config.output_path is None:
            self.log.critical("No output_path configured; the replacement torrent was not saved.")
            return
        path = self.config.output_path / "rescue" / f"{safe_filename(name)}.torrent"
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as exc:
            self.log.critical(f"Could not save the replacement torrent to {path}: {exc}")
            return
        self.log.critical(f"Replacement torrent saved to {path}; add it to the client by hand.")

    async def _materialize(self, action: MaterializeToFilesystem, indexer_name: str) -> Path:
        if self.config.output_path is None:
            raise OutputFailure("Filesystem mode needs output_path")
        prefix = f"[{safe_filename(indexer_name)}] " if indexer_name else ""
        path = self.config.output_path / f"{prefix}{safe_filename(action.name)}.torrent"
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, action.data)
        except OSError as exc:
            raise OutputFailure(f"Cannot write {path}: {exc}") from exc
        return path

    async def drain(self) -> None:
        """Wait for replacement sequences that are still running."""
        pending = list(self._pending)
        if pending:
            self.log.info(f"Waiting for {len(pending)} in-flight replacement(s) to finish...")
            await asyncio.gather(*pending, return_exceptions=True)
