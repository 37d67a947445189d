"""Shared data structures for the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from crossseed.codec import Descriptor


class TorrentState(str, Enum):
    """Download-client lifecycle state, reduced to what the engine cares about."""

    UPLOADING = "uploading"
    QUEUED_UPLOADING = "queued_uploading"
    DOWNLOADING = "downloading"
    QUEUED_DOWNLOADING = "queued_downloading"
    PAUSED = "paused"
    CHECKING = "checking"
    ERRORED = "errored"
    UNKNOWN = "unknown"

    @property
    def is_seeding(self) -> bool:
        return self in (TorrentState.UPLOADING, TorrentState.QUEUED_UPLOADING)


@dataclass(frozen=True)
class LocalTorrent:
    """A torrent file read from disk for the duration of one pass."""

    descriptor: Descriptor
    path: Optional[Path] = None

    @property
    def fingerprint(self) -> str:
        return self.descriptor.fingerprint

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def announce_groups(self) -> Tuple[Tuple[str, ...], ...]:
        return self.descriptor.announce_groups

    @property
    def private(self) -> bool:
        return self.descriptor.private

    @property
    def raw(self) -> bytes:
        return self.descriptor.raw


@dataclass(frozen=True)
class ClientTorrentRecord:
    """The download client's live view of a torrent it manages."""

    fingerprint: str
    name: str
    state: TorrentState
    category: str = ""
    tags: Tuple[str, ...] = ()
    save_path: Optional[str] = None


@dataclass(frozen=True)
class CandidateRelease:
    """One indexer search result: a title and a link still to be resolved."""

    title: str
    link: str
    indexer: str = ""


@dataclass(frozen=True)
class ResolvedCandidate:
    """Full metadata of a candidate release, valid for one unit of work."""

    release: CandidateRelease
    descriptor: Descriptor

    @property
    def fingerprint(self) -> str:
        return self.descriptor.fingerprint

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def announce_groups(self) -> Tuple[Tuple[str, ...], ...]:
        return self.descriptor.announce_groups

    @property
    def private(self) -> bool:
        return self.descriptor.private

    @property
    def raw(self) -> bytes:
        return self.descriptor.raw


@dataclass(frozen=True)
class Skip:
    reason: str


@dataclass(frozen=True)
class InjectTrackers:
    """Add trackers to an existing record; private candidates force a replace."""

    merged: Tuple[str, ...]
    added: Tuple[str, ...]
    private: bool


@dataclass(frozen=True)
class UploadSecondary:
    data: bytes = field(repr=False)
    name: str


@dataclass(frozen=True)
class MaterializeToFilesystem:
    data: bytes = field(repr=False)
    name: str


CrossSeedAction = Union[Skip, InjectTrackers, UploadSecondary, MaterializeToFilesystem]


def describe_action(action: CrossSeedAction) -> str:
    if isinstance(action, Skip):
        return f"skip ({action.reason})"
    if isinstance(action, InjectTrackers):
        verb = "replace" if action.private else "add-trackers"
        return f"{verb} +{len(action.added)} tracker(s)"
    if isinstance(action, UploadSecondary):
        return "upload secondary torrent"
    return "write torrent file"
