"""Torrent metadata codec built on torf."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import torf

from crossseed.errors import EncodeFailure, ResolutionFailure

AnnounceGroups = Tuple[Tuple[str, ...], ...]


@dataclass(frozen=True)
class Descriptor:
    """Decoded view of a torrent file; ``raw`` keeps the exact metainfo bytes."""

    fingerprint: str
    name: str
    announce_groups: AnnounceGroups
    private: bool
    raw: bytes = field(default=b"", repr=False, compare=False)


def _read(data: bytes) -> torf.Torrent:
    return torf.Torrent.read_stream(io.BytesIO(data), validate=True)


def _announce_groups(torrent: torf.Torrent) -> AnnounceGroups:
    return tuple(tuple(str(url) for url in tier) for tier in torrent.trackers if tier)


def decode(data: bytes) -> Descriptor:
    """Parse torrent bytes; anything torf rejects surfaces as ResolutionFailure."""
    try:
        torrent = _read(data)
        return Descriptor(
            fingerprint=torrent.infohash.lower(),
            name=torrent.name or "",
            announce_groups=_announce_groups(torrent),
            private=bool(torrent.private),
            raw=data,
        )
    except torf.TorfError as exc:
        raise ResolutionFailure(f"Cannot decode torrent metadata: {exc}") from exc


def _dump(
    raw: bytes,
    groups: Sequence[Sequence[str]],
    private: Optional[bool],
) -> bytes:
    try:
        torrent = _read(raw)
        torrent.trackers = [list(tier) for tier in groups if tier]
        if private is not None:
            torrent.private = private
        return torrent.dump()
    except torf.TorfError as exc:
        raise EncodeFailure(f"Cannot encode torrent metadata: {exc}") from exc


def encode(descriptor: Descriptor) -> bytes:
    """Write the descriptor's announce groups and privacy flag back into its metainfo."""
    if not descriptor.raw:
        raise EncodeFailure(f"No metainfo to encode for '{descriptor.name}'")
    return _dump(descriptor.raw, descriptor.announce_groups, descriptor.private)


def with_announces(
    descriptor: Descriptor,
    groups: Iterable[Iterable[str]],
    private: Optional[bool] = None,
) -> Descriptor:
    """Re-encode with new announce groups; the fingerprint is recomputed from the result."""
    data = _dump(descriptor.raw, [list(tier) for tier in groups], private)
    try:
        return decode(data)
    except ResolutionFailure as exc:
        raise EncodeFailure(str(exc)) from exc


def read_descriptor(path: Path) -> Descriptor:
    return decode(path.read_bytes())
