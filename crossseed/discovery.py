"""
discovery.py - Find and decode the local .torrent files to cross-seed
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from crossseed import codec
from crossseed.errors import ResolutionFailure
from crossseed.logger import CrossSeedLogger
from crossseed.models import LocalTorrent


def find_torrent_files(path: Path) -> List[Path]:
    """Every regular ``*.torrent`` file below ``path``, sorted."""
    if path.is_file():
        return [path] if path.suffix.lower() == ".torrent" else []
    if not path.is_dir():
        return []
    return sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() == ".torrent")


def load_local_torrents(paths: Iterable[Path], log: CrossSeedLogger) -> List[LocalTorrent]:
    torrents: List[LocalTorrent] = []
    seen: set[str] = set()
    for path in paths:
        try:
            descriptor = codec.read_descriptor(path)
        except OSError as exc:
            log.warning(f"Cannot read {path}: {exc}")
            continue
        except ResolutionFailure as exc:
            log.warning(f"Skipping {path.name}: {exc}")
            continue
        if descriptor.fingerprint in seen:
            log.debug(f"Skipping {path.name}: duplicate of an already loaded torrent")
            continue
        seen.add(descriptor.fingerprint)
        torrents.append(LocalTorrent(descriptor=descriptor, path=path))
    return torrents
