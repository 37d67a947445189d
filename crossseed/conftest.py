from __future__ import annotations

import itertools
from typing import Iterable, Optional

import pytest
import torf

from crossseed import codec
from crossseed.models import LocalTorrent


class RecordingLog:
    """Stands in for CrossSeedLogger; keeps (level, message) pairs."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def _record(self, level: str, msg: str) -> None:
        self.lines.append((level, msg))

    def log(self, msg: str, prefix: str = "") -> None:
        self._record("log", f"{prefix}{msg}")

    def info(self, msg: str) -> None:
        self._record("info", msg)

    def warning(self, msg: str) -> None:
        self._record("warning", msg)

    def error(self, msg: str) -> None:
        self._record("error", msg)

    def critical(self, msg: str) -> None:
        self._record("critical", msg)

    def debug(self, msg: str) -> None:
        self._record("debug", msg)

    def status(self, msg: str) -> None:
        self._record("status", msg)

    def clear_status(self) -> None:
        return None

    def api_request(self, *_args, **_kwargs) -> None:
        return None

    def api_response(self, *_args, **_kwargs) -> None:
        return None

    def messages(self, level: str) -> list[str]:
        return [msg for lvl, msg in self.lines if lvl == level]


@pytest.fixture
def log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def make_torrent(tmp_path):
    """Build real metainfo bytes for a one-file torrent."""
    counter = itertools.count()

    def _make(
        name: str = "Some.Release.2020.1080p",
        trackers: Iterable[str] = ("http://tracker-a.example/announce",),
        private: bool = False,
        source: Optional[str] = None,
        content: bytes = b"the same payload on every indexer",
    ) -> bytes:
        folder = tmp_path / f"content{next(counter)}"
        folder.mkdir()
        file_path = folder / name
        file_path.write_bytes(content)
        torrent = torf.Torrent(path=file_path, trackers=list(trackers), private=private, source=source)
        torrent.generate()
        return torrent.dump()

    return _make


@pytest.fixture
def make_local(make_torrent):
    def _make(**kwargs) -> LocalTorrent:
        return LocalTorrent(descriptor=codec.decode(make_torrent(**kwargs)))

    return _make
