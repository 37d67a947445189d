from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Sequence

import pytest

from crossseed import codec
from crossseed.config import CrossSeedConfig, TorrentMode
from crossseed.core import trackers
from crossseed.errors import ClientFailure
from crossseed.models import CandidateRelease, ClientTorrentRecord, LocalTorrent, ResolvedCandidate, TorrentState

MUTATIONS = ("add_trackers", "remove", "add")


class FakeClient:
    """In-memory download client; every call is appended to ``calls``."""

    name = "fake"

    def __init__(self) -> None:
        self.records: dict[str, ClientTorrentRecord] = {}
        self.trackers: dict[str, list[str]] = {}
        self.calls: list[tuple] = []
        self.added: list[bytes] = []
        self.fail_add: Optional[Exception] = None
        self.fail_find: Optional[Exception] = None

    def hold(
        self,
        local: LocalTorrent,
        state: TorrentState = TorrentState.UPLOADING,
        tracker_urls: Optional[Sequence[str]] = None,
        category: str = "movies",
        tags: Sequence[str] = ("hd",),
        save_path: str = "/data/movies",
    ) -> ClientTorrentRecord:
        record = ClientTorrentRecord(
            fingerprint=local.fingerprint,
            name=local.name,
            state=state,
            category=category,
            tags=tuple(tags),
            save_path=save_path,
        )
        self.records[local.fingerprint] = record
        urls = tracker_urls if tracker_urls is not None else trackers.normalize_list(local.announce_groups)
        self.trackers[local.fingerprint] = list(urls)
        return record

    def mutations(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in MUTATIONS]

    async def login(self) -> None:
        self.calls.append(("login",))

    async def find_by_fingerprint(self, fingerprint: str) -> Optional[ClientTorrentRecord]:
        self.calls.append(("find", fingerprint))
        if self.fail_find is not None:
            raise self.fail_find
        await asyncio.sleep(0)
        return self.records.get(fingerprint)

    async def get_trackers(self, fingerprint: str) -> list[str]:
        self.calls.append(("get_trackers", fingerprint))
        await asyncio.sleep(0)
        return list(self.trackers.get(fingerprint, []))

    async def add_trackers(self, fingerprint: str, urls: Iterable[str]) -> None:
        urls = tuple(urls)
        self.calls.append(("add_trackers", fingerprint, urls))
        await asyncio.sleep(0)
        self.trackers.setdefault(fingerprint, []).extend(urls)

    async def remove_torrent(self, fingerprint: str, delete_data: bool = False) -> None:
        self.calls.append(("remove", fingerprint, delete_data))
        await asyncio.sleep(0)
        self.records.pop(fingerprint, None)
        self.trackers.pop(fingerprint, None)

    async def add_torrent(
        self,
        data: bytes,
        category: str,
        tags: Iterable[str],
        save_path: Optional[str] = None,
    ) -> None:
        tags = tuple(tags)
        self.calls.append(("add", category, tags, save_path))
        await asyncio.sleep(0)
        if self.fail_add is not None:
            raise self.fail_add
        descriptor = codec.decode(data)
        self.added.append(data)
        self.records[descriptor.fingerprint] = ClientTorrentRecord(
            fingerprint=descriptor.fingerprint,
            name=descriptor.name,
            state=TorrentState.UPLOADING,
            category=category,
            tags=tags,
            save_path=save_path,
        )
        self.trackers[descriptor.fingerprint] = trackers.normalize_list(descriptor.announce_groups)

    async def close(self) -> None:
        self.calls.append(("close",))


class FakeEndpoint:
    """Indexer endpoint that answers every search with the given torrents, best first."""

    def __init__(self, name: str, results: Sequence[bytes] = (), error: Optional[Exception] = None) -> None:
        self.name = name
        self.url = f"https://{name}.example/api"
        self.results = list(results)
        self.error = error
        self.searches: list[str] = []
        self.resolved: list[str] = []

    async def search(self, query: str) -> list[CandidateRelease]:
        self.searches.append(query)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return [
            CandidateRelease(title=query, link=f"https://{self.name}.example/dl/{idx}", indexer=self.name)
            for idx in range(len(self.results))
        ]

    async def resolve(self, release: CandidateRelease) -> ResolvedCandidate:
        self.resolved.append(release.link)
        idx = int(release.link.rsplit("/", 1)[1])
        return ResolvedCandidate(release=release, descriptor=codec.decode(self.results[idx]))

    async def close(self) -> None:
        return None


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def make_config(tmp_path):
    def _make(**kwargs) -> CrossSeedConfig:
        data = {
            "torrents_path": tmp_path / "torrents",
            "output_path": tmp_path / "output",
            "torrent_mode": TorrentMode.INJECT_TRACKERS,
        }
        data.update(kwargs)
        return CrossSeedConfig(**data)

    return _make


@pytest.fixture
def make_candidate(make_torrent):
    def _make(indexer: str = "idx", **kwargs) -> ResolvedCandidate:
        release = CandidateRelease(title=kwargs.get("name", "candidate"), link=f"https://{indexer}.example/dl/0", indexer=indexer)
        return ResolvedCandidate(release=release, descriptor=codec.decode(make_torrent(**kwargs)))

    return _make
