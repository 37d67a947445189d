from __future__ import annotations

import asyncio

import pytest

from crossseed.config import CrossSeedConfig, IndexerConfig
from crossseed.errors import ResolutionFailure
from crossseed.indexer.endpoint import IndexerEndpoint, build_endpoints
from crossseed.indexer.torznab_client import TorznabServiceAdapter
from crossseed.models import CandidateRelease


class _FakeIndexerClient:
    def __init__(self, payloads: dict[str, bytes] | None = None) -> None:
        self.payloads = payloads or {}
        self.caps_calls = 0
        self.closed = False

    async def get_capabilities(self) -> frozenset[str]:
        self.caps_calls += 1
        await asyncio.sleep(0)
        return frozenset({"search", "tv-search"})

    async def search(self, query: str):
        return [CandidateRelease(title=query, link="https://idx.example/dl/1", indexer="idx")]

    async def download(self, link: str) -> bytes:
        return self.payloads[link]

    async def close(self) -> None:
        self.closed = True


def _endpoint(log, client: _FakeIndexerClient, created: list | None = None) -> IndexerEndpoint:
    def _factory(config: IndexerConfig):
        if created is not None:
            created.append(config.name)
        return client

    return IndexerEndpoint(IndexerConfig(name="idx", url="https://idx.example/api"), log, _factory)


@pytest.mark.asyncio
async def test_client_is_created_once_under_concurrency(log) -> None:
    client = _FakeIndexerClient()
    created: list[str] = []
    endpoint = _endpoint(log, client, created)

    await asyncio.gather(*(endpoint.search("Some.Release") for _ in range(5)))

    assert created == ["idx"]
    assert client.caps_calls == 1
    assert endpoint.capabilities == frozenset({"search", "tv-search"})


@pytest.mark.asyncio
async def test_resolve_decodes_downloaded_torrent(log, make_torrent) -> None:
    data = make_torrent(trackers=["http://b.example/announce"])
    endpoint = _endpoint(log, _FakeIndexerClient({"https://idx.example/dl/1": data}))
    release = CandidateRelease(title="Some.Release", link="https://idx.example/dl/1", indexer="idx")

    candidate = await endpoint.resolve(release)

    assert candidate.release is release
    assert candidate.raw == data
    assert candidate.announce_groups == (("http://b.example/announce",),)


@pytest.mark.asyncio
async def test_resolve_of_non_torrent_names_the_indexer(log) -> None:
    endpoint = _endpoint(log, _FakeIndexerClient({"https://idx.example/dl/1": b"<html>login</html>"}))
    release = CandidateRelease(title="Some.Release", link="https://idx.example/dl/1", indexer="idx")

    with pytest.raises(ResolutionFailure, match="idx result 'Some.Release'"):
        await endpoint.resolve(release)


@pytest.mark.asyncio
async def test_close_releases_client(log) -> None:
    client = _FakeIndexerClient()
    endpoint = _endpoint(log, client)
    await endpoint.ensure_client()

    await endpoint.close()

    assert client.closed


def test_build_endpoints_skips_disabled_indexers(log, tmp_path) -> None:
    config = CrossSeedConfig(
        torrents_path=tmp_path,
        indexers={
            "alpha": {"url": "https://alpha.example/api", "api_key": "a"},
            "beta": {"url": "https://beta.example/api", "enabled": False},
            "gamma": {"url": "https://gamma.example/api"},
        },
    )

    endpoints = build_endpoints(config, log)

    assert [endpoint.name for endpoint in endpoints] == ["alpha", "gamma"]
    assert isinstance(endpoints[0]._client_factory(endpoints[0].config), TorznabServiceAdapter)
