from __future__ import annotations

import asyncio

import pytest

from crossseed.core.conftest import FakeClient, FakeEndpoint
from crossseed.core.coordinator import NOT_IN_CLIENT, OutcomeStatus, ReconciliationCoordinator
from crossseed.core.matcher import ALREADY_CROSS_SEEDING
from crossseed.errors import ClientFailure, SearchFailure

A = "http://a.example/announce"
B = "http://b.example/announce"
C = "http://c.example/announce"


@pytest.mark.asyncio
async def test_every_torrent_is_checked_against_every_indexer(client, log, make_config, make_local) -> None:
    first = make_local(name="First.Release", trackers=[A])
    second = make_local(name="Second.Release", trackers=[A])
    client.hold(first)
    client.hold(second)
    endpoints = [FakeEndpoint("one"), FakeEndpoint("two")]

    report = await ReconciliationCoordinator(make_config(), client, log).run([first, second], endpoints)

    assert len(report.outcomes) == 4
    assert {(o.torrent, o.indexer) for o in report.outcomes} == {
        ("First.Release", "one"),
        ("First.Release", "two"),
        ("Second.Release", "one"),
        ("Second.Release", "two"),
    }
    assert all(o.status == OutcomeStatus.NO_MATCH for o in report.outcomes)
    assert len(report.skipped) == 4


@pytest.mark.asyncio
async def test_torrent_missing_from_client_is_not_searched(client, log, make_config, make_local) -> None:
    local = make_local(trackers=[A])
    endpoint = FakeEndpoint("one")

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], [endpoint])

    assert report.outcomes[0].status == OutcomeStatus.SKIPPED
    assert report.outcomes[0].reason == NOT_IN_CLIENT
    assert endpoint.searches == []


@pytest.mark.asyncio
async def test_failures_stay_scoped_to_their_unit(client, log, make_config, make_local, make_torrent) -> None:
    local = make_local(trackers=[A])
    client.hold(local)
    broken = FakeEndpoint("broken", error=SearchFailure("broken unreachable"))
    crashing = FakeEndpoint("crashing", error=RuntimeError("boom"))
    working = FakeEndpoint("working", [make_torrent(trackers=[B], source="B")])

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], [broken, crashing, working])

    by_indexer = {o.indexer: o for o in report.outcomes}
    assert by_indexer["broken"].status == OutcomeStatus.FAILED
    assert by_indexer["broken"].failure_kind == "search"
    assert by_indexer["crashing"].failure_kind == "unexpected"
    assert by_indexer["working"].status == OutcomeStatus.ACTED
    assert len(report.failures) == 2
    assert len(report.actions) == 1
    assert client.mutations() == [("add_trackers", local.fingerprint, (B,))]


@pytest.mark.asyncio
async def test_candidate_already_held_issues_no_mutation(client, log, make_config, make_local) -> None:
    local = make_local(trackers=[A])
    held = make_local(trackers=[B], source="B")
    client.hold(local)
    client.hold(held)

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], [FakeEndpoint("one", [held.raw])])

    assert report.outcomes[0].reason == ALREADY_CROSS_SEEDING
    assert report.outcomes[0].status == OutcomeStatus.NO_MATCH
    assert client.mutations() == []


@pytest.mark.asyncio
async def test_public_matches_on_one_torrent_are_applied_one_at_a_time(
    client, log, make_config, make_local, make_torrent
) -> None:
    local = make_local(trackers=[A])
    client.hold(local)
    endpoints = [
        FakeEndpoint("b", [make_torrent(trackers=[B], source="B")]),
        FakeEndpoint("c", [make_torrent(trackers=[C], source="C")]),
    ]

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], endpoints)

    assert len(report.actions) == 2
    assert sorted(call[2] for call in client.mutations()) == [(B,), (C,)]
    assert set(client.trackers[local.fingerprint]) == {A, B, C}


@pytest.mark.asyncio
async def test_private_replacement_is_not_repeated_by_a_sibling_unit(
    client, log, make_config, make_local, make_torrent
) -> None:
    local = make_local(trackers=[A])
    client.hold(local)
    endpoints = [
        FakeEndpoint("b", [make_torrent(trackers=[B], private=True, source="B")]),
        FakeEndpoint("c", [make_torrent(trackers=[C], private=True, source="C")]),
    ]

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], endpoints)

    statuses = sorted(o.status.value for o in report.outcomes)
    assert statuses == ["acted", "skipped"]
    skipped = next(o for o in report.outcomes if o.status == OutcomeStatus.SKIPPED)
    assert skipped.reason == NOT_IN_CLIENT
    assert [call[0] for call in client.mutations()] == ["remove", "add"]
    acted = report.actions[0]
    assert acted.new_fingerprint in client.records


@pytest.mark.asyncio
async def test_partial_mutation_is_reported_as_its_own_failure(
    client, log, make_config, make_local, make_torrent
) -> None:
    local = make_local(trackers=[A])
    client.hold(local)
    client.fail_add = ClientFailure("refused")
    endpoint = FakeEndpoint("c", [make_torrent(trackers=[C], private=True, source="C")])

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], [endpoint])

    assert report.outcomes[0].status == OutcomeStatus.FAILED
    assert report.outcomes[0].failure_kind == "partial-mutation"
    assert report.outcomes[0].matched
    assert log.messages("critical")


@pytest.mark.asyncio
async def test_concurrency_cap_bounds_searches(client, log, make_config, make_local) -> None:
    locals_ = [make_local(name=f"Release.{idx}", trackers=[A]) for idx in range(4)]
    for local in locals_:
        client.hold(local)
    active = 0
    peak = 0

    class _SlowEndpoint(FakeEndpoint):
        async def search(self, query: str):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return []

    coordinator = ReconciliationCoordinator(make_config(max_concurrency=2), client, log)
    report = await coordinator.run(locals_, [_SlowEndpoint("one"), _SlowEndpoint("two")])

    assert len(report.outcomes) == 8
    assert peak <= 2


class _StrictClient(FakeClient):
    """Refuses tracker reads for unknown hashes and adds slowly, like a busy qBittorrent."""

    async def get_trackers(self, fingerprint: str) -> list[str]:
        if fingerprint not in self.records:
            self.calls.append(("get_trackers", fingerprint))
            raise ClientFailure("qBittorrent tracker list failed: NotFound404Error")
        return await super().get_trackers(fingerprint)

    async def add_torrent(self, data: bytes, category: str, tags, save_path=None) -> None:
        await asyncio.sleep(0.02)
        await super().add_torrent(data, category, tags, save_path=save_path)


class _LateEndpoint(FakeEndpoint):
    async def search(self, query: str):
        await asyncio.sleep(0.01)
        return await super().search(query)


@pytest.mark.asyncio
async def test_tracker_check_waits_for_a_sibling_replacement(log, make_config, make_local, make_torrent) -> None:
    client = _StrictClient()
    local = make_local(trackers=[A])
    client.hold(local)
    endpoints = [
        FakeEndpoint("b", [make_torrent(trackers=[B], private=True, source="B")]),
        _LateEndpoint("c", [make_torrent(trackers=[C], private=True, source="C")]),
    ]

    report = await ReconciliationCoordinator(make_config(), client, log).run([local], endpoints)

    by_indexer = {o.indexer: o for o in report.outcomes}
    assert report.failures == []
    assert by_indexer["b"].status == OutcomeStatus.ACTED
    assert by_indexer["c"].status == OutcomeStatus.SKIPPED
    assert by_indexer["c"].reason == NOT_IN_CLIENT
    assert [call[0] for call in client.mutations()] == ["remove", "add"]
    assert ("get_trackers", local.fingerprint) in client.calls
    assert client.calls.count(("get_trackers", local.fingerprint)) == 1
