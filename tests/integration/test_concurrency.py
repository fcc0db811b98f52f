"""Concurrency tests: bounded scan fan-out and atomic upserts under contention."""

from __future__ import annotations

import asyncio
import threading

import pytest

from kubedeps.graph.sqlite_store import SQLiteGraphStore
from kubedeps.graph.store import GraphStore, InMemoryGraphStore
from kubedeps.models.resources import ResourceReference
from kubedeps.solution.assembler import SolutionAssembler

_SCHEMA = "FIELDS:\n  spec\t<Object>\n    forProvider\t<Object>\n      resourceGroupName\t<string>\n"


def _servers(n: int) -> list[ResourceReference]:
    return [
        ResourceReference(f"Server{i}", "dbforpostgresql.azure.upbound.io", "dbforpostgresql.azure.upbound.io/v1beta1")
        for i in range(n)
    ]


class _SlowProvider:
    """Async provider that tracks how many fetches are in flight."""

    def __init__(self) -> None:
        self.in_flight = 0
        self.peak = 0

    async def __call__(self, resource: ResourceReference) -> str:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return _SCHEMA
        finally:
            self.in_flight -= 1


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path) -> GraphStore:
    if request.param == "memory":
        return InMemoryGraphStore()
    return SQLiteGraphStore(str(tmp_path / "graph.db"))


class TestScanFanOut:
    async def test_concurrency_bound_respected(self, store: GraphStore) -> None:
        provider = _SlowProvider()
        assembler = SolutionAssembler(store, scan_concurrency=3)

        await assembler.scan_and_store(_servers(20), provider)

        assert 1 <= provider.peak <= 3
        store.close()

    async def test_overlapping_scans_do_not_duplicate(self, store: GraphStore) -> None:
        assembler = SolutionAssembler(store, scan_concurrency=8)
        servers = _servers(10)

        await asyncio.gather(
            assembler.scan_and_store(servers, _SlowProvider()),
            assembler.scan_and_store(servers, _SlowProvider()),
        )

        # one REQUIRED ResourceGroup edge and one FirewallRule heuristic edge per server
        assert store.edge_count == 20
        # servers + shared ResourceGroup + per-group FirewallRule
        assert store.node_count == 12
        store.close()

    async def test_sync_providers_run_off_the_event_loop(self, store: GraphStore) -> None:
        loop_thread = threading.get_ident()
        threads: set[int] = set()

        def provider(resource: ResourceReference) -> str:
            threads.add(threading.get_ident())
            return _SCHEMA

        await SolutionAssembler(store).scan_and_store(_servers(4), provider)

        assert loop_thread not in threads
        assert store.edge_count == 8
        store.close()


class _ThreadRecordingStore(InMemoryGraphStore):
    def __init__(self) -> None:
        super().__init__()
        self.write_threads: set[int] = set()

    def upsert_node(self, ref: ResourceReference) -> None:
        self.write_threads.add(threading.get_ident())
        super().upsert_node(ref)


class TestScanWrites:
    async def test_store_writes_run_off_the_event_loop(self) -> None:
        store = _ThreadRecordingStore()
        loop_thread = threading.get_ident()

        await SolutionAssembler(store).scan_and_store(_servers(3), _SlowProvider())

        assert store.write_threads
        assert loop_thread not in store.write_threads
        assert store.edge_count == 6


class TestThreadedUpserts:
    def test_sqlite_threads_share_one_store(self, tmp_path) -> None:
        store = SQLiteGraphStore(str(tmp_path / "graph.db"))
        assembler = SolutionAssembler(store)
        errors: list[BaseException] = []

        def _worker() -> None:
            try:
                asyncio.run(assembler.scan_and_store(_servers(5), _SlowProvider()))
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=_worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.edge_count == 10
        store.close()
