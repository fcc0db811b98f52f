"""Engine bootstrap for kubedeps.

Wires components in dependency order:
    config -> logging -> graph store -> discovery engine -> assembler

The graph store is mandatory: if it cannot be opened the engine refuses to
start with ``GraphStoreUnavailableError``.  ``close()`` is safe to call on
an engine that is already closed.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from kubedeps.config import load_config
from kubedeps.discovery.engine import DependencyDiscoveryEngine
from kubedeps.exceptions import GraphStoreUnavailableError
from kubedeps.graph.sqlite_store import SQLiteGraphStore
from kubedeps.graph.store import GraphStore, InMemoryGraphStore
from kubedeps.models.config import GraphConfig, KubeDepsConfig
from kubedeps.models.resources import ResourceReference
from kubedeps.models.solution import CompleteSolution
from kubedeps.observability.logging import get_logger, setup_logging
from kubedeps.solution.assembler import SolutionAssembler

if TYPE_CHECKING:
    from kubedeps.solution.interfaces import CapabilitySearch, SchemaProvider


def build_store(config: GraphConfig) -> GraphStore:
    """Create the configured graph store backend."""
    if config.backend == "memory":
        return InMemoryGraphStore()
    if config.backend == "sqlite":
        return SQLiteGraphStore(config.sqlite_path)
    raise GraphStoreUnavailableError(config.backend, "unknown backend")


class DependencyEngine:
    """Application root.  Owns the graph store and the assembler built on it.

    ``store`` and ``discovery`` may be injected (tests substitute an
    in-memory store); otherwise they are built from ``config``.
    """

    def __init__(
        self,
        config: KubeDepsConfig | None = None,
        store: GraphStore | None = None,
        discovery: DependencyDiscoveryEngine | None = None,
        configure_logging: bool = True,
    ) -> None:
        self.config = config or load_config()
        if configure_logging:
            setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")

        self.store = store if store is not None else build_store(self.config.graph)
        self.discovery = discovery or DependencyDiscoveryEngine()
        self.assembler = SolutionAssembler(
            store=self.store,
            discovery=self.discovery,
            max_closure_depth=self.config.graph.max_closure_depth,
            cycle_check_depth=self.config.graph.cycle_check_depth,
            scan_concurrency=self.config.scan.concurrency,
        )
        self._closed = False
        self._log.info(
            "kubedeps engine started",
            version=_kubedeps_version(),
            backend=self.store.backend,
            max_closure_depth=self.config.graph.max_closure_depth,
        )

    async def scan_and_store(
        self,
        resources: Iterable[ResourceReference],
        schema_provider: SchemaProvider,
    ) -> int:
        return await self.assembler.scan_and_store(resources, schema_provider)

    def assemble(self, primary: ResourceReference) -> CompleteSolution:
        return self.assembler.assemble(primary)

    async def assemble_for_intent(
        self,
        intent: str,
        search: CapabilitySearch,
        limit: int = 5,
    ) -> list[CompleteSolution]:
        return await self.assembler.assemble_for_intent(intent, search, limit)

    def close(self) -> None:
        """Close the graph store; errors are logged, never raised."""
        if self._closed:
            return
        self._closed = True
        try:
            self.store.close()
        except Exception as exc:  # noqa: BLE001
            self._log.error("graph store close raised an error", error=str(exc))
        self._log.info("kubedeps engine stopped")

    def __enter__(self) -> DependencyEngine:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def build_engine(config: KubeDepsConfig | None = None) -> DependencyEngine:
    """Create an engine from ``config`` or from KUBEDEPS_* environment variables."""
    return DependencyEngine(config=config)


def _kubedeps_version() -> str:
    from kubedeps import __version__

    return __version__
