"""Solution assembler: scan write path and per-request read path.

Write path (``scan_and_store``): fan out schema fetches and discovery per
resource kind, upsert the resulting edges into the graph store.

Read path (``assemble``): expand one primary resource into a
``CompleteSolution`` -- REQUIRED closure, direct OPTIONAL/ENHANCES
companions, deploy order and a readable rationale.

Incomplete dependency data degrades the answer instead of failing it.  The
only error that escapes is ``GraphStoreUnavailableError``.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Iterable, Sequence
from uuid import uuid4

from kubedeps.discovery.engine import DependencyDiscoveryEngine
from kubedeps.exceptions import GraphStoreUnavailableError, SchemaUnavailableError
from kubedeps.graph.store import DEFAULT_CYCLE_CHECK_DEPTH, DEFAULT_MAX_CLOSURE_DEPTH, GraphStore
from kubedeps.models.resources import ResourceDependency, ResourceReference
from kubedeps.models.solution import CompleteSolution
from kubedeps.observability.logging import get_logger, scan_context
from kubedeps.solution.interfaces import CapabilitySearch, SchemaProvider

_log = get_logger("solution.assembler")

_DEFAULT_SCAN_CONCURRENCY = 16
CYCLE_WARNING = "dependency cycle detected, deployment order may need manual review"
DEPTH_WARNING = "dependency chain deeper than {depth} levels, required resources may be incomplete"


class SolutionAssembler:
    """Turns one matched resource kind into a complete, ordered solution."""

    def __init__(
        self,
        store: GraphStore,
        discovery: DependencyDiscoveryEngine | None = None,
        max_closure_depth: int = DEFAULT_MAX_CLOSURE_DEPTH,
        cycle_check_depth: int = DEFAULT_CYCLE_CHECK_DEPTH,
        scan_concurrency: int = _DEFAULT_SCAN_CONCURRENCY,
    ) -> None:
        self._store = store
        self._discovery = discovery or DependencyDiscoveryEngine()
        self._max_closure_depth = max_closure_depth
        self._cycle_check_depth = cycle_check_depth
        self._scan_concurrency = max(1, scan_concurrency)

    @property
    def store(self) -> GraphStore:
        return self._store

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def scan_and_store(
        self,
        resources: Iterable[ResourceReference],
        schema_provider: SchemaProvider,
    ) -> int:
        """Discover dependencies for every resource and upsert them.

        Schema fetches run concurrently, bounded by ``scan_concurrency``.
        A resource whose schema cannot be fetched or analysed contributes
        zero edges.  A store failure cancels the remaining resources.

        Returns:
            Number of edge upserts performed (created or merged).

        Raises:
            GraphStoreUnavailableError: the graph store cannot be written.
        """
        targets = list(resources)
        semaphore = asyncio.Semaphore(self._scan_concurrency)
        t_start = time.monotonic()

        async def _scan_one(resource: ResourceReference) -> int:
            async with semaphore:
                schema_text = await self._fetch_schema(resource, schema_provider)
            edges: list[ResourceDependency] = []
            if schema_text is not None:
                try:
                    edges = self._discovery.discover(resource, schema_text)
                except Exception as exc:  # noqa: BLE001
                    _log.warning("discovery_failed", resource=resource.display_name, error=str(exc))
            # SQLite upserts are blocking disk I/O.
            return await asyncio.to_thread(self._write, resource, edges)

        with scan_context(scan_id=uuid4().hex[:12]):
            _log.info("scan_started", resources=len(targets), concurrency=self._scan_concurrency)
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [group.create_task(_scan_one(r)) for r in targets]
            except ExceptionGroup as errors:
                store_errors, _ = errors.split(GraphStoreUnavailableError)
                if store_errors is not None:
                    _log.error("scan_aborted", error=str(store_errors.exceptions[0]))
                    raise store_errors.exceptions[0] from None
                raise
            written = sum(task.result() for task in tasks)
            _log.info(
                "scan_completed",
                resources=len(targets),
                edges_written=written,
                nodes=self._store.node_count,
                edges=self._store.edge_count,
                duration_ms=int((time.monotonic() - t_start) * 1000),
            )
        return written

    async def _fetch_schema(self, resource: ResourceReference, schema_provider: SchemaProvider) -> str | None:
        """Fetch schema text; any provider failure becomes None (SchemaUnavailable)."""
        try:
            if _is_async_callable(schema_provider):
                result = schema_provider(resource)
            else:
                # Sync providers (kubectl subprocesses) must not stall the event loop.
                result = await asyncio.to_thread(schema_provider, resource)
            if inspect.isawaitable(result):
                result = await result
            return _schema_text(resource, result)
        except Exception as exc:  # noqa: BLE001
            _log.warning("schema_unavailable", resource=resource.display_name, error=str(exc))
            return None

    def _write(self, resource: ResourceReference, edges: Sequence[ResourceDependency]) -> int:
        self._store.upsert_node(resource)
        for edge in edges:
            self._store.upsert_edge(edge)
        return len(edges)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def assemble(self, primary: ResourceReference) -> CompleteSolution:
        """Build the complete solution for ``primary``.

        Raises:
            GraphStoreUnavailableError: the graph store cannot be read.
        """
        traversal = self._store.traverse_required(primary, self._max_closure_depth)
        required = _dedupe(traversal.resources, exclude={primary.key})
        required_keys = {ref.key for ref in required}

        # OPTIONAL/ENHANCES are taken from the primary only, not transitively.
        optional_edges = [edge for edge in self._store.direct_dependencies(primary) if not edge.is_required]
        optional = _dedupe(
            (edge.dependency for edge in optional_edges),
            exclude=required_keys | {primary.key},
        )

        deploy = self._store.topological_order(primary, traversal.edges)
        ordered_keys = {ref.key for ref in deploy.resources}
        order = deploy.resources + [ref for ref in optional if ref.key not in ordered_keys]

        warnings: list[str] = []
        if deploy.cycle_detected:
            warnings.append(CYCLE_WARNING)
        if traversal.truncated:
            warnings.append(DEPTH_WARNING.format(depth=self._max_closure_depth))

        dependencies = [*traversal.edges, *optional_edges]
        solution = CompleteSolution(
            primary=self._store.get_node(primary) or primary,
            required=required,
            optional=optional,
            dependencies=dependencies,
            order=order,
            rationale=build_rationale(primary, dependencies, warnings),
            warnings=warnings,
            cycle_detected=deploy.cycle_detected,
            truncated=traversal.truncated,
        )

        if solution.is_degraded:
            _log.info("solution_degraded", primary=primary.display_name, reason="no dependency data")
        else:
            _log.info(
                "solution_assembled",
                primary=primary.display_name,
                required=len(required),
                optional=len(optional),
                cycle_detected=deploy.cycle_detected,
                truncated=traversal.truncated,
            )
        return solution

    def has_cycle(self, primary: ResourceReference) -> bool:
        """Diagnostic REQUIRED-cycle check from ``primary`` using the configured depth."""
        return self._store.has_cycle(primary, self._cycle_check_depth)

    async def assemble_for_intent(
        self,
        intent: str,
        search: CapabilitySearch,
        limit: int = 5,
    ) -> list[CompleteSolution]:
        """Assemble one solution per capability-search candidate, in the search's order.

        Ranking across candidates is left to the caller.
        """
        result = search(intent, limit)
        candidates: Sequence[ResourceReference] = await result if inspect.isawaitable(result) else result
        _log.info("intent_candidates", intent=intent[:120], candidates=len(candidates))
        return [self.assemble(candidate) for candidate in candidates]


def build_rationale(
    primary: ResourceReference,
    dependencies: Sequence[ResourceDependency],
    warnings: Sequence[str] = (),
) -> str:
    """One line per edge, headed by the primary kind.

    ``Server -> REQUIRED -> ResourceGroup: Resource must be created inside ...``
    """
    if not dependencies:
        lines = [f"{primary.kind}: no known dependencies; it can be deployed on its own."]
    else:
        lines = [f"{primary.kind}: dependencies discovered from the cluster's API schemas"]
        seen: set[str] = set()
        for edge in dependencies:
            line = edge.describe()
            if line not in seen:
                seen.add(line)
                lines.append(line)
    lines.extend(f"Warning: {warning}" for warning in warnings)
    return "\n".join(lines)


def _dedupe(
    refs: Iterable[ResourceReference],
    exclude: set[tuple[str, str]] | None = None,
) -> list[ResourceReference]:
    """First occurrence per ``(kind, group)``, order preserved."""
    seen = set(exclude or ())
    out: list[ResourceReference] = []
    for ref in refs:
        if ref.key in seen:
            continue
        seen.add(ref.key)
        out.append(ref)
    return out


def _schema_text(resource: ResourceReference, result: object) -> str:
    """Normalise a provider result; ``subprocess.check_output`` hands back bytes."""
    if isinstance(result, bytes):
        return result.decode("utf-8", errors="replace")
    if not isinstance(result, str):
        raise SchemaUnavailableError(resource.display_name, f"provider returned {type(result).__name__}")
    return result


def _is_async_callable(fn: object) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(getattr(fn, "__call__", None))  # noqa: B004
