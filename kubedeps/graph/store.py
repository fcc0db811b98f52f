"""Dependency graph store: a typed directed multigraph of resource kinds.

``GraphStore`` owns the traversal algorithms (bounded closure, cycle check,
deploy ordering) and leaves storage to backends through a handful of
primitives.  Backends must make ``upsert_node``/``upsert_edge`` safe under
concurrent calls; callers never lock.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import ClassVar

from kubedeps.graph.algorithms import merge_edges, topological_order
from kubedeps.graph.models import DeploymentOrder, TraversalResult
from kubedeps.models.resources import ResourceDependency, ResourceReference
from kubedeps.observability.logging import get_logger

_log = get_logger("graph.store")

DEFAULT_MAX_CLOSURE_DEPTH = 5
DEFAULT_CYCLE_CHECK_DEPTH = 10

_NodeKey = tuple[str, str]
_EdgeKey = tuple[_NodeKey, _NodeKey, str, str]


class GraphStore(ABC):
    """Abstract dependency graph store keyed by ``ResourceReference`` identity."""

    backend: ClassVar[str] = "abstract"

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def upsert_node(self, ref: ResourceReference) -> None:
        """Create the node for ``ref.key`` if absent; refresh its api_version otherwise."""

    @abstractmethod
    def upsert_edge(self, dep: ResourceDependency) -> bool:
        """Create or merge an edge keyed on ``dep.merge_key``.

        Both endpoints are upserted as nodes.  Returns True when a new edge
        was created, False when an existing one was updated.
        """

    @abstractmethod
    def direct_dependencies(self, ref: ResourceReference) -> list[ResourceDependency]:
        """All outgoing edges from ``ref``, any type, in insertion order."""

    @abstractmethod
    def get_node(self, ref: ResourceReference) -> ResourceReference | None:
        """Stored node for ``ref`` (with its recorded api_version), or None."""

    @abstractmethod
    def nodes(self) -> list[ResourceReference]:
        """All nodes in insertion order."""

    @abstractmethod
    def edges(self) -> list[ResourceDependency]:
        """All edges in insertion order."""

    @property
    def node_count(self) -> int:
        return len(self.nodes())

    @property
    def edge_count(self) -> int:
        return len(self.edges())

    def close(self) -> None:  # noqa: B027
        """Release backend resources.  No-op unless overridden."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def required_dependencies(self, ref: ResourceReference) -> list[ResourceDependency]:
        return [edge for edge in self.direct_dependencies(ref) if edge.is_required]

    def traverse_required(
        self,
        ref: ResourceReference,
        max_depth: int = DEFAULT_MAX_CLOSURE_DEPTH,
    ) -> TraversalResult:
        """Breadth-first REQUIRED-edge closure from ``ref``, at most ``max_depth`` hops.

        ``ref`` itself is never part of ``resources``, even when a cycle leads
        back to it.  Edges into already-visited nodes are still reported so
        the caller can order (and flag) cycles.
        """
        result = TraversalResult()
        visited: set[_NodeKey] = {ref.key}
        frontier = [ref]
        depth = 0

        while frontier:
            if depth >= max_depth:
                result.truncated = any(
                    edge.dependency.key not in visited
                    for node in frontier
                    for edge in self.required_dependencies(node)
                )
                break
            depth += 1
            next_frontier: list[ResourceReference] = []
            for node in frontier:
                for edge in self.required_dependencies(node):
                    result.edges.append(edge)
                    target = edge.dependency
                    if target.key in visited:
                        continue
                    visited.add(target.key)
                    result.resources.append(self.get_node(target) or target)
                    next_frontier.append(target)
                    result.depth_reached = depth
            frontier = next_frontier

        if result.truncated:
            _log.info(
                "depth_limit_exceeded",
                resource=ref.display_name,
                max_depth=max_depth,
                resources=len(result.resources),
            )
        return result

    def transitive_required(
        self,
        ref: ResourceReference,
        max_depth: int = DEFAULT_MAX_CLOSURE_DEPTH,
    ) -> list[ResourceReference]:
        """Deduplicated REQUIRED closure of ``ref``, depth-bounded."""
        return self.traverse_required(ref, max_depth).resources

    def has_cycle(self, ref: ResourceReference, max_depth: int = DEFAULT_CYCLE_CHECK_DEPTH) -> bool:
        """True if a REQUIRED path leads from ``ref`` back to itself within ``max_depth`` hops.

        Diagnostic only; nothing refuses to run because of a cycle.
        """
        visited: set[_NodeKey] = {ref.key}
        frontier = [ref]
        for _ in range(max_depth):
            next_frontier: list[ResourceReference] = []
            for node in frontier:
                for edge in self.required_dependencies(node):
                    if edge.dependency.key == ref.key:
                        return True
                    if edge.dependency.key not in visited:
                        visited.add(edge.dependency.key)
                        next_frontier.append(edge.dependency)
            if not next_frontier:
                return False
            frontier = next_frontier
        _log.debug("cycle_check_depth_exhausted", resource=ref.display_name, max_depth=max_depth)
        return False

    def topological_order(
        self,
        primary: ResourceReference,
        edges: Iterable[ResourceDependency],
    ) -> DeploymentOrder:
        """Deploy order over ``primary`` and the given REQUIRED edges."""
        return topological_order(primary, edges)


class InMemoryGraphStore(GraphStore):
    """Arena-style in-process store: node and edge tables plus adjacency lists.

    A re-entrant lock serialises writers; readers take it only long enough
    to copy a snapshot, so a query may observe a partially completed scan.
    """

    backend: ClassVar[str] = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[_NodeKey, ResourceReference] = {}
        self._edges: dict[_EdgeKey, ResourceDependency] = {}
        # node key -> ordered set of outgoing edge keys
        self._outgoing: dict[_NodeKey, dict[_EdgeKey, None]] = {}

    def upsert_node(self, ref: ResourceReference) -> None:
        with self._lock:
            existing = self._nodes.get(ref.key)
            if existing is None:
                self._nodes[ref.key] = ref
                self._outgoing[ref.key] = {}
            elif ref.api_version and ref.api_version != existing.api_version:
                self._nodes[ref.key] = ref

    def upsert_edge(self, dep: ResourceDependency) -> bool:
        key = dep.merge_key
        with self._lock:
            self.upsert_node(dep.dependent)
            self.upsert_node(dep.dependency)
            existing = self._edges.get(key)
            if existing is None:
                self._edges[key] = dep
                self._outgoing[dep.dependent.key][key] = None
                return True
            self._edges[key] = merge_edges(existing, dep)
            return False

    def direct_dependencies(self, ref: ResourceReference) -> list[ResourceDependency]:
        with self._lock:
            return [self._edges[key] for key in self._outgoing.get(ref.key, {})]

    def get_node(self, ref: ResourceReference) -> ResourceReference | None:
        with self._lock:
            return self._nodes.get(ref.key)

    def nodes(self) -> list[ResourceReference]:
        with self._lock:
            return list(self._nodes.values())

    def edges(self) -> list[ResourceDependency]:
        with self._lock:
            return list(self._edges.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)
