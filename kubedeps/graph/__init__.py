"""Resource-kind dependency graph.

Typed directed multigraph of resource kinds with REQUIRED / OPTIONAL /
ENHANCES edges, supporting idempotent upsert, direct-neighbour queries,
depth-bounded transitive closure, cycle detection and deploy ordering.
"""

from kubedeps.graph.algorithms import merge_edges, topological_order
from kubedeps.graph.models import DeploymentOrder, TraversalResult
from kubedeps.graph.sqlite_store import SQLiteGraphStore
from kubedeps.graph.store import (
    DEFAULT_CYCLE_CHECK_DEPTH,
    DEFAULT_MAX_CLOSURE_DEPTH,
    GraphStore,
    InMemoryGraphStore,
)

__all__ = [
    "DEFAULT_CYCLE_CHECK_DEPTH",
    "DEFAULT_MAX_CLOSURE_DEPTH",
    "DeploymentOrder",
    "GraphStore",
    "InMemoryGraphStore",
    "SQLiteGraphStore",
    "TraversalResult",
    "merge_edges",
    "topological_order",
]
