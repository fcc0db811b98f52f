"""Result structures for dependency graph queries."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubedeps.models.resources import ResourceDependency, ResourceReference


@dataclass
class TraversalResult:
    """Result of a depth-bounded REQUIRED-edge traversal."""

    resources: list[ResourceReference] = field(default_factory=list)  # start node excluded
    edges: list[ResourceDependency] = field(default_factory=list)
    depth_reached: int = 0
    truncated: bool = False  # True if max_depth hit before exhausting graph


@dataclass
class DeploymentOrder:
    """Deploy sequence produced by the topological sort.

    When a cycle blocks Kahn's algorithm the blocked nodes are appended in
    discovery order, listed again in ``unresolved``, and ``cycle_detected``
    is set.  The order is still usable, but needs manual review.
    """

    resources: list[ResourceReference] = field(default_factory=list)
    cycle_detected: bool = False
    unresolved: list[ResourceReference] = field(default_factory=list)

    def position(self, ref: ResourceReference) -> int:
        """Index of *ref* in the order, -1 if absent."""
        for idx, item in enumerate(self.resources):
            if item == ref:
                return idx
        return -1
