"""Pure graph algorithms over dependency edges.

Tie-break rule for the topological sort (used everywhere ordering matters):
nodes are *discovered* in the order primary first, then the endpoints of
each REQUIRED edge as it appears in the input (dependent before dependency).
Initially ready nodes are emitted in that discovery order; a node released
later joins the back of the queue in the order its last blocking edge was
listed.  Nodes left over by a cycle are appended in discovery order.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from kubedeps.graph.models import DeploymentOrder
from kubedeps.models.resources import ResourceDependency, ResourceReference
from kubedeps.observability.logging import get_logger

_log = get_logger("graph.algorithms")


def topological_order(
    primary: ResourceReference,
    edges: Iterable[ResourceDependency],
) -> DeploymentOrder:
    """Order ``primary`` and the endpoints of REQUIRED ``edges``, dependencies first.

    OPTIONAL and ENHANCES edges are ignored; they constrain nothing.  Never
    raises on a cycle: the result is flagged instead.
    """
    nodes: dict[tuple[str, str], ResourceReference] = {primary.key: primary}
    successors: dict[tuple[str, str], list[tuple[str, str]]] = {primary.key: []}
    in_degree: dict[tuple[str, str], int] = {primary.key: 0}
    seen_pairs: set[tuple[tuple[str, str], tuple[str, str]]] = set()

    for edge in edges:
        if not edge.is_required:
            continue
        for ref in (edge.dependent, edge.dependency):
            if ref.key not in nodes:
                nodes[ref.key] = ref
                successors[ref.key] = []
                in_degree[ref.key] = 0
        pair = (edge.dependent.key, edge.dependency.key)
        # Several fields can imply the same pair; count it once.
        if pair[0] == pair[1] or pair in seen_pairs:
            continue
        seen_pairs.add(pair)
        successors[edge.dependency.key].append(edge.dependent.key)
        in_degree[edge.dependent.key] += 1

    queue: deque[tuple[str, str]] = deque(key for key in nodes if in_degree[key] == 0)
    ordered: list[ResourceReference] = []
    emitted: set[tuple[str, str]] = set()

    while queue:
        key = queue.popleft()
        ordered.append(nodes[key])
        emitted.add(key)
        for successor in successors[key]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    unresolved = [ref for key, ref in nodes.items() if key not in emitted]
    if unresolved:
        _log.warning(
            "dependency_cycle_detected",
            primary=primary.display_name,
            unresolved=[ref.display_name for ref in unresolved],
        )
    return DeploymentOrder(
        resources=ordered + unresolved,
        cycle_detected=bool(unresolved),
        unresolved=unresolved,
    )


def merge_edges(existing: ResourceDependency, incoming: ResourceDependency) -> ResourceDependency:
    """Merge a re-discovered edge into the stored one (same ``merge_key``).

    The higher-confidence evidence wins (ties go to the newcomer);
    ``discovered_at`` is always refreshed to the latest sighting.
    """
    winner = incoming if incoming.confidence >= existing.confidence else existing
    discovered_at = max(existing.discovered_at, incoming.discovered_at)
    return ResourceDependency(
        dependent=_merge_refs(existing.dependent, incoming.dependent),
        dependency=_merge_refs(existing.dependency, incoming.dependency),
        type=winner.type,
        field=winner.field,
        reason=winner.reason,
        confidence=winner.confidence,
        pattern=winner.pattern,
        source=winner.source,
        discovered_at=discovered_at,
    )


def _merge_refs(existing: ResourceReference, incoming: ResourceReference) -> ResourceReference:
    """Keep identity, take the latest non-empty api_version."""
    if incoming.api_version and incoming.api_version != existing.api_version:
        return incoming
    return existing
