"""Tests for topological ordering and edge merging.

Includes a hypothesis property: for any acyclic REQUIRED subgraph, every
resource appears strictly after all of its REQUIRED dependencies.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from kubedeps.graph.algorithms import merge_edges, topological_order
from kubedeps.models.resources import (
    DependencyType,
    DiscoverySource,
    ResourceDependency,
    ResourceReference,
)

_TS = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)


def _ref(kind: str, group: str = "example.com") -> ResourceReference:
    return ResourceReference(kind, group)


def _edge(
    dependent: ResourceReference,
    dependency: ResourceReference,
    dep_type: DependencyType = DependencyType.REQUIRED,
    field: str = "spec.ref",
    confidence: float = 0.9,
    reason: str = "test",
    source: DiscoverySource = DiscoverySource.SCHEMA_REFERENCE,
    discovered_at: datetime = _TS,
) -> ResourceDependency:
    return ResourceDependency(
        dependent=dependent,
        dependency=dependency,
        type=dep_type,
        field=field,
        reason=reason,
        confidence=confidence,
        source=source,
        discovered_at=discovered_at,
    )


A, B, C, D = _ref("A"), _ref("B"), _ref("C"), _ref("D")


class TestTopologicalOrder:
    def test_dependency_before_dependent(self) -> None:
        server = _ref("Server", "dbforpostgresql.azure.upbound.io")
        rg = _ref("ResourceGroup", "azure.upbound.io")
        order = topological_order(server, [_edge(server, rg)])
        assert order.resources == [rg, server]
        assert order.cycle_detected is False
        assert order.unresolved == []

    def test_primary_alone(self) -> None:
        order = topological_order(A, [])
        assert order.resources == [A]

    def test_chain(self) -> None:
        order = topological_order(A, [_edge(A, B), _edge(B, C), _edge(C, D)])
        assert order.resources == [D, C, B, A]

    def test_diamond(self) -> None:
        order = topological_order(A, [_edge(A, B), _edge(A, C), _edge(B, D), _edge(C, D)])
        assert order.resources[0] == D
        assert order.resources[-1] == A
        assert order.position(B) < order.position(A)
        assert order.position(C) < order.position(A)

    def test_tie_break_follows_discovery_order(self) -> None:
        # B and C are both deploy-first; B was discovered first.
        order = topological_order(A, [_edge(A, B), _edge(A, C)])
        assert order.resources == [B, C, A]
        order = topological_order(A, [_edge(A, C), _edge(A, B)])
        assert order.resources == [C, B, A]

    def test_optional_edges_do_not_constrain(self) -> None:
        order = topological_order(A, [_edge(A, B, DependencyType.OPTIONAL), _edge(A, C, DependencyType.ENHANCES)])
        assert order.resources == [A]

    def test_duplicate_pairs_counted_once(self) -> None:
        order = topological_order(A, [_edge(A, B, field="spec.x"), _edge(A, B, field="spec.y")])
        assert order.resources == [B, A]
        assert order.cycle_detected is False

    def test_two_node_cycle_terminates(self) -> None:
        order = topological_order(A, [_edge(A, B), _edge(B, A)])
        assert order.resources == [A, B]
        assert order.cycle_detected is True
        assert order.unresolved == [A, B]

    def test_cycle_downstream_nodes_appended_after_acyclic_part(self) -> None:
        # C is free; A -> B -> A is a cycle; A also needs C.
        order = topological_order(A, [_edge(A, C), _edge(A, B), _edge(B, A)])
        assert order.resources == [C, A, B]
        assert order.unresolved == [A, B]

    def test_self_edge_ignored(self) -> None:
        order = topological_order(A, [_edge(A, A)])
        assert order.resources == [A]
        assert order.cycle_detected is False

    def test_position_of_absent(self) -> None:
        assert topological_order(A, []).position(B) == -1


@st.composite
def _acyclic_required_edges(draw: st.DrawFn) -> tuple[list[ResourceReference], list[ResourceDependency]]:
    """Random DAG: node i may depend only on nodes with a higher index."""
    size = draw(st.integers(min_value=2, max_value=12))
    nodes = [_ref(f"K{i}") for i in range(size)]
    pairs = draw(
        st.lists(
            st.tuples(st.integers(0, size - 2), st.integers(1, size - 1)).map(lambda p: (p[0], max(p[1], p[0] + 1))),
            max_size=30,
        )
    )
    edges = [_edge(nodes[i], nodes[j]) for i, j in pairs]
    edges += [_edge(nodes[i], nodes[j], DependencyType.OPTIONAL) for j, i in pairs[:3]]
    return nodes, edges


class TestTopologicalValidity:
    @given(_acyclic_required_edges())
    @settings(max_examples=200, deadline=None)
    def test_every_resource_after_its_required_dependencies(self, graph) -> None:
        nodes, edges = graph
        order = topological_order(nodes[0], edges)
        assert order.cycle_detected is False
        positions = {ref.key: idx for idx, ref in enumerate(order.resources)}
        assert len(positions) == len(order.resources)
        for edge in edges:
            if edge.is_required:
                assert positions[edge.dependency.key] < positions[edge.dependent.key]

    @given(_acyclic_required_edges())
    @settings(max_examples=50, deadline=None)
    def test_deterministic(self, graph) -> None:
        nodes, edges = graph
        assert topological_order(nodes[0], edges).resources == topological_order(nodes[0], edges).resources


class TestMergeEdges:
    def test_higher_confidence_evidence_wins(self) -> None:
        explicit = _edge(A, B, confidence=0.9, reason="explicit", source=DiscoverySource.SCHEMA_REFERENCE)
        inferred = _edge(
            A,
            B,
            confidence=0.8,
            reason="inferred",
            source=DiscoverySource.CLOUD_PROVIDER,
            discovered_at=_TS + timedelta(minutes=5),
        )
        merged = merge_edges(explicit, inferred)
        assert merged.confidence == 0.9
        assert merged.reason == "explicit"
        assert merged.source is DiscoverySource.SCHEMA_REFERENCE
        assert merged.discovered_at == _TS + timedelta(minutes=5)

    def test_tie_goes_to_newcomer(self) -> None:
        merged = merge_edges(_edge(A, B, reason="old"), _edge(A, B, reason="new"))
        assert merged.reason == "new"

    def test_latest_non_empty_api_version_kept(self) -> None:
        old = _edge(ResourceReference("A", "example.com", "example.com/v1"), B)
        new = _edge(ResourceReference("A", "example.com", ""), ResourceReference("B", "example.com", "example.com/v2"))
        merged = merge_edges(old, new)
        assert merged.dependent.api_version == "example.com/v1"
        assert merged.dependency.api_version == "example.com/v2"
