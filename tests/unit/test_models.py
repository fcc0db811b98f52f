"""Tests for ResourceReference identity, ResourceDependency and CompleteSolution."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from kubedeps.models.resources import (
    DependencyType,
    DiscoverySource,
    ResourceDependency,
    ResourceReference,
)
from kubedeps.models.solution import CompleteSolution

_TS = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)

_SERVER = ResourceReference("Server", "dbforpostgresql.azure.upbound.io", "dbforpostgresql.azure.upbound.io/v1beta1")
_RG = ResourceReference("ResourceGroup", "azure.upbound.io", "azure.upbound.io/v1beta1")


def _make_edge(
    dependent: ResourceReference = _SERVER,
    dependency: ResourceReference = _RG,
    dep_type: DependencyType = DependencyType.REQUIRED,
    field: str = "spec.resourceGroupName",
    confidence: float = 0.9,
) -> ResourceDependency:
    return ResourceDependency(
        dependent=dependent,
        dependency=dependency,
        type=dep_type,
        field=field,
        reason="Resource must be created inside an existing resource group",
        confidence=confidence,
        discovered_at=_TS,
    )


class TestResourceReferenceIdentity:
    """Identity is (kind, group); api_version is informational."""

    def test_equal_across_api_versions(self) -> None:
        v1 = ResourceReference("Server", "dbforpostgresql.azure.upbound.io", "dbforpostgresql.azure.upbound.io/v1beta1")
        v2 = ResourceReference("Server", "dbforpostgresql.azure.upbound.io", "dbforpostgresql.azure.upbound.io/v1beta2")
        assert v1 == v2
        assert hash(v1) == hash(v2)
        assert len({v1, v2}) == 1

    def test_different_group_is_different_kind(self) -> None:
        a = ResourceReference("Server", "dbforpostgresql.azure.upbound.io")
        b = ResourceReference("Server", "dbformysql.azure.upbound.io")
        assert a != b

    def test_key(self) -> None:
        assert _RG.key == ("ResourceGroup", "azure.upbound.io")

    def test_immutable(self) -> None:
        with pytest.raises(AttributeError):
            _RG.kind = "Other"  # type: ignore[misc]


class TestResourceReferenceHelpers:
    def test_from_api_version_grouped(self) -> None:
        ref = ResourceReference.from_api_version("Deployment", "apps/v1")
        assert ref.group == "apps"
        assert ref.version == "v1"
        assert ref.api_version == "apps/v1"

    def test_from_api_version_core(self) -> None:
        ref = ResourceReference.from_api_version("Secret", "v1")
        assert ref.group == ""
        assert ref.is_core is True
        assert ref.version == "v1"

    def test_version_empty_without_api_version(self) -> None:
        assert ResourceReference("Widget", "example.com").version == ""

    def test_display_name(self) -> None:
        assert _RG.display_name == "ResourceGroup.azure.upbound.io"
        assert ResourceReference("Secret").display_name == "Secret"
        assert str(_RG) == "ResourceGroup.azure.upbound.io"


class TestResourceDependency:
    def test_merge_key_ignores_api_version_and_evidence(self) -> None:
        a = _make_edge(confidence=0.9)
        b = _make_edge(
            dependency=ResourceReference("ResourceGroup", "azure.upbound.io", "azure.upbound.io/v1"),
            confidence=0.8,
        )
        assert a.merge_key == b.merge_key

    def test_merge_key_includes_field_and_type(self) -> None:
        a = _make_edge(field="spec.resourceGroupName")
        b = _make_edge(field="spec.forProvider.resourceGroupName")
        c = _make_edge(dep_type=DependencyType.OPTIONAL)
        assert len({a.merge_key, b.merge_key, c.merge_key}) == 3

    def test_confidence_out_of_range_rejected(self) -> None:
        with pytest.raises(ValueError, match="confidence"):
            _make_edge(confidence=1.5)

    def test_describe(self) -> None:
        line = _make_edge().describe()
        assert line.startswith("Server -> REQUIRED -> ResourceGroup: ")

    def test_defaults(self) -> None:
        edge = ResourceDependency(
            dependent=_SERVER,
            dependency=_RG,
            type=DependencyType.REQUIRED,
            field="spec.resourceGroupName",
            reason="r",
            confidence=0.9,
        )
        assert edge.source is DiscoverySource.SCHEMA_REFERENCE
        assert edge.discovered_at.tzinfo is not None
        assert edge.is_required is True


class TestCompleteSolution:
    def test_degraded_when_no_dependencies(self) -> None:
        solution = CompleteSolution(primary=_SERVER, order=[_SERVER])
        assert solution.is_degraded is True

    def test_all_resources_deduplicates(self) -> None:
        firewall = ResourceReference("FirewallRule", "dbforpostgresql.azure.upbound.io")
        solution = CompleteSolution(primary=_SERVER, required=[_RG], optional=[firewall, _RG])
        assert solution.all_resources() == [_SERVER, _RG, firewall]
        assert solution.is_degraded is False
