"""Dependency discovery engine.

Derives candidate dependency edges for one resource kind from its schema
text, in three independent passes whose results are concatenated:

1. explicit schema references (field-name patterns), confidence 0.9
2. cloud-provider foundation inference (from the API group), confidence 0.8
3. operational heuristics (keyword classifiers), confidence 0.6-0.7

Pure computation over a string.  Duplicates across passes are left for the
graph store's upsert merge.  Empty or malformed schema text yields no edges
and a warning, never an exception.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from kubedeps.discovery.patterns import (
    CLOUD_PROVIDER_CONFIDENCE,
    CLOUD_PROVIDERS,
    OPERATIONAL_CLASSIFIERS,
    SCHEMA_REFERENCE_CONFIDENCE,
    SCHEMA_REFERENCE_PATTERNS,
    CloudProvider,
    GroupResolution,
    OperationalClassifier,
    SchemaReferencePattern,
)
from kubedeps.discovery.schema import ExplainSchema, SchemaField, parse_explain
from kubedeps.models.resources import (
    DependencyType,
    DiscoverySource,
    ResourceDependency,
    ResourceReference,
)
from kubedeps.observability.logging import get_logger

_log = get_logger("discovery.engine")

# Crossplane wraps managed-resource parameters in these; spec.forProvider.x is spec.x.
_PROVIDER_WRAPPERS = frozenset({"forProvider", "initProvider", "atProvider"})


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _field_path(schema_field: SchemaField | None, fallback: str) -> str:
    """Dotted path of a matched field; ``fallback`` for bare, unnested listings."""
    if schema_field is None:
        return fallback
    parts = [p for p in schema_field.path.split(".") if p not in _PROVIDER_WRAPPERS]
    if len(parts) < 2:
        return fallback
    return ".".join(parts)


class DependencyDiscoveryEngine:
    """Extracts scored, typed dependency edges from a resource kind's schema.

    Holds no mutable state, so one instance can serve many concurrent
    discovery workers.
    """

    def __init__(
        self,
        schema_patterns: Sequence[SchemaReferencePattern] = SCHEMA_REFERENCE_PATTERNS,
        cloud_providers: Sequence[CloudProvider] = CLOUD_PROVIDERS,
        classifiers: Sequence[OperationalClassifier] = OPERATIONAL_CLASSIFIERS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._schema_patterns = tuple(schema_patterns)
        self._cloud_providers = tuple(cloud_providers)
        self._classifiers = tuple(classifiers)
        self._clock = clock

    def discover(self, resource: ResourceReference, schema_text: str | None) -> list[ResourceDependency]:
        """Return every candidate edge for ``resource``; ``[]`` on empty or malformed schema."""
        if not schema_text or not schema_text.strip():
            _log.warning("schema_empty", resource=resource.display_name)
            return []
        schema = parse_explain(schema_text)
        if schema.is_empty:
            _log.warning("schema_malformed", resource=resource.display_name, length=len(schema_text))
            return []

        now = self._clock()
        edges = [
            *self._match_schema_references(resource, schema_text, schema, now),
            *self._infer_cloud_foundation(resource, now),
            *self._infer_operational(resource, schema_text, now),
        ]
        _log.debug(
            "dependencies_discovered",
            resource=resource.display_name,
            edges=len(edges),
            required=sum(1 for e in edges if e.is_required),
        )
        return edges

    # ------------------------------------------------------------------
    # Classification helpers
    # ------------------------------------------------------------------

    def provider_for(self, resource: ResourceReference) -> CloudProvider | None:
        """Cloud provider whose marker appears in the resource's group, if any."""
        for provider in self._cloud_providers:
            if provider.root_group(resource.group) is not None:
                return provider
        return None

    def classify(self, resource: ResourceReference, schema_text: str) -> list[str]:
        """Names of the operational classifiers that match ``resource``."""
        return [c.name for c in self._classifiers if c.matches(resource, schema_text)]

    def is_database_resource(self, resource: ResourceReference, schema_text: str) -> bool:
        return "database" in self.classify(resource, schema_text)

    def is_storage_resource(self, resource: ResourceReference, schema_text: str) -> bool:
        return "storage" in self.classify(resource, schema_text)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _match_schema_references(
        self,
        resource: ResourceReference,
        schema_text: str,
        schema: ExplainSchema,
        now: datetime,
    ) -> list[ResourceDependency]:
        provider = self.provider_for(resource)
        edges: list[ResourceDependency] = []
        lines = schema_text.splitlines()
        for pattern in self._schema_patterns:
            if pattern.requires_provider and provider is None:
                continue
            line_no = next((i for i, line in enumerate(lines) if pattern.regex.search(line)), None)
            if line_no is None:
                continue
            target = self._resolve(
                resource,
                pattern.dependency_kind,
                pattern.group,
                pattern.fixed_group,
                pattern.api_version,
                provider,
            )
            if target == resource:
                continue
            edges.append(
                ResourceDependency(
                    dependent=resource,
                    dependency=target,
                    type=pattern.dependency_type,
                    field=_field_path(schema.field_at(line_no), pattern.field),
                    reason=pattern.reason,
                    confidence=SCHEMA_REFERENCE_CONFIDENCE,
                    pattern=lines[line_no].strip(),
                    source=DiscoverySource.SCHEMA_REFERENCE,
                    discovered_at=now,
                )
            )
        return edges

    def _infer_cloud_foundation(self, resource: ResourceReference, now: datetime) -> list[ResourceDependency]:
        provider = self.provider_for(resource)
        if provider is None or provider.foundation_kind is None:
            return []
        # The foundation kind itself (and kinds named after it) must not depend on itself.
        if provider.foundation_kind in resource.kind:
            return []
        group = provider.foundation_group(resource.group) or resource.group
        target = ResourceReference(
            kind=provider.foundation_kind,
            group=group,
            api_version=f"{group}/{resource.version}" if resource.version else "",
        )
        return [
            ResourceDependency(
                dependent=resource,
                dependency=target,
                type=DependencyType.REQUIRED,
                field=provider.foundation_field,
                reason=provider.foundation_reason,
                confidence=CLOUD_PROVIDER_CONFIDENCE,
                pattern=f"group={resource.group}",
                source=DiscoverySource.CLOUD_PROVIDER,
                discovered_at=now,
            )
        ]

    def _infer_operational(
        self,
        resource: ResourceReference,
        schema_text: str,
        now: datetime,
    ) -> list[ResourceDependency]:
        provider = self.provider_for(resource)
        edges: list[ResourceDependency] = []
        for classifier in self._classifiers:
            if classifier.dependency_kind in resource.kind or not classifier.matches(resource, schema_text):
                continue
            target = self._resolve(
                resource,
                classifier.dependency_kind,
                classifier.group,
                classifier.fixed_group,
                classifier.api_version,
                provider,
            )
            if target == resource:
                continue
            edges.append(
                ResourceDependency(
                    dependent=resource,
                    dependency=target,
                    type=classifier.dependency_type,
                    field=classifier.field,
                    reason=classifier.reason,
                    confidence=classifier.confidence,
                    pattern=f"classifier={classifier.name}",
                    source=DiscoverySource.OPERATIONAL,
                    discovered_at=now,
                )
            )
        return edges

    @staticmethod
    def _resolve(
        resource: ResourceReference,
        kind: str,
        resolution: GroupResolution,
        fixed_group: str,
        api_version: str,
        provider: CloudProvider | None,
    ) -> ResourceReference:
        if resolution is GroupResolution.CORE:
            return ResourceReference(kind=kind, group="", api_version=api_version or "v1")
        if resolution is GroupResolution.FIXED:
            return ResourceReference(kind=kind, group=fixed_group, api_version=api_version)
        group = resource.group
        if resolution is GroupResolution.PROVIDER_ROOT and provider is not None:
            group = provider.root_group(resource.group) or resource.group
        return ResourceReference(
            kind=kind,
            group=group,
            api_version=f"{group}/{resource.version}" if resource.version else "",
        )


_default_engine = DependencyDiscoveryEngine()


def discover_dependencies(resource: ResourceReference, schema_text: str | None) -> list[ResourceDependency]:
    """Discover dependencies with the default tables."""
    return _default_engine.discover(resource, schema_text)
