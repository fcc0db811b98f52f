"""Discovery tables: schema-reference patterns, cloud providers, operational classifiers.

These are configuration.  Extend them (or pass replacements to
``DependencyDiscoveryEngine``) to teach discovery about new references
without touching graph traversal.

Confidence tiers:
    explicit schema reference   0.9
    cloud-provider foundation   0.8
    operational heuristics      0.6 - 0.7
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from kubedeps.models.resources import DependencyType, ResourceReference

SCHEMA_REFERENCE_CONFIDENCE = 0.9
CLOUD_PROVIDER_CONFIDENCE = 0.8


class GroupResolution(StrEnum):
    """How the dependency's API group is derived from the dependent."""

    CORE = "core"  # core group, apiVersion v1
    FIXED = "fixed"  # the entry's fixed_group
    SAME = "same"  # the dependent's own group
    PROVIDER_ROOT = "provider_root"  # e.g. azure.upbound.io for dbforpostgresql.azure.upbound.io


@dataclass(frozen=True)
class CloudProvider:
    """A cloud provider recognised by an exact label in the resource's group."""

    name: str
    markers: tuple[str, ...]
    foundation_kind: str | None = None
    foundation_subgroup: str = ""  # prefix before the root group, "" for the root itself
    foundation_field: str = ""
    foundation_reason: str = ""

    def root_group(self, group: str) -> str | None:
        """Group suffix starting at the provider marker label, or None if not this provider."""
        labels = group.split(".")
        for idx, label in enumerate(labels):
            if label in self.markers:
                return ".".join(labels[idx:])
        return None

    def foundation_group(self, group: str) -> str | None:
        root = self.root_group(group)
        if root is None:
            return None
        return f"{self.foundation_subgroup}.{root}" if self.foundation_subgroup else root


@dataclass(frozen=True)
class SchemaReferencePattern:
    """A schema field that names another resource kind."""

    name: str
    regex: re.Pattern[str]
    dependency_kind: str
    dependency_type: DependencyType
    field: str
    reason: str
    group: GroupResolution = GroupResolution.CORE
    fixed_group: str = ""
    api_version: str = ""  # used for CORE and FIXED resolution
    requires_provider: bool = False


@dataclass(frozen=True)
class OperationalClassifier:
    """Keyword classifier that pairs a class of resources with an operational companion."""

    name: str
    kind_tokens: tuple[str, ...]
    schema_patterns: tuple[re.Pattern[str], ...]
    dependency_kind: str
    dependency_type: DependencyType
    field: str
    reason: str
    confidence: float
    group: GroupResolution = GroupResolution.SAME
    fixed_group: str = ""
    api_version: str = ""

    def matches(self, resource: ResourceReference, schema_text: str) -> bool:
        if any(token in resource.kind for token in self.kind_tokens):
            return True
        return any(pattern.search(schema_text) for pattern in self.schema_patterns)


CLOUD_PROVIDERS: tuple[CloudProvider, ...] = (
    CloudProvider(
        name="azure",
        markers=("azure",),
        foundation_kind="ResourceGroup",
        foundation_field="spec.resourceGroupName",
        foundation_reason="Azure resources are created inside a resource group",
    ),
    CloudProvider(
        name="gcp",
        markers=("gcp", "google"),
        foundation_kind="Project",
        foundation_subgroup="cloudplatform",
        foundation_field="spec.project",
        foundation_reason="GCP resources are created inside a project",
    ),
    # AWS resources are regional; there is no foundation kind to create first.
    CloudProvider(name="aws", markers=("aws",)),
)


SCHEMA_REFERENCE_PATTERNS: tuple[SchemaReferencePattern, ...] = (
    SchemaReferencePattern(
        name="resource_group_name",
        regex=re.compile(r"\bresourceGroupName\s+<string>"),
        dependency_kind="ResourceGroup",
        dependency_type=DependencyType.REQUIRED,
        field="spec.resourceGroupName",
        reason="Resource must be created inside an existing resource group",
        group=GroupResolution.PROVIDER_ROOT,
    ),
    SchemaReferencePattern(
        name="secret_ref",
        regex=re.compile(r"\bsecretRef\s+<(?:Object|SecretReference)>"),
        dependency_kind="Secret",
        dependency_type=DependencyType.REQUIRED,
        field="spec.secretRef",
        reason="Credentials are read from a referenced Secret",
        api_version="v1",
    ),
    SchemaReferencePattern(
        name="config_map_ref",
        regex=re.compile(r"\bconfigMapRef\s+<Object>"),
        dependency_kind="ConfigMap",
        dependency_type=DependencyType.OPTIONAL,
        field="spec.configMapRef",
        reason="Configuration can be supplied from a ConfigMap",
        api_version="v1",
    ),
    SchemaReferencePattern(
        name="claim_name",
        regex=re.compile(r"\bclaimName\s+<string>"),
        dependency_kind="PersistentVolumeClaim",
        dependency_type=DependencyType.REQUIRED,
        field="spec.volumes.persistentVolumeClaim.claimName",
        reason="Mounted volume is bound through a PersistentVolumeClaim",
        api_version="v1",
    ),
    SchemaReferencePattern(
        name="service_account_name",
        regex=re.compile(r"\bserviceAccountName\s+<string>"),
        dependency_kind="ServiceAccount",
        dependency_type=DependencyType.OPTIONAL,
        field="spec.serviceAccountName",
        reason="Workload can run under a dedicated ServiceAccount",
        api_version="v1",
    ),
    SchemaReferencePattern(
        name="storage_class_name",
        regex=re.compile(r"\bstorageClassName\s+<string>"),
        dependency_kind="StorageClass",
        dependency_type=DependencyType.OPTIONAL,
        field="spec.storageClassName",
        reason="Storage is provisioned through a StorageClass",
        group=GroupResolution.FIXED,
        fixed_group="storage.k8s.io",
        api_version="storage.k8s.io/v1",
    ),
    SchemaReferencePattern(
        name="provider_config_ref",
        regex=re.compile(r"\bproviderConfigRef\s+<Object>"),
        dependency_kind="ProviderConfig",
        dependency_type=DependencyType.OPTIONAL,
        field="spec.providerConfigRef",
        reason="Provider credentials come from a ProviderConfig",
        group=GroupResolution.PROVIDER_ROOT,
        requires_provider=True,
    ),
)


OPERATIONAL_CLASSIFIERS: tuple[OperationalClassifier, ...] = (
    OperationalClassifier(
        name="database",
        kind_tokens=("Server", "Database"),
        schema_patterns=(
            re.compile(r"\badministratorLogin\s+<"),
            re.compile(r"\bdatabaseVersion\s+<"),
        ),
        dependency_kind="FirewallRule",
        dependency_type=DependencyType.OPTIONAL,
        field="heuristic.database.firewallRule",
        reason="Database servers usually need firewall rules to accept client connections",
        confidence=0.7,
    ),
    OperationalClassifier(
        name="storage",
        kind_tokens=("PersistentVolume",),
        schema_patterns=(
            re.compile(r"\bPersistentVolume"),
            re.compile(r"\bstorageClassName\s+<"),
        ),
        dependency_kind="StorageClass",
        dependency_type=DependencyType.OPTIONAL,
        field="heuristic.storage.storageClass",
        reason="Storage resources are provisioned through a StorageClass",
        confidence=0.6,
        group=GroupResolution.FIXED,
        fixed_group="storage.k8s.io",
        api_version="storage.k8s.io/v1",
    ),
    OperationalClassifier(
        name="workload",
        kind_tokens=("Deployment", "StatefulSet"),
        schema_patterns=(),
        dependency_kind="HorizontalPodAutoscaler",
        dependency_type=DependencyType.ENHANCES,
        field="heuristic.workload.autoscaling",
        reason="Replicated workloads can scale automatically with a HorizontalPodAutoscaler",
        confidence=0.6,
        group=GroupResolution.FIXED,
        fixed_group="autoscaling",
        api_version="autoscaling/v2",
    ),
)
