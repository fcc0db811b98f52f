"""Resource-kind references and typed dependency edges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class DependencyType(StrEnum):
    """How strongly a dependent needs its dependency.

    Only REQUIRED edges constrain deployment order.
    """

    REQUIRED = "required"
    OPTIONAL = "optional"
    ENHANCES = "enhances"


class DiscoverySource(StrEnum):
    """Extraction pass that produced an edge."""

    SCHEMA_REFERENCE = "schema_reference"
    CLOUD_PROVIDER = "cloud_provider"
    OPERATIONAL = "operational"


@dataclass(frozen=True)
class ResourceReference:
    """A Kubernetes resource *kind* (not an instance).

    Identity is ``(kind, group)``.  ``api_version`` is carried for schema
    fetching downstream but takes no part in equality or hashing, so two
    version variants of the same kind collapse onto one graph node.
    """

    kind: str
    group: str = ""
    api_version: str = field(default="", compare=False)

    @property
    def key(self) -> tuple[str, str]:
        """Return the identity key for this reference."""
        return (self.kind, self.group)

    @property
    def is_core(self) -> bool:
        return self.group == ""

    @property
    def version(self) -> str:
        """Version part of ``api_version`` (``v1beta1`` for ``azure.upbound.io/v1beta1``)."""
        if not self.api_version:
            return ""
        return self.api_version.rsplit("/", 1)[-1]

    @property
    def display_name(self) -> str:
        """``Kind.group`` for grouped kinds, bare ``Kind`` for the core group."""
        return self.kind if self.is_core else f"{self.kind}.{self.group}"

    @classmethod
    def from_api_version(cls, kind: str, api_version: str) -> ResourceReference:
        """Build a reference from ``kind`` and an ``apiVersion`` string.

        ``apps/v1`` yields group ``apps``; ``v1`` yields the core group.
        """
        group = api_version.rsplit("/", 1)[0] if "/" in api_version else ""
        return cls(kind=kind, group=group, api_version=api_version)

    def __str__(self) -> str:
        return self.display_name


@dataclass(frozen=True)
class ResourceDependency:
    """A directed edge: ``dependent`` requires or benefits from ``dependency``."""

    dependent: ResourceReference
    dependency: ResourceReference
    type: DependencyType
    field: str  # schema field that implied the relationship, e.g. spec.resourceGroupName
    reason: str
    confidence: float
    pattern: str = ""  # raw matched schema fragment, kept for audit
    source: DiscoverySource = DiscoverySource.SCHEMA_REFERENCE
    discovered_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def merge_key(self) -> tuple[tuple[str, str], tuple[str, str], str, str]:
        """Upsert key: re-discovering the same key updates instead of duplicating."""
        return (self.dependent.key, self.dependency.key, self.type.value, self.field)

    @property
    def is_required(self) -> bool:
        return self.type is DependencyType.REQUIRED

    def describe(self) -> str:
        """One rationale line: ``Server -> REQUIRED -> ResourceGroup: <reason>``."""
        return f"{self.dependent.kind} -> {self.type.value.upper()} -> {self.dependency.kind}: {self.reason}"
