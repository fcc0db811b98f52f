"""Schema-driven dependency discovery."""

from kubedeps.discovery.engine import DependencyDiscoveryEngine, discover_dependencies
from kubedeps.discovery.patterns import (
    CLOUD_PROVIDERS,
    OPERATIONAL_CLASSIFIERS,
    SCHEMA_REFERENCE_PATTERNS,
    CloudProvider,
    GroupResolution,
    OperationalClassifier,
    SchemaReferencePattern,
)
from kubedeps.discovery.schema import ExplainSchema, SchemaField, parse_explain

__all__ = [
    "CLOUD_PROVIDERS",
    "OPERATIONAL_CLASSIFIERS",
    "SCHEMA_REFERENCE_PATTERNS",
    "CloudProvider",
    "DependencyDiscoveryEngine",
    "ExplainSchema",
    "GroupResolution",
    "OperationalClassifier",
    "SchemaField",
    "SchemaReferencePattern",
    "discover_dependencies",
    "parse_explain",
]
