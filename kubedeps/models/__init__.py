"""Core data structures for kubedeps."""

from kubedeps.models.config import GraphConfig, KubeDepsConfig, LogConfig, ScanConfig
from kubedeps.models.resources import (
    DependencyType,
    DiscoverySource,
    ResourceDependency,
    ResourceReference,
)
from kubedeps.models.solution import CompleteSolution

__all__ = [
    "CompleteSolution",
    "DependencyType",
    "DiscoverySource",
    "GraphConfig",
    "KubeDepsConfig",
    "LogConfig",
    "ResourceDependency",
    "ResourceReference",
    "ScanConfig",
]
