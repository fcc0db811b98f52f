"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class GraphConfig:
    """Dependency graph store configuration."""

    backend: str = "memory"
    sqlite_path: str = "kubedeps.db"
    max_closure_depth: int = 5
    cycle_check_depth: int = 10


@dataclass
class ScanConfig:
    """Cluster dependency scan configuration."""

    concurrency: int = 16


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class KubeDepsConfig:
    """Top-level kubedeps configuration."""

    graph: GraphConfig = field(default_factory=GraphConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    log: LogConfig = field(default_factory=LogConfig)
