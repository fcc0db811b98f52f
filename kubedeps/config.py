"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubedeps.models.config import GraphConfig, KubeDepsConfig, LogConfig, ScanConfig

_BACKENDS = frozenset({"memory", "sqlite"})


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEDEPS_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_backend(value: str) -> str:
    if value.lower() not in _BACKENDS:
        raise ValueError(f"Invalid graph backend: {value}. Must be one of {sorted(_BACKENDS)}")
    return value.lower()


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in ("json", "console"):
        raise ValueError(f"Invalid log format: {value}. Must be 'json' or 'console'")
    return value.lower()


def load_config() -> KubeDepsConfig:
    """Load configuration from KUBEDEPS_* environment variables."""
    return KubeDepsConfig(
        graph=GraphConfig(
            backend=_validate_backend(_env("GRAPH_BACKEND", "memory")),
            sqlite_path=_env("GRAPH_SQLITE_PATH", "kubedeps.db"),
            max_closure_depth=_env_int("GRAPH_MAX_CLOSURE_DEPTH", 5, min_val=1, max_val=20),
            cycle_check_depth=_env_int("GRAPH_CYCLE_CHECK_DEPTH", 10, min_val=1, max_val=50),
        ),
        scan=ScanConfig(
            concurrency=_env_int("SCAN_CONCURRENCY", 16, min_val=1, max_val=256),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
