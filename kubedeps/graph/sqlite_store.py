"""SQLite-backed dependency graph store.

Persists the node and edge tables across scans.  Every ``sqlite3.Error``
surfaces as ``GraphStoreUnavailableError``: without its store the engine
has no meaningful partial answer.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import ClassVar

from kubedeps.exceptions import GraphStoreUnavailableError
from kubedeps.graph.algorithms import merge_edges
from kubedeps.graph.store import GraphStore
from kubedeps.models.resources import (
    DependencyType,
    DiscoverySource,
    ResourceDependency,
    ResourceReference,
)
from kubedeps.observability.logging import get_logger

_log = get_logger("graph.sqlite_store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS nodes (
    seq          INTEGER PRIMARY KEY AUTOINCREMENT,
    kind         TEXT NOT NULL,
    grp          TEXT NOT NULL,
    api_version  TEXT NOT NULL DEFAULT '',
    UNIQUE (kind, grp)
);
CREATE TABLE IF NOT EXISTS edges (
    seq                     INTEGER PRIMARY KEY AUTOINCREMENT,
    dependent_kind          TEXT NOT NULL,
    dependent_group         TEXT NOT NULL,
    dependent_api_version   TEXT NOT NULL DEFAULT '',
    dependency_kind         TEXT NOT NULL,
    dependency_group        TEXT NOT NULL,
    dependency_api_version  TEXT NOT NULL DEFAULT '',
    type                    TEXT NOT NULL,
    field                   TEXT NOT NULL,
    reason                  TEXT NOT NULL,
    confidence              REAL NOT NULL,
    pattern                 TEXT NOT NULL DEFAULT '',
    source                  TEXT NOT NULL,
    discovered_at           TEXT NOT NULL,
    UNIQUE (dependent_kind, dependent_group, dependency_kind, dependency_group, type, field)
);
CREATE INDEX IF NOT EXISTS edges_by_dependent ON edges (dependent_kind, dependent_group);
"""

_EDGE_COLUMNS = (
    "seq, dependent_kind, dependent_group, dependent_api_version, "
    "dependency_kind, dependency_group, dependency_api_version, "
    "type, field, reason, confidence, pattern, source, discovered_at"
)

_UPSERT_NODE = """
INSERT INTO nodes (kind, grp, api_version) VALUES (?, ?, ?)
ON CONFLICT (kind, grp) DO UPDATE SET
    api_version = CASE WHEN excluded.api_version != '' THEN excluded.api_version ELSE nodes.api_version END
"""


class SQLiteGraphStore(GraphStore):
    """Persistent graph store in a single SQLite database file.

    One connection is shared across threads and serialised by a lock, which
    gives atomic upserts without any caller-side locking.
    """

    backend: ClassVar[str] = "sqlite"

    def __init__(self, path: str = "kubedeps.db") -> None:
        self._path = path
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False)
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise GraphStoreUnavailableError(self.backend, exc) from exc
        _log.info("sqlite_store_opened", path=path)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                _log.error("sqlite_store_error", operation=operation, path=self._path, error=str(exc))
                raise GraphStoreUnavailableError(self.backend, exc) from exc

    def upsert_node(self, ref: ResourceReference) -> None:
        with self._guard("upsert_node") as conn, conn:
            conn.execute(_UPSERT_NODE, (ref.kind, ref.group, ref.api_version))

    def upsert_edge(self, dep: ResourceDependency) -> bool:
        with self._guard("upsert_edge") as conn, conn:
            conn.execute(_UPSERT_NODE, (dep.dependent.kind, dep.dependent.group, dep.dependent.api_version))
            conn.execute(_UPSERT_NODE, (dep.dependency.kind, dep.dependency.group, dep.dependency.api_version))
            row = conn.execute(
                f"SELECT {_EDGE_COLUMNS} FROM edges WHERE dependent_kind = ? AND dependent_group = ? "
                "AND dependency_kind = ? AND dependency_group = ? AND type = ? AND field = ?",
                (
                    dep.dependent.kind,
                    dep.dependent.group,
                    dep.dependency.kind,
                    dep.dependency.group,
                    dep.type.value,
                    dep.field,
                ),
            ).fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO edges (dependent_kind, dependent_group, dependent_api_version, "
                    "dependency_kind, dependency_group, dependency_api_version, type, field, reason, "
                    "confidence, pattern, source, discovered_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _edge_params(dep),
                )
                return True
            merged = merge_edges(_row_to_edge(row), dep)
            conn.execute(
                "UPDATE edges SET dependent_api_version = ?, dependency_api_version = ?, reason = ?, "
                "confidence = ?, pattern = ?, source = ?, discovered_at = ? WHERE seq = ?",
                (
                    merged.dependent.api_version,
                    merged.dependency.api_version,
                    merged.reason,
                    merged.confidence,
                    merged.pattern,
                    merged.source.value,
                    merged.discovered_at.isoformat(),
                    row[0],
                ),
            )
            return False

    def direct_dependencies(self, ref: ResourceReference) -> list[ResourceDependency]:
        with self._guard("direct_dependencies") as conn:
            rows = conn.execute(
                f"SELECT {_EDGE_COLUMNS} FROM edges WHERE dependent_kind = ? AND dependent_group = ? ORDER BY seq",
                (ref.kind, ref.group),
            ).fetchall()
        return [_row_to_edge(row) for row in rows]

    def get_node(self, ref: ResourceReference) -> ResourceReference | None:
        with self._guard("get_node") as conn:
            row = conn.execute(
                "SELECT kind, grp, api_version FROM nodes WHERE kind = ? AND grp = ?",
                (ref.kind, ref.group),
            ).fetchone()
        if row is None:
            return None
        return ResourceReference(kind=row[0], group=row[1], api_version=row[2])

    def nodes(self) -> list[ResourceReference]:
        with self._guard("nodes") as conn:
            rows = conn.execute("SELECT kind, grp, api_version FROM nodes ORDER BY seq").fetchall()
        return [ResourceReference(kind=k, group=g, api_version=v) for k, g, v in rows]

    def edges(self) -> list[ResourceDependency]:
        with self._guard("edges") as conn:
            rows = conn.execute(f"SELECT {_EDGE_COLUMNS} FROM edges ORDER BY seq").fetchall()
        return [_row_to_edge(row) for row in rows]

    @property
    def node_count(self) -> int:
        with self._guard("node_count") as conn:
            return int(conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0])

    @property
    def edge_count(self) -> int:
        with self._guard("edge_count") as conn:
            return int(conn.execute("SELECT COUNT(*) FROM edges").fetchone()[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        _log.info("sqlite_store_closed", path=self._path)


def _edge_params(dep: ResourceDependency) -> tuple[object, ...]:
    return (
        dep.dependent.kind,
        dep.dependent.group,
        dep.dependent.api_version,
        dep.dependency.kind,
        dep.dependency.group,
        dep.dependency.api_version,
        dep.type.value,
        dep.field,
        dep.reason,
        dep.confidence,
        dep.pattern,
        dep.source.value,
        dep.discovered_at.isoformat(),
    )


def _row_to_edge(row: tuple[object, ...]) -> ResourceDependency:
    (
        _seq,
        dependent_kind,
        dependent_group,
        dependent_api_version,
        dependency_kind,
        dependency_group,
        dependency_api_version,
        edge_type,
        field,
        reason,
        confidence,
        pattern,
        source,
        discovered_at,
    ) = row
    return ResourceDependency(
        dependent=ResourceReference(str(dependent_kind), str(dependent_group), str(dependent_api_version)),
        dependency=ResourceReference(str(dependency_kind), str(dependency_group), str(dependency_api_version)),
        type=DependencyType(str(edge_type)),
        field=str(field),
        reason=str(reason),
        confidence=float(confidence),  # type: ignore[arg-type]
        pattern=str(pattern),
        source=DiscoverySource(str(source)),
        discovered_at=datetime.fromisoformat(str(discovered_at)),
    )
