"""Shared fixtures for kubedeps integration tests.

Provides a canned ``kubectl explain --recursive`` catalog for a small
Azure/Kubernetes cluster and engines wired against it, so integration tests
can exercise scan -> store -> assemble without a real cluster.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from kubedeps.app import DependencyEngine
from kubedeps.models.config import GraphConfig, KubeDepsConfig, LogConfig, ScanConfig
from kubedeps.models.resources import ResourceReference

# ---------------------------------------------------------------------------
# Resource kinds
# ---------------------------------------------------------------------------

SERVER = ResourceReference(
    "Server", "dbforpostgresql.azure.upbound.io", "dbforpostgresql.azure.upbound.io/v1beta1"
)
DATABASE = ResourceReference(
    "Database", "dbforpostgresql.azure.upbound.io", "dbforpostgresql.azure.upbound.io/v1beta1"
)
RESOURCE_GROUP = ResourceReference("ResourceGroup", "azure.upbound.io", "azure.upbound.io/v1beta1")
FIREWALL_RULE = ResourceReference("FirewallRule", "dbforpostgresql.azure.upbound.io")
DEPLOYMENT = ResourceReference("Deployment", "apps", "apps/v1")
WIDGET = ResourceReference("Widget", "example.com", "example.com/v1")

# ---------------------------------------------------------------------------
# Schema catalog
# ---------------------------------------------------------------------------

SCHEMAS: dict[str, str] = {
    "Server": """\
GROUP:      dbforpostgresql.azure.upbound.io
KIND:       Server
VERSION:    v1beta1

DESCRIPTION:
    Server is the Schema for the Servers API. Manages a PostgreSQL Server.

FIELDS:
  apiVersion\t<string>
  kind\t<string>
  spec\t<Object> -required-
    forProvider\t<Object> -required-
      administratorLogin\t<string>
      location\t<string>
      resourceGroupName\t<string>
      resourceGroupNameRef\t<Object>
        name\t<string> -required-
      version\t<string>
    providerConfigRef\t<Object>
      name\t<string> -required-
""",
    "Database": """\
GROUP:      dbforpostgresql.azure.upbound.io
KIND:       Database
VERSION:    v1beta1

FIELDS:
  spec\t<Object> -required-
    forProvider\t<Object> -required-
      charset\t<string>
      serverName\t<string>
      resourceGroupName\t<string>
""",
    "ResourceGroup": """\
GROUP:      azure.upbound.io
KIND:       ResourceGroup
VERSION:    v1beta1

FIELDS:
  spec\t<Object> -required-
    forProvider\t<Object> -required-
      location\t<string>
      tags\t<map[string]string>
""",
    "Deployment": """\
KIND:     Deployment
VERSION:  apps/v1

FIELDS:
   spec\t<Object>
      replicas\t<integer>
      template\t<Object>
         spec\t<Object>
            serviceAccountName\t<string>
""",
    "Widget": """\
GROUP:      example.com
KIND:       Widget
VERSION:    v1

FIELDS:
  spec\t<Object>
    color\t<string>
    size\t<integer>
""",
}


class CatalogSchemaProvider:
    """Async schema provider backed by ``SCHEMAS``; records every lookup."""

    def __init__(self, schemas: dict[str, str] | None = None, failing: frozenset[str] = frozenset()) -> None:
        self.schemas = SCHEMAS if schemas is None else schemas
        self.failing = failing
        self.calls: list[str] = []

    async def __call__(self, resource: ResourceReference) -> str:
        self.calls.append(resource.kind)
        if resource.kind in self.failing:
            raise ConnectionError(f"kubectl explain {resource.kind} failed")
        return self.schemas.get(resource.kind, "")


def make_config(backend: str = "memory", sqlite_path: str = "kubedeps.db", depth: int = 5) -> KubeDepsConfig:
    return KubeDepsConfig(
        graph=GraphConfig(backend=backend, sqlite_path=sqlite_path, max_closure_depth=depth),
        scan=ScanConfig(concurrency=4),
        log=LogConfig(level="warning", format="console"),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def schema_provider() -> CatalogSchemaProvider:
    return CatalogSchemaProvider()


@pytest.fixture
def engine() -> Iterator[DependencyEngine]:
    with DependencyEngine(config=make_config()) as eng:
        yield eng


@pytest.fixture
def sqlite_path(tmp_path: Path) -> str:
    return str(tmp_path / "kubedeps.db")
