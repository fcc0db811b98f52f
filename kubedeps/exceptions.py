"""Exception hierarchy for kubedeps."""

from __future__ import annotations


class KubeDepsError(Exception):
    """Base class for all kubedeps errors."""


class SchemaUnavailableError(KubeDepsError):
    """A resource kind's schema cannot be fetched, or the provider returned no text.

    Never propagated out of a scan: the affected resource yields zero edges.
    """

    def __init__(self, resource: str, cause: str = "") -> None:
        msg = f"Schema unavailable for '{resource}'"
        if cause:
            msg = f"{msg}: {cause}"
        super().__init__(msg)
        self.resource = resource
        self.cause = cause


class GraphStoreUnavailableError(KubeDepsError):
    """Raised when the dependency graph store cannot be reached.

    This is the only error that escapes solution assembly and scanning.
    """

    def __init__(self, backend: str, cause: Exception | str) -> None:
        super().__init__(f"Graph store '{backend}' unavailable: {cause}")
        self.backend = backend
        self.cause = cause
