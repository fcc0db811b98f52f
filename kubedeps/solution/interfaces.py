"""Interfaces of the external collaborators the engine consumes.

Both may be plain callables or coroutine functions.
"""

from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import Protocol

from kubedeps.models.resources import ResourceReference


class SchemaProvider(Protocol):
    """Returns raw schema text for a resource kind (``kubectl explain --recursive`` equivalent).

    Bytes (raw subprocess output) are decoded as UTF-8.  May raise; the
    scanner converts any failure into an empty edge set.
    """

    def __call__(self, resource: ResourceReference) -> str | bytes | Awaitable[str | bytes]: ...


class CapabilitySearch(Protocol):
    """Returns primary-resource candidates for an intent, most relevant first.

    Output is treated as opaque: never re-ranked or validated here.
    """

    def __call__(
        self,
        intent: str,
        limit: int,
    ) -> Sequence[ResourceReference] | Awaitable[Sequence[ResourceReference]]: ...
