"""Complete solution returned by the solution assembler."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubedeps.models.resources import ResourceDependency, ResourceReference


@dataclass
class CompleteSolution:
    """Primary resource plus everything needed or recommended to deploy it.

    Ephemeral: computed fresh per request, never persisted.  A solution with
    empty ``required`` and ``optional`` lists is a valid, degraded result.
    """

    primary: ResourceReference
    required: list[ResourceReference] = field(default_factory=list)
    optional: list[ResourceReference] = field(default_factory=list)
    dependencies: list[ResourceDependency] = field(default_factory=list)
    order: list[ResourceReference] = field(default_factory=list)
    rationale: str = ""
    warnings: list[str] = field(default_factory=list)
    cycle_detected: bool = False
    truncated: bool = False  # True if the closure depth limit was hit

    @property
    def is_degraded(self) -> bool:
        """True when no dependency data contributed to this solution."""
        return not self.required and not self.optional

    def all_resources(self) -> list[ResourceReference]:
        """Primary, required, then optional resources without duplicates."""
        seen: set[tuple[str, str]] = set()
        out: list[ResourceReference] = []
        for ref in [self.primary, *self.required, *self.optional]:
            if ref.key not in seen:
                seen.add(ref.key)
                out.append(ref)
        return out
