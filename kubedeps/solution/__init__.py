"""Solution assembly: scan write path and complete-solution read path."""

from kubedeps.solution.assembler import SolutionAssembler, build_rationale
from kubedeps.solution.interfaces import CapabilitySearch, SchemaProvider

__all__ = [
    "CapabilitySearch",
    "SchemaProvider",
    "SolutionAssembler",
    "build_rationale",
]
