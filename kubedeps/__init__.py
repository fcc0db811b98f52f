"""kubedeps: Kubernetes resource dependency resolution engine.

Turns one matched resource kind into an ordered, complete, cycle-free set
of resource kinds by discovering dependencies from API schemas and storing
them in a typed dependency graph.
"""

__version__ = "0.1.0"
