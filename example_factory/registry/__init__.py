"""Example Factory registry -- artifact descriptors, discovery and persistence.

Quick usage::

    from example_factory.registry import discover, load_registry, save_registry

    previous = load_registry("registry.json")
    registry, errors = discover(".", previous)
    if not errors:
        save_registry(registry, "registry.json")
"""

from example_factory.registry.discovery import DiscoveryResult, discover, discover_tree
from example_factory.registry.models import (
    ArtifactDescriptor,
    Category,
    DerivedFields,
    ManualFields,
    Registry,
)
from example_factory.registry.store import load_registry, save_registry, serialize_registry

__all__ = [
    "ArtifactDescriptor",
    "Category",
    "DerivedFields",
    "DiscoveryResult",
    "ManualFields",
    "Registry",
    "discover",
    "discover_tree",
    "load_registry",
    "save_registry",
    "serialize_registry",
]
