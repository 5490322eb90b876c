"""
Dependency resolution for the development loop.

Maps symbolic dependency names to repository coordinates, expands known
transitive companions, and caches downloaded artifacts.
"""

from .registry import (
    DEPENDENCY_REGISTRY,
    EXPANSION_RULES,
    MAVEN_CENTRAL,
    CachedArtifact,
    Coordinate,
    ExpansionRule,
    expand_transitive,
    lookup_coordinate,
)
from .resolver import DEFAULT_FETCH_TIMEOUT, DependencyResolver

__all__ = [
    "DEPENDENCY_REGISTRY",
    "EXPANSION_RULES",
    "MAVEN_CENTRAL",
    "CachedArtifact",
    "Coordinate",
    "ExpansionRule",
    "expand_transitive",
    "lookup_coordinate",
    "DEFAULT_FETCH_TIMEOUT",
    "DependencyResolver",
]
