"""
Manifest resolvers - pipeline stages run on the merged manifest.
"""

from .base import ResolveContext, Resolver
from .shared_dependencies import (
    Requirer,
    SharedDependencyResolver,
    smallest_version_set,
    subsequences,
)

__all__ = [
    "ResolveContext",
    "Resolver",
    "Requirer",
    "SharedDependencyResolver",
    "smallest_version_set",
    "subsequences",
]
