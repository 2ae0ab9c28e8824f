"""
Resolver contract.

A resolver owns one top-level manifest section. It merges that section
from all entry manifests and, once the merged graph exists, returns the
next version of the manifest.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple

from ..config import WeaveConfig
from ..manifest import Manifest


@dataclass(frozen=True)
class ResolveContext:
    """Request-scoped data handed to every resolver in the pipeline."""

    entries: Tuple[str, ...] = ()
    url: Optional[str] = None
    config: WeaveConfig = field(default_factory=WeaveConfig)


class Resolver:
    """Base class for manifest resolvers."""

    key: str = ""

    def merge_manifests(self, manifests: Sequence[Manifest]) -> Any:
        """
        Merge this resolver's section across entry manifests.

        The return value becomes ``sections[self.key]`` of the merged manifest.
        """
        raise NotImplementedError

    def resolve(self, manifest: Manifest, context: ResolveContext) -> Manifest:
        """Return the next version of ``manifest``. Must not mutate it."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(key={self.key!r})"
