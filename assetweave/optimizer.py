"""
AssetOptimizer - merge, resolve and assemble the entries of one request.

Request flow::

    entries ──► merge_manifests ──► resolver₁ ──► resolver₂ ──► … ──► assemble
                                (each stage yields the next manifest value)

The delivery layer calls :func:`resolve_and_assemble` (or
``AssetOptimizer.compile_url`` with the request URL); :func:`merge_only`
and :func:`resolve_only` expose the intermediate manifests for diagnostics.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union
from urllib.parse import parse_qs, urlsplit

from .aliasing import AliasRenderer, JinjaAliasRenderer
from .assembly import BundleAssembler, Fetcher
from .config import WeaveConfig
from .errors import WeaveError
from .manifest import Manifest
from .merge import merge_manifests
from .operations import validate_aliases
from .resolvers import ResolveContext, Resolver, SharedDependencyResolver
from .store import ManifestStore, MemoryManifestStore

logger = logging.getLogger("assetweave.optimizer")

Manifests = Union[ManifestStore, Mapping[str, Union[Manifest, Mapping[str, Any]]]]


def default_resolvers() -> List[Resolver]:
    return [SharedDependencyResolver()]


def parse_entries(url: str) -> List[str]:
    """
    Read the requested entry names from a delivery URL.

    Example:
        >>> parse_entries("https://cdn.example.com/bundle.js?entries=feature-a,feature-b")
        ['feature-a', 'feature-b']
    """
    query = parse_qs(urlsplit(url).query)
    entries = [
        name.strip()
        for value in query.get("entries", [])
        for name in value.split(",")
        if name.strip()
    ]
    if not entries:
        raise WeaveError(
            f"Request names no entries: {url}",
            suggestion="Pass a comma-separated list, e.g. ?entries=feature-a,feature-b",
        )
    return entries


class AssetOptimizer:
    """
    Request pipeline over a set of entry manifests.

    Args:
        manifests: Entry name -> manifest (store, Manifest values or documents)
        fetch: Asset content collaborator, required for assembly
        resolvers: Ordered resolver pipeline; defaults to shared dependency
            resolution
        config: Optimizer settings
        alias_renderer: Alias fragment renderer; defaults to
            ``JinjaAliasRenderer`` when ``config.emit_alias_shims`` is set
    """

    def __init__(
        self,
        manifests: Manifests,
        fetch: Optional[Fetcher] = None,
        *,
        resolvers: Optional[Sequence[Resolver]] = None,
        config: Optional[WeaveConfig] = None,
        alias_renderer: Optional[AliasRenderer] = None,
    ):
        if isinstance(manifests, ManifestStore):
            self.manifests = manifests
        else:
            self.manifests = MemoryManifestStore(manifests)

        self.fetch = fetch
        self.resolvers = list(resolvers) if resolvers is not None else default_resolvers()
        self.config = config or WeaveConfig()

        if alias_renderer is None and self.config.emit_alias_shims:
            alias_renderer = JinjaAliasRenderer()
        self.alias_renderer = alias_renderer

    def _entries(self, entries: Sequence[str]) -> List[str]:
        unique = list(dict.fromkeys(entries))
        if not unique:
            raise WeaveError("No entries requested")
        return unique

    def merge(self, entries: Sequence[str]) -> Manifest:
        """Merge the manifests of ``entries`` (request order)."""
        entries = self._entries(entries)
        return merge_manifests(self.manifests.get_many(entries), self.resolvers)

    def resolve(self, entries: Sequence[str], *, url: Optional[str] = None) -> Manifest:
        """
        Merge and run the resolver pipeline.

        Raises:
            DanglingAliasError: If ``config.validate_aliases`` is set and a
                resolver left an alias without a target module
        """
        entries = self._entries(entries)
        manifest = self.merge(entries)
        context = ResolveContext(entries=tuple(entries), url=url, config=self.config)

        for resolver in self.resolvers:
            logger.debug("Running resolver %r", resolver)
            manifest = resolver.resolve(manifest, context)

        if self.config.validate_aliases:
            validate_aliases(manifest)

        return manifest

    async def compile_script(self, entries: Sequence[str], *, url: Optional[str] = None) -> str:
        """Resolve ``entries`` and return the concatenated delivery payload."""
        if self.fetch is None:
            raise WeaveError("AssetOptimizer has no fetch collaborator")

        manifest = self.resolve(entries, url=url)
        assembler = BundleAssembler(self.fetch, self.config, self.alias_renderer)
        return await assembler.assemble(manifest)

    async def compile_url(self, url: str) -> str:
        """Serve a delivery request URL (``...?entries=a,b``)."""
        return await self.compile_script(parse_entries(url), url=url)


def merge_only(
    entry_names: Sequence[str],
    manifests: Manifests,
    *,
    resolvers: Optional[Sequence[Resolver]] = None,
) -> Manifest:
    """Merged manifest for ``entry_names``, before any resolver runs."""
    return AssetOptimizer(manifests, resolvers=resolvers).merge(entry_names)


def resolve_only(
    entry_names: Sequence[str],
    manifests: Manifests,
    *,
    resolvers: Optional[Sequence[Resolver]] = None,
    config: Optional[WeaveConfig] = None,
) -> Manifest:
    """Final manifest for ``entry_names`` after the resolver pipeline."""
    return AssetOptimizer(manifests, resolvers=resolvers, config=config).resolve(entry_names)


async def resolve_and_assemble(
    entry_names: Sequence[str],
    manifests: Manifests,
    fetch: Fetcher,
    *,
    resolvers: Optional[Sequence[Resolver]] = None,
    config: Optional[WeaveConfig] = None,
    alias_renderer: Optional[AliasRenderer] = None,
) -> str:
    """
    Merge, resolve and assemble ``entry_names`` into one payload.

    Raises:
        WeaveError: Any failure; nothing partial is returned
    """
    optimizer = AssetOptimizer(
        manifests,
        fetch,
        resolvers=resolvers,
        config=config,
        alias_renderer=alias_renderer,
    )
    return await optimizer.compile_script(entry_names)
