"""
Assembly - order the final manifest and concatenate asset content.

Content fetches run concurrently, but the payload is always stitched
together in topological order, so concurrency only affects latency.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from .aliasing import AliasRenderer
from .config import WeaveConfig
from .errors import FetchFailureError, UnknownAssetError, WeaveError
from .graph import DependencyGraph
from .manifest import Manifest

logger = logging.getLogger("assetweave.assembly")

Fetcher = Callable[[str], Union[str, bytes, Awaitable[Union[str, bytes]]]]


def build_asset_graph(manifest: Manifest, roots: Optional[Sequence[str]] = None) -> DependencyGraph:
    """
    Build the graph of assets reachable from ``roots``.

    Args:
        manifest: Final (resolved) manifest
        roots: Asset ids to start from; defaults to the entry assets, or to
            every asset when none is flagged as entry

    Raises:
        UnknownAssetError: If a dependency is neither an asset nor an alias
    """
    if roots is None:
        roots = manifest.entry_assets or list(manifest.assets)

    graph = DependencyGraph()
    pending = deque(roots)
    seen = set()

    for root in roots:
        if root not in manifest.assets and root not in manifest.aliases:
            raise UnknownAssetError(root, dependent="(request)")

    while pending:
        asset_id = pending.popleft()
        if asset_id in seen:
            continue
        seen.add(asset_id)

        asset = manifest.assets.get(asset_id)
        if asset is None:
            # Alias ids are leaves
            graph.add_node(asset_id, [])
            continue

        for dependency_id in asset.dependencies:
            if dependency_id not in manifest.assets and dependency_id not in manifest.aliases:
                raise UnknownAssetError(dependency_id, dependent=asset_id)

        graph.add_node(asset_id, list(asset.dependencies))
        pending.extend(asset.dependencies)

    return graph


def assembly_order(manifest: Manifest, roots: Optional[Sequence[str]] = None) -> List[str]:
    """Asset and alias ids in delivery order, dependencies first."""
    return build_asset_graph(manifest, roots).topological_sort()


class BundleAssembler:
    """
    Fetches and concatenates the assets of a final manifest.

    Args:
        fetch: Callable returning an asset's content by id (sync or async)
        config: Concurrency, timeout and separator settings
        alias_renderer: Produces fragments for aliased ids; ``None`` skips them
    """

    def __init__(
        self,
        fetch: Fetcher,
        config: Optional[WeaveConfig] = None,
        alias_renderer: Optional[AliasRenderer] = None,
    ):
        self.fetch = fetch
        self.config = config or WeaveConfig()
        self.alias_renderer = alias_renderer

    async def assemble(self, manifest: Manifest, roots: Optional[Sequence[str]] = None) -> str:
        """
        Produce the delivery payload.

        Raises:
            FetchFailureError: If any fetch fails or times out. Outstanding
                fetches are cancelled and nothing is returned.
            UnknownAssetError: If the graph references an unknown id
            DependencyCycleError: If the assets cannot be ordered
        """
        order = assembly_order(manifest, roots)
        logger.debug("Assembly order: %s", ", ".join(order))

        pieces: List[Optional[str]] = [None] * len(order)
        semaphore = asyncio.Semaphore(self.config.fetch_concurrency)
        tasks = {}

        for position, asset_id in enumerate(order):
            if asset_id in manifest.assets:
                tasks[position] = asyncio.ensure_future(self._fetch_one(asset_id, semaphore))
            elif self.alias_renderer is not None:
                pieces[position] = self.alias_renderer(asset_id, manifest.aliases[asset_id])

        try:
            results = await asyncio.gather(*tasks.values())
        except BaseException:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise

        for position, content in zip(tasks, results):
            pieces[position] = content

        payload = self.config.separator.join(piece for piece in pieces if piece is not None)
        logger.info("Assembled %d asset(s) into %d characters", len(tasks), len(payload))
        return payload

    def _fetch_is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.fetch) or inspect.iscoroutinefunction(
            getattr(self.fetch, "__call__", None)
        )

    async def _call_fetch(self, asset_id: str) -> Union[str, bytes]:
        if self._fetch_is_async():
            return await self.fetch(asset_id)

        # Blocking fetchers run on the default executor
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.fetch, asset_id)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _fetch_one(self, asset_id: str, semaphore: asyncio.Semaphore) -> str:
        async with semaphore:
            try:
                result = await asyncio.wait_for(
                    self._call_fetch(asset_id), timeout=self.config.effective_timeout
                )
            except asyncio.TimeoutError as exc:
                raise FetchFailureError(asset_id, TimeoutError(f"after {self.config.fetch_timeout}s")) from exc
            except WeaveError:
                raise
            except Exception as exc:
                raise FetchFailureError(asset_id, exc) from exc

        if isinstance(result, bytes):
            result = result.decode("utf-8")
        if not isinstance(result, str):
            raise FetchFailureError(asset_id, TypeError(f"fetch returned {type(result).__name__}"))

        logger.debug("Fetched %s (%d characters)", asset_id, len(result))
        return result
