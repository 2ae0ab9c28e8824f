"""
Graph mutation primitives shared by every resolver.

Both operations are functional: they return a new :class:`Manifest` and
leave the one passed in untouched.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from .errors import DanglingAliasError
from .manifest import AliasRecord, Manifest, ModuleAlias

logger = logging.getLogger("assetweave.operations")


def alias(manifest: Manifest, asset_id: str, module_aliases: Iterable[ModuleAlias]) -> Manifest:
    """
    Replace an asset with an alias record.

    Dependency edges of other assets are left as they are; call
    :func:`prune` afterwards to drop assets that became unreferenced.

    Args:
        manifest: Manifest to derive from
        asset_id: Asset to remove
        module_aliases: Redirects for the asset's modules

    Returns:
        New manifest without ``asset_id`` in ``assets`` and with it in ``aliases``
    """
    assets = dict(manifest.assets)
    assets.pop(asset_id, None)

    aliases = dict(manifest.aliases)
    aliases[asset_id] = AliasRecord(modules=tuple(module_aliases))

    logger.debug("Aliased asset %s (%d module(s))", asset_id, len(aliases[asset_id].modules))
    return manifest.evolve(assets=assets, aliases=aliases)


def prune(manifest: Manifest) -> Manifest:
    """
    Remove non-entry assets that no present asset depends on.

    Reference counts only consider assets that are still present. Removing
    an asset decrements its dependencies and moves them to the back of the
    work queue, so cascades of any depth settle without recursion.

    Returns:
        New manifest with unreferenced assets removed
    """
    assets = dict(manifest.assets)

    references: Dict[str, int] = {asset_id: 0 for asset_id in assets}
    for asset_id, asset in assets.items():
        for dependency_id in set(asset.dependencies):
            if dependency_id in references and dependency_id != asset_id:
                references[dependency_id] += 1

    queue: "OrderedDict[str, None]" = OrderedDict.fromkeys(references)
    removed: List[str] = []

    while queue:
        asset_id, _ = queue.popitem(last=False)
        asset = assets.get(asset_id)

        if asset is None:
            continue

        if asset.is_entry or references[asset_id] > 0:
            continue

        del assets[asset_id]
        removed.append(asset_id)

        for dependency_id in set(asset.dependencies):
            if dependency_id not in references or dependency_id == asset_id:
                continue
            references[dependency_id] -= 1
            queue.pop(dependency_id, None)
            queue[dependency_id] = None

    if not removed:
        return manifest

    logger.info("Pruned %d unreferenced asset(s): %s", len(removed), ", ".join(removed))
    return manifest.evolve(assets=assets)


def resolve_module(manifest: Manifest, module_id: str) -> Optional[str]:
    """
    Follow alias redirects from ``module_id`` to a module present in the manifest.

    Returns:
        The final module id, or ``None`` if the chain dangles or loops
    """
    redirects = {
        module.source: module.target
        for record in manifest.aliases.values()
        for module in record.modules
    }

    seen = set()
    current = module_id
    while current not in manifest.modules:
        if current in seen or current not in redirects:
            return None
        seen.add(current)
        current = redirects[current]
    return current


def find_dangling_aliases(manifest: Manifest) -> List[Dict[str, str]]:
    """List alias entries whose target does not resolve to a module."""
    dangling = []
    for asset_id, record in manifest.aliases.items():
        for module in record.modules:
            if resolve_module(manifest, module.target) is None:
                dangling.append({"asset": asset_id, "from": module.source, "to": module.target})
    return dangling


def validate_aliases(manifest: Manifest) -> Manifest:
    """
    Raise if any alias target is unresolvable.

    Raises:
        DanglingAliasError: If at least one alias dangles
    """
    dangling = find_dangling_aliases(manifest)
    if dangling:
        raise DanglingAliasError(dangling)
    return manifest
