"""
Manifest merge - combine independently built entry manifests into one graph.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence, Union

from .manifest import AliasRecord, AssetRecord, Manifest, concat_unique

logger = logging.getLogger("assetweave.merge")

ManifestLike = Union[Manifest, Mapping[str, Any]]


def coerce_manifests(manifests: Sequence[ManifestLike]) -> List[Manifest]:
    """
    Parse raw manifest documents.

    Every input is validated before anything is merged, so a malformed
    input fails the whole request.
    """
    parsed = []
    for index, manifest in enumerate(manifests):
        if isinstance(manifest, Manifest):
            parsed.append(manifest)
        else:
            parsed.append(Manifest.from_dict(manifest, entry=f"#{index}"))
    return parsed


def merge_manifests(manifests: Sequence[ManifestLike], resolvers: Sequence[Any] = ()) -> Manifest:
    """
    Merge entry manifests.

    - Assets are unioned by id; when an id recurs, its ``dependencies`` and
      ``modules`` lists are set-unioned.
    - Modules are unioned by id (same id means same code).
    - Each resolver merges its own top-level section from all inputs.

    Args:
        manifests: Ordered per-entry manifests
        resolvers: Configured resolvers, each owning one section

    Returns:
        Merged manifest

    Raises:
        MalformedManifestError: If an input is malformed
    """
    inputs = coerce_manifests(manifests)

    assets: Dict[str, AssetRecord] = {}
    modules: Dict[str, Any] = {}
    aliases: Dict[str, AliasRecord] = {}

    for manifest in inputs:
        for asset_id, asset in manifest.assets.items():
            if asset_id in assets:
                assets[asset_id] = assets[asset_id].union(asset)
            else:
                assets[asset_id] = asset

        modules.update(manifest.modules)

        for asset_id, record in manifest.aliases.items():
            if asset_id in aliases:
                record = AliasRecord(
                    modules=concat_unique(aliases[asset_id].modules, record.modules)
                )
            aliases[asset_id] = record

    sections: Dict[str, Any] = {}
    for resolver in resolvers:
        sections[resolver.key] = resolver.merge_manifests(inputs)

    claimed = set(sections)
    for manifest in inputs:
        for key in manifest.sections:
            if key not in claimed:
                logger.debug(
                    "Dropping section %r of manifest %s: no resolver merges it",
                    key, manifest.entry,
                )

    merged = Manifest(assets=assets, modules=modules, aliases=aliases, sections=sections)
    logger.debug(
        "Merged %d manifest(s): %d asset(s), %d module(s)",
        len(inputs), len(assets), len(modules),
    )
    return merged
