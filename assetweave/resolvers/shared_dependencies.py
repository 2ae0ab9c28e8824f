"""
Shared dependency resolver.

Removes redundant concrete versions of external packages from the merged
manifest and aliases each removed version to a retained one, without
breaking any module's declared version range.

Section shape (merged manifest)::

    "sharedDependencies": {
        "modules": {
            "module1": {
                "react": {"concreteVersions": ["16.8.1"], "semverRange": "^16.0.0"}
            }
        }
    }

Entry manifests produced by the compiler report a single
``concreteVersion`` per declaration; merging collects them into
``concreteVersions``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import CandidateLimitError, MalformedManifestError
from ..manifest import Manifest, ModuleAlias, concat_unique
from ..operations import alias, prune
from ..versions import VersionRange, sort_versions
from .base import ResolveContext, Resolver

logger = logging.getLogger("assetweave.resolvers.shared")


@dataclass(frozen=True)
class Requirer:
    """A module's declared dependency on one external package."""

    module_id: str
    concrete_versions: Tuple[str, ...]
    semver_range: str


def _declarations(section: Any, entry: Optional[str]) -> Mapping[str, Mapping[str, Any]]:
    path = "sharedDependencies.modules"
    if not isinstance(section, Mapping) or not isinstance(section.get("modules", {}), Mapping):
        raise MalformedManifestError(path, "must be a mapping", entry=entry)

    modules = section.get("modules", {})
    for module_id, packages in modules.items():
        if not isinstance(packages, Mapping):
            raise MalformedManifestError(f"{path}[{module_id!r}]", "must be a mapping", entry=entry)
        for package, declaration in packages.items():
            where = f"{path}[{module_id!r}][{package!r}]"
            if not isinstance(declaration, Mapping):
                raise MalformedManifestError(where, "must be a mapping", entry=entry)
            if not isinstance(declaration.get("semverRange"), str):
                raise MalformedManifestError(f"{where}.semverRange", "must be a string", entry=entry)
            if "concreteVersions" not in declaration and not isinstance(
                declaration.get("concreteVersion"), str
            ):
                raise MalformedManifestError(f"{where}.concreteVersion", "must be a string", entry=entry)
            versions = declaration.get("concreteVersions", [])
            if not isinstance(versions, (list, tuple)) or not all(isinstance(v, str) for v in versions):
                raise MalformedManifestError(f"{where}.concreteVersions", "must be a list of strings", entry=entry)
    return modules


def _concrete_versions(declaration: Mapping[str, Any]) -> Tuple[str, ...]:
    versions = list(declaration.get("concreteVersions", []))
    if "concreteVersion" in declaration:
        versions.append(declaration["concreteVersion"])
    return concat_unique(versions)


def subsequences(sequence: Sequence[Any]) -> Iterator[List[Any]]:
    """
    Yield every non-empty subsequence of ``sequence``.

    Subsets are enumerated by ascending bitmask index; bit ``j`` selects
    ``sequence[j]``.
    """
    for index in range(1, 2 ** len(sequence)):
        yield [item for j, item in enumerate(sequence) if index & (1 << j)]


def smallest_version_set(replacements: Mapping[str, Sequence[str]]) -> List[str]:
    """
    Exact minimum set cover over replacement candidates.

    Args:
        replacements: Candidate version -> versions it can stand in for

    Returns:
        Smallest list of candidates whose replaceable sets cover every
        replaceable version. Among equal sizes, the first subset in
        enumeration order wins. Empty if there are no candidates.
    """
    candidates = list(replacements)
    universe: Set[str] = set()
    for replaceable in replacements.values():
        universe.update(replaceable)

    fewest: Optional[List[str]] = None
    for subset in subsequences(candidates):
        if fewest is not None and len(subset) >= len(fewest):
            continue

        covered: Set[str] = set()
        for candidate in subset:
            covered.update(replacements[candidate])

        if len(covered) == len(universe):
            fewest = subset

    return fewest or []


class SharedDependencyResolver(Resolver):
    """Keep the fewest concrete versions of each shared package."""

    key = "sharedDependencies"

    def merge_manifests(self, manifests: Sequence[Manifest]) -> Dict[str, Any]:
        """
        Union per-module package declarations across entry manifests.

        Module ids are content-derived, so a recurring id is the same code
        with the same range; only the concrete version can differ between
        compilations. If ranges do differ, the first one seen is kept.
        """
        merged: Dict[str, Dict[str, Dict[str, Any]]] = {}

        for manifest in manifests:
            if self.key not in manifest.sections:
                continue

            modules = _declarations(manifest.sections[self.key], manifest.entry)
            for module_id, packages in modules.items():
                target = merged.setdefault(module_id, {})
                for package, declaration in packages.items():
                    versions = _concrete_versions(declaration)
                    if package not in target:
                        target[package] = {
                            "concreteVersions": list(versions),
                            "semverRange": declaration["semverRange"],
                        }
                        continue

                    existing = target[package]
                    if existing["semverRange"] != declaration["semverRange"]:
                        logger.warning(
                            "Module %s declares %s as %r and %r; keeping %r",
                            module_id, package, existing["semverRange"],
                            declaration["semverRange"], existing["semverRange"],
                        )
                    existing["concreteVersions"] = list(
                        concat_unique(existing["concreteVersions"], versions)
                    )

        return {"modules": merged}

    def resolve(self, manifest: Manifest, context: ResolveContext) -> Manifest:
        """
        Remove redundant versions of every shared package.

        Args:
            manifest: Merged manifest
            context: Request context (config supplies the asset extension
                and the candidate limit)

        Returns:
            New manifest with redundant version assets aliased and pruned
        """
        section = manifest.section(self.key)
        if not section:
            return manifest

        for package, requirers in self.collect_requirers(manifest).items():
            manifest = self.resolve_package(manifest, package, requirers, context)

        return manifest

    def collect_requirers(self, manifest: Manifest) -> Dict[str, List[Requirer]]:
        """Map each package name to the modules that declare it."""
        modules = _declarations(manifest.section(self.key), manifest.entry)

        requirers: Dict[str, List[Requirer]] = {}
        for module_id, packages in modules.items():
            for package, declaration in packages.items():
                requirers.setdefault(package, []).append(
                    Requirer(
                        module_id=module_id,
                        concrete_versions=_concrete_versions(declaration),
                        semver_range=declaration["semverRange"],
                    )
                )
        return requirers

    def aggregate_ranges(self, requirers: Sequence[Requirer]) -> Dict[str, VersionRange]:
        """
        Intersect the ranges of every requirer tied to each concrete version.

        An alias applies to every module built against the removed version,
        so a replacement must satisfy all of them, not just one.
        """
        aggregate: Dict[str, VersionRange] = {}
        for requirer in requirers:
            version_range = VersionRange.parse(requirer.semver_range)
            for version in requirer.concrete_versions:
                if version in aggregate:
                    aggregate[version] = aggregate[version].intersect(version_range)
                else:
                    aggregate[version] = version_range
        return aggregate

    def replacement_candidates(self, aggregate: Mapping[str, VersionRange]) -> Dict[str, List[str]]:
        """
        Map each concrete version to the versions it can stand in for.

        Only versions that can replace at least one other version are
        candidates.
        """
        candidates: Dict[str, List[str]] = {}
        for version in aggregate:
            replaceable = [
                other for other, version_range in aggregate.items()
                if version_range.satisfied_by(version)
            ]
            if len(replaceable) > 1:
                candidates[version] = replaceable
        return candidates

    def resolve_package(
        self,
        manifest: Manifest,
        package: str,
        requirers: Sequence[Requirer],
        context: ResolveContext,
    ) -> Manifest:
        """Solve one package's version constraints and alias redundant versions."""
        config = context.config
        candidates = self.replacement_candidates(self.aggregate_ranges(requirers))

        if not candidates:
            return manifest

        if len(candidates) > config.max_candidates:
            if config.strict_candidate_limit:
                raise CandidateLimitError(package, len(candidates), config.max_candidates)
            logger.warning(
                "Leaving %s unresolved: %d candidates exceeds limit of %d",
                package, len(candidates), config.max_candidates,
            )
            return manifest

        kept = sort_versions(smallest_version_set(candidates))
        logger.debug("Keeping %s versions: %s", package, ", ".join(kept))

        # Kept versions are never aliased away by another kept version
        claimed: Set[str] = set(kept)
        for replacing in kept:
            for replaceable in candidates[replacing]:
                if replaceable in claimed:
                    continue
                claimed.add(replaceable)
                manifest = self._alias_version(manifest, package, replaceable, replacing, config.asset_extension)

        return prune(manifest)

    def _alias_version(
        self,
        manifest: Manifest,
        package: str,
        removed: str,
        kept: str,
        extension: str,
    ) -> Manifest:
        removed_id = f"{package}@{removed}"
        kept_id = f"{package}@{kept}"
        asset_id = removed_id + extension

        if asset_id in manifest.aliases and asset_id not in manifest.assets:
            return manifest

        module_aliases = [
            ModuleAlias(source=module_id, target=module_id.replace(removed_id, kept_id, 1))
            for module_id in manifest.modules
            if module_id == removed_id or module_id.startswith(removed_id + "/")
        ]

        logger.info("Aliasing %s to %s (%d module(s))", asset_id, kept_id + extension, len(module_aliases))
        return alias(manifest, asset_id, module_aliases)
