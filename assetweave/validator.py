"""
Manifest validator - checks the graph invariants resolvers must preserve.
"""

from typing import List, Set

from .errors import (
    DanglingAliasError,
    DependencyCycleError,
    GraphConsistencyError,
    UnknownAssetError,
    ValidationReport,
)
from .graph import DependencyGraph
from .manifest import Manifest
from .operations import find_dangling_aliases


class ManifestValidator:
    """
    Validates a manifest.

    Checks:
    - No asset id is both present and aliased
    - Every dependency is a present asset or an alias
    - Every alias target resolves to a module
    - The asset graph is acyclic
    - Every non-entry asset is reachable from an entry (warning only, since
      it holds after pruning but not before)
    """

    def validate(self, manifest: Manifest) -> ValidationReport:
        report = ValidationReport()

        self._validate_alias_exclusivity(manifest, report)
        self._validate_dependencies(manifest, report)
        self._validate_alias_targets(manifest, report)
        self._validate_acyclic(manifest, report)
        self._validate_reachability(manifest, report)

        return report

    def _validate_alias_exclusivity(self, manifest: Manifest, report: ValidationReport) -> None:
        for asset_id in manifest.assets:
            if asset_id in manifest.aliases:
                report.add_error(
                    GraphConsistencyError(
                        f"Asset '{asset_id}' is both present and aliased",
                        asset_id=asset_id,
                    )
                )

    def _validate_dependencies(self, manifest: Manifest, report: ValidationReport) -> None:
        for asset_id, asset in manifest.assets.items():
            for dependency_id in asset.dependencies:
                if dependency_id not in manifest.assets and dependency_id not in manifest.aliases:
                    report.add_error(UnknownAssetError(dependency_id, dependent=asset_id))

    def _validate_alias_targets(self, manifest: Manifest, report: ValidationReport) -> None:
        dangling = find_dangling_aliases(manifest)
        if dangling:
            report.add_error(DanglingAliasError(dangling))

    def _validate_acyclic(self, manifest: Manifest, report: ValidationReport) -> None:
        graph = DependencyGraph()
        for asset_id, asset in manifest.assets.items():
            graph.add_node(asset_id, [d for d in asset.dependencies if d in manifest.assets])

        cycle = graph.find_cycle()
        if cycle:
            report.add_error(DependencyCycleError(cycle=cycle))

    def _validate_reachability(self, manifest: Manifest, report: ValidationReport) -> None:
        reachable: Set[str] = set()
        pending: List[str] = list(manifest.entry_assets)

        while pending:
            asset_id = pending.pop()
            if asset_id in reachable or asset_id not in manifest.assets:
                continue
            reachable.add(asset_id)
            pending.extend(manifest.assets[asset_id].dependencies)

        for asset_id in manifest.assets:
            if asset_id not in reachable:
                report.add_warning(f"Asset '{asset_id}' is not reachable from any entry asset")


def validate_manifest(manifest: Manifest) -> ValidationReport:
    """Shortcut for ``ManifestValidator().validate(manifest)``."""
    return ManifestValidator().validate(manifest)
