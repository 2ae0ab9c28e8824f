"""
Assetweave - shared-dependency optimizer for independently built bundles.

Merges the manifests of several separately compiled entry points, keeps
the fewest concrete versions of each shared package that still satisfy
every module's version range, and assembles the remaining assets in
dependency order.
"""

__version__ = "0.3.0"

from .manifest import (
    AliasRecord,
    AssetRecord,
    Manifest,
    ModuleAlias,
)

from .errors import (
    CandidateLimitError,
    DanglingAliasError,
    DependencyCycleError,
    FetchFailureError,
    GraphConsistencyError,
    InvalidRangeError,
    InvalidVersionError,
    MalformedManifestError,
    UnknownAssetError,
    UnknownEntryError,
    ValidationReport,
    WeaveError,
)

from .config import ConfigError, ConfigLoader, WeaveConfig

from .versions import VersionRange, parse_version, satisfies, sort_versions

from .merge import merge_manifests

from .operations import (
    alias,
    find_dangling_aliases,
    prune,
    resolve_module,
    validate_aliases,
)

from .resolvers import (
    ResolveContext,
    Resolver,
    SharedDependencyResolver,
)

from .graph import DependencyGraph

from .assembly import BundleAssembler, assembly_order, build_asset_graph

from .aliasing import AliasRenderer, JinjaAliasRenderer

from .store import (
    FilesystemAssetSource,
    FilesystemManifestStore,
    ManifestStore,
    MemoryManifestStore,
)

from .validator import ManifestValidator, validate_manifest

from .fingerprint import FingerprintGenerator, manifest_fingerprint

from .optimizer import (
    AssetOptimizer,
    merge_only,
    parse_entries,
    resolve_and_assemble,
    resolve_only,
)

__all__ = [
    # Manifest
    "AliasRecord",
    "AssetRecord",
    "Manifest",
    "ModuleAlias",

    # Errors
    "CandidateLimitError",
    "DanglingAliasError",
    "DependencyCycleError",
    "FetchFailureError",
    "GraphConsistencyError",
    "InvalidRangeError",
    "InvalidVersionError",
    "MalformedManifestError",
    "UnknownAssetError",
    "UnknownEntryError",
    "ValidationReport",
    "WeaveError",

    # Config
    "ConfigError",
    "ConfigLoader",
    "WeaveConfig",

    # Versions
    "VersionRange",
    "parse_version",
    "satisfies",
    "sort_versions",

    # Merge & operations
    "merge_manifests",
    "alias",
    "prune",
    "resolve_module",
    "find_dangling_aliases",
    "validate_aliases",

    # Resolvers
    "ResolveContext",
    "Resolver",
    "SharedDependencyResolver",

    # Assembly
    "DependencyGraph",
    "BundleAssembler",
    "assembly_order",
    "build_asset_graph",
    "AliasRenderer",
    "JinjaAliasRenderer",

    # Stores
    "ManifestStore",
    "MemoryManifestStore",
    "FilesystemManifestStore",
    "FilesystemAssetSource",

    # Diagnostics
    "ManifestValidator",
    "validate_manifest",
    "FingerprintGenerator",
    "manifest_fingerprint",

    # Pipeline
    "AssetOptimizer",
    "merge_only",
    "resolve_only",
    "resolve_and_assemble",
    "parse_entries",
]
