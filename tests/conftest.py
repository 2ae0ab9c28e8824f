"""
Shared test fixtures and helpers for the Assetweave test suite.
"""

import pytest
from typing import Any, Dict, List, Optional, Sequence, Tuple

from assetweave.config import WeaveConfig


# ============================================================================
# Manifest document builders
# ============================================================================


def make_asset(
    dependencies: Sequence[str] = (),
    modules: Sequence[str] = (),
    is_entry: bool = False,
) -> Dict[str, Any]:
    """Build one serialized asset record."""
    data: Dict[str, Any] = {
        "dependencies": list(dependencies),
        "modules": list(modules),
    }
    if is_entry:
        data["isEntry"] = True
    return data


def make_entry_manifest(
    name: str,
    requirements: Sequence[Tuple[str, str, str]] = (),
    *,
    package_dependencies: Optional[Dict[str, List[str]]] = None,
) -> Dict[str, Any]:
    """
    Build the manifest of one entry compilation.

    Args:
        name: Entry name; the entry asset is ``<name>.js`` holding module ``<name>``
        requirements: ``(package, concrete_version, semver_range)`` declared by
            the entry module
        package_dependencies: ``"pkg@version"`` -> asset ids that package's
            asset depends on
    """
    package_dependencies = package_dependencies or {}
    entry_deps = [f"{pkg}@{version}.js" for pkg, version, _ in requirements]

    assets = {f"{name}.js": make_asset(entry_deps, [name], is_entry=True)}
    modules: Dict[str, Any] = {name: {}}

    for pkg, version, _ in requirements:
        module_id = f"{pkg}@{version}/index.js"
        assets[f"{pkg}@{version}.js"] = make_asset(
            package_dependencies.get(f"{pkg}@{version}", []),
            [module_id],
        )
        modules[module_id] = {}

    return {
        "assets": assets,
        "modules": modules,
        "sharedDependencies": {
            "modules": {
                name: {
                    pkg: {"concreteVersion": version, "semverRange": semver_range}
                    for pkg, version, semver_range in requirements
                }
            }
        },
    }


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def asset_factory():
    return make_asset


@pytest.fixture
def entry_factory():
    return make_entry_manifest


@pytest.fixture
def config():
    return WeaveConfig()


@pytest.fixture
def cover_manifests() -> Dict[str, Dict[str, Any]]:
    """
    Six entries on ``dep`` 1.0.1 - 1.0.6 whose only minimum cover is
    {1.0.2, 1.0.4}.
    """
    ranges = [
        ("m1", "1.0.1", ">=1.0.1 <1.0.3"),
        ("m2", "1.0.2", ">=1.0.2 <1.0.3"),
        ("m3", "1.0.3", ">=1.0.2 <1.0.5"),
        ("m4", "1.0.4", ">=1.0.4 <1.0.5"),
        ("m5", "1.0.5", ">=1.0.4 <1.0.7"),
        ("m6", "1.0.6", ">=1.0.4 <1.0.7"),
    ]
    return {
        name: make_entry_manifest(name, [("dep", version, semver_range)])
        for name, version, semver_range in ranges
    }


@pytest.fixture
def react_manifests() -> Dict[str, Dict[str, Any]]:
    """Two entries built against compatible react versions."""
    return {
        "feature-a": make_entry_manifest("feature-a", [("react", "16.8.0", "^16.0.0")]),
        "feature-b": make_entry_manifest("feature-b", [("react", "16.8.1", "^16.8.1")]),
    }
