"""
Shared dependency resolver: version aggregation, minimum set cover and
alias generation.
"""

import logging

import pytest

from assetweave.config import WeaveConfig
from assetweave.errors import CandidateLimitError, InvalidRangeError
from assetweave.manifest import ModuleAlias
from assetweave.merge import merge_manifests
from assetweave.operations import find_dangling_aliases
from assetweave.resolvers import (
    ResolveContext,
    SharedDependencyResolver,
    smallest_version_set,
    subsequences,
)
from assetweave.validator import validate_manifest


def merged(documents):
    return merge_manifests(list(documents), [SharedDependencyResolver()])


def resolve(documents, **config):
    manifest = merged(documents)
    context = ResolveContext(config=WeaveConfig(**config))
    return manifest, SharedDependencyResolver().resolve(manifest, context)


# ============================================================================
# Set cover
# ============================================================================

class TestSubsequences:

    def test_bitmask_order(self):
        assert list(subsequences(["a", "b", "c"])) == [
            ["a"], ["b"], ["a", "b"], ["c"], ["a", "c"], ["b", "c"], ["a", "b", "c"],
        ]

    def test_empty(self):
        assert list(subsequences([])) == []


class TestSmallestVersionSet:

    def test_single_candidate_covering_all(self):
        assert smallest_version_set({"1.0.1": ["1.0.0", "1.0.1"]}) == ["1.0.1"]

    def test_minimum_cover(self):
        replacements = {
            "1.0.2": ["1.0.1", "1.0.2", "1.0.3"],
            "1.0.4": ["1.0.3", "1.0.4", "1.0.5", "1.0.6"],
            "1.0.5": ["1.0.5", "1.0.6"],
            "1.0.6": ["1.0.5", "1.0.6"],
        }
        assert smallest_version_set(replacements) == ["1.0.2", "1.0.4"]

    def test_tie_resolves_to_first_in_enumeration(self):
        replacements = {
            "2.0.0": ["1.0.0", "2.0.0"],
            "3.0.0": ["1.0.0", "2.0.0", "3.0.0"],
            "4.0.0": ["1.0.0", "2.0.0", "3.0.0", "4.0.0"],
        }
        # {4.0.0} alone covers everything; it is the only size-1 cover
        assert smallest_version_set(replacements) == ["4.0.0"]

        equal = {"a": ["x", "y"], "b": ["x", "y"]}
        assert smallest_version_set(equal) == ["a"]

    def test_no_candidates(self):
        assert smallest_version_set({}) == []


# ============================================================================
# Candidate computation
# ============================================================================

class TestReplacementCandidates:

    def test_aggregate_intersects_per_version(self):
        resolver = SharedDependencyResolver()
        manifest = merged([
            {
                "assets": {}, "modules": {},
                "sharedDependencies": {"modules": {
                    "lib-a": {"dep": {"concreteVersion": "1.2.0", "semverRange": "^1.0.0"}},
                    "lib-b": {"dep": {"concreteVersion": "1.2.0", "semverRange": "~1.2.0"}},
                    "lib-c": {"dep": {"concreteVersion": "1.5.0", "semverRange": "^1.5.0"}},
                }},
            },
        ])

        requirers = resolver.collect_requirers(manifest)["dep"]
        aggregate = resolver.aggregate_ranges(requirers)

        # 1.5.0 satisfies lib-a's range but not lib-b's, so it cannot replace 1.2.0
        assert not aggregate["1.2.0"].satisfied_by("1.5.0")
        assert resolver.replacement_candidates(aggregate) == {}

    def test_candidate_needs_more_than_itself(self, react_manifests):
        resolver = SharedDependencyResolver()
        manifest = merged(react_manifests.values())

        aggregate = resolver.aggregate_ranges(resolver.collect_requirers(manifest)["react"])

        assert resolver.replacement_candidates(aggregate) == {"16.8.1": ["16.8.0", "16.8.1"]}


# ============================================================================
# Resolution
# ============================================================================

class TestResolve:

    def test_no_section_is_noop(self, entry_factory):
        manifest = merge_manifests([entry_factory("a")])
        assert SharedDependencyResolver().resolve(manifest, ResolveContext()) is manifest

    def test_disjoint_ranges_noop(self, entry_factory):
        before, after = resolve([
            entry_factory("a", [("react", "15.6.0", "^15.0.0")]),
            entry_factory("b", [("react", "16.8.0", "^16.0.0")]),
        ])

        assert after == before
        assert after.aliases == {}

    def test_compatible_versions_collapse(self, react_manifests):
        before, after = resolve(react_manifests.values())

        assert "react@16.8.0.js" not in after.assets
        assert "react@16.8.1.js" in after.assets
        assert after.aliases["react@16.8.0.js"].modules == (
            ModuleAlias("react@16.8.0/index.js", "react@16.8.1/index.js"),
        )
        # Dependency edges still point at the alias id
        assert after.assets["feature-a.js"].dependencies == ("react@16.8.0.js",)
        assert "react@16.8.0.js" in before.assets

    def test_minimum_cover(self, cover_manifests):
        _, after = resolve(cover_manifests.values())

        redirects = {
            alias_id: [(m.source, m.target) for m in record.modules]
            for alias_id, record in after.aliases.items()
        }
        assert redirects == {
            "dep@1.0.1.js": [("dep@1.0.1/index.js", "dep@1.0.2/index.js")],
            "dep@1.0.3.js": [("dep@1.0.3/index.js", "dep@1.0.2/index.js")],
            "dep@1.0.5.js": [("dep@1.0.5/index.js", "dep@1.0.4/index.js")],
            "dep@1.0.6.js": [("dep@1.0.6/index.js", "dep@1.0.4/index.js")],
        }

        kept = sorted(a for a in after.assets if a.startswith("dep@"))
        assert kept == ["dep@1.0.2.js", "dep@1.0.4.js"]

    def test_every_alias_resolves(self, cover_manifests):
        _, after = resolve(cover_manifests.values())

        assert find_dangling_aliases(after) == []
        assert not validate_manifest(after).has_errors()

    def test_no_asset_both_present_and_aliased(self, cover_manifests):
        _, after = resolve(cover_manifests.values())
        assert not set(after.assets) & set(after.aliases)

    def test_alias_covers_every_module_of_namespace(self, entry_factory):
        a = entry_factory("a", [("dep", "1.0.0", "^1.0.0")])
        a["assets"]["dep@1.0.0.js"]["modules"].append("dep@1.0.0/lib/util.js")
        a["modules"]["dep@1.0.0/lib/util.js"] = {}
        # Another package whose id merely starts with the same text
        a["modules"]["dep@1.0.0-extra/index.js"] = {}

        b = entry_factory("b", [("dep", "1.0.1", "^1.0.1")])
        b["assets"]["dep@1.0.1.js"]["modules"].append("dep@1.0.1/lib/util.js")
        b["modules"]["dep@1.0.1/lib/util.js"] = {}

        _, after = resolve([a, b])

        assert after.aliases["dep@1.0.0.js"].modules == (
            ModuleAlias("dep@1.0.0/index.js", "dep@1.0.1/index.js"),
            ModuleAlias("dep@1.0.0/lib/util.js", "dep@1.0.1/lib/util.js"),
        )

    def test_idempotent(self, cover_manifests):
        _, once = resolve(cover_manifests.values())
        twice = SharedDependencyResolver().resolve(once, ResolveContext())

        assert twice == once

    def test_does_not_mutate_input(self, react_manifests):
        before, _ = resolve(react_manifests.values())

        assert "react@16.8.0.js" in before.assets
        assert before.aliases == {}

    def test_invalid_range_raises(self, entry_factory):
        with pytest.raises(InvalidRangeError):
            resolve([
                entry_factory("a", [("dep", "1.0.0", "^x.y")]),
                entry_factory("b", [("dep", "1.0.1", "^1.0.0")]),
            ])

    def test_custom_asset_extension(self, entry_factory):
        documents = []
        for name, version in (("a", "1.0.0"), ("b", "1.0.1")):
            document = entry_factory(name, [("dep", version, f"^{version}")])
            document["assets"][f"dep@{version}.mjs"] = document["assets"].pop(f"dep@{version}.js")
            document["assets"][f"{name}.js"]["dependencies"] = [f"dep@{version}.mjs"]
            documents.append(document)

        _, after = resolve(documents, asset_extension=".mjs")

        assert "dep@1.0.0.mjs" in after.aliases
        assert "dep@1.0.0.mjs" not in after.assets


# ============================================================================
# Transitive dependencies
# ============================================================================

class TestTransitive:

    def _documents(self, entry_factory):
        a = entry_factory(
            "a", [("react", "16.8.0", "^16.0.0")],
            package_dependencies={"react@16.8.0": ["object-assign@4.1.0.js"]},
        )
        a["assets"]["object-assign@4.1.0.js"] = {"dependencies": [], "modules": ["object-assign@4.1.0/index.js"]}
        a["modules"]["object-assign@4.1.0/index.js"] = {}
        a["sharedDependencies"]["modules"]["react@16.8.0/index.js"] = {
            "object-assign": {"concreteVersion": "4.1.0", "semverRange": "^4.0.0"},
        }

        b = entry_factory(
            "b", [("react", "16.8.1", "^16.8.1")],
            package_dependencies={"react@16.8.1": ["object-assign@4.1.1.js"]},
        )
        b["assets"]["object-assign@4.1.1.js"] = {"dependencies": [], "modules": ["object-assign@4.1.1/index.js"]}
        b["modules"]["object-assign@4.1.1/index.js"] = {}
        b["sharedDependencies"]["modules"]["react@16.8.1/index.js"] = {
            "object-assign": {"concreteVersion": "4.1.1", "semverRange": "^4.1.1"},
        }
        return a, b

    def test_removed_version_dependencies_are_pruned(self, entry_factory):
        _, after = resolve(self._documents(entry_factory))

        assert "react@16.8.0.js" not in after.assets
        assert "object-assign@4.1.0.js" not in after.assets
        assert "object-assign@4.1.1.js" in after.assets

    def test_dependency_only_used_by_kept_version_survives(self, entry_factory):
        a, b = self._documents(entry_factory)
        # Pinned: 4.1.1 cannot replace 4.1.0, which still goes with its only dependent
        a["sharedDependencies"]["modules"]["react@16.8.0/index.js"]["object-assign"]["semverRange"] = "4.1.0"

        _, after = resolve([a, b])

        assert "react@16.8.0.js" in after.aliases
        assert "object-assign@4.1.0.js" not in after.assets
        assert "object-assign@4.1.1.js" in after.assets
        assert not validate_manifest(after).has_errors()


# ============================================================================
# Candidate limit
# ============================================================================

class TestCandidateLimit:

    def test_over_limit_leaves_package(self, cover_manifests, caplog):
        with caplog.at_level(logging.WARNING, logger="assetweave.resolvers.shared"):
            before, after = resolve(cover_manifests.values(), max_candidates=3)

        assert after == before
        assert "Leaving dep unresolved" in caplog.text

    def test_strict_limit_raises(self, cover_manifests):
        with pytest.raises(CandidateLimitError) as exc_info:
            resolve(cover_manifests.values(), max_candidates=3, strict_candidate_limit=True)

        assert exc_info.value.package == "dep"
        assert exc_info.value.count == 4


# ============================================================================
# Prereleases
# ============================================================================

class TestPrereleases:

    def test_release_is_not_aliased_to_numeric_prerelease(self, entry_factory):
        before, after = resolve([
            entry_factory("a", [("dep", "1.0.0-1", "1.0.0-1")]),
            entry_factory("b", [("dep", "1.0.0", "^1.0.0")]),
        ])

        assert after == before
        assert {"dep@1.0.0.js", "dep@1.0.0-1.js"} <= set(after.assets)

    def test_prerelease_collapses_into_release(self, entry_factory):
        _, after = resolve([
            entry_factory("a", [("dep", "1.0.0-0", ">=1.0.0-0")]),
            entry_factory("b", [("dep", "1.0.0", "^1.0.0")]),
        ])

        assert after.aliases["dep@1.0.0-0.js"].modules == (
            ModuleAlias("dep@1.0.0-0/index.js", "dep@1.0.0/index.js"),
        )
        assert "dep@1.0.0.js" in after.assets

    def test_named_prerelease_resolves(self, entry_factory):
        _, after = resolve([
            entry_factory("a", [("react", "18.3.0-canary.3", ">=18.3.0-canary.1 <19.0.0")]),
            entry_factory("b", [("react", "18.3.0-canary.5", ">=18.3.0-canary.5 <19.0.0")]),
        ])

        assert "react@18.3.0-canary.3.js" in after.aliases
        assert "react@18.3.0-canary.5.js" in after.assets


# ============================================================================
# Kept versions
# ============================================================================

class TestKeptVersions:

    def _documents(self, entry_factory):
        # Minimum cover is {1.0.0, 2.0.0}; 2.0.0 also satisfies 1.0.0's range
        return [
            entry_factory("x", [("dep", "2.0.0", "2.0.0")]),
            entry_factory("y", [("dep", "1.0.0", "1.0.0 || ^2.0.0")]),
            entry_factory("z", [("dep", "1.1.0", "1.0.0 || 1.1.0")]),
        ]

    def test_kept_version_in_another_replaceable_set(self, entry_factory):
        resolver = SharedDependencyResolver()
        manifest = merged(self._documents(entry_factory))

        candidates = resolver.replacement_candidates(
            resolver.aggregate_ranges(resolver.collect_requirers(manifest)["dep"])
        )

        assert "1.0.0" in candidates["2.0.0"]
        assert sorted(smallest_version_set(candidates)) == ["1.0.0", "2.0.0"]

    def test_every_kept_version_survives(self, entry_factory):
        _, after = resolve(self._documents(entry_factory))

        assert {"dep@1.0.0.js", "dep@2.0.0.js"} <= set(after.assets)
        assert set(after.aliases) == {"dep@1.1.0.js"}
        assert after.aliases["dep@1.1.0.js"].modules == (
            ModuleAlias("dep@1.1.0/index.js", "dep@1.0.0/index.js"),
        )
