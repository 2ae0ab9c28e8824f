"""
Manifest validation, fingerprints and error formatting.
"""

import pytest

from assetweave.errors import (
    DanglingAliasError,
    DependencyCycleError,
    FetchFailureError,
    GraphConsistencyError,
    UnknownAssetError,
    ValidationReport,
    WeaveError,
)
from assetweave.fingerprint import manifest_fingerprint
from assetweave.manifest import AliasRecord, AssetRecord, Manifest, ModuleAlias
from assetweave.validator import validate_manifest


def error_types(report):
    return [type(e) for e in report.errors]


# ============================================================================
# ManifestValidator
# ============================================================================

class TestManifestValidator:

    def test_valid(self):
        manifest = Manifest(
            assets={
                "app.js": AssetRecord(dependencies=("dep@1.0.0.js", "dep@1.0.1.js"), is_entry=True),
                "dep@1.0.1.js": AssetRecord(modules=("dep@1.0.1/index.js",)),
            },
            modules={"dep@1.0.1/index.js": {}},
            aliases={"dep@1.0.0.js": AliasRecord((ModuleAlias("dep@1.0.0/index.js", "dep@1.0.1/index.js"),))},
        )

        report = validate_manifest(manifest)

        assert not report.has_errors()
        assert report.warnings == []
        assert "Validation passed" in report.format_report()

    def test_present_and_aliased(self):
        manifest = Manifest(
            assets={"a.js": AssetRecord(is_entry=True)},
            aliases={"a.js": AliasRecord()},
        )
        assert error_types(validate_manifest(manifest)) == [GraphConsistencyError]

    def test_unknown_dependency(self):
        manifest = Manifest(assets={"a.js": AssetRecord(dependencies=("ghost.js",), is_entry=True)})

        report = validate_manifest(manifest)

        assert error_types(report) == [UnknownAssetError]
        assert report.errors[0].asset_id == "ghost.js"

    def test_dangling_alias(self):
        manifest = Manifest(aliases={"x.js": AliasRecord((ModuleAlias("x/a", "y/a"),))})
        assert error_types(validate_manifest(manifest)) == [DanglingAliasError]

    def test_cycle(self):
        manifest = Manifest(assets={
            "a.js": AssetRecord(dependencies=("b.js",), is_entry=True),
            "b.js": AssetRecord(dependencies=("a.js",)),
        })
        assert error_types(validate_manifest(manifest)) == [DependencyCycleError]

    def test_unreachable_is_warning(self):
        manifest = Manifest(assets={"a.js": AssetRecord(is_entry=True), "orphan.js": AssetRecord()})

        report = validate_manifest(manifest)

        assert not report.has_errors()
        assert report.warnings == ["Asset 'orphan.js' is not reachable from any entry asset"]

    def test_collects_every_error(self):
        manifest = Manifest(
            assets={"a.js": AssetRecord(dependencies=("ghost.js",), is_entry=True)},
            aliases={"a.js": AliasRecord((ModuleAlias("a", "b"),))},
        )

        report = validate_manifest(manifest)

        assert len(report.errors) == 3
        assert report.to_dict()["error_count"] == 3
        assert "Multiple validation errors (3)" in report.to_exception().message


# ============================================================================
# ValidationReport / errors
# ============================================================================

class TestErrors:

    def test_empty_report_cannot_raise(self):
        with pytest.raises(ValueError):
            ValidationReport().to_exception()

    def test_single_error_report(self):
        report = ValidationReport()
        error = GraphConsistencyError("broken", asset_id="a.js")
        report.add_error(error)
        assert report.to_exception() is error

    def test_format_error(self):
        error = WeaveError("Something failed", suggestion="Try again", details={"asset": "a.js"})
        text = error.format_error()

        assert text.startswith("❌ WeaveError: Something failed")
        assert "- asset: a.js" in text
        assert "Suggestion: Try again" in text
        assert str(error) == text

    def test_cycle_message(self):
        error = DependencyCycleError(["a.js", "b.js"])
        assert "a.js → b.js → a.js" in error.message

    def test_fetch_timeout_message(self):
        error = FetchFailureError("a.js", TimeoutError("after 1s"))
        assert error.message == "Failed to fetch asset 'a.js': timed out"

    def test_dangling_listing_truncated(self):
        dangling = [{"asset": f"{i}.js", "from": f"{i}/a", "to": f"{i}/b"} for i in range(7)]
        error = DanglingAliasError(dangling)

        assert "(7)" in error.message
        assert "... and 2 more" in error.message


# ============================================================================
# Fingerprint
# ============================================================================

class TestFingerprint:

    def test_stable_across_order(self):
        a = Manifest(
            assets={"a.js": AssetRecord(dependencies=("x.js", "y.js")), "b.js": AssetRecord()},
            modules={"m1": {}, "m2": {}},
        )
        b = Manifest(
            assets={"b.js": AssetRecord(), "a.js": AssetRecord(dependencies=("y.js", "x.js"))},
            modules={"m2": {}, "m1": {}},
        )
        assert manifest_fingerprint(a) == manifest_fingerprint(b)

    def test_changes_with_content(self):
        a = Manifest(assets={"a.js": AssetRecord()})
        b = Manifest(assets={"a.js": AssetRecord(is_entry=True)})
        assert manifest_fingerprint(a) != manifest_fingerprint(b)

    def test_ignores_entry_name(self):
        assert manifest_fingerprint(Manifest(entry="a")) == manifest_fingerprint(Manifest(entry="b"))

    def test_is_sha256_hex(self):
        assert len(manifest_fingerprint(Manifest())) == 64
