"""
Assetweave error types with rich diagnostics.

Every failure surfaced to a caller is a single ``WeaveError``; none are
partially recovered inline.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field


class WeaveError(Exception):
    """Base error for all manifest, resolver and assembly errors."""

    def __init__(
        self,
        message: str,
        *,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def format_error(self) -> str:
        """Format error with rich diagnostics."""
        lines = [f"❌ {self.__class__.__name__}: {self.message}"]

        if self.details:
            lines.append("\n   Details:")
            for key, value in self.details.items():
                lines.append(f"   - {key}: {value}")

        if self.suggestion:
            lines.append(f"\n   💡 Suggestion: {self.suggestion}")

        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format_error()


class MalformedManifestError(WeaveError):
    """
    A merge input is missing a required field or has the wrong shape.

    Example:
        {"assets": {"main.js": {"modules": "abc"}}}  <- modules must be a list
    """

    def __init__(
        self,
        field_path: str,
        problem: str,
        *,
        entry: Optional[str] = None,
    ):
        self.field_path = field_path
        self.problem = problem
        self.entry = entry

        where = f" in manifest '{entry}'" if entry else ""
        message = f"Malformed manifest{where}: {field_path} {problem}"

        super().__init__(
            message,
            suggestion=(
                "Rebuild the entry with the compiler plugin, or check that the "
                "manifest has 'assets' and 'modules' mappings and that every "
                "asset lists 'dependencies' and 'modules'."
            ),
            details={"entry": entry, "field": field_path},
        )


class UnknownEntryError(WeaveError):
    """A requested entry point has no manifest."""

    def __init__(self, entry: str, available: Optional[List[str]] = None):
        self.entry = entry
        self.available = sorted(available or [])

        super().__init__(
            f"No manifest for entry '{entry}'",
            suggestion="Check the 'entries' parameter of the request.",
            details={"available": ", ".join(self.available) or "(none)"},
        )


class UnknownAssetError(WeaveError):
    """
    An asset depends on an id that is neither a present asset nor an alias.
    """

    def __init__(self, asset_id: str, dependent: str):
        self.asset_id = asset_id
        self.dependent = dependent

        super().__init__(
            f"Asset '{dependent}' depends on unknown asset '{asset_id}'",
            details={"asset": asset_id, "dependent": dependent},
        )


class DanglingAliasError(WeaveError):
    """
    One or more alias targets do not resolve to a module.

    Example:
        dep@1.0.0.js: dep@1.0.0/a.js -> dep@1.0.1/a.js  <- not in modules
    """

    def __init__(self, dangling: List[Dict[str, str]]):
        self.dangling = dangling

        listing = "\n".join(
            f"   - {d['asset']}: {d['from']} → {d['to']}" for d in dangling[:5]
        )
        if len(dangling) > 5:
            listing += f"\n   ... and {len(dangling) - 5} more"

        super().__init__(
            f"Dangling alias target(s) ({len(dangling)}):\n{listing}",
            suggestion=(
                "The kept version's asset does not contain the aliased module. "
                "Make sure every compilation emits the same module layout for "
                "a package version."
            ),
            details={"count": len(dangling)},
        )


class GraphConsistencyError(WeaveError):
    """
    The manifest breaks a structural invariant.

    Example:
        "dep@1.0.0.js" is listed in both assets and aliases
    """

    def __init__(self, message: str, *, asset_id: Optional[str] = None):
        self.asset_id = asset_id
        super().__init__(message, details={"asset": asset_id} if asset_id else None)


class DependencyCycleError(WeaveError):
    """
    Circular dependency detected in the asset graph.

    Example:
        a.js depends on b.js
        b.js depends on a.js  <- CYCLE
    """

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        cycle_repr = " → ".join(cycle) + f" → {cycle[0]}"

        super().__init__(
            f"Circular dependency detected: {cycle_repr}",
            suggestion="Assets must form an acyclic graph to be ordered.",
            details={"cycle": cycle, "cycle_length": len(cycle)},
        )


class InvalidVersionError(WeaveError):
    """A concrete version string could not be parsed."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Invalid version: {version!r}")


class InvalidRangeError(WeaveError):
    """A semantic version range could not be parsed."""

    def __init__(self, text: str, reason: str = ""):
        self.text = text
        suffix = f" ({reason})" if reason else ""
        super().__init__(f"Invalid version range: {text!r}{suffix}")


class CandidateLimitError(WeaveError):
    """
    Too many replacement candidates for an exact minimum set cover.

    Only raised when ``strict_candidate_limit`` is enabled; otherwise the
    package is left unresolved.
    """

    def __init__(self, package: str, count: int, limit: int):
        self.package = package
        self.count = count
        self.limit = limit

        super().__init__(
            f"Package '{package}' has {count} replacement candidates "
            f"(limit {limit})",
            suggestion="Raise max_candidates or disable strict_candidate_limit.",
            details={"package": package, "candidates": count, "limit": limit},
        )


class FetchFailureError(WeaveError):
    """Fetching an asset's content failed or timed out during assembly."""

    def __init__(self, asset_id: str, cause: BaseException):
        self.asset_id = asset_id
        self.cause = cause

        reason = "timed out" if isinstance(cause, TimeoutError) else repr(cause)
        super().__init__(
            f"Failed to fetch asset '{asset_id}': {reason}",
            details={"asset": asset_id},
        )


@dataclass
class ValidationReport:
    """
    Everything wrong with one manifest.

    Errors make the manifest unusable; warnings (unreachable assets) do not.
    """

    errors: List[WeaveError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: WeaveError) -> None:
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        entries = []
        for problem in self.errors:
            entry = {"type": type(problem).__name__, "message": problem.message}
            asset_id = getattr(problem, "asset_id", None)
            if asset_id is not None:
                entry["asset"] = asset_id
            entry["details"] = problem.details
            entries.append(entry)

        return {
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "errors": entries,
            "warnings": list(self.warnings),
        }

    def to_exception(self) -> WeaveError:
        """
        Collapse the report into one raisable error.

        A single error is returned as-is so callers can still match on its
        type; several are folded into a numbered ``WeaveError``.
        """
        if not self.errors:
            raise ValueError("Report has no errors to raise")

        if len(self.errors) == 1:
            return self.errors[0]

        numbered = [f"   {n}. {problem.message}" for n, problem in enumerate(self.errors, 1)]
        return WeaveError(
            f"Multiple validation errors ({len(self.errors)}):\n" + "\n".join(numbered),
            suggestion="Fix every listed problem, then merge and resolve again.",
            details=self.to_dict(),
        )

    def format_report(self) -> str:
        if not self.errors and not self.warnings:
            return "✅ Validation passed"

        sections = []
        if self.errors:
            sections.append(f"❌ Manifest has {len(self.errors)} error(s):")
            sections.extend(f"\n{n}. {problem.format_error()}" for n, problem in enumerate(self.errors, 1))
        if self.warnings:
            sections.append(f"\n⚠️  Manifest has {len(self.warnings)} warning(s):")
            sections.extend(f"   - {text}" for text in self.warnings)

        return "\n".join(sections)
