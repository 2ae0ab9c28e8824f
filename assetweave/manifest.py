"""
Manifest - the asset/module dependency graph produced per entry point.

Manifests are values: every pipeline stage (merge, each resolver, prune)
returns a new ``Manifest`` and never mutates one another component holds.

Serialized shape::

    {
        "assets": {
            "main.js": {
                "isEntry": true,
                "dependencies": ["react@16.8.1.js"],
                "modules": ["module1", "module2"]
            },
            "react@16.8.1.js": {
                "dependencies": ["object-assign@4.1.1.js"],
                "modules": ["react@16.8.1/index.js"]
            }
        },
        "aliases": {
            "react@16.8.0.js": {
                "modules": [
                    {"from": "react@16.8.0/index.js", "to": "react@16.8.1/index.js"}
                ]
            }
        },
        "modules": {"module1": {}, "react@16.8.1/index.js": {}},
        "sharedDependencies": {"modules": {...}}
    }

Any top-level key other than ``assets``, ``modules`` and ``aliases`` is a
resolver section and is kept verbatim in ``Manifest.sections``.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from dataclasses import dataclass, field, replace
import copy

from .errors import MalformedManifestError

CORE_KEYS = ("assets", "modules", "aliases")


def concat_unique(*sequences: Iterable[Any]) -> Tuple[Any, ...]:
    """Concatenate sequences, dropping duplicates and keeping first-seen order."""
    return tuple(dict.fromkeys(item for seq in sequences for item in seq))


def _require_str_list(value: Any, path: str, entry: Optional[str]) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise MalformedManifestError(path, "must be a list", entry=entry)
    for item in value:
        if not isinstance(item, str):
            raise MalformedManifestError(path, f"contains non-string item {item!r}", entry=entry)
    return tuple(value)


def _require_mapping(value: Any, path: str, entry: Optional[str]) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedManifestError(path, "must be a mapping", entry=entry)
    return value


@dataclass(frozen=True)
class AssetRecord:
    """A deliverable unit: its modules and the assets those modules need."""

    dependencies: Tuple[str, ...] = ()
    modules: Tuple[str, ...] = ()
    is_entry: bool = False

    def union(self, other: "AssetRecord") -> "AssetRecord":
        """
        Combine two observations of the same asset.

        Separate compilations can see a different module subset of a shared
        asset, so both lists are set-unioned.
        """
        return AssetRecord(
            dependencies=concat_unique(self.dependencies, other.dependencies),
            modules=concat_unique(self.modules, other.modules),
            is_entry=self.is_entry or other.is_entry,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "dependencies": list(self.dependencies),
            "modules": list(self.modules),
        }
        if self.is_entry:
            data["isEntry"] = True
        return data

    @classmethod
    def from_dict(
        cls,
        data: Any,
        *,
        path: str = "asset",
        entry: Optional[str] = None,
    ) -> "AssetRecord":
        data = _require_mapping(data, path, entry)
        for key in ("dependencies", "modules"):
            if key not in data:
                raise MalformedManifestError(f"{path}.{key}", "is missing", entry=entry)

        is_entry = data.get("isEntry", False)
        if not isinstance(is_entry, bool):
            raise MalformedManifestError(f"{path}.isEntry", "must be a boolean", entry=entry)

        return cls(
            dependencies=_require_str_list(data["dependencies"], f"{path}.dependencies", entry),
            modules=_require_str_list(data["modules"], f"{path}.modules", entry),
            is_entry=is_entry,
        )


@dataclass(frozen=True)
class ModuleAlias:
    """Load-time substitution: references to ``source`` resolve to ``target``."""

    source: str
    target: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.source, "to": self.target}

    @classmethod
    def from_dict(cls, data: Any, *, path: str = "alias", entry: Optional[str] = None) -> "ModuleAlias":
        data = _require_mapping(data, path, entry)
        for key in ("from", "to"):
            if not isinstance(data.get(key), str):
                raise MalformedManifestError(f"{path}.{key}", "must be a string", entry=entry)
        return cls(source=data["from"], target=data["to"])


@dataclass(frozen=True)
class AliasRecord:
    """Record for a removed asset: how each of its modules is redirected."""

    modules: Tuple[ModuleAlias, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"modules": [m.to_dict() for m in self.modules]}

    @classmethod
    def from_dict(cls, data: Any, *, path: str = "alias", entry: Optional[str] = None) -> "AliasRecord":
        data = _require_mapping(data, path, entry)
        raw = data.get("modules", [])
        if not isinstance(raw, (list, tuple)):
            raise MalformedManifestError(f"{path}.modules", "must be a list", entry=entry)
        return cls(
            modules=tuple(
                ModuleAlias.from_dict(item, path=f"{path}.modules[{i}]", entry=entry)
                for i, item in enumerate(raw)
            )
        )


@dataclass(frozen=True)
class Manifest:
    """
    Asset graph for one entry point, or the merge of several.

    The mappings are owned by this value. Use :meth:`evolve` to derive the
    next version instead of mutating them.
    """

    assets: Dict[str, AssetRecord] = field(default_factory=dict)
    modules: Dict[str, Any] = field(default_factory=dict)
    aliases: Dict[str, AliasRecord] = field(default_factory=dict)
    sections: Dict[str, Any] = field(default_factory=dict)
    entry: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "assets", dict(self.assets))
        object.__setattr__(self, "modules", dict(self.modules))
        object.__setattr__(self, "aliases", dict(self.aliases))
        object.__setattr__(self, "sections", dict(self.sections))

    def evolve(self, **changes: Any) -> "Manifest":
        """Return a new manifest with the given fields replaced."""
        return replace(self, **changes)

    @property
    def entry_assets(self) -> List[str]:
        """Ids of assets flagged ``isEntry``, in insertion order."""
        return [asset_id for asset_id, asset in self.assets.items() if asset.is_entry]

    def section(self, key: str, default: Any = None) -> Any:
        return self.sections.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted manifest document."""
        data: Dict[str, Any] = {
            "assets": {asset_id: asset.to_dict() for asset_id, asset in self.assets.items()},
            "modules": copy.deepcopy(self.modules),
            "aliases": {asset_id: alias.to_dict() for asset_id, alias in self.aliases.items()},
        }
        for key, value in self.sections.items():
            data[key] = copy.deepcopy(value)
        return data

    @classmethod
    def from_dict(cls, data: Any, *, entry: Optional[str] = None) -> "Manifest":
        """
        Parse and validate a manifest document.

        Args:
            data: Decoded manifest document
            entry: Entry point name, used in error messages

        Raises:
            MalformedManifestError: If a required field is missing or mis-shaped
        """
        data = _require_mapping(data, "manifest", entry)
        for key in ("assets", "modules"):
            if key not in data:
                raise MalformedManifestError(key, "is missing", entry=entry)

        raw_assets = _require_mapping(data["assets"], "assets", entry)
        assets = {
            asset_id: AssetRecord.from_dict(raw, path=f"assets[{asset_id!r}]", entry=entry)
            for asset_id, raw in raw_assets.items()
        }

        modules = _require_mapping(data["modules"], "modules", entry)

        raw_aliases = _require_mapping(data.get("aliases", {}), "aliases", entry)
        aliases = {
            asset_id: AliasRecord.from_dict(raw, path=f"aliases[{asset_id!r}]", entry=entry)
            for asset_id, raw in raw_aliases.items()
        }

        sections = {
            key: copy.deepcopy(value)
            for key, value in data.items()
            if key not in CORE_KEYS
        }

        return cls(
            assets=assets,
            modules=copy.deepcopy(dict(modules)),
            aliases=aliases,
            sections=sections,
            entry=entry,
        )
