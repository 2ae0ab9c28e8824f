"""
Manifest stores and asset sources - the compiler-side collaborators.

Stores map entry names to parsed manifests. They are read-only once
populated; loading the same entry twice yields an equal value, so
concurrent requests can share a store without locking.

- **MemoryManifestStore** - populated from documents or Manifest values
- **FilesystemManifestStore** - reads ``<entry>.json`` (or
  ``<entry>.manifest.json``) from a directory and caches the parse
- **FilesystemAssetSource** - async fetch collaborator reading asset files
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .errors import MalformedManifestError, UnknownEntryError
from .manifest import Manifest

logger = logging.getLogger("assetweave.store")

MANIFEST_SUFFIXES = (".manifest.json", ".json")


class ManifestStore(Mapping[str, Manifest]):
    """Read-only mapping of entry name to manifest."""

    def get_many(self, entries: List[str]) -> List[Manifest]:
        """
        Look up manifests in request order.

        Raises:
            UnknownEntryError: If an entry has no manifest
        """
        manifests = []
        for entry in entries:
            try:
                manifests.append(self[entry])
            except KeyError:
                raise UnknownEntryError(entry, available=list(self)) from None
        return manifests


class MemoryManifestStore(ManifestStore):
    """
    In-memory store.

    Useful for tests and for servers that load manifests at startup.
    """

    def __init__(self, manifests: Optional[Mapping[str, Union[Manifest, Mapping[str, Any]]]] = None):
        self._manifests: Dict[str, Manifest] = {}
        for entry, manifest in (manifests or {}).items():
            self.add(entry, manifest)

    def add(self, entry: str, manifest: Union[Manifest, Mapping[str, Any]]) -> Manifest:
        """Parse and register a manifest. Re-adding an entry replaces it."""
        if not isinstance(manifest, Manifest):
            manifest = Manifest.from_dict(manifest, entry=entry)
        elif manifest.entry != entry:
            manifest = manifest.evolve(entry=entry)
        self._manifests[entry] = manifest
        return manifest

    def __getitem__(self, entry: str) -> Manifest:
        return self._manifests[entry]

    def __iter__(self) -> Iterator[str]:
        return iter(self._manifests)

    def __len__(self) -> int:
        return len(self._manifests)


class FilesystemManifestStore(ManifestStore):
    """
    Directory of manifest JSON files, one per entry.

    Parsed manifests are cached on first access.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self._cache: Dict[str, Manifest] = {}

    def _path_for(self, entry: str) -> Optional[Path]:
        if "/" in entry or "\\" in entry or entry.startswith("."):
            return None
        for suffix in MANIFEST_SUFFIXES:
            path = self.root / f"{entry}{suffix}"
            if path.is_file():
                return path
        return None

    def __getitem__(self, entry: str) -> Manifest:
        cached = self._cache.get(entry)
        if cached is not None:
            return cached

        path = self._path_for(entry)
        if path is None:
            raise KeyError(entry)

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise MalformedManifestError("manifest", f"is not valid JSON ({exc})", entry=entry) from exc

        manifest = Manifest.from_dict(document, entry=entry)
        logger.debug("Loaded manifest %s from %s", entry, path)
        return self._cache.setdefault(entry, manifest)

    def __iter__(self) -> Iterator[str]:
        if not self.root.is_dir():
            return iter(())
        names = []
        for path in sorted(self.root.glob("*.json")):
            name = path.name
            for suffix in MANIFEST_SUFFIXES:
                if name.endswith(suffix):
                    names.append(name[: -len(suffix)])
                    break
        return iter(dict.fromkeys(names))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, entry: object) -> bool:
        return isinstance(entry, str) and (entry in self._cache or self._path_for(entry) is not None)


class FilesystemAssetSource:
    """
    Fetch collaborator serving asset content from a directory.

    Asset ids are paths relative to ``root``; ids escaping it are refused.
    """

    def __init__(self, root: Union[str, Path], encoding: str = "utf-8"):
        self.root = Path(root).resolve()
        self.encoding = encoding

    def path_for(self, asset_id: str) -> Path:
        path = (self.root / asset_id).resolve()
        if path != self.root and self.root not in path.parents:
            raise FileNotFoundError(f"Asset id escapes asset root: {asset_id}")
        return path

    async def __call__(self, asset_id: str) -> str:
        path = self.path_for(asset_id)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: path.read_text(encoding=self.encoding))
