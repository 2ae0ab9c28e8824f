"""
Fingerprint generator for manifests.

Generates deterministic SHA-256 fingerprints from manifest content, so two
requests that resolve to the same graph can be recognised (e.g. as a cache
key for the assembled payload).
"""

import hashlib
import json
from typing import Any, Dict

from .manifest import Manifest


class FingerprintGenerator:
    """
    Generates deterministic fingerprints for manifests.

    Fingerprint includes:
    - Assets (sorted dependencies and modules, entry flag)
    - Alias records
    - Module ids
    - Resolver sections

    Excludes:
    - The entry name a manifest was loaded under
    - Insertion order of any mapping or list where order carries no meaning
    """

    def generate(self, manifest: Manifest) -> str:
        """
        Generate fingerprint from a manifest.

        Returns:
            SHA-256 hex digest string
        """
        canonical = self._build_canonical_repr(manifest)
        json_str = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(json_str.encode("utf-8")).hexdigest()

    def _build_canonical_repr(self, manifest: Manifest) -> Dict[str, Any]:
        return {
            "assets": {
                asset_id: {
                    "dependencies": sorted(asset.dependencies),
                    "modules": sorted(asset.modules),
                    "isEntry": asset.is_entry,
                }
                for asset_id, asset in manifest.assets.items()
            },
            "aliases": {
                asset_id: sorted(
                    (module.source, module.target) for module in record.modules
                )
                for asset_id, record in manifest.aliases.items()
            },
            "modules": sorted(manifest.modules),
            "sections": manifest.sections,
        }


def manifest_fingerprint(manifest: Manifest) -> str:
    """Shortcut for ``FingerprintGenerator().generate(manifest)``."""
    return FingerprintGenerator().generate(manifest)
