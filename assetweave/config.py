"""
Config system - typed optimizer settings loaded from layered sources.

Merge order (later overrides earlier):
1. Defaults declared on ``WeaveConfig``
2. YAML config files (``weave.yaml``)
3. ``.env`` file (``WEAVE_*`` keys)
4. Environment variables (``WEAVE_*`` prefix)
5. Manual overrides
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, fields, asdict
from pathlib import Path
import glob
import json
import os


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass(frozen=True)
class WeaveConfig:
    """Settings for merge, resolution and assembly."""

    # Suffix of shared-dependency asset ids: "{package}@{version}{ext}"
    asset_extension: str = ".js"
    separator: str = "\n\n"

    fetch_concurrency: int = 8
    fetch_timeout: Optional[float] = 30.0

    # Exact set cover enumerates 2^n subsets of candidates
    max_candidates: int = 20
    strict_candidate_limit: bool = False

    validate_aliases: bool = True
    emit_alias_shims: bool = False

    manifest_dir: Optional[str] = None
    asset_dir: Optional[str] = None

    def __post_init__(self):
        if self.fetch_concurrency < 1:
            raise ConfigError("fetch_concurrency must be at least 1")
        if self.max_candidates < 1:
            raise ConfigError("max_candidates must be at least 1")
        if self.fetch_timeout is not None and self.fetch_timeout < 0:
            raise ConfigError("fetch_timeout must not be negative")

    @property
    def effective_timeout(self) -> Optional[float]:
        return self.fetch_timeout or None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeaveConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
        return cls(**data)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "WEAVE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "WEAVE_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> WeaveConfig:
        """
        Load configuration from multiple sources.

        Args:
            paths: Config file paths (glob patterns supported). Defaults to
                ``weave.yaml`` in the working directory when present.
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated WeaveConfig

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        loader = cls(env_prefix=env_prefix)

        if not paths and Path("weave.yaml").exists():
            paths = ["weave.yaml"]

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader.config_data.update(
                {key: value for key, value in overrides.items() if value is not None}
            )

        try:
            return WeaveConfig.from_dict(loader.config_data)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

    def _load_from_files(self, pattern: str):
        """Load config from files matching glob pattern."""
        matches = sorted(glob.glob(pattern))
        if not matches and not glob.has_magic(pattern):
            raise ConfigError(f"Config file not found: {pattern}")
        for path in matches:
            self._load_yaml_file(Path(path))

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        self.config_data.update(data)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        from dotenv import dotenv_values

        if not Path(path).exists():
            return

        for key, value in dotenv_values(path).items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set(key, value)

    def _set(self, key: str, value: str):
        """Convert WEAVE_FETCH_TIMEOUT to fetch_timeout."""
        name = key[len(self.env_prefix):].lower()
        # Unrelated variables sharing the prefix are ignored
        if name not in {f.name for f in fields(WeaveConfig)}:
            return
        self.config_data[name] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        if value.lower() in ("none", "null", ""):
            return None

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[", '"')):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value
