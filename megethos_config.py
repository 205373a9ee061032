#!/usr/bin/env python3
"""
Configuration management for Megethos

Holds the scan options and persists user defaults as JSON. Command-line
flags are merged over the stored defaults for each run.
"""

import json
import math
import os
import pathlib
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Optional

from record_emitter import DEFAULT_FORMAT, REFS_COLUMN, SORT_ORDERS, DisplayKind

CONFIG_DIR_ENV = "MEGETHOS_CONFIG_DIR"


class ConfigError(ValueError):
    """A configuration value is out of range or of the wrong type"""


@dataclass
class MegethosConfig:
    """Options for one scan"""

    threshold: float = 1.0
    kind: str = DisplayKind.NOT_IN_USE.value
    refs: list[str] = field(default_factory=lambda: ["HEAD"])
    output_refs: bool = False
    format: str = DEFAULT_FORMAT
    null: bool = False
    workers: int = 1
    sort: str = "discovery"

    @property
    def terminator(self) -> str:
        return "\0" if self.null else "\n"

    @property
    def display_kind(self) -> DisplayKind:
        return DisplayKind(self.kind)

    @property
    def output_format(self) -> str:
        """Template text including the refs column when requested"""
        return self.format + REFS_COLUMN if self.output_refs else self.format

    def validate(self):
        """Check every option

        Raises:
            ConfigError: Describing the first invalid option
        """
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)):
            raise ConfigError(f"threshold must be a number, got {self.threshold!r}")
        if not math.isfinite(self.threshold):
            raise ConfigError(f"threshold must be a finite number, got {self.threshold}")
        if self.threshold < 0:
            raise ConfigError(f"threshold must not be negative, got {self.threshold}")

        kinds = [kind.value for kind in DisplayKind]
        if self.kind not in kinds:
            raise ConfigError(f"kind must be one of {', '.join(kinds)}, got {self.kind!r}")

        if not isinstance(self.refs, list) or not self.refs or not all(isinstance(r, str) and r for r in self.refs):
            raise ConfigError(f"refs must be a non-empty list of ref names, got {self.refs!r}")

        if not isinstance(self.format, str):
            raise ConfigError(f"format must be a string, got {self.format!r}")

        if isinstance(self.workers, bool) or not isinstance(self.workers, int) or self.workers < 1:
            raise ConfigError(f"workers must be a positive integer, got {self.workers!r}")

        if self.sort not in SORT_ORDERS:
            raise ConfigError(f"sort must be one of {', '.join(SORT_ORDERS)}, got {self.sort!r}")

    def merge(self, overrides: dict[str, Any]) -> "MegethosConfig":
        """Return a copy with every non-None override applied"""
        known = {f.name for f in fields(self)}
        changes = {key: value for key, value in overrides.items() if key in known and value is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MegethosConfig":
        """Create from dictionary, falling back to defaults for missing keys"""
        return cls.default().merge(data)

    @classmethod
    def default(cls) -> "MegethosConfig":
        """Create default configuration"""
        return cls()


def default_config_dir() -> pathlib.Path:
    """Directory holding config.json: $MEGETHOS_CONFIG_DIR or ~/.megethos"""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return pathlib.Path(override)
    return pathlib.Path.home() / ".megethos"


class ConfigManager:
    """Manages loading and saving configuration"""

    def __init__(self, config_dir: Optional[pathlib.Path] = None):
        self.config_dir = config_dir or default_config_dir()
        self.config_file = self.config_dir / "config.json"

    def load(self) -> MegethosConfig:
        """Load configuration from file"""
        if self.config_file.exists():
            try:
                with self.config_file.open() as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError):
                # If config is corrupted, return default
                return MegethosConfig.default()
            if isinstance(data, dict):
                return MegethosConfig.from_dict(data)
        return MegethosConfig.default()

    def save(self, config: MegethosConfig):
        """Save configuration to file"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with self.config_file.open("w") as f:
            json.dump(config.to_dict(), f, indent=2)

    def reset(self):
        """Reset configuration to default"""
        if self.config_file.exists():
            self.config_file.unlink()
