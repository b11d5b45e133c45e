"""enforce-aaa Configuration — Project-level .aaarc.yml support.

Loads configuration from .aaarc.yml (or .aaarc.yaml, .aaarc.json) found
by walking up from the target directory. Allows teams to configure:
  - File include/exclude patterns (fnmatch against paths relative to the
    scanned root; `*` also matches `/`)
  - Parallel processing
  - Default output format and dry-run mode

Example .aaarc.yml:
    include:
      - "tests/*Test.php"
    exclude:
      - "tests/Fixtures/*"
    parallel: true
    parallel_workers: 4
    format: pretty
"""

from __future__ import annotations

import fnmatch
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from enforce_aaa.errors import ConfigError, config_error

logger = logging.getLogger(__name__)

_FORMATS = ("pretty", "json")


@dataclass
class AaaConfig:
    """Project-level enforce-aaa configuration."""
    # File patterns, matched against paths relative to the scanned root
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    parallel: bool = False
    parallel_workers: int = 0  # 0 = auto (cpu_count)
    # Output: "pretty" or "json"
    format: str = "pretty"
    dry_run: bool = False

    def should_include(self, filepath: str) -> bool:
        """Check if a file should be included based on patterns."""
        if not self.include:
            return True
        return any(fnmatch.fnmatch(filepath, p) for p in self.include)

    def should_exclude(self, filepath: str) -> bool:
        """Check if a file should be excluded based on patterns."""
        if not self.exclude:
            return False
        return any(fnmatch.fnmatch(filepath, p) for p in self.exclude)

    def accepts(self, filepath: str) -> bool:
        return self.should_include(filepath) and not self.should_exclude(filepath)


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".aaarc.yml",
    ".aaarc.yaml",
    ".aaarc.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> AaaConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults. A file that exists but
    cannot be read or parsed raises ConfigError.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return AaaConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(config_error(path, str(e))) from e

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(config_error(path, str(e))) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(config_error(path, "top level must be a mapping"))

    logger.debug("Loaded configuration from %s", path)
    return _dict_to_config(data, path)


def _dict_to_config(data: Dict[str, Any], path: str) -> AaaConfig:
    """Convert a parsed dict to AaaConfig."""
    config = AaaConfig()

    for key in data:
        if key not in AaaConfig.__dataclass_fields__:
            logger.warning("%s: ignoring unknown key '%s'", path, key)

    if "include" in data:
        config.include = _pattern_list(data["include"], "include", path)
    if "exclude" in data:
        config.exclude = _pattern_list(data["exclude"], "exclude", path)
    if "parallel" in data:
        config.parallel = bool(data["parallel"])
    if "parallel_workers" in data:
        try:
            config.parallel_workers = int(data["parallel_workers"])
        except (TypeError, ValueError) as e:
            raise ConfigError(config_error(path, "parallel_workers must be an integer")) from e
    if "format" in data:
        config.format = str(data["format"])
        if config.format not in _FORMATS:
            raise ConfigError(config_error(
                path, f"format must be one of {', '.join(_FORMATS)}, got '{config.format}'"))
    if "dry_run" in data:
        config.dry_run = bool(data["dry_run"])

    return config


def _pattern_list(value: Any, key: str, path: str) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(config_error(path, f"{key} must be a list of patterns"))
    return [str(p) for p in value]
