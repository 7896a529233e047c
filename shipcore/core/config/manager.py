"""
ConfigManager: cache-backed game tunables for Shipcore.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable game configuration values.
- Back configuration with built-in defaults plus YAML files from the config
  directory (``Config.CONFIG_DIR``).
- Allow in-process overrides for tests and operator tooling.

Key Design Decisions
--------------------
- Built-in defaults are the last resort; YAML deep-merges over them; runtime
  overrides deep-merge over YAML.
- Loading is lazy: the first ``get()`` loads YAML if ``initialize()`` was not
  called explicitly.
- Reads never raise; a missing key resolves to the caller's default.

Tunables
--------
- ``energy.max_tokens_per_ship``: token records pre-allocated per ship
- ``crew.position_order``: display order of crew positions
- ``crew.position_rolls``: skill rolled for each crew position
- ``crew.position_names``: display name for each crew position
- ``weapons.attribute`` / ``weapons.skill``: gunner stats used to fire
"""

from __future__ import annotations

import copy
import time
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import yaml

from shipcore.core.config.config import Config
from shipcore.core.logging.logger import get_logger

logger = get_logger(__name__)


_BUILTIN_DEFAULTS: Dict[str, Any] = {
    "energy": {
        "max_tokens_per_ship": 10,
    },
    "crew": {
        "position_order": [
            "captain",
            "engineer",
            "pilot",
            "sensorOperator",
            "gunner",
        ],
        "position_rolls": {
            "captain": "command",
            "engineer": "technology",
            "pilot": "pilot",
            "sensorOperator": "datadjinn",
            "gunner": "rangedcombat",
        },
        "position_names": {
            "captain": "Captain",
            "engineer": "Engineer",
            "pilot": "Pilot",
            "sensorOperator": "Sensor Operator",
            "gunner": "Gunner",
        },
    },
    "weapons": {
        "attribute": "agility",
        "skill": "rangedcombat",
    },
}


class ConfigManager:
    """
    Game configuration access with YAML backing and in-memory caching.

    Usage
    -----
    >>> ConfigManager.get("energy.max_tokens_per_ship")
    10
    >>> ConfigManager.get("crew.position_rolls.engineer")
    'technology'
    """

    _cache: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _loaded_at: Optional[float] = None

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> Dict[str, Any]:
        """
        Load and deep-merge every YAML file under `config_dir`.

        Unreadable files are logged and skipped; a missing directory yields
        an empty mapping.
        """
        merged: Dict[str, Any] = {}

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return merged

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(merged, data)
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        return merged

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        (Re)build the cache from built-in defaults, YAML, and overrides.

        Parameters
        ----------
        config_dir:
            Directory to scan for YAML. Defaults to ``Config.CONFIG_DIR``.
        """
        directory = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR

        cache = copy.deepcopy(_BUILTIN_DEFAULTS)
        cls._deep_merge_dict(cache, cls._load_yaml_configs(directory))
        cls._deep_merge_dict(cache, cls._overrides)

        cls._cache = cache
        cls._initialized = True
        cls._loaded_at = time.time()

        logger.info(
            "ConfigManager initialized",
            extra={
                "config_dir": str(directory),
                "top_level_keys": sorted(cache.keys()),
                "override_count": len(cls._overrides),
            },
        )

    @classmethod
    def reset(cls) -> None:
        """Drop the cache and all overrides; the next read reloads."""
        cls._cache = {}
        cls._overrides = {}
        cls._initialized = False
        cls._loaded_at = None

    # =========================================================================
    # ACCESS
    # =========================================================================

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("weapons.skill")
        'rangedcombat'
        >>> ConfigManager.get("missing.key", 0)
        0
        """
        if not cls._initialized:
            cls.initialize()

        value: Any = cls._cache
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]

        return default if value is None else value

    @classmethod
    def get_int(cls, key: str, default: int = 0) -> int:
        value = cls.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Configuration value is not an integer; using default",
                extra={"config_key": key, "value": repr(value), "default": default},
            )
            return default

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """
        Override a value in-process (highest precedence).

        Overrides survive ``initialize()`` but not ``reset()``.
        """
        parts = key.split(".")
        node: Dict[str, Any] = {}
        leaf = node
        for part in parts[:-1]:
            leaf[part] = {}
            leaf = leaf[part]
        leaf[parts[-1]] = value

        cls._deep_merge_dict(cls._overrides, node)
        if cls._initialized:
            cls._deep_merge_dict(cls._cache, node)

        logger.info("Configuration override applied", extra={"config_key": key})

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "loaded_at": cls._loaded_at,
            "top_level_keys": sorted(cls._cache.keys()),
            "override_count": len(cls._overrides),
        }
