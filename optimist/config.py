"""
Optimist — Config Loader

Three-tier configuration loading:
  1. Base YAML file (optimist.yaml)
  2. Per-environment overlay files (config/{OPT_ENV}.yaml merged over base)
  3. Environment variable overrides (OPT_ prefixed)

Usage:
    from optimist.config import load_reconciler_config

    cfg = load_reconciler_config(base_path="optimist.yaml", env="prod")
    reducer = OptimisticReducer(counter_reducer, config=cfg)

Environment variables:
    OPT_ENV                     — active profile (dev, staging, prod)
    OPT_CONFIG_DIR              — directory for overlay files (default: config/)
    OPT_*                       — overrides (e.g., OPT_RECONCILER_STRICT_RESOLUTION=true)

Overrides split on the first underscore only: OPT_<SECTION>_<KEY>, so
keys may themselves contain underscores.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("optimist.config")

SNAPSHOT_MODES = ("reference", "deepcopy")


# ═══════════════════════════════════════════════════════════════════
# Deep Merge
# ═══════════════════════════════════════════════════════════════════

def deep_merge(base: dict, overlay: dict) -> dict:
    """
    Deep-merge overlay into base. Overlay values win.
    Lists are replaced (not appended). Dicts are recursed.
    """
    result = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# ═══════════════════════════════════════════════════════════════════
# Tier 2: Overlay Files
# ═══════════════════════════════════════════════════════════════════

def _load_overlay_file(
    base_path: str,
    env: str = "",
    config_dir: str = "",
) -> dict[str, Any]:
    """
    Load per-environment overlay file.
    Looks for {config_dir}/{env}.yaml next to the base file or in config_dir.
    Returns empty dict if not found.
    """
    env = env or os.environ.get("OPT_ENV", "")
    if not env:
        return {}

    config_dir = config_dir or os.environ.get("OPT_CONFIG_DIR", "config")

    candidates = [
        Path(config_dir) / f"{env}.yaml",
        Path(config_dir) / f"{env}.yml",
        Path(os.path.dirname(base_path)) / "config" / f"{env}.yaml",
    ]

    for path in candidates:
        if path.exists():
            with open(path) as f:
                overlay = yaml.safe_load(f) or {}
            logger.info("Loaded config overlay: %s (%d keys)", path, len(overlay))
            return overlay

    logger.debug("No config overlay found for env=%s", env)
    return {}


# ═══════════════════════════════════════════════════════════════════
# Tier 3: Environment Variable Overrides
# ═══════════════════════════════════════════════════════════════════

def _load_env_overrides(prefix: str = "OPT_") -> dict[str, Any]:
    """
    Load OPT_ prefixed environment variables as config overrides.

      OPT_SECTION_KEY=value → {"section": {"key": value}}

    Values are parsed as YAML scalars (numbers, booleans).
    OPT_ENV and OPT_CONFIG_DIR are meta config and excluded.
    """
    excluded = {"OPT_ENV", "OPT_CONFIG_DIR"}
    overrides: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix) or key in excluded:
            continue

        section, _, name = key[len(prefix):].lower().partition("_")
        if not name:
            continue

        try:
            parsed = yaml.safe_load(value)
        except yaml.YAMLError:
            parsed = value

        overrides.setdefault(section, {})[name] = parsed

    if overrides:
        logger.debug("Loaded %d env var override sections", len(overrides))
    return overrides


# ═══════════════════════════════════════════════════════════════════
# Main Loader
# ═══════════════════════════════════════════════════════════════════

def load_config(
    base_path: str = "optimist.yaml",
    env: str = "",
    config_dir: str = "",
    include_env_vars: bool = True,
) -> dict[str, Any]:
    """
    Load configuration with three-tier merging.

    Priority (highest wins):
      1. Environment variable overrides (OPT_*)
      2. Per-environment overlay file (config/{env}.yaml)
      3. Base config file (optimist.yaml)
    """
    config = {}
    if os.path.exists(base_path):
        with open(base_path) as f:
            config = yaml.safe_load(f) or {}
        logger.debug("Loaded base config: %s", base_path)

    overlay = _load_overlay_file(base_path, env=env, config_dir=config_dir)
    if overlay:
        config = deep_merge(config, overlay)

    if include_env_vars:
        env_overrides = _load_env_overrides()
        if env_overrides:
            config = deep_merge(config, env_overrides)

    config["_active_env"] = env or os.environ.get("OPT_ENV", "default")
    config["_config_source"] = base_path

    return config


def get_config_value(
    path: str,
    config: dict[str, Any] | None = None,
    default: Any = None,
) -> Any:
    """
    Get a nested config value by dotted path.

    Example:
        get_config_value("reconciler.strict_resolution", cfg, False)
    """
    if config is None:
        config = load_config()

    current = config
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default
    return current


# ═══════════════════════════════════════════════════════════════════
# Reconciler Settings
# ═══════════════════════════════════════════════════════════════════

@dataclass
class ReconcilerConfig:
    """Settings for OptimisticReducer."""
    strict_resolution: bool = False   # raise InvalidResolution instead of logging a no-op
    snapshot: str = "reference"       # reference | deepcopy

    def __post_init__(self):
        if not isinstance(self.strict_resolution, bool):
            raise ValueError(
                f"strict_resolution must be a boolean, got {self.strict_resolution!r}"
            )
        if self.snapshot not in SNAPSHOT_MODES:
            raise ValueError(
                f"Unknown snapshot mode {self.snapshot!r}; expected one of {SNAPSHOT_MODES}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ReconcilerConfig:
        data = data or {}
        strict = data.get("strict_resolution", False)
        if isinstance(strict, str):
            # Quoted YAML scalars ("false", "no") parse the same as env overrides
            try:
                strict = yaml.safe_load(strict)
            except yaml.YAMLError:
                pass
        return cls(
            strict_resolution=strict,
            snapshot=str(data.get("snapshot", "reference")),
        )


def load_reconciler_config(
    base_path: str = "optimist.yaml",
    env: str = "",
    config_dir: str = "",
) -> ReconcilerConfig:
    """Load the `reconciler` section of the layered config."""
    config = load_config(base_path=base_path, env=env, config_dir=config_dir)
    return ReconcilerConfig.from_dict(config.get("reconciler"))
