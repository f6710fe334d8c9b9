"""
Configuration management (YAML + environment overrides).

Sources, lowest to highest priority:
1. Bundled defaults: statewright.data/config/defaults.yaml
2. Project file passed to :class:`ConfigManager` (any YAML mapping)
3. Environment variables: ``STATEWRIGHT_<section>__<key>=value``
"""
from __future__ import annotations

import copy
import json
import logging
import os
import re
from functools import cached_property
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .data import read_yaml
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "STATEWRIGHT_"


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge dictionaries without mutating inputs.

    Example:
        >>> deep_merge({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
        {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result: Dict[str, Any] = dict(base)
    for key, value in (override or {}).items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping. Missing, unparsable or non-mapping files raise ConfigError."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"File not found: {path}", context={"path": str(path)})
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"{path} must contain a mapping, got {type(data).__name__}",
            context={"path": str(path)},
        )
    return data


class ConfigManager:
    """Load and merge statewright configuration."""

    def __init__(self, path: Optional[Path] = None, *, environ: Optional[Mapping[str, str]] = None) -> None:
        self.path = Path(path) if path is not None else None
        self._environ = environ if environ is not None else os.environ
        self._cache: Optional[Dict[str, Any]] = None

    # -- environment coercion ---------------------------------------------

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except ValueError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        if value.strip().lower() in {"null", "none"}:
            return None
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _parse_env_key(self, raw: str) -> List[str]:
        return [seg.lower() for seg in raw.split("__") if seg]

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for key in sorted(self._environ.keys()):
            if not key.startswith(ENV_PREFIX):
                continue
            path = self._parse_env_key(key[len(ENV_PREFIX):])
            if not path:
                continue
            node = cfg
            for part in path[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[path[-1]] = self._coerce_type(self._environ[key])
            logger.debug("Config override from %s", key)

    # -- loading ----------------------------------------------------------

    def load_config(self) -> Dict[str, Any]:
        if self._cache is None:
            cfg = copy.deepcopy(read_yaml("config", "defaults.yaml"))
            if self.path is not None:
                cfg = deep_merge(cfg, read_yaml_file(self.path))
            self.apply_env_overrides(cfg)
            self._cache = cfg
        return self._cache

    def get(self, key: str, default: Any = None) -> Any:
        """Read a dotted key, e.g. ``get("logging.level")``."""
        node: Any = self.load_config()
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def clear_cache(self) -> None:
        self._cache = None


class StatewrightConfig:
    """Typed, read-only view over the merged configuration."""

    def __init__(self, path: Optional[Path] = None, *, manager: Optional[ConfigManager] = None) -> None:
        self.manager = manager if manager is not None else ConfigManager(path)

    @cached_property
    def log_level(self) -> str:
        return str(self.manager.get("logging.level", "INFO") or "INFO")

    @cached_property
    def log_path(self) -> Optional[Path]:
        raw = self.manager.get("logging.path")
        return Path(raw).expanduser() if raw else None

    @cached_property
    def validate_documents(self) -> bool:
        return bool(self.manager.get("validation.enabled", True))

    @cached_property
    def statemachine(self) -> Mapping[str, Any]:
        section = self.manager.get("statemachine", {}) or {}
        if not isinstance(section, Mapping):
            raise ConfigError("'statemachine' must be a mapping of machine name to specification")
        return section


__all__ = ["ConfigManager", "StatewrightConfig", "deep_merge", "read_yaml_file", "ENV_PREFIX"]
