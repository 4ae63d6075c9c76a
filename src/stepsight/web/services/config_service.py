from __future__ import annotations

import os
from typing import Any, Dict, Optional

import yaml


class ConfigService:
    """
    Manages layered config in one directory:
    - <config_dir>/default.yaml (checked in)
    - <config_dir>/config.yaml (local overrides, written by the settings API)
    - an optional explicit file passed on the command line (applied last)
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = config_dir
        self.default_path = os.path.join(config_dir, "default.yaml")
        self.overrides_path = os.path.join(config_dir, "config.yaml")

    @classmethod
    def for_config_file(cls, config_path: str) -> "ConfigService":
        """Service for the directory holding config_path."""
        return cls(os.path.dirname(config_path))

    @staticmethod
    def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override into base and return base."""
        for k, v in (override or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                ConfigService.deep_merge(base[k], v)
            else:
                base[k] = v
        return base

    @staticmethod
    def _load_yaml(path: str) -> Dict[str, Any]:
        if not path or not os.path.exists(path):
            return {}
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return data

    def load_default(self) -> Dict[str, Any]:
        return self._load_yaml(self.default_path)

    def load_overrides(self) -> Dict[str, Any]:
        return self._load_yaml(self.overrides_path)

    def load_effective_config(self, explicit_path: Optional[str] = None) -> Dict[str, Any]:
        merged = self.load_default()
        self.deep_merge(merged, self.load_overrides())
        if explicit_path and os.path.abspath(explicit_path) != os.path.abspath(self.overrides_path):
            self.deep_merge(merged, self._load_yaml(explicit_path))
        return merged

    def save_overrides(self, overrides: Dict[str, Any]) -> None:
        os.makedirs(os.path.dirname(self.overrides_path) or ".", exist_ok=True)
        with open(self.overrides_path, "w") as f:
            yaml.safe_dump(overrides or {}, f, sort_keys=False)

    def merge_overrides(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Merge updates into the saved overrides file and return the result."""
        overrides = self.deep_merge(self.load_overrides(), updates)
        self.save_overrides(overrides)
        return overrides
