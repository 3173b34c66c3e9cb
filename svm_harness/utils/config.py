"""
Configuration management for the SVM experiment harness.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional


class Config:
    """Simple configuration loader for the experiment harness."""

    def __init__(self, config_path: Optional[str] = "config.yaml", values: Optional[Dict[str, Any]] = None):
        """Initialize config loader with path to YAML file, or with in-memory values."""
        self.config_path = Path(config_path) if config_path else None
        self._config = values

    def load(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if self.config_path is None:
            self._config = self._config or {}
            return self._config
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        return self._config

    def get(self, section: str, default: Any = None) -> Dict[str, Any]:
        """Get configuration section (e.g., 'data', 'solver', 'grid_search')."""
        if self._config is None:
            self.load()
        if self._config is None:
            return default
        value = self._config.get(section, default)
        return default if value is None else value

    def set(self, section: str, key: str, value: Any) -> None:
        """Override a single value, creating the section if needed."""
        if self._config is None:
            self.load()
        self._config.setdefault(section, {})[key] = value

    @property
    def data(self) -> Dict[str, Any]:
        """Get dataset configuration."""
        return self.get('data', {})

    @property
    def solver(self) -> Dict[str, Any]:
        """Get SVM solver parameters."""
        return self.get('solver', {})

    @property
    def cross_validation(self) -> Dict[str, Any]:
        """Get cross-validation configuration."""
        return self.get('cross_validation', {})

    @property
    def grid_search(self) -> Dict[str, Any]:
        """Get grid search configuration."""
        return self.get('grid_search', {})

    @property
    def persistence(self) -> Dict[str, Any]:
        """Get model persistence configuration."""
        return self.get('persistence', {})

    @property
    def output(self) -> Dict[str, Any]:
        """Get report output configuration."""
        return self.get('output', {})

    @property
    def system(self) -> Dict[str, Any]:
        """Get system (logging) configuration."""
        return self.get('system', {})


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from YAML file."""
    config = Config(config_path)
    config.load()
    return config
