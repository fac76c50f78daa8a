"""Simple YAML configuration loader for Dictaview."""

import copy
import math
import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "overlay": {
        "tick_interval_ms": 100,
        "level_history_length": 24,
        "level_poll_interval_ms": 50,
        "topic_prefix": "voice",
    },
    "ui": {
        "refresh_per_second": 20,
        "max_transcript_chars": 48,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/dictaview.log",
        "console_output": True,
    },
}


class ConfigurationError(ValueError):
    """Configuration file or value is invalid."""


@dataclass(frozen=True)
class OverlaySettings:
    """Validated overlay tuning values."""
    tick_interval_ms: int
    level_history_length: int
    level_poll_interval_ms: int
    topic_prefix: str


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class DictaviewConfig:
    """Dictaview configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        config = _deep_merge(DEFAULT_CONFIG, loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        if 'logging' in config and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

        if 'replay' in config and 'script_path' in config['replay']:
            script_path = config['replay']['script_path']
            if not os.path.isabs(script_path):
                config['replay']['script_path'] = str(config_dir / script_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'overlay.tick_interval_ms').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'ui.refresh_per_second')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def _positive_int(self, key_path: str) -> int:
        value = self.get(key_path)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ConfigurationError(f"'{key_path}' must be a positive number, got {value!r}")
        # Truncated value must stay positive
        if int(value) <= 0:
            raise ConfigurationError(f"'{key_path}' must be at least 1, got {value!r}")
        return int(value)

    def get_overlay_settings(self) -> OverlaySettings:
        """Get validated overlay settings - raises ConfigurationError on bad values."""
        return OverlaySettings(
            tick_interval_ms=self._positive_int('overlay.tick_interval_ms'),
            level_history_length=self._positive_int('overlay.level_history_length'),
            level_poll_interval_ms=self._positive_int('overlay.level_poll_interval_ms'),
            topic_prefix=str(self.get('overlay.topic_prefix', 'voice')),
        )

    def get_log_file_path(self) -> str:
        """Get log file path."""
        log_path = self.get('logging.file_path', 'data/logs/dictaview.log')
        return str(Path(log_path).absolute())
