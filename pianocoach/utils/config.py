"""
Configuration management for PianoCoach.

Loads and validates configuration from YAML files with environment
variable interpolation support. All analysis and scoring policy
constants (window sizes, thresholds, weights, deadlines) live here.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pianocoach.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages application configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME})
    - Nested key access with dot notation
    - Schema validation
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._interpolate_env_vars()
        return manager

    def _interpolate_env_vars(self) -> None:
        """Replace ${ENV_VAR} patterns with environment variable values."""
        self._config = self._interpolate(self._config)

    def _interpolate(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._interpolate(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._interpolate(v) for v in value]
        if isinstance(value, str):
            return self._interpolate_string(value)
        return value

    def _interpolate_string(self, s: str) -> Any:
        """Replace ${ENV_VAR} with environment variable value."""
        def replace(match: re.Match) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                return match.group(0)  # Keep original if not found
            return value

        result = self._env_pattern.sub(replace, s)
        if result != s:
            # Interpolated values are YAML scalars ("0.5" -> 0.5)
            return yaml.safe_load(result)
        return result

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            config.get("pipeline.timeout", default=30.0)
            config.get("analysis.window_size", required=True)
        """
        value: Any = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Get an entire configuration section (empty dict if not found)."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            if k not in current:
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Schema format:
            {
                "analysis.window_size": {"type": int, "required": True},
                "pipeline.timeout": {"type": (int, float), "min": 0}
            }

        Raises:
            ConfigurationError: If validation fails
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            if expected_type and not isinstance(value, expected_type):
                type_name = getattr(expected_type, "__name__", str(expected_type))
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {type_name}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )

            minimum = rules.get("min")
            if minimum is not None and value <= minimum:
                raise ConfigurationError(
                    f"Invalid value for {key}: must be greater than {minimum}",
                    config_key=key
                )


CONFIG_SCHEMA: Dict[str, Dict[str, Any]] = {
    "analysis.window_size": {"type": int, "required": True, "min": 0},
    "analysis.hop_size": {"type": int, "required": True, "min": 0},
    "analysis.pitch_threshold": {"type": (int, float), "min": 0},
    "analysis.beat_threshold_ratio": {"type": (int, float), "min": 0},
    "analysis.n_mfcc": {"type": int, "min": 0},
    "analysis.n_mels": {"type": int, "min": 0},
    "pipeline.timeout": {"type": (int, float), "min": 0},
    "pipeline.max_duration": {"type": (int, float), "min": 0},
    "pipeline.max_samples": {"type": int, "min": 0},
    "pipeline.max_workers": {"type": int, "min": 0},
    "comparison.weights": {"type": dict},
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file or return defaults.

    File values are merged over the defaults, so a config file only needs
    to name the constants it changes.

    Args:
        config_path: Optional path to config file.
                    If None, tries "config/config.yaml"

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    if config_path is None:
        default_paths = [
            Path("config/config.yaml"),
            Path("config.yaml"),
            Path(__file__).parent.parent.parent / "config" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                config_path = str(path)
                break

    if config_path and Path(config_path).exists():
        manager = ConfigManager.from_file(Path(config_path))
        merged = ConfigManager(merge_config(get_default_config(), manager.to_dict()))
        merged.validate(CONFIG_SCHEMA)
        return merged.to_dict()

    return get_default_config()


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "audio": {
            "supported_formats": [".wav", ".aiff", ".aif", ".mp3", ".flac", ".ogg"],
            "max_file_size": 209715200,  # 200MB
            "target_sample_rate": 22050,
        },
        "analysis": {
            "window_size": 2048,
            "hop_size": 512,
            "pitch_threshold": 0.1,
            "beat_threshold_ratio": 0.3,
            "min_bpm": 60.0,
            "max_bpm": 200.0,
            "default_bpm": 120.0,
            "n_mfcc": 13,
            "n_mels": 40,
            "fmin": 20.0,
            "fmax": None,  # Nyquist
        },
        "pipeline": {
            "timeout": 30.0,
            "max_duration": 600.0,
            "max_samples": 48000 * 600,
            "max_workers": 4,
        },
        "comparison": {
            "weights": {"pitch": 0.4, "rhythm": 0.35, "timbre": 0.25},
            "pitch_weights": {"accuracy": 0.7, "stability": 0.3},
            "rhythm_weights": {"tempo": 0.4, "beat": 0.4, "pattern": 0.2},
            "timbre_weights": {"mfcc": 0.5, "loudness": 0.3, "harmonic": 0.2},
            "pitch_time_tolerance": 0.1,
            "beat_time_tolerance": 0.1,
            "timbre_time_tolerance": 0.2,
            "stability_scale": 1000.0,
            "tempo_penalty_per_bpm": 2.0,
        },
        "cache": {
            "enabled": True,
            "max_size": 64,
            "ttl": 3600,
        },
        "logging": {
            "level": "INFO",
            "format": "text",
        },
    }
