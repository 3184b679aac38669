#!/usr/bin/env python3
"""
Centralized configuration loading for scene timing alignment.

This module loads the alignment YAML configuration, handles environment
variable substitution and caching, and converts the result into the
immutable AlignmentConfig consumed by the alignment engine.
"""

import os
import re
import logging
import yaml
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, Optional
from functools import lru_cache

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/alignment.yaml"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


@dataclass(frozen=True)
class AlignmentConfig:
    """Tuning constants for alignment, splitting, smoothing and clip repair."""
    # Hard limits of the downstream video model
    max_scene_duration_sec: float = 10.0
    min_scene_duration_sec: float = 3.0
    target_scene_duration_sec: float = 7.0

    # Fuzzy matching
    min_match_score: float = 0.5
    trusted_match_confidence: float = 0.5
    backward_tolerance_sec: float = 0.5
    search_window_factor: int = 2

    # Fallback estimation
    words_per_second: float = 2.5

    # Splitting
    split_confidence_factor: float = 0.9
    split_search_radius_sec: float = 2.0
    min_pause_sec: float = 0.1
    continuation_transition_hint: str = "same-framing"

    # Smoothing
    gap_tolerance_sec: float = 0.1
    tail_extension_threshold_sec: float = 1.0

    # Clip validation
    overlap_tolerance_sec: float = 0.1
    min_clip_duration_sec: float = 3.0

    # Quality reporting
    low_confidence_threshold: float = 0.5

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'AlignmentConfig':
        """
        Build a config from the sectioned YAML structure.

        Keys from the ``alignment``, ``clip_validation`` and ``quality``
        sections are flattened; unknown keys are ignored with a warning.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for section in ("alignment", "clip_validation", "quality"):
            for key, value in (config.get(section) or {}).items():
                if key in known:
                    values[key] = value
                else:
                    logger.warning(f"Ignoring unknown {section} setting: {key}")
        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigurationError(f"Invalid alignment configuration: {e}")


@lru_cache(maxsize=16)
def load_alignment_config_dict(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load the raw alignment configuration with caching.

    Args:
        config_path: Path to alignment configuration file

    Returns:
        Dictionary containing alignment configuration

    Raises:
        ConfigurationError: If configuration cannot be loaded
    """
    try:
        config_path = Path(config_path)
        if not config_path.exists():
            logger.warning(f"Alignment configuration not found: {config_path}, using defaults")
            return _get_default_alignment_config()

        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ConfigurationError(f"Alignment configuration must be a mapping: {config_path}")

        config = _substitute_env_vars(config)
        logger.debug(f"Loaded alignment configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Failed to load alignment configuration {config_path}: {e}")


def load_alignment_config(config_path: str = DEFAULT_CONFIG_PATH,
                          validate: bool = True) -> AlignmentConfig:
    """
    Load, validate and convert the alignment configuration.

    Args:
        config_path: Path to alignment configuration file
        validate: Run schema and range validation before conversion; the
            built-in defaults used for a missing file are not re-checked

    Returns:
        AlignmentConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = load_alignment_config_dict(config_path)
    if validate and Path(config_path).exists():
        validate_configuration(config)
    return AlignmentConfig.from_dict(config)


def get_logging_level(config: Optional[Dict[str, Any]] = None) -> str:
    """Get the configured log level name (default INFO)."""
    if config is None:
        config = load_alignment_config_dict()
    return str((config.get("logging") or {}).get("level", "INFO")).upper()


def _substitute_env_vars(config: Any) -> Any:
    """
    Recursively substitute environment variables in configuration values.

    Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax. A value that is
    entirely one substitution is converted back to a number when possible.
    """
    if isinstance(config, dict):
        return {key: _substitute_env_vars(value) for key, value in config.items()}
    elif isinstance(config, list):
        return [_substitute_env_vars(item) for item in config]
    elif isinstance(config, str):
        def replace_env_var(match):
            var_expr = match.group(1)
            if ":-" in var_expr:
                var_name, default = var_expr.split(":-", 1)
                return os.getenv(var_name, default)
            else:
                return os.getenv(var_expr, match.group(0))  # Return original if not found

        substituted = re.sub(r'\$\{([^}]+)\}', replace_env_var, config)
        if substituted != config:
            return _coerce_scalar(substituted)
        return substituted
    else:
        return config


def _coerce_scalar(value: str) -> Any:
    """Parse a substituted string the way YAML would parse a bare scalar."""
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        return value
    if isinstance(parsed, (int, float, bool)):
        return parsed
    return value


def _get_default_alignment_config() -> Dict[str, Any]:
    """Return default alignment configuration when the config file is not found."""
    defaults = AlignmentConfig()
    return {
        "alignment": {
            "max_scene_duration_sec": defaults.max_scene_duration_sec,
            "min_scene_duration_sec": defaults.min_scene_duration_sec,
            "target_scene_duration_sec": defaults.target_scene_duration_sec,
            "min_match_score": defaults.min_match_score,
            "trusted_match_confidence": defaults.trusted_match_confidence,
            "backward_tolerance_sec": defaults.backward_tolerance_sec,
            "search_window_factor": defaults.search_window_factor,
            "words_per_second": defaults.words_per_second,
            "split_confidence_factor": defaults.split_confidence_factor,
            "split_search_radius_sec": defaults.split_search_radius_sec,
            "min_pause_sec": defaults.min_pause_sec,
            "continuation_transition_hint": defaults.continuation_transition_hint,
            "gap_tolerance_sec": defaults.gap_tolerance_sec,
            "tail_extension_threshold_sec": defaults.tail_extension_threshold_sec,
        },
        "clip_validation": {
            "overlap_tolerance_sec": defaults.overlap_tolerance_sec,
            "min_clip_duration_sec": defaults.min_clip_duration_sec,
        },
        "quality": {
            "low_confidence_threshold": defaults.low_confidence_threshold,
        },
        "logging": {
            "level": "INFO",
        },
    }


def validate_configuration(config: Dict[str, Any]) -> bool:
    """
    Validate configuration against expected structure and ranges.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid

    Raises:
        ConfigurationError: If configuration is invalid
    """
    # Import here to avoid circular imports
    from core.config_validation import ConfigurationValidator, validate_parameter_ranges

    validator = ConfigurationValidator()
    is_valid, errors = validator.validate_config(config)
    if is_valid:
        errors.extend(validate_parameter_ranges(config))

    if not is_valid or errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {err}" for err in errors)
        raise ConfigurationError(error_msg)

    return True


def clear_config_cache():
    """Clear the configuration cache to force reloading on next access."""
    load_alignment_config_dict.cache_clear()
    logger.debug("Configuration cache cleared")
