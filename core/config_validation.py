#!/usr/bin/env python3
"""
Validation of scene timing alignment settings.

The JSON schema shipped next to this module (``core/schemas/alignment.json``)
checks structure and per-key types; ``validate_parameter_ranges`` covers the
rules that span several keys.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import Draft7Validator, ValidationError

from core.config_loader import ConfigurationError, _substitute_env_vars

logger = logging.getLogger(__name__)

ALIGNMENT_SCHEMA_PATH = Path(__file__).parent / "schemas" / "alignment.json"


class ConfigurationValidator:
    """Checks alignment settings against the bundled schema."""

    def __init__(self, schema_path: Optional[str] = None):
        self.schema_path = Path(schema_path) if schema_path else ALIGNMENT_SCHEMA_PATH
        try:
            with open(self.schema_path, 'r', encoding='utf-8') as f:
                self.schema = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load alignment schema {self.schema_path}: {e}")

        self._validator = Draft7Validator(self.schema)
        logger.debug(f"Loaded alignment schema from {self.schema_path}")

    def validate_config(self, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate a configuration mapping.

        Returns:
            Tuple of (is_valid, error_messages), errors ordered by key path
        """
        errors = [
            self._describe(error)
            for error in sorted(self._validator.iter_errors(config), key=lambda e: list(e.absolute_path))
        ]
        return not errors, errors

    @staticmethod
    def _describe(error: ValidationError) -> str:
        location = ".".join(str(p) for p in error.absolute_path)
        return f"{location}: {error.message}" if location else error.message

    def validate_file(self, config_path: str) -> Tuple[bool, List[str]]:
        """Validate a YAML settings file, including cross-field ranges."""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = _substitute_env_vars(yaml.safe_load(f) or {})
        except (OSError, yaml.YAMLError) as e:
            return False, [f"Failed to load config file: {e}"]

        is_valid, errors = self.validate_config(config)
        if is_valid:
            errors = validate_parameter_ranges(config)
            is_valid = not errors
        return is_valid, errors


def validate_alignment_config(config_path: str = "config/alignment.yaml") -> bool:
    """Validate a settings file and log each problem; True when valid."""
    is_valid, errors = ConfigurationValidator().validate_file(config_path)

    if not is_valid:
        logger.error(f"Alignment configuration {config_path} is invalid:")
        for error in errors:
            logger.error(f"  - {error}")
        return False

    logger.info(f"Alignment configuration {config_path} is valid")
    return True


def validate_parameter_ranges(config: Dict[str, Any]) -> List[str]:
    """
    Validate parameter ranges and logical constraints the schema cannot express.

    Args:
        config: Configuration dictionary

    Returns:
        List of validation error messages
    """
    errors = []
    alignment = config.get('alignment') or {}

    min_duration = alignment.get('min_scene_duration_sec', 3.0)
    max_duration = alignment.get('max_scene_duration_sec', 10.0)
    if min_duration >= max_duration:
        errors.append("alignment.min_scene_duration_sec must be less than max_scene_duration_sec")

    target = alignment.get('target_scene_duration_sec', 7.0)
    if not min_duration <= target <= max_duration:
        errors.append("alignment.target_scene_duration_sec must lie between the min and max scene durations")

    # Splitting relies on two minimum parts fitting inside one over-long scene
    if 2 * min_duration > max_duration:
        errors.append("alignment.max_scene_duration_sec must be at least twice min_scene_duration_sec")

    min_score = alignment.get('min_match_score', 0.5)
    trusted = alignment.get('trusted_match_confidence', 0.5)
    if trusted < min_score:
        errors.append("alignment.trusted_match_confidence must not be below min_match_score")

    return errors


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    config_file = sys.argv[1] if len(sys.argv) > 1 else "config/alignment.yaml"
    sys.exit(0 if validate_alignment_config(config_file) else 1)
