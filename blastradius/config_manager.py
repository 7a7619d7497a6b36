"""Configuration manager for BlastRadius using TOML files."""

from __future__ import annotations

import logging
import math
from dataclasses import fields
from typing import Any, Dict

import toml

from .config import BASE_DIR, CONFIG_FILE
from .models import ScoringPolicy

logger = logging.getLogger(__name__)

SCORING_SECTION = "scoring"


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_FILE, exc)
        return {}


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
    try:
        with open(CONFIG_FILE, "w") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", CONFIG_FILE, exc)
        return False


def policy_field_types() -> Dict[str, type]:
    defaults = ScoringPolicy()
    return {f.name: type(getattr(defaults, f.name)) for f in fields(ScoringPolicy)}


def coerce_policy_value(key: str, value: Any) -> Any:
    """Convert a raw value to the type of the matching ScoringPolicy field.

    Raises:
        KeyError: unknown key
        ValueError: value cannot be converted, is fractional for an integer
            setting, is negative, or is a decay above 1
    """
    types = policy_field_types()
    if key not in types:
        raise KeyError(key)
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{key} must be finite")
    if types[key] is int:
        if not number.is_integer():
            raise ValueError(f"{key} must be a whole number")
        converted = int(number)
    else:
        converted = number
    if converted < 0:
        raise ValueError(f"{key} must not be negative")
    if key == "depth_decay" and converted > 1:
        raise ValueError("depth_decay must not exceed 1")
    return converted


def load_scoring_policy() -> ScoringPolicy:
    """Build the scoring policy from defaults overlaid with ``[scoring]``.

    Unknown keys and unconvertible values are ignored with a warning.
    """
    section = load_full_config().get(SCORING_SECTION, {})
    if not isinstance(section, dict):
        return ScoringPolicy()
    overrides = {}
    for key, value in section.items():
        try:
            overrides[key] = coerce_policy_value(key, value)
        except KeyError:
            logger.warning("Unknown scoring setting '%s' ignored", key)
        except (TypeError, ValueError) as exc:
            logger.warning("Invalid value for scoring setting '%s': %s", key, exc)
    return ScoringPolicy(**overrides)


def save_scoring_value(key: str, value: Any) -> bool:
    """Persist one scoring setting, keeping other sections intact.

    Args:
        key: ScoringPolicy field name
        value: Raw value, converted to the field's type

    Returns:
        True if saved successfully, False otherwise
    """
    converted = coerce_policy_value(key, value)
    config = load_full_config()
    section = config.get(SCORING_SECTION)
    if not isinstance(section, dict):
        section = {}
    section[key] = converted
    config[SCORING_SECTION] = section
    return _save_full_config(config)


def reset_scoring() -> bool:
    """Drop the ``[scoring]`` section so defaults apply again."""
    config = load_full_config()
    config.pop(SCORING_SECTION, None)
    return _save_full_config(config)
