"""
Settings loader for settings.yaml.

Usage:
    from speech_rules.settings import settings

    domain = settings.rules.default_domain
    level = settings.get_nested("logging.level", "INFO")
"""

import logging
import yaml
from pathlib import Path
from typing import List, Any

logger = logging.getLogger(__name__)

# Path to the bundled settings file
SETTINGS_FILE = Path(__file__).parent / "settings.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("readable", "json")

# Defaults (used for keys missing from the YAML file)
DEFAULTS = {
    "logging": {
        "level": "INFO",
        "format": "readable",
    },
    "rules": {
        "default_domain": "default",
        "default_style": "default",
        "debug": False,
        "tables": ["mathml.yaml"],
    },
    "xpath": {
        "namespaces": {
            "mathml": "http://www.w3.org/1998/Math/MathML",
        },
    },
}


class DotDict(dict):
    """Dictionary with attribute access: d.key instead of d['key']"""

    def __getattr__(self, key: str) -> Any:
        try:
            value = self[key]
            if isinstance(value, dict):
                return DotDict(value)
            return value
        except KeyError:
            raise AttributeError(f"Setting '{key}' not found")

    def __setattr__(self, key: str, value: Any) -> None:
        self[key] = value

    def get_nested(self, path: str, default: Any = None) -> Any:
        """Get a value by dotted path: 'rules.default_domain'"""
        keys = path.split('.')
        value = self
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge of dictionaries (override wins)"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(filepath: Path = None) -> DotDict:
    """
    Load settings from a YAML file.

    Priority:
    1. Values from the YAML file
    2. DEFAULTS

    Args:
        filepath: Settings file (defaults to the bundled settings.yaml)

    Returns:
        DotDict with settings
    """
    filepath = filepath or SETTINGS_FILE

    config = _deep_merge({}, DEFAULTS)

    if filepath.exists():
        with open(filepath, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        config = _deep_merge(config, yaml_config)
    else:
        logger.warning("Settings file not found: %s, using defaults", filepath)

    return DotDict(config)


def validate_settings(settings: DotDict) -> List[str]:
    """
    Validate settings.

    Returns:
        List of errors (empty if everything is OK)
    """
    errors = []

    # Logging
    level = str(settings.get_nested("logging.level", "")).upper()
    if level not in LOG_LEVELS:
        errors.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}")
    if settings.get_nested("logging.format") not in LOG_FORMATS:
        errors.append(f"logging.format must be one of {', '.join(LOG_FORMATS)}")

    # Rules
    for name in ["default_domain", "default_style"]:
        value = settings.get_nested(f"rules.{name}")
        if not value or not isinstance(value, str):
            errors.append(f"rules.{name} is not set")
        elif "." in value:
            errors.append(f"rules.{name} must not contain '.'")

    tables = settings.get_nested("rules.tables", [])
    if not isinstance(tables, list) or not all(isinstance(t, str) for t in tables):
        errors.append("rules.tables must be a list of file names")

    # XPath
    namespaces = settings.get_nested("xpath.namespaces", {})
    if not isinstance(namespaces, dict):
        errors.append("xpath.namespaces must be a mapping of prefix to URI")

    return errors


# Global settings instance (lazy)
_settings = None


def get_settings() -> DotDict:
    """Get the global settings (singleton)"""
    global _settings
    if _settings is None:
        _settings = load_settings()
        errors = validate_settings(_settings)
        for err in errors:
            logger.error("Invalid setting: %s", err)
    return _settings


def reload_settings() -> DotDict:
    """Reload settings from file"""
    global _settings
    _settings = None
    return get_settings()


# For convenient import: from speech_rules.settings import settings
settings = get_settings()
