"""Configuration loader and validator."""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from tennisclub.i18n import SUPPORTED_LANGUAGES, get_language_from_env
from tennisclub.models import ByePolicy, TournamentSettings

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = ".tennisclub/tennisclub.sqlite"


class ConfigError(Exception):
    """Configuration validation error."""

    pass


def load_config(path: str) -> dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML config file

    Returns:
        Dictionary with configuration values

    Raises:
        ConfigError: If file not found or invalid YAML
    """
    config_file = Path(path)

    if not config_file.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if config is None:
        raise ConfigError("Config file is empty")

    if not isinstance(config, dict):
        raise ConfigError("Config file must contain a mapping")

    return config


def _positive_int(value: Any, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return value


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate configuration values.

    Args:
        config: Configuration dictionary

    Returns:
        Validated and normalized configuration. ``tournament_defaults`` is
        returned as a TournamentSettings and ``bye_policy`` as a ByePolicy.

    Raises:
        ConfigError: If validation fails
    """
    validated = {}

    # Database path (optional)
    database = config.get("database", DEFAULT_DATABASE)
    if not isinstance(database, str) or not database:
        raise ConfigError("database must be a non-empty path")
    validated["database"] = database

    # Language (optional, default from TENNISCLUB_LANG, else 'de')
    lang = config.get("lang", get_language_from_env())
    if lang not in SUPPORTED_LANGUAGES:
        raise ConfigError(f"lang must be one of {SUPPORTED_LANGUAGES}, got '{lang}'")
    validated["lang"] = lang

    # Bye policy (optional, default 'confirm')
    bye_policy = config.get("bye_policy", ByePolicy.CONFIRM.value)
    try:
        validated["bye_policy"] = ByePolicy(bye_policy)
    except ValueError:
        choices = [p.value for p in ByePolicy]
        raise ConfigError(f"bye_policy must be one of {choices}, got '{bye_policy}'")

    # Strict score checking (optional, default off)
    strict_scores = config.get("strict_scores", False)
    if not isinstance(strict_scores, bool):
        raise ConfigError("strict_scores must be true or false")
    validated["strict_scores"] = strict_scores

    # Defaults for new tournaments
    defaults = config.get("tournament_defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigError("tournament_defaults must be a dictionary")

    unknown = set(defaults) - {"groups_count", "advance_per_group", "sets_to_win"}
    if unknown:
        logger.warning("Ignoring unknown tournament_defaults keys: %s", ", ".join(sorted(unknown)))

    settings = TournamentSettings.from_dict(defaults)
    _positive_int(settings.groups_count, "groups_count")
    _positive_int(settings.advance_per_group, "advance_per_group")
    _positive_int(settings.sets_to_win, "sets_to_win")
    validated["tournament_defaults"] = settings

    return validated


def load_and_validate_config(path: Optional[str] = None) -> dict[str, Any]:
    """Load and validate configuration in one step.

    Args:
        path: Path to YAML config file, None for built-in defaults

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigError: If loading or validation fails
    """
    if path is None:
        return validate_config({})
    config = load_config(path)
    return validate_config(config)
