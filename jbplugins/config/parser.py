"""Configuration file parsing utilities."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from jbplugins.config.schemas import (
    PluginRecord,
    SelectionFile,
    Settings,
    default_settings_file,
)
from jbplugins.utils.platform import get_env

logger = logging.getLogger(__name__)

SETTINGS_FILE_ENV = "JB_PLUGINS_SETTINGS"

# Environment variables that override individual settings
ENV_OVERRIDES = {
    "marketplace_url": "JB_PLUGINS_MARKETPLACE_URL",
    "selection_file": "JB_PLUGINS_SELECTION_FILE",
    "default_command": "JB_PLUGINS_DEFAULT_COMMAND",
}


class ConfigError(Exception):
    """Error loading or parsing configuration."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


def load_json(path: Path) -> Any:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON value

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}", path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def save_json(path: Path, data: dict[str, Any], indent: int = 2) -> None:
    """Save data to a JSON file, replacing any previous content.

    Args:
        path: Path to write to
        data: Data to serialize
        indent: JSON indentation level
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)
        f.write("\n")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML as a dictionary

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}", path)

    try:
        with open(path, encoding="utf-8") as f:
            result = yaml.safe_load(f)
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ConfigError(f"YAML file must contain a mapping: {path}", path)
            return result
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}", path) from e


def load_settings(path: Path | None = None) -> Settings:
    """Load user settings.

    Values come from the settings file (if present), then from environment
    overrides, then from the model defaults.

    Args:
        path: Settings file (defaults to $JB_PLUGINS_SETTINGS or
              ~/.config/jb-plugins/config.yaml)

    Returns:
        Validated Settings

    Raises:
        ConfigError: If the settings file or an override is invalid
    """
    if path is None:
        env_path = get_env(SETTINGS_FILE_ENV)
        path = Path(env_path).expanduser() if env_path else default_settings_file()

    data: dict[str, Any] = {}
    if path.exists():
        logger.debug("Loading settings from %s", path)
        data = load_yaml(path)

    for field, env_name in ENV_OVERRIDES.items():
        value = get_env(env_name)
        if value:
            logger.debug("Setting %s overridden by %s", field, env_name)
            data[field] = value

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", path) from e


def load_selection_file(path: Path) -> list[PluginRecord] | None:
    """Load the persisted plugin selection.

    Args:
        path: Path to the selection file

    Returns:
        The stored records in order, or None if the file is missing,
        unreadable or not shaped like a selection file
    """
    try:
        data = load_json(path)
    except ConfigError as e:
        logger.debug("No usable selection file: %s", e)
        return None

    if not isinstance(data, dict) or not isinstance(data.get("selectedPlugins"), list):
        logger.debug("Ignoring selection file with unexpected shape: %s", path)
        return None

    try:
        return SelectionFile.model_validate(data).selected_plugins
    except ValidationError as e:
        logger.debug("Selection file %s has invalid content: %s", path, e)

    # Keep the valid entries rather than losing the whole basket
    records: list[PluginRecord] = []
    for index, entry in enumerate(data["selectedPlugins"]):
        try:
            records.append(PluginRecord.model_validate(entry))
        except ValidationError as e:
            logger.debug("Skipping invalid selection entry %d in %s: %s", index, path, e)
    return records


def save_selection_file(path: Path, plugins: list[PluginRecord]) -> None:
    """Write the plugin selection, overwriting the whole file.

    Args:
        path: Path to the selection file
        plugins: Records to persist, in display order

    Raises:
        OSError: If the file cannot be written
    """
    data = {
        "selectedPlugins": [plugin.to_selection_entry() for plugin in plugins],
        "lastUpdated": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    save_json(path, data)
