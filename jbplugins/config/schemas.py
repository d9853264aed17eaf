"""Pydantic schemas for jb-plugins data and configuration files.

This module defines the data models for:
- plugin records exchanged with the JetBrains Marketplace
- ~/.jb-plugins-config.json (persisted plugin selection)
- config.yaml (user settings)
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from jbplugins.utils.platform import get_home_directory

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_MARKETPLACE_URL = "https://plugins.jetbrains.com"
DEFAULT_COMMAND = "idea"
UNKNOWN_ORGANIZATION = "Unknown"
SELECTION_FILE_NAME = ".jb-plugins-config.json"


def default_selection_file() -> Path:
    """Location of the persisted selection in the user's home directory."""
    return Path(get_home_directory()) / SELECTION_FILE_NAME


def default_settings_file() -> Path:
    """Location of the optional settings file."""
    return Path(get_home_directory()) / ".config" / "jb-plugins" / "config.yaml"


# =============================================================================
# Plugin Models
# =============================================================================


class PluginRecord(BaseModel):
    """A plugin known to the tool.

    Only xmlId, name and organization are persisted; the remaining fields are
    filled in from marketplace responses and used for ranking and display.
    """

    model_config = {"populate_by_name": True}

    xml_id: str = Field(alias="xmlId", min_length=1)
    name: str = ""
    organization: str = UNKNOWN_ORGANIZATION
    downloads: int | None = Field(default=None, ge=0)
    latest_version: str | None = Field(default=None, alias="latestVersion")
    idea_version: str | None = Field(default=None, alias="ideaVersion")
    plugin_id: int | None = Field(default=None, alias="id")  # Numeric marketplace id
    link: str | None = None  # Marketplace path, e.g. "/plugin/164-ideavim"

    @model_validator(mode="after")
    def default_name(self) -> "PluginRecord":
        """Fall back to the identifier when the marketplace omits a name."""
        if not self.name:
            self.name = self.xml_id
        return self

    def page_url(self, base_url: str = DEFAULT_MARKETPLACE_URL) -> str | None:
        """Marketplace page for this plugin, if it can be built."""
        if self.link:
            return f"{base_url}{self.link}"
        if self.plugin_id is not None:
            return f"{base_url}/plugin/{self.plugin_id}"
        return None

    def to_selection_entry(self) -> dict[str, str]:
        """Serialize the persisted subset of this record."""
        return {"xmlId": self.xml_id, "name": self.name, "organization": self.organization}


class PluginVersion(BaseModel):
    """Latest published update of a plugin."""

    version: str
    idea_version: str = "N/A"


# =============================================================================
# Selection File
# =============================================================================


class SelectionFile(BaseModel):
    """Schema for the persisted selection file."""

    model_config = {"populate_by_name": True}

    selected_plugins: list[PluginRecord] = Field(default_factory=list, alias="selectedPlugins")
    last_updated: str | None = Field(default=None, alias="lastUpdated")  # Informational only


# =============================================================================
# Settings
# =============================================================================


class Settings(BaseModel):
    """User settings (config.yaml plus environment overrides)."""

    marketplace_url: str = DEFAULT_MARKETPLACE_URL
    selection_file: Path = Field(default_factory=default_selection_file)
    default_command: str = DEFAULT_COMMAND
    max_results: int = Field(default=20, ge=1)
    debounce_ms: int = Field(default=300, ge=0)
    page_size: int = Field(default=8, ge=1)
    enrich_limit: int = Field(default=100, ge=0)

    @field_validator("marketplace_url")
    @classmethod
    def validate_marketplace_url(cls, v: str) -> str:
        """Require an http(s) URL and drop the trailing slash."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"marketplace_url must be an http(s) URL: {v}")
        return v.rstrip("/")

    @field_validator("selection_file")
    @classmethod
    def expand_selection_file(cls, v: Path) -> Path:
        """Expand ~ in the selection file path."""
        return v.expanduser()

    @field_validator("default_command")
    @classmethod
    def validate_default_command(cls, v: str) -> str:
        """The fallback command must not be blank."""
        if not v.strip():
            raise ValueError("default_command cannot be empty")
        return v.strip()

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000
