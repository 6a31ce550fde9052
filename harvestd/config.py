"""Configuration management with Pydantic and XDG base directory support."""

import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from harvestd.utils.hashing import persistence_key_for
from harvestd.utils.paths import (
    canonical_directory_root,
    get_xdg_config_home,
    get_xdg_data_home,
    strip_ending_slash,
)

ListenerPolicy = Literal["fanout", "single"]
HarvesterKind = Literal["directory", "webdav"]

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


class Settings(BaseSettings):
    """harvestd configuration settings.

    Precedence: CLI flag > environment variable > config file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="HARVESTD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data directories
    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/harvestd)",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Override config directory (defaults to XDG_CONFIG_HOME/harvestd)",
    )

    # Polling
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        gt=0,
        description="Fixed delay between two polls of the same harvester",
    )

    listener_policy: ListenerPolicy = Field(
        default="fanout",
        description="Listener cardinality: 'fanout' (unbounded) or 'single'",
    )

    skip_poll_without_listeners: bool = Field(
        default=True,
        description="Skip diff and dispatch while no listener is registered",
    )

    attribute_overrides: list[str] = Field(
        default_factory=list,
        description="Attribute overrides in key=value form attached to every harvested resource",
    )

    webdav_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for WebDAV requests (seconds)",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level used by the CLI",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)
    _data_dir_warning_emitted: bool = PrivateAttr(default=False)

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self._resolved_data_dir is not None and self.data_dir in (None, self._resolved_data_dir):
            return self._resolved_data_dir

        if self.data_dir:
            data_dir = self.data_dir
            data_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = data_dir
            return data_dir

        primary_dir = get_xdg_data_home() / "harvestd"
        try:
            primary_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = primary_dir
            return primary_dir
        except PermissionError as exc:
            fallback = Path.cwd() / ".harvestd-data"
            fallback.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = fallback
            if not self._data_dir_warning_emitted:
                print(
                    f"Warning: cannot create data directory at {primary_dir} ({exc}). "
                    f"Using local '{fallback}' instead. Pass --data-dir to override.",
                    file=sys.stderr,
                )
                self._data_dir_warning_emitted = True
            return fallback

    def get_config_dir(self) -> Path:
        """Get the config directory, creating if necessary."""
        if self.config_dir:
            config_dir = self.config_dir
        else:
            config_dir = get_xdg_config_home() / "harvestd"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_state_dir(self) -> Path:
        """Get the root directory for persisted harvest state."""
        state_dir = self.get_data_dir() / "harvest"
        state_dir.mkdir(parents=True, exist_ok=True)
        return state_dir

    def get_snapshot_dir(self) -> Path:
        """Get the directory holding persisted tree snapshots."""
        return self.get_state_dir() / "snapshots"

    def get_correlation_dir(self, listener_id: str) -> Path:
        """Get the correlation map directory scoped to ``listener_id``."""
        return self.get_state_dir() / "persistent" / persistence_key_for(listener_id)

    def get_catalog_dir(self) -> Path:
        """Get the local catalog directory."""
        catalog_dir = self.get_data_dir() / "catalog"
        catalog_dir.mkdir(parents=True, exist_ok=True)
        return catalog_dir

    def get_profile_path(self) -> Path:
        """Get path to the default harvest profile."""
        return self.get_config_dir() / "profiles" / "default.yaml"


class HarvesterConfig(BaseModel):
    """Operator configuration for a single harvester."""

    id: str | None = Field(
        default=None,
        description="Identifier listeners use to bind to this harvester (defaults to root)",
    )
    root: str = Field(..., min_length=1, description="Directory path or WebDAV collection URL")
    kind: HarvesterKind = Field(default="directory", description="Tree lister to use")
    attribute_overrides: list[str] = Field(default_factory=list)
    listener_policy: ListenerPolicy = "fanout"
    skip_poll_without_listeners: bool = True
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)

    @field_validator("root")
    def _canonical_root(cls, value: str) -> str:
        return strip_ending_slash(value.strip())

    @model_validator(mode="after")
    def _absolute_directory_root(self) -> "HarvesterConfig":
        # Directory roots key persisted state, so they must not depend on the cwd.
        if self.kind == "directory":
            self.root = canonical_directory_root(self.root)
        return self

    @property
    def harvester_id(self) -> str:
        """Return the configured id, falling back to the canonical root."""
        return self.id or self.root


class ListenerConfig(BaseModel):
    """Operator configuration for a persistent listener."""

    id: str = Field(..., min_length=1, description="Persistence scope of the correlation map")
    watch: str = Field(..., min_length=1, description="Id of the harvester to listen to")


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
