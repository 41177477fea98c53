"""Configuration management for nix-installer settings."""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import AnyUrl, BaseModel, Field, TypeAdapter, ValidationError, field_validator

from nix_installer.errors import InstallerError

DEFAULT_CHANNELS = [("nixpkgs", "https://nixos.org/channels/nixpkgs-unstable")]

_url_adapter = TypeAdapter(AnyUrl)


class ConfigError(InstallerError):
    """Settings file could not be read or did not validate."""

    class Kind(Enum):
        READ = "Read"
        INVALID = "Invalid"

    def __init__(self, kind: "ConfigError.Kind", path: Path, message: str) -> None:
        super().__init__(kind, message)
        self.path = path

    def context(self) -> list[str]:
        return [str(self.path)]


class ChannelSpec(BaseModel):
    """A named channel URL."""

    name: str = Field(..., min_length=1, pattern=r"^\S+$")
    url: str

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        # Validate syntax but keep the string as written; AnyUrl normalizes.
        try:
            _url_adapter.validate_python(value)
        except ValidationError as e:
            raise ValueError(f"Invalid channel URL `{value}`") from e
        return value

    @classmethod
    def parse(cls, raw: str) -> "ChannelSpec":
        """Parse ``name=url`` as given on the command line."""
        name, sep, url = raw.partition("=")
        if not sep:
            raise ValueError(f"Expected NAME=URL, got `{raw}`")
        return cls(name=name.strip(), url=url.strip())

    def as_pair(self) -> tuple[str, str]:
        return (self.name, self.url)


class InstallerSettings(BaseModel):
    """Settings read from ``settings.yaml``."""

    channels: list[ChannelSpec] = Field(
        default_factory=lambda: [ChannelSpec(name=n, url=u) for n, u in DEFAULT_CHANNELS]
    )
    force: bool = False
    self_test_timeout: float | None = Field(default=None, gt=0)
    concurrent_self_test: bool = False

    @field_validator("channels")
    @classmethod
    def _unique_names(cls, value: list[ChannelSpec]) -> list[ChannelSpec]:
        names = [channel.name for channel in value]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate channel names: {', '.join(duplicates)}")
        return value

    def channel_pairs(self) -> list[tuple[str, str]]:
        return [channel.as_pair() for channel in self.channels]


class ConfigManager:
    """Manages installer settings and receipt location in a config directory."""

    def __init__(self, config_dir: Path | None = None) -> None:
        if config_dir is None:
            # Check for environment variable override
            env_config = os.getenv("NIX_INSTALLER_CONFIG")
            if env_config:
                config_dir = Path(env_config).expanduser().resolve()
            else:
                # Default to ~/.nix-installer
                config_dir = Path.home() / ".nix-installer"

        self.config_dir = config_dir
        self.settings_file = config_dir / "settings.yaml"
        self.receipt_file = config_dir / "receipt.json"

    def ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def _load_raw(self) -> dict[str, Any]:
        if not self.settings_file.exists():
            return {}
        try:
            with open(self.settings_file, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(
                ConfigError.Kind.READ,
                self.settings_file,
                f"Could not read {self.settings_file}: {e}",
            ) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                ConfigError.Kind.INVALID,
                self.settings_file,
                f"{self.settings_file} must contain a mapping",
            )
        return data

    def load(self) -> InstallerSettings:
        """Load settings, falling back to defaults when no file exists."""
        data = self._load_raw()
        try:
            return InstallerSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                ConfigError.Kind.INVALID,
                self.settings_file,
                f"Invalid settings in {self.settings_file}:\n{e}",
            ) from e

    def save(self, settings: InstallerSettings) -> None:
        """Save settings to the YAML file."""
        self.ensure_config_dir()
        with open(self.settings_file, "w") as f:
            yaml.safe_dump(settings.model_dump(), f, sort_keys=False)
