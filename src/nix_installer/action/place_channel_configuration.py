"""Place Channel Configuration Action - write ``~/.nix-channels``.

CONTRACT:
- read_only: False (MODIFIES HOST)
- requires_backup: True (delegated to CreateFile)
- rollback_support: True
- prerequisites: ["home directory resolvable"]

The channel list is serialized once at plan time; execute and revert only
forward to the owned CreateFile action.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

from nix_installer.action.contract import (
    Action,
    ActionContract,
    ActionDescription,
    register_action,
)
from nix_installer.action.create_file import CreateFile, CreateFileError
from nix_installer.errors import InstallerError

CHANNELS_FILE_NAME = ".nix-channels"
CHANNELS_FILE_MODE = 0o664


class PlaceChannelConfigurationError(InstallerError):
    """Planning failure of the channel configuration."""

    class Kind(Enum):
        CREATE_FILE = "CreateFile"
        NO_ROOT_HOME = "NoRootHome"

    def __init__(
        self,
        kind: "PlaceChannelConfigurationError.Kind",
        message: str,
        path: Path | None = None,
    ) -> None:
        super().__init__(kind, message)
        self.path = path

    def context(self) -> list[str]:
        return [str(self.path)] if self.path is not None else []


def home_dir() -> Path | None:
    """Home directory of the invoking user, or None when it cannot be determined."""
    home = os.path.expanduser("~")
    if home == "~" or not home:
        return None
    return Path(home)


def render_channels(channels: Sequence[tuple[str, str]]) -> str:
    """One ``<url> <name>`` line per channel, in the given order."""
    return "\n".join(f"{url} {name}" for name, url in channels)


@register_action
class PlaceChannelConfiguration(Action):
    """Install the channel list as the user's channel configuration."""

    tag = "place_channel_configuration"
    CONTRACT = ActionContract(
        read_only=False,
        requires_backup=True,
        rollback_support=True,
        prerequisites=["home directory resolvable"],
    )

    def __init__(self, channels: Sequence[tuple[str, str]], create_file: CreateFile) -> None:
        super().__init__()
        self.channels = tuple((name, str(url)) for name, url in channels)
        self.create_file = create_file

    @classmethod
    def plan(
        cls,
        channels: Sequence[tuple[str, str]],
        force: bool = False,
    ) -> "PlaceChannelConfiguration":
        """Serialize ``channels`` and plan writing them to ``~/.nix-channels``.

        Args:
            channels: Ordered (name, url) pairs.
            force: Overwrite an existing file with different content.

        Raises:
            PlaceChannelConfigurationError: NO_ROOT_HOME when the home
                directory is unknown, CREATE_FILE wrapping the file planning
                failure otherwise.
        """
        channels = tuple((name, str(url)) for name, url in channels)
        buf = render_channels(channels)

        home = home_dir()
        if home is None:
            raise PlaceChannelConfigurationError(
                PlaceChannelConfigurationError.Kind.NO_ROOT_HOME,
                "No root home found to place channel configuration in",
            )

        path = home / CHANNELS_FILE_NAME
        try:
            create_file = CreateFile.plan(path, None, None, CHANNELS_FILE_MODE, buf, force)
        except CreateFileError as e:
            raise PlaceChannelConfigurationError(
                PlaceChannelConfigurationError.Kind.CREATE_FILE,
                f"Creating file: {e}",
                path=path,
            ) from e

        return cls(channels, create_file)

    def tracing_synopsis(self) -> str:
        return f"Place channel configuration at `{self.create_file.path}`"

    def execute_description(self) -> list[ActionDescription]:
        return [ActionDescription(self.tracing_synopsis())]

    def revert_description(self) -> list[ActionDescription]:
        path = self.create_file.path
        if self.create_file.previous_buf is not None:
            return [ActionDescription(f"Restore previous channel configuration at `{path}`")]
        return [ActionDescription(f"Remove channel configuration at `{path}`")]

    def tracing_fields(self) -> dict[str, Any]:
        return {"channels": ", ".join(f"{name}={url}" for name, url in self.channels)}

    def _execute(self) -> None:
        self.create_file.execute()

    def _revert(self) -> None:
        self.create_file.revert()

    def to_dict(self) -> dict[str, Any]:
        return {
            "channels": [[name, url] for name, url in self.channels],
            "create_file": self.create_file.serialize(),
        }

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "PlaceChannelConfiguration":
        create_file = CreateFile._from_dict(data["create_file"])
        create_file.set_action_state(data["create_file"].get("state", "uncompleted"))
        return cls([tuple(pair) for pair in data["channels"]], create_file)
