"""Actions package - reversible host changes with explicit contracts.

Each action declares:
- read_only: Whether it modifies the host
- requires_backup: Whether previous state is kept for revert
- rollback_support: Whether it can undo changes
- prerequisites: What is checked at plan time, before any mutation
"""

from nix_installer.action.contract import (
    Action,
    ActionContract,
    ActionDescription,
    ActionState,
    UnknownActionError,
    action_from_dict,
    get_all_actions,
    register_action,
)
from nix_installer.action.create_file import CreateFile, CreateFileError
from nix_installer.action.place_channel_configuration import (
    PlaceChannelConfiguration,
    PlaceChannelConfigurationError,
)

__all__ = [
    "Action",
    "ActionContract",
    "ActionDescription",
    "ActionState",
    "UnknownActionError",
    "action_from_dict",
    "get_all_actions",
    "register_action",
    "CreateFile",
    "CreateFileError",
    "PlaceChannelConfiguration",
    "PlaceChannelConfigurationError",
]
