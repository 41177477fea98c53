"""Receipt - persisted action so a later run can revert it.

The receipt is the action's tagged serialization, state included, written
as JSON next to the settings file.
"""

import json
import logging
from enum import Enum
from pathlib import Path

from nix_installer.action import Action, UnknownActionError, action_from_dict
from nix_installer.errors import InstallerError

logger = logging.getLogger(__name__)


class ReceiptError(InstallerError):
    """Receipt missing, unreadable, unwritable or already present."""

    class Kind(Enum):
        MISSING = "Missing"
        CORRUPT = "Corrupt"
        WRITE = "Write"
        EXISTS = "Exists"

    def __init__(self, kind: "ReceiptError.Kind", path: Path, message: str) -> None:
        super().__init__(kind, message)
        self.path = path

    def context(self) -> list[str]:
        return [str(self.path)]


def save_receipt(action: Action, path: Path) -> None:
    """Write ``action`` to ``path`` atomically."""
    tmp = path.with_suffix(".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w") as fh:
            json.dump(action.serialize(), fh, indent=2)
            fh.write("\n")
        tmp.rename(path)
    except OSError as e:
        raise ReceiptError(
            ReceiptError.Kind.WRITE, path, f"Could not write receipt {path}: {e}"
        ) from e
    logger.debug("Receipt written to %s", path)


def load_receipt(path: Path) -> Action:
    """Rebuild the action stored at ``path``."""
    if not path.exists():
        raise ReceiptError(ReceiptError.Kind.MISSING, path, f"No receipt found at {path}")

    try:
        with open(path) as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise ReceiptError(
            ReceiptError.Kind.CORRUPT, path, f"Could not read receipt {path}: {e}"
        ) from e

    if not isinstance(data, dict):
        raise ReceiptError(ReceiptError.Kind.CORRUPT, path, f"Receipt {path} is not an object")

    try:
        return action_from_dict(data)
    except UnknownActionError as e:
        raise ReceiptError(ReceiptError.Kind.CORRUPT, path, f"Receipt {path}: {e}") from e


def remove_receipt(path: Path) -> None:
    path.unlink(missing_ok=True)
