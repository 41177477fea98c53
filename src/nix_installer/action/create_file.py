"""Create File Action - write a file with fixed content, mode and owner.

CONTRACT:
- read_only: False (MODIFIES HOST)
- requires_backup: True (previous content is kept for revert)
- rollback_support: True
- prerequisites: ["parent directory exists", "owner/group resolvable"]
"""

import grp
import logging
import os
import pwd
import shutil
from enum import Enum
from pathlib import Path
from typing import Any

from nix_installer.action.contract import (
    Action,
    ActionContract,
    ActionDescription,
    register_action,
)
from nix_installer.errors import InstallerError

logger = logging.getLogger(__name__)


class CreateFileError(InstallerError):
    """Failure planning, writing or removing a file."""

    class Kind(Enum):
        EXISTS = "Exists"
        NOT_A_FILE = "NotAFile"
        PARENT_MISSING = "ParentMissing"
        NO_USER = "NoUser"
        NO_GROUP = "NoGroup"
        READ = "Read"
        WRITE = "Write"
        REMOVE = "Remove"

    def __init__(self, kind: "CreateFileError.Kind", path: Path, message: str) -> None:
        super().__init__(kind, message)
        self.path = path

    def context(self) -> list[str]:
        return [str(self.path)]


@register_action
class CreateFile(Action):
    """Create (or, with force, overwrite) a single file.

    The content, mode and ownership are fixed at plan time. Whatever the
    path held before execute() is remembered so revert() can put it back;
    a file that did not exist is simply removed.
    """

    tag = "create_file"
    CONTRACT = ActionContract(
        read_only=False,
        requires_backup=True,
        rollback_support=True,
        prerequisites=["parent directory exists", "owner/group resolvable"],
    )

    def __init__(
        self,
        path: Path,
        user: str | None,
        group: str | None,
        mode: int,
        buf: str,
        force: bool,
    ) -> None:
        super().__init__()
        self.path = path
        self.user = user
        self.group = group
        self.mode = mode
        self.buf = buf
        self.force = force
        self.previous_buf: str | None = None
        self.previous_mode: int | None = None

    @classmethod
    def plan(
        cls,
        path: Path | str,
        user: str | None,
        group: str | None,
        mode: int,
        buf: str,
        force: bool,
    ) -> "CreateFile":
        """Validate the target and build the action.

        Args:
            path: File to create.
            user: Owning user name, or None to leave ownership alone.
            group: Owning group name, or None to leave ownership alone.
            mode: Permission bits applied with chmod (umask is ignored).
            buf: Exact file content.
            force: Overwrite an existing file with different content.

        Raises:
            CreateFileError: If the file cannot be created as requested.
        """
        path = Path(path)

        if not path.parent.is_dir():
            raise CreateFileError(
                CreateFileError.Kind.PARENT_MISSING,
                path,
                f"Parent directory of `{path}` does not exist",
            )

        if user is not None:
            try:
                pwd.getpwnam(user)
            except KeyError as e:
                raise CreateFileError(
                    CreateFileError.Kind.NO_USER, path, f"User `{user}` not found"
                ) from e

        if group is not None:
            try:
                grp.getgrnam(group)
            except KeyError as e:
                raise CreateFileError(
                    CreateFileError.Kind.NO_GROUP, path, f"Group `{group}` not found"
                ) from e

        if path.exists() or path.is_symlink():
            if not path.is_file():
                raise CreateFileError(
                    CreateFileError.Kind.NOT_A_FILE,
                    path,
                    f"`{path}` exists and is not a regular file",
                )
            if not force and _read_text(path) != buf:
                raise CreateFileError(
                    CreateFileError.Kind.EXISTS,
                    path,
                    f"File `{path}` already exists with different content, "
                    "consider removing it or passing force",
                )

        return cls(path, user, group, mode, buf, force)

    def tracing_synopsis(self) -> str:
        return f"Create or overwrite file `{self.path}`"

    def execute_description(self) -> list[ActionDescription]:
        return [
            ActionDescription(
                self.tracing_synopsis(),
                [f"Mode {self.mode:04o}", *self._ownership_lines()],
            )
        ]

    def revert_description(self) -> list[ActionDescription]:
        if self.previous_buf is not None:
            return [ActionDescription(f"Restore previous content of file `{self.path}`")]
        return [ActionDescription(f"Delete file `{self.path}`")]

    def tracing_fields(self) -> dict[str, Any]:
        return {"path": str(self.path), "mode": f"{self.mode:04o}"}

    def _ownership_lines(self) -> list[str]:
        lines = []
        if self.user is not None:
            lines.append(f"Owner {self.user}")
        if self.group is not None:
            lines.append(f"Group {self.group}")
        return lines

    def _execute(self) -> None:
        if self.path.is_file():
            self.previous_buf = _read_text(self.path)
            self.previous_mode = self.path.stat().st_mode & 0o7777
        else:
            self.previous_buf = None
            self.previous_mode = None

        _write_atomic(self.path, self.buf, self.mode, self.user, self.group)

    def _revert(self) -> None:
        if self.previous_buf is not None:
            logger.debug("Restoring previous content of %s", self.path)
            _write_atomic(
                self.path,
                self.previous_buf,
                self.previous_mode if self.previous_mode is not None else self.mode,
                None,
                None,
            )
            return

        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.debug("%s already removed", self.path)
        except OSError as e:
            raise CreateFileError(
                CreateFileError.Kind.REMOVE, self.path, f"Removing file `{self.path}`"
            ) from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "user": self.user,
            "group": self.group,
            "mode": self.mode,
            "buf": self.buf,
            "force": self.force,
            "previous_buf": self.previous_buf,
            "previous_mode": self.previous_mode,
        }

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "CreateFile":
        action = cls(
            Path(data["path"]),
            data.get("user"),
            data.get("group"),
            int(data["mode"]),
            data["buf"],
            bool(data.get("force", False)),
        )
        action.previous_buf = data.get("previous_buf")
        action.previous_mode = data.get("previous_mode")
        return action


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CreateFileError(
            CreateFileError.Kind.READ, path, f"Reading file `{path}`"
        ) from e


def _write_atomic(
    path: Path,
    buf: str,
    mode: int,
    user: str | None,
    group: str | None,
) -> None:
    """Write via a temp sibling and rename so readers never see partial content."""
    temp_path = path.with_name(f".{path.name}.nix-installer.tmp")
    try:
        temp_path.write_text(buf, encoding="utf-8")
        os.chmod(temp_path, mode)
        if user is not None or group is not None:
            shutil.chown(temp_path, user, group)
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise CreateFileError(
            CreateFileError.Kind.WRITE, path, f"Writing file `{path}`"
        ) from e
