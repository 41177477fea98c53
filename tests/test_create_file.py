"""Tests for the CreateFile action."""

import os
import stat
from unittest.mock import patch

import pytest

from nix_installer.action import ActionState, CreateFile, CreateFileError


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


def test_execute_writes_content_and_mode(tmp_path):
    target = tmp_path / "file.txt"
    action = CreateFile.plan(target, None, None, 0o664, "hello", False)

    action.execute()

    assert target.read_text() == "hello"
    assert _mode(target) == 0o664
    assert action.action_state() == ActionState.COMPLETED


def test_mode_ignores_umask(tmp_path):
    target = tmp_path / "file.txt"
    old_umask = os.umask(0o077)
    try:
        CreateFile.plan(target, None, None, 0o664, "x", False).execute()
    finally:
        os.umask(old_umask)
    assert _mode(target) == 0o664


def test_revert_removes_new_file(tmp_path):
    target = tmp_path / "file.txt"
    action = CreateFile.plan(target, None, None, 0o644, "hello", False)

    action.execute()
    action.revert()

    assert not target.exists()
    assert action.action_state() == ActionState.UNCOMPLETED


def test_force_overwrite_is_restored_on_revert(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("original")
    os.chmod(target, 0o600)

    action = CreateFile.plan(target, None, None, 0o664, "replacement", True)
    action.execute()
    assert target.read_text() == "replacement"

    action.revert()
    assert target.read_text() == "original"
    assert _mode(target) == 0o600


def test_existing_different_content_without_force(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("something else")

    with pytest.raises(CreateFileError) as excinfo:
        CreateFile.plan(target, None, None, 0o664, "hello", False)

    assert excinfo.value.kind == CreateFileError.Kind.EXISTS
    assert excinfo.value.diagnostic() == f'Exists("{target}")'
    assert target.read_text() == "something else"


def test_existing_identical_content_without_force(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("hello")

    action = CreateFile.plan(target, None, None, 0o664, "hello", False)
    action.execute()
    action.revert()

    # Revert puts back what was there before execute
    assert target.read_text() == "hello"


def test_missing_parent(tmp_path):
    with pytest.raises(CreateFileError) as excinfo:
        CreateFile.plan(tmp_path / "nope" / "file.txt", None, None, 0o664, "", False)
    assert excinfo.value.kind == CreateFileError.Kind.PARENT_MISSING


def test_directory_in_the_way(tmp_path):
    (tmp_path / "dir").mkdir()
    with pytest.raises(CreateFileError) as excinfo:
        CreateFile.plan(tmp_path / "dir", None, None, 0o664, "", True)
    assert excinfo.value.kind == CreateFileError.Kind.NOT_A_FILE


def test_unknown_user(tmp_path):
    with patch("nix_installer.action.create_file.pwd.getpwnam", side_effect=KeyError("ghost")):
        with pytest.raises(CreateFileError) as excinfo:
            CreateFile.plan(tmp_path / "f", "ghost", None, 0o664, "", False)
    assert excinfo.value.kind == CreateFileError.Kind.NO_USER
    assert isinstance(excinfo.value.__cause__, KeyError)


def test_unknown_group(tmp_path):
    with patch("nix_installer.action.create_file.grp.getgrnam", side_effect=KeyError("ghost")):
        with pytest.raises(CreateFileError) as excinfo:
            CreateFile.plan(tmp_path / "f", None, "ghost", 0o664, "", False)
    assert excinfo.value.kind == CreateFileError.Kind.NO_GROUP


def test_write_failure_wraps_os_error(tmp_path):
    target = tmp_path / "file.txt"
    action = CreateFile.plan(target, None, None, 0o664, "hello", False)

    with patch("nix_installer.action.create_file.os.replace", side_effect=PermissionError("denied")):
        with pytest.raises(CreateFileError) as excinfo:
            action.execute()

    assert excinfo.value.kind == CreateFileError.Kind.WRITE
    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert action.action_state() == ActionState.UNCOMPLETED
    assert list(tmp_path.iterdir()) == []


def test_descriptions(tmp_path):
    action = CreateFile.plan(tmp_path / "f", None, None, 0o664, "", False)
    [description] = action.execute_description()
    assert description.description == f"Create or overwrite file `{tmp_path / 'f'}`"
    assert description.explanation == ["Mode 0664"]
    assert action.revert_description()[0].description == f"Delete file `{tmp_path / 'f'}`"


def test_revert_description_after_overwrite(tmp_path):
    target = tmp_path / "f"
    target.write_text("before")
    action = CreateFile.plan(target, None, None, 0o664, "after", True)
    action.execute()

    [description] = action.revert_description()
    assert description.description == f"Restore previous content of file `{target}`"


def test_serialization_keeps_previous_content(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("before")
    action = CreateFile.plan(target, None, None, 0o664, "after", True)
    action.execute()

    restored = CreateFile._from_dict(action.serialize())
    restored.set_action_state(ActionState.COMPLETED)
    restored.revert()

    assert target.read_text() == "before"
